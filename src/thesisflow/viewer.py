from __future__ import annotations

from pathlib import Path
import shlex
import subprocess
from typing import Callable

from thesisflow.exceptions import ConfigurationError

RunCommand = Callable[..., subprocess.CompletedProcess[str]]


class Viewer:
    """Launches the configured difftool and editor and waits for them."""

    def __init__(self, difftool: str, editor: str, *, run: RunCommand = subprocess.run):
        self.difftool = difftool
        self.editor = editor
        self._run = run

    def compare(self, left: Path, right: Path) -> int:
        return self._launch(self.difftool, [left, right])

    def edit(self, path: Path) -> int:
        return self._launch(self.editor, [path])

    def _launch(self, command: str, paths: list[Path]) -> int:
        argv = [*shlex.split(command), *(str(path) for path in paths)]
        try:
            return self._run(argv, check=False).returncode
        except OSError as exc:
            raise ConfigurationError(f"cannot launch {command!r}: {exc}") from exc
