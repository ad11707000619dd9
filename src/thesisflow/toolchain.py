from __future__ import annotations

from pathlib import Path
import subprocess
from typing import Callable

RunCommand = Callable[..., subprocess.CompletedProcess[str]]

STALE_ARTIFACT_SUFFIXES: tuple[str, ...] = (
    ".aux",
    ".bbl",
    ".blg",
    ".log",
    ".out",
    ".toc",
    ".lof",
    ".lot",
    ".fls",
    ".fdb_latexmk",
    ".synctex.gz",
)

_DOCUMENT_CLASS_MARKER = "\\documentclass"


def _is_stale_artifact(path: Path) -> bool:
    return path.is_file() and any(path.name.endswith(suffix) for suffix in STALE_ARTIFACT_SUFFIXES)


def discover_units(document_dir: Path) -> list[str]:
    """Top-level ``.tex`` files that declare a document class, by name."""
    units: list[str] = []
    for path in sorted(document_dir.glob("*.tex")):
        if not path.is_file():
            continue
        try:
            text = path.read_text(encoding="utf-8", errors="replace")
        except OSError:
            continue
        if _DOCUMENT_CLASS_MARKER in text:
            units.append(path.stem)
    return units


class LatexToolchain:
    def __init__(
        self,
        document_dir: Path,
        *,
        typeset_command: str = "pdflatex",
        bibliography_command: str = "bibtex",
        run: RunCommand = subprocess.run,
    ):
        self.document_dir = document_dir
        self.typeset_command = typeset_command
        self.bibliography_command = bibliography_command
        self._run = run

    def _call(self, argv: list[str]) -> int:
        proc = self._run(
            argv,
            cwd=str(self.document_dir),
            capture_output=True,
            text=True,
            check=False,
        )
        return proc.returncode

    def typeset(self, unit: str) -> int:
        return self._call(
            [
                self.typeset_command,
                "-interaction=nonstopmode",
                "-halt-on-error",
                f"{unit}.tex",
            ]
        )

    def resolve_references(self, unit: str) -> int:
        return self._call([self.bibliography_command, unit])

    def clean_stale_artifacts(self) -> list[Path]:
        removed: list[Path] = []
        for path in sorted(self.document_dir.iterdir()):
            if _is_stale_artifact(path):
                path.unlink()
                removed.append(path)
        return removed
