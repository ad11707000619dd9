"""ssh/scp transport to the host holding the shared repository."""

from __future__ import annotations

from pathlib import Path
import shlex
import subprocess
from typing import Callable, Sequence

from thesisflow.exceptions import TransportError

RunCommand = Callable[..., subprocess.CompletedProcess[str]]

SSH_CONNECTION_FAILURE = 255


def _failure_detail(proc: subprocess.CompletedProcess[str]) -> str:
    detail = (proc.stderr or "").strip() or (proc.stdout or "").strip()
    return f": {detail}" if detail else ""


class RemoteTransport:
    def __init__(self, endpoint: str, *, run: RunCommand = subprocess.run):
        if not endpoint.strip():
            raise ValueError("remote endpoint must not be empty")
        self.endpoint = endpoint
        self._run = run

    def exec_script(
        self, script: str, args: Sequence[str]
    ) -> subprocess.CompletedProcess[str]:
        """Run ``script`` with ``sh`` on the remote host, feeding it on stdin."""
        remote_command = " ".join(["sh", "-s", "--", *(shlex.quote(arg) for arg in args)])
        proc = self._invoke(
            ["ssh", self.endpoint, remote_command],
            input=script,
            capture_output=True,
            text=True,
        )
        if proc.returncode == SSH_CONNECTION_FAILURE:
            raise TransportError(
                f"could not reach {self.endpoint}{_failure_detail(proc)}",
                endpoint=self.endpoint,
                returncode=proc.returncode,
            )
        return proc

    def _invoke(self, argv: list[str], **kwargs: object) -> subprocess.CompletedProcess[str]:
        try:
            return self._run(argv, check=False, **kwargs)
        except OSError as exc:
            raise TransportError(
                f"could not run {argv[0]}: {exc}", endpoint=self.endpoint
            ) from exc

    def copy_to(self, local_paths: Sequence[Path], remote_path: str) -> None:
        if not local_paths:
            return
        self._copy(
            ["scp", "-r", *(str(path) for path in local_paths), f"{self.endpoint}:{remote_path}/"]
        )

    def copy_from(self, remote_path: str, local_dir: Path) -> None:
        self._copy(["scp", "-r", f"{self.endpoint}:{remote_path}/*", str(local_dir)])

    def _copy(self, argv: list[str]) -> None:
        proc = self._invoke(argv, capture_output=True, text=True)
        if proc.returncode != 0:
            raise TransportError(
                f"`{' '.join(argv)}` failed with status {proc.returncode}{_failure_detail(proc)}",
                endpoint=self.endpoint,
                returncode=proc.returncode,
            )
