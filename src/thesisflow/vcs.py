"""Thin wrapper over the ``git`` executable for one working copy."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path, PurePosixPath
import subprocess
from typing import Callable, Sequence

from thesisflow.exceptions import COMMAND_NOT_FOUND, VcsError
from thesisflow.permissions import Branch

RunCommand = Callable[..., subprocess.CompletedProcess]

DEFAULT_REMOTE = "origin"


@dataclass(frozen=True)
class BranchListing:
    branches: tuple[Branch, ...]
    current: Branch | None


def parse_branch_listing(raw: str) -> BranchListing:
    branches: list[Branch] = []
    current: Branch | None = None
    for line in raw.splitlines():
        if not line.strip():
            continue
        marker, name = line[:2], line[2:].strip()
        # "(HEAD detached at ...)" and similar pseudo entries
        if name.startswith("("):
            continue
        branch = Branch(name)
        branches.append(branch)
        if marker.startswith("*"):
            current = branch
    return BranchListing(branches=tuple(branches), current=current)


def _output_text(proc: subprocess.CompletedProcess) -> str:
    parts = []
    for stream in (proc.stdout, proc.stderr):
        if not stream:
            continue
        if isinstance(stream, bytes):
            stream = stream.decode("utf-8", errors="replace")
        parts.append(stream.strip())
    return "\n".join(part for part in parts if part)


def _invoke(run: RunCommand, argv: list[str], **kwargs: object) -> subprocess.CompletedProcess:
    try:
        return run(argv, check=False, **kwargs)
    except OSError as exc:
        raise VcsError(argv, COMMAND_NOT_FOUND, f"could not run git: {exc}") from exc


class Git:
    def __init__(self, root: Path, *, run: RunCommand = subprocess.run):
        self.root = root
        self._run = run

    def _argv(self, args: Sequence[str]) -> list[str]:
        return ["git", "-C", str(self.root), *args]

    def call(self, *args: str, check: bool = True) -> subprocess.CompletedProcess[str]:
        argv = self._argv(args)
        proc = _invoke(self._run, argv, capture_output=True, text=True)
        if check and proc.returncode != 0:
            raise VcsError(argv, proc.returncode, _output_text(proc))
        return proc

    @classmethod
    def clone(
        cls, url: str, destination: Path, *, run: RunCommand = subprocess.run
    ) -> "Git":
        argv = ["git", "clone", url, str(destination)]
        proc = _invoke(run, argv, capture_output=True, text=True)
        if proc.returncode != 0:
            raise VcsError(argv, proc.returncode, _output_text(proc))
        return cls(destination, run=run)

    def is_repository(self) -> bool:
        return self.call("rev-parse", "--git-dir", check=False).returncode == 0

    def init(self) -> None:
        self.call("init", "--quiet")

    def has_commits(self) -> bool:
        return self.call("rev-parse", "--verify", "--quiet", "HEAD", check=False).returncode == 0

    def point_head_at(self, branch: Branch) -> None:
        """Name the branch an unborn HEAD will create on the first commit."""
        self.call("symbolic-ref", "HEAD", f"refs/heads/{branch.name}")

    def commit(self, message: str, *, all_tracked: bool = True, allow_empty: bool = False) -> str:
        args = ["commit", "--message", message]
        if all_tracked:
            args.append("--all")
        if allow_empty:
            args.append("--allow-empty")
        return self.call(*args).stdout

    def push(self, remote: str, branches: Sequence[Branch]) -> str:
        proc = self.call("push", remote, *(branch.name for branch in branches))
        return _output_text(proc)

    def pull(self, remote: str, branch: Branch) -> subprocess.CompletedProcess[str]:
        return self.call("pull", remote, branch.name, check=False)

    def checkout(self, branch: Branch, *, create: bool = False) -> None:
        if create:
            self.call("checkout", "--quiet", "-b", branch.name)
        else:
            self.call("checkout", "--quiet", branch.name)

    def branch_exists(self, branch: Branch) -> bool:
        proc = self.call(
            "show-ref", "--verify", "--quiet", f"refs/heads/{branch.name}", check=False
        )
        return proc.returncode == 0

    def create_branch(self, branch: Branch) -> None:
        self.call("branch", branch.name)

    def list_branches(self) -> BranchListing:
        return parse_branch_listing(self.call("branch", "--list").stdout)

    def current_branch(self) -> Branch:
        proc = self.call("symbolic-ref", "--short", "--quiet", "HEAD", check=False)
        name = (proc.stdout or "").strip()
        if proc.returncode != 0 or not name:
            raise VcsError(
                self._argv(["symbolic-ref", "--short", "--quiet", "HEAD"]),
                proc.returncode,
                "HEAD is detached; check out a branch first",
            )
        return Branch(name)

    def show(self, revision: str, path: str | PurePosixPath) -> bytes:
        argv = self._argv(["show", f"{revision}:{PurePosixPath(path).as_posix()}"])
        proc = _invoke(self._run, argv, capture_output=True)
        if proc.returncode != 0:
            raise VcsError(argv, proc.returncode, _output_text(proc))
        return proc.stdout

    def remotes(self) -> list[str]:
        return [line.strip() for line in self.call("remote").stdout.splitlines() if line.strip()]

    def add_remote(self, name: str, url: str) -> None:
        self.call("remote", "add", name, url)

    def log(self, *args: str) -> str:
        return self.call("log", *args).stdout
