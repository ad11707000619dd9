from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
import os
from pathlib import Path
import shlex
import subprocess
import textwrap
from typing import Callable, Iterator

from thesisflow.workflow import WorkflowSession, open_session

Handler = Callable[..., subprocess.CompletedProcess]


def completed(
    argv: list[str],
    returncode: int = 0,
    stdout: str | bytes = "",
    stderr: str | bytes = "",
) -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(argv, returncode, stdout, stderr)


@contextmanager
def env_scope(values: dict[str, str | None]) -> Iterator[None]:
    previous = {key: os.environ.get(key) for key in values}
    for key, value in values.items():
        if value is None:
            os.environ.pop(key, None)
        else:
            os.environ[key] = value
    try:
        yield
    finally:
        for key, value in previous.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value


def config_text(
    *,
    role: str = "student",
    student: str = "alice",
    student_branch: str | None = None,
    host: str = "alice@example.org",
    path: str = "/srv/thesis",
    extra: str = "",
) -> str:
    branch_line = f'student_branch = "{student_branch}"\n' if student_branch else ""
    body = textwrap.dedent(
        f"""\
        [thesis]
        role = "{role}"
        advisor = "Ada Lovelace"
        student = "{student}"
        project = "thesis"
        """
    )
    body += branch_line
    body += textwrap.dedent(
        f"""\

        [remote]
        host = "{host}"
        path = "{path}"
        """
    )
    if extra:
        body += "\n" + textwrap.dedent(extra)
    return body


def write_config(directory: Path, **kwargs: object) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / "thesisflow.toml"
    path.write_text(config_text(**kwargs), encoding="utf-8")
    return path


class RecordingRunner:
    """Stand-in for ``subprocess.run`` that records argv and delegates to handlers."""

    def __init__(self, *handlers: Handler):
        self.calls: list[list[str]] = []
        self.kwargs: list[dict[str, object]] = []
        self._handlers = list(handlers)

    def __call__(self, argv: list[str], **kwargs: object) -> subprocess.CompletedProcess:
        self.calls.append(list(argv))
        self.kwargs.append(dict(kwargs))
        for handler in self._handlers:
            result = handler(list(argv), **kwargs)
            if result is not None:
                return result
        raise AssertionError(f"unexpected command: {argv}")

    def commands(self, program: str) -> list[list[str]]:
        return [call for call in self.calls if call and call[0] == program]


@dataclass
class FakeGitRepo:
    """In-memory model of the branch state of one working copy."""

    branches: list[str]
    current: str
    pull_failures: dict[str, tuple[int, str]] = field(default_factory=dict)
    checkout_failures: set[str] = field(default_factory=set)
    # a conflicted pull leaves an unmerged index, as real git does
    conflicts_block_checkout: bool = False
    unmerged: bool = False
    files: dict[tuple[str, str], bytes] = field(default_factory=dict)
    remotes: list[str] = field(default_factory=list)
    has_history: bool = True
    is_repo: bool = True
    events: list[str] = field(default_factory=list)

    def __call__(self, argv: list[str], **_kwargs: object) -> subprocess.CompletedProcess | None:
        if not argv or argv[0] != "git":
            return None
        args = argv[3:] if argv[1:2] == ["-C"] else argv[1:]
        verb = args[0]
        if verb == "branch" and args[1:] == ["--list"]:
            lines = [
                ("* " if name == self.current else "  ") + name for name in self.branches
            ]
            return completed(argv, stdout="\n".join(lines) + "\n")
        if verb == "branch":
            self.branches.append(args[1])
            self.events.append(f"branch {args[1]}")
            return completed(argv)
        if verb == "symbolic-ref" and "--short" in args:
            return completed(argv, stdout=self.current + "\n")
        if verb == "symbolic-ref":
            self.current = args[2].removeprefix("refs/heads/")
            return completed(argv)
        if verb == "checkout":
            target = args[-1]
            if self.unmerged:
                return completed(
                    argv,
                    1,
                    stderr="thesis.tex: needs merge\nerror: you need to resolve your current index first",
                )
            if target in self.checkout_failures:
                return completed(argv, 1, stderr=f"error: cannot check out {target}")
            if "-b" in args:
                self.branches.append(target)
            self.current = target
            self.events.append(f"checkout {target}")
            return completed(argv)
        if verb == "pull":
            branch = args[2]
            self.events.append(f"pull {branch}")
            if branch in self.pull_failures:
                returncode, stderr = self.pull_failures[branch]
                if self.conflicts_block_checkout and "CONFLICT" in stderr:
                    self.unmerged = True
                return completed(argv, returncode, stderr=stderr)
            return completed(argv, stdout="Already up to date.\n")
        if verb == "rev-parse" and "--git-dir" in args:
            return completed(argv, 0 if self.is_repo else 128, stdout=".git\n")
        if verb == "rev-parse":
            return completed(argv, 0 if self.has_history else 1)
        if verb == "init":
            self.is_repo = True
            self.events.append("init")
            return completed(argv)
        if verb == "show-ref":
            name = args[-1].removeprefix("refs/heads/")
            exists = name in self.branches or (name == self.current and self.has_history)
            return completed(argv, 0 if exists else 1)
        if verb == "commit":
            if not self.has_history and self.current not in self.branches:
                self.branches.append(self.current)
            self.has_history = True
            self.events.append(f"commit {self.current}")
            return completed(argv, stdout="[commit] ok\n")
        if verb == "push":
            self.events.append("push " + " ".join(args[1:]))
            return completed(argv)
        if verb == "remote" and len(args) == 1:
            return completed(argv, stdout="".join(f"{name}\n" for name in self.remotes))
        if verb == "remote" and args[1] == "add":
            self.remotes.append(args[2])
            self.events.append(f"remote add {args[2]} {args[3]}")
            return completed(argv)
        if verb == "show":
            revision, _, path = args[1].partition(":")
            key = (revision, path)
            if key not in self.files:
                return completed(argv, 128, stdout=b"", stderr=b"fatal: path not found")
            return completed(argv, stdout=self.files[key], stderr=b"")
        if verb == "log":
            return completed(argv, stdout="* abc1234 (HEAD -> alice) Draft chapter\n")
        if verb == "clone":
            Path(args[2]).mkdir(parents=True, exist_ok=True)
            self.events.append(f"clone {args[1]}")
            return completed(argv)
        return None


@dataclass
class FakeRemoteHost:
    """Executes the bootstrap request of ``ssh`` calls against an in-memory tree."""

    existing: set[str] = field(default_factory=set)
    repositories: set[str] = field(default_factory=set)
    unreachable: bool = False
    copies: list[list[str]] = field(default_factory=list)

    def __call__(self, argv: list[str], **kwargs: object) -> subprocess.CompletedProcess | None:
        if argv and argv[0] == "scp":
            self.copies.append(list(argv))
            return completed(argv)
        if not argv or argv[0] != "ssh":
            return None
        if self.unreachable:
            return completed(argv, 255, stderr="ssh: connect to host: Connection refused")
        remote = shlex.split(argv[2])
        assert remote[:3] == ["sh", "-s", "--"]
        assert "git init --bare" in str(kwargs.get("input"))
        target, kind = remote[3], remote[4]
        if target in self.existing:
            return completed(argv, stdout="already-exists\n")
        self.existing.add(target)
        if kind == "repository":
            self.repositories.add(target)
        return completed(argv, stdout="created\n")


@dataclass
class FakeToolchain:
    fail_typeset: dict[tuple[str, int], int] = field(default_factory=dict)
    fail_resolve: dict[str, int] = field(default_factory=dict)
    calls: list[tuple[str, str]] = field(default_factory=list)
    cleaned: list[Path] = field(default_factory=list)
    clean_calls: int = 0

    def typeset(self, unit: str) -> int:
        self.calls.append(("typeset", unit))
        attempt = sum(1 for kind, name in self.calls if kind == "typeset" and name == unit)
        return self.fail_typeset.get((unit, attempt), 0)

    def resolve_references(self, unit: str) -> int:
        self.calls.append(("resolve-references", unit))
        return self.fail_resolve.get(unit, 0)

    def clean_stale_artifacts(self) -> list[Path]:
        self.clean_calls += 1
        self.calls.append(("clean", ""))
        return list(self.cleaned)


def make_session(root: Path, runner: RecordingRunner, **config: object) -> WorkflowSession:
    config_path = write_config(root, **config)
    return open_session(config_path, run=runner)
