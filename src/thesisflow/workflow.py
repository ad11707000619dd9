"""Command handlers.

Every handler takes a ``WorkflowSession`` and returns an exit code. Handlers
record what happened in ``session.diagnostics``; collaborator failures
(``TransportError``, ``ToolFailure``, ``VcsError``) propagate to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
import shutil
import subprocess
import tempfile
from typing import Callable

import typer

from thesisflow.bootstrap import BootstrapOutcome, bootstrap
from thesisflow.branch_sync import SyncStatus, sync_all
from thesisflow.build import Toolchain, build
from thesisflow.config import DEFAULT_CONFIG_NAME, WorkflowConfig, load_config, resolve_config_path
from thesisflow.diagnostics import Diagnostics
from thesisflow.exceptions import UsageError
from thesisflow.permissions import MASTER, Branch, Role
from thesisflow.toolchain import LatexToolchain, discover_units
from thesisflow.transport import RemoteTransport
from thesisflow.vcs import DEFAULT_REMOTE, Git
from thesisflow.viewer import Viewer

RunCommand = Callable[..., subprocess.CompletedProcess]

LOG_ARGS: tuple[str, ...] = ("--graph", "--oneline", "--all", "--decorate")
INITIAL_COMMIT_MESSAGE = "Initial commit"


@dataclass
class WorkflowSession:
    config: WorkflowConfig
    config_path: Path
    root: Path
    git: Git
    transport: RemoteTransport
    toolchain: Toolchain
    viewer: Viewer
    diagnostics: Diagnostics = field(default_factory=Diagnostics)
    echo: Callable[[str], None] = typer.echo
    run: RunCommand = subprocess.run

    @property
    def document_dir(self) -> Path:
        return self.root / self.config.tools.document_dir

    @property
    def figures_dir(self) -> Path:
        return self.root / self.config.tools.figures_dir


def open_session(
    config_path: Path | None = None,
    *,
    root: Path | None = None,
    run: RunCommand = subprocess.run,
) -> WorkflowSession:
    path = resolve_config_path(root=root, config_path=config_path)
    config = load_config(config_path=path)
    working_copy = path.resolve().parent
    document_dir = working_copy / config.tools.document_dir
    return WorkflowSession(
        config=config,
        config_path=path,
        root=working_copy,
        git=Git(working_copy, run=run),
        transport=RemoteTransport(config.remote.host, run=run),
        toolchain=LatexToolchain(
            document_dir,
            typeset_command=config.tools.typeset,
            bibliography_command=config.tools.bibliography,
            run=run,
        ),
        viewer=Viewer(config.tools.difftool, config.editor, run=run),
        run=run,
    )


def _repo_relative(root: Path, path: Path) -> PurePosixPath:
    candidate = path if path.is_absolute() else Path.cwd() / path
    try:
        relative = candidate.resolve().relative_to(root.resolve())
    except ValueError as exc:
        raise UsageError(f"{path} is outside the working copy {root}") from exc
    return PurePosixPath(relative.as_posix())


def _counterpart_revision(session: WorkflowSession, branch: Branch) -> str:
    """The other branch, or its remote-tracking ref when it is not checked out locally."""
    counterpart = session.config.student_branch if branch.is_master else MASTER
    if session.git.branch_exists(counterpart):
        return counterpart.name
    return f"{DEFAULT_REMOTE}/{counterpart.name}"


def run_init(session: WorkflowSession) -> int:
    git = session.git
    student_branch = session.config.student_branch
    target = session.config.repository_target
    if git.is_repository() and git.has_commits() and not git.branch_exists(MASTER):
        raise UsageError(f"{session.root} has history but no '{MASTER}' branch")

    outcome = bootstrap(target.path, transport=session.transport)
    if outcome is BootstrapOutcome.ALREADY_EXISTS:
        session.diagnostics.warn(f"{target.url} already exists; leaving it untouched")
        return 0
    session.diagnostics.note(f"created bare repository {target.url}")

    if not git.is_repository():
        git.init()
    if not git.has_commits():
        git.point_head_at(MASTER)
        git.commit(INITIAL_COMMIT_MESSAGE, all_tracked=False, allow_empty=True)
    if not git.branch_exists(student_branch):
        git.create_branch(student_branch)
    if DEFAULT_REMOTE in git.remotes():
        session.diagnostics.warn(f"remote '{DEFAULT_REMOTE}' already configured; pushing to it")
    else:
        git.add_remote(DEFAULT_REMOTE, target.url)
    git.push(DEFAULT_REMOTE, [MASTER, student_branch])
    session.diagnostics.note(f"pushed {MASTER} and {student_branch} to {DEFAULT_REMOTE}")
    return 0


def run_clone(session: WorkflowSession, destination: Path | None = None) -> int:
    target = session.config.repository_target
    dest = destination if destination is not None else Path.cwd() / session.config.thesis.project
    if dest.exists() and any(dest.iterdir()):
        raise UsageError(f"{dest} already exists and is not empty")
    git = Git.clone(target.url, dest, run=session.run)
    if session.config.role is Role.STUDENT:
        git.checkout(session.config.student_branch)
    copied = dest / DEFAULT_CONFIG_NAME
    if not copied.exists() and session.config_path.exists():
        shutil.copyfile(session.config_path, copied)
    session.diagnostics.note(f"cloned {target.url} into {dest}")
    return 0


def run_commit(session: WorkflowSession, message: str) -> int:
    if not message.strip():
        raise UsageError("commit message must not be empty")
    branch = session.git.current_branch()
    session.git.commit(message)
    session.diagnostics.note(f"committed on {branch}")
    return 0


def run_push(session: WorkflowSession) -> int:
    branch = session.git.current_branch()
    session.git.push(DEFAULT_REMOTE, [branch])
    session.diagnostics.note(f"pushed {branch} to {DEFAULT_REMOTE}")
    return 0


def run_pull(session: WorkflowSession) -> int:
    report = sync_all(session.git)
    for result in report.results:
        if result.status is SyncStatus.OK:
            session.diagnostics.note(f"{result.branch}: pulled")
        elif result.status is SyncStatus.CONFLICT:
            session.diagnostics.error(
                f"{result.branch}: merge conflict, resolve it by hand\n{result.detail}"
            )
        else:
            session.diagnostics.error(f"{result.branch}: pull failed\n{result.detail}")
    if not report.restored:
        session.diagnostics.error(
            f"could not return to {report.original}; the working copy is left on another "
            f"branch\n{report.restore_error}"
        )
        return 1
    session.diagnostics.note(f"back on {report.original}")
    return 1 if report.failures else 0


def _show_in_temp(
    session: WorkflowSession,
    revision: str,
    relative: PurePosixPath,
    launch: Callable[[Path], int],
) -> int:
    content = session.git.show(revision, relative)
    safe_revision = revision.replace("/", "_")
    with tempfile.TemporaryDirectory(prefix="thesisflow-") as tmp:
        copy = Path(tmp) / f"{safe_revision}-{relative.name}"
        copy.write_bytes(content)
        return launch(copy)


def run_compare(session: WorkflowSession, path: Path) -> int:
    relative = _repo_relative(session.root, path)
    counterpart = _counterpart_revision(session, session.git.current_branch())
    working_file = session.root / Path(relative)
    returncode = _show_in_temp(
        session,
        counterpart,
        relative,
        lambda copy: session.viewer.compare(copy, working_file),
    )
    if returncode != 0:
        session.diagnostics.warn(f"difftool exited with status {returncode}")
    return 0


def run_view(session: WorkflowSession, revision: str, path: Path) -> int:
    relative = _repo_relative(session.root, path)
    returncode = _show_in_temp(session, revision, relative, session.viewer.edit)
    if returncode != 0:
        session.diagnostics.warn(f"editor exited with status {returncode}")
    return 0


def run_log(session: WorkflowSession) -> int:
    session.echo(session.git.log(*LOG_ARGS).rstrip("\n"))
    return 0


def run_compile(session: WorkflowSession) -> int:
    units = discover_units(session.document_dir)
    if not units:
        session.diagnostics.error(f"no document units found in {session.document_dir}")
        return 1
    result = build(units, toolchain=session.toolchain, diagnostics=session.diagnostics)
    if result.cleaned:
        session.diagnostics.note(f"removed {len(result.cleaned)} stale build file(s)")
    result.raise_for_failure()
    session.diagnostics.note("compiled " + ", ".join(result.compiled))
    return 0


def run_figures_push(session: WorkflowSession) -> int:
    local_dir = session.figures_dir
    if not local_dir.is_dir():
        raise UsageError(f"figures directory {local_dir} does not exist")
    files = sorted(path for path in local_dir.iterdir() if not path.name.startswith("."))
    if not files:
        session.diagnostics.warn(f"no figures in {local_dir}; nothing to push")
        return 0
    target = session.config.figures_target
    outcome = bootstrap(target.path, transport=session.transport)
    if outcome is BootstrapOutcome.CREATED:
        session.diagnostics.note(f"created figure store {target.url}")
    session.transport.copy_to(files, str(target.path))
    session.diagnostics.note(f"pushed {len(files)} figure(s) to {target.url}")
    return 0


def run_figures_pull(session: WorkflowSession) -> int:
    target = session.config.figures_target
    local_dir = session.figures_dir
    local_dir.mkdir(parents=True, exist_ok=True)
    session.transport.copy_from(str(target.path), local_dir)
    session.diagnostics.note(f"pulled figures from {target.url} into {local_dir}")
    return 0
