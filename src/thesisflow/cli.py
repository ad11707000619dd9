from __future__ import annotations

from pathlib import Path
from typing import Callable, Mapping, Optional

import typer

from thesisflow.commands.command_ids import WorkflowCommand
from thesisflow.commands.dispatch import dispatch
from thesisflow.diagnostics import Diagnostics, Severity
from thesisflow.exceptions import WorkflowError
from thesisflow.workflow import WorkflowSession, open_session

app = typer.Typer(add_completion=False, help="Advisor/student thesis workflow on top of git.")
figures_app = typer.Typer(add_completion=False, help="Synchronise the shared figure store.")
app.add_typer(figures_app, name="figures")

SessionFactory = Callable[[Optional[Path]], WorkflowSession]

_SEVERITY_COLORS: dict[Severity, str | None] = {
    Severity.NOTE: None,
    Severity.WARNING: typer.colors.YELLOW,
    Severity.ERROR: typer.colors.RED,
}


def _context_mapping(ctx: typer.Context) -> Mapping[str, object]:
    obj = ctx.find_root().obj
    return obj if isinstance(obj, Mapping) else {}


def _context_session_factory(ctx: typer.Context) -> SessionFactory:
    candidate = _context_mapping(ctx).get("session_factory")
    if callable(candidate):
        return candidate
    return open_session


def _context_config_path(ctx: typer.Context) -> Path | None:
    candidate = _context_mapping(ctx).get("config_path")
    return candidate if isinstance(candidate, Path) else None


def emit_diagnostics(diagnostics: Diagnostics) -> None:
    for entry in diagnostics:
        typer.secho(
            entry.render(),
            err=entry.severity is not Severity.NOTE,
            fg=_SEVERITY_COLORS[entry.severity],
        )


def run_workflow_command(
    ctx: typer.Context,
    command: WorkflowCommand,
    **options: object,
) -> int:
    diagnostics = Diagnostics()
    try:
        session = _context_session_factory(ctx)(_context_config_path(ctx))
        diagnostics = session.diagnostics
        exit_code = dispatch(command, session, **options)
    except WorkflowError as exc:
        diagnostics.error(str(exc))
        exit_code = exc.exit_code
    emit_diagnostics(diagnostics)
    return exit_code


def _run(ctx: typer.Context, command: WorkflowCommand, **options: object) -> None:
    raise typer.Exit(code=run_workflow_command(ctx, command, **options))


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        help="Path to thesisflow.toml (default: $THESISFLOW_CONFIG or ./thesisflow.toml).",
    ),
) -> None:
    ctx.obj = {**_context_mapping(ctx), "config_path": config}


@app.command("init")
def init(ctx: typer.Context) -> None:
    """Create the shared remote repository and push master and the student branch."""
    _run(ctx, WorkflowCommand.INIT)


@app.command("clone")
def clone(
    ctx: typer.Context,
    destination: Optional[Path] = typer.Argument(
        None, help="Target directory (default: ./<project>)."
    ),
) -> None:
    """Clone the shared repository; students land on their branch."""
    _run(ctx, WorkflowCommand.CLONE, destination=destination)


@app.command("commit")
def commit(
    ctx: typer.Context,
    message: str = typer.Argument(..., help="Commit message."),
) -> None:
    """Commit all tracked changes on the current branch, if permitted."""
    _run(ctx, WorkflowCommand.COMMIT, message=message)


@app.command("push")
def push(ctx: typer.Context) -> None:
    """Push the current branch, if permitted."""
    _run(ctx, WorkflowCommand.PUSH)


@app.command("pull")
def pull(ctx: typer.Context) -> None:
    """Pull every local branch and return to the current one."""
    _run(ctx, WorkflowCommand.PULL)


@app.command("compare")
def compare(
    ctx: typer.Context,
    path: Path = typer.Argument(..., help="File to compare with the other branch."),
) -> None:
    """Open the difftool on a file against its version on the other branch."""
    _run(ctx, WorkflowCommand.COMPARE, path=path)


@app.command("view")
def view(
    ctx: typer.Context,
    revision: str = typer.Argument(..., help="Branch, tag or commit."),
    path: Path = typer.Argument(..., help="File to open."),
) -> None:
    """Open a file as it was at a revision in the editor."""
    _run(ctx, WorkflowCommand.VIEW, revision=revision, path=path)


@app.command("log")
def log(ctx: typer.Context) -> None:
    """Show the history of all branches."""
    _run(ctx, WorkflowCommand.LOG)


@app.command("compile")
def compile_documents(ctx: typer.Context) -> None:
    """Typeset every document unit, wrapping supporting information."""
    _run(ctx, WorkflowCommand.COMPILE)


@figures_app.command("push")
def figures_push(ctx: typer.Context) -> None:
    """Copy local figures to the shared figure store."""
    _run(ctx, WorkflowCommand.FIGURES_PUSH)


@figures_app.command("pull")
def figures_pull(ctx: typer.Context) -> None:
    """Copy the shared figure store into the local figures directory."""
    _run(ctx, WorkflowCommand.FIGURES_PULL)
