from __future__ import annotations

from typing import Callable

from thesisflow import workflow
from thesisflow.commands.command_ids import GATED_OPERATIONS, WorkflowCommand
from thesisflow.exceptions import PermissionDenied, UsageError
from thesisflow.permissions import Operation, Verdict, authorize
from thesisflow.workflow import WorkflowSession

Handler = Callable[..., int]

_UNORDERED_HANDLERS: dict[WorkflowCommand, Handler] = {
    WorkflowCommand.INIT: workflow.run_init,
    WorkflowCommand.CLONE: workflow.run_clone,
    WorkflowCommand.COMMIT: workflow.run_commit,
    WorkflowCommand.PUSH: workflow.run_push,
    WorkflowCommand.PULL: workflow.run_pull,
    WorkflowCommand.COMPARE: workflow.run_compare,
    WorkflowCommand.VIEW: workflow.run_view,
    WorkflowCommand.LOG: workflow.run_log,
    WorkflowCommand.COMPILE: workflow.run_compile,
    WorkflowCommand.FIGURES_PUSH: workflow.run_figures_push,
    WorkflowCommand.FIGURES_PULL: workflow.run_figures_pull,
}


def handler_registry() -> dict[WorkflowCommand, Handler]:
    return {
        command: _UNORDERED_HANDLERS[command]
        for command in WorkflowCommand
        if command in _UNORDERED_HANDLERS
    }


HANDLER_REGISTRY: dict[WorkflowCommand, Handler] = handler_registry()


def missing_commands() -> tuple[WorkflowCommand, ...]:
    return tuple(command for command in WorkflowCommand if command not in HANDLER_REGISTRY)


def is_registry_complete() -> bool:
    return not missing_commands()


def parse_command(name: str) -> WorkflowCommand:
    try:
        return WorkflowCommand(name.strip())
    except ValueError as exc:
        known = ", ".join(command.value for command in WorkflowCommand)
        raise UsageError(f"unknown command '{name}' (expected one of: {known})") from exc


def check_permission(session: WorkflowSession, operation: Operation) -> Verdict:
    return authorize(
        session.config.role,
        session.git.current_branch(),
        operation,
        student_branch=session.config.student_branch,
    )


def dispatch(command: WorkflowCommand | str, session: WorkflowSession, **options: object) -> int:
    """Run one command against ``session``; denials and usage errors become diagnostics."""
    try:
        resolved = command if isinstance(command, WorkflowCommand) else parse_command(command)
        operation = GATED_OPERATIONS.get(resolved)
        if operation is not None:
            check_permission(session, operation).raise_for_denial()
        return HANDLER_REGISTRY[resolved](session, **options)
    except (PermissionDenied, UsageError) as exc:
        session.diagnostics.error(str(exc))
        return exc.exit_code
