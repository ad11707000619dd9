"""Error taxonomy for thesisflow commands."""

from __future__ import annotations

from typing import Sequence

# shell status for a command that could not be started
COMMAND_NOT_FOUND = 127


class WorkflowError(RuntimeError):
    """Base class for every failure a command can report."""

    exit_code = 1


class ConfigurationError(WorkflowError):
    """Missing or malformed settings; raised before anything is mutated."""

    exit_code = 2


class UsageError(WorkflowError):
    exit_code = 2


class PermissionDenied(WorkflowError):
    """The current role may not perform an operation on the current branch."""

    exit_code = 3

    def __init__(self, operation: str, branch: str, reason: str):
        super().__init__(reason)
        self.operation = operation
        self.branch = branch


class TransportError(WorkflowError):
    """A remote-exec or remote-copy invocation failed."""

    def __init__(self, message: str, *, endpoint: str = "", returncode: int | None = None):
        super().__init__(message)
        self.endpoint = endpoint
        self.returncode = returncode


class ToolFailure(WorkflowError):
    """The typesetting toolchain exited non-zero."""

    def __init__(
        self, unit: str, pass_index: int, pass_name: str, returncode: int, detail: str = ""
    ):
        message = f"{pass_name} pass {pass_index} failed for {unit} (exit status {returncode})"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.unit = unit
        self.pass_index = pass_index
        self.pass_name = pass_name
        self.returncode = returncode
        self.detail = detail


class VcsError(WorkflowError):
    """A git invocation exited non-zero."""

    def __init__(self, argv: Sequence[str], returncode: int, output: str = ""):
        command = " ".join(argv)
        message = f"`{command}` exited with status {returncode}"
        detail = output.strip()
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.argv = tuple(argv)
        self.returncode = returncode
        self.output = output
