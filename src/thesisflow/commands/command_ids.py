from __future__ import annotations

from enum import StrEnum

from thesisflow.permissions import Operation


class WorkflowCommand(StrEnum):
    INIT = "init"
    CLONE = "clone"
    COMMIT = "commit"
    PUSH = "push"
    PULL = "pull"
    COMPARE = "compare"
    VIEW = "view"
    LOG = "log"
    COMPILE = "compile"
    FIGURES_PUSH = "figures-push"
    FIGURES_PULL = "figures-pull"


# Commands that must pass the permission gate before touching the working copy.
GATED_OPERATIONS: dict[WorkflowCommand, Operation] = {
    WorkflowCommand.COMMIT: Operation.COMMIT,
    WorkflowCommand.PUSH: Operation.PUSH,
    WorkflowCommand.COMPARE: Operation.COMPARE,
}
