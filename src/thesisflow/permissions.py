"""Role/branch permission gate.

The gate is a pure predicate: it never touches the working copy. Callers act
on the returned verdict and must not run the mutating operation on a denial.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from thesisflow.exceptions import PermissionDenied

MASTER_BRANCH_NAME = "master"


class Role(StrEnum):
    ADVISOR = "advisor"
    STUDENT = "student"


class Operation(StrEnum):
    COMMIT = "commit"
    PUSH = "push"
    COMPARE = "compare"


@dataclass(frozen=True)
class Branch:
    name: str

    def __post_init__(self) -> None:
        name = str(self.name)
        if not name.strip() or name != name.strip():
            raise ValueError(f"invalid branch name: {self.name!r}")
        if any(char.isspace() for char in name):
            raise ValueError(f"invalid branch name: {self.name!r}")
        object.__setattr__(self, "name", name)

    @property
    def is_master(self) -> bool:
        return self.name == MASTER_BRANCH_NAME

    def __str__(self) -> str:
        return self.name


MASTER = Branch(MASTER_BRANCH_NAME)


@dataclass(frozen=True)
class Verdict:
    allowed: bool
    operation: Operation
    branch: Branch
    reason: str = ""

    def __bool__(self) -> bool:
        return self.allowed

    def raise_for_denial(self) -> None:
        if not self.allowed:
            raise PermissionDenied(self.operation.value, self.branch.name, self.reason)


def authorize(
    role: Role,
    current_branch: Branch,
    operation: Operation,
    *,
    student_branch: Branch,
) -> Verdict:
    # Whoever has the student branch checked out may write to it.
    if role is Role.ADVISOR and current_branch == MASTER:
        return Verdict(True, operation, current_branch)
    if current_branch == student_branch:
        return Verdict(True, operation, current_branch)
    return Verdict(
        False,
        operation,
        current_branch,
        reason=(
            f"{operation.value} denied: the {role.value} may not "
            f"{operation.value} on branch '{current_branch.name}'"
        ),
    )
