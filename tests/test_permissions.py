from __future__ import annotations

import pytest

from thesisflow.exceptions import PermissionDenied
from thesisflow.permissions import MASTER, Branch, Operation, Role, authorize

ALICE = Branch("alice")


@pytest.mark.parametrize("operation", list(Operation))
@pytest.mark.parametrize(
    ("role", "branch", "allowed"),
    [
        (Role.ADVISOR, "master", True),
        (Role.ADVISOR, "alice", True),
        (Role.ADVISOR, "bob", False),
        (Role.STUDENT, "alice", True),
        (Role.STUDENT, "master", False),
        (Role.STUDENT, "bob", False),
    ],
)
def test_authorize_matrix(role: Role, branch: str, allowed: bool, operation: Operation) -> None:
    verdict = authorize(role, Branch(branch), operation, student_branch=ALICE)
    assert verdict.allowed is allowed
    assert bool(verdict) is allowed
    assert verdict.operation is operation


def test_advisor_on_unconfigured_student_branch_is_denied() -> None:
    verdict = authorize(
        Role.ADVISOR, Branch("alice"), Operation.PUSH, student_branch=Branch("carol")
    )
    assert not verdict.allowed
    assert verdict.reason == "push denied: the advisor may not push on branch 'alice'"


def test_denial_raises_permission_denied() -> None:
    verdict = authorize(Role.STUDENT, MASTER, Operation.COMMIT, student_branch=ALICE)
    with pytest.raises(PermissionDenied) as excinfo:
        verdict.raise_for_denial()
    assert excinfo.value.operation == "commit"
    assert excinfo.value.branch == "master"
    assert excinfo.value.exit_code == 3


def test_allowed_verdict_does_not_raise() -> None:
    authorize(Role.STUDENT, ALICE, Operation.COMPARE, student_branch=ALICE).raise_for_denial()


def test_branch_equality_is_by_name() -> None:
    assert Branch("master") == MASTER
    assert MASTER.is_master
    assert not ALICE.is_master
    assert str(ALICE) == "alice"


@pytest.mark.parametrize("name", ["", "  ", "two words", " alice"])
def test_branch_rejects_malformed_names(name: str) -> None:
    with pytest.raises(ValueError):
        Branch(name)
