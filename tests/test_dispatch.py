from __future__ import annotations

from pathlib import Path

import pytest

from thesisflow.commands import dispatch as dispatch_module
from thesisflow.commands.command_ids import GATED_OPERATIONS, WorkflowCommand
from thesisflow.exceptions import UsageError
from thesisflow.permissions import Operation
from tests.support import FakeGitRepo, RecordingRunner, make_session


def test_registry_covers_every_command() -> None:
    assert dispatch_module.is_registry_complete()
    assert dispatch_module.missing_commands() == ()
    assert list(dispatch_module.HANDLER_REGISTRY) == list(WorkflowCommand)


def test_gated_commands_are_commit_push_compare() -> None:
    assert GATED_OPERATIONS == {
        WorkflowCommand.COMMIT: Operation.COMMIT,
        WorkflowCommand.PUSH: Operation.PUSH,
        WorkflowCommand.COMPARE: Operation.COMPARE,
    }


def test_parse_command_rejects_unknown_names() -> None:
    assert dispatch_module.parse_command("figures-push") is WorkflowCommand.FIGURES_PUSH
    with pytest.raises(UsageError, match="unknown command 'rebase'"):
        dispatch_module.parse_command("rebase")


def test_unknown_command_string_becomes_usage_diagnostic(working_copy: Path) -> None:
    runner = RecordingRunner(FakeGitRepo(branches=["alice"], current="alice"))
    session = make_session(working_copy, runner)
    assert dispatch_module.dispatch("rebase", session) == 2
    assert session.diagnostics.messages()[0].startswith("unknown command 'rebase'")
    assert runner.calls == []


def test_denied_command_never_reaches_handler(working_copy: Path) -> None:
    repo = FakeGitRepo(branches=["master", "alice"], current="master")
    runner = RecordingRunner(repo)
    session = make_session(working_copy, runner, role="student")

    exit_code = dispatch_module.dispatch(WorkflowCommand.PUSH, session)

    assert exit_code == 3
    assert session.diagnostics.messages() == [
        "push denied: the student may not push on branch 'master'"
    ]
    assert not any("push" in call for call in runner.calls)


def test_allowed_command_runs_handler(working_copy: Path) -> None:
    repo = FakeGitRepo(branches=["master", "alice"], current="master")
    session = make_session(working_copy, RecordingRunner(repo), role="advisor")
    assert dispatch_module.dispatch("push", session) == 0
    assert repo.events == ["push origin master"]
