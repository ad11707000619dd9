"""Pull every local branch, then put the original checkout back."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from thesisflow.exceptions import VcsError
from thesisflow.permissions import Branch
from thesisflow.vcs import DEFAULT_REMOTE, Git

_CONFLICT_MARKERS = ("CONFLICT", "Automatic merge failed")


class SyncStatus(StrEnum):
    OK = "ok"
    CONFLICT = "conflict"
    ERROR = "error"


@dataclass(frozen=True)
class BranchSyncResult:
    branch: Branch
    status: SyncStatus
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.status is SyncStatus.OK


@dataclass(frozen=True)
class SyncReport:
    original: Branch
    results: tuple[BranchSyncResult, ...]
    restore_error: str = ""

    @property
    def restored(self) -> bool:
        return not self.restore_error

    @property
    def failures(self) -> tuple[BranchSyncResult, ...]:
        return tuple(result for result in self.results if not result.ok)

    def status_of(self, branch: Branch) -> SyncStatus | None:
        for result in self.results:
            if result.branch == branch:
                return result.status
        return None


def classify_pull_failure(output: str) -> SyncStatus:
    if any(marker in output for marker in _CONFLICT_MARKERS):
        return SyncStatus.CONFLICT
    return SyncStatus.ERROR


def _pull_one(git: Git, branch: Branch, remote: str) -> BranchSyncResult:
    try:
        git.checkout(branch)
    except VcsError as exc:
        return BranchSyncResult(branch, SyncStatus.ERROR, f"checkout failed: {exc}")
    try:
        proc = git.pull(remote, branch)
    except VcsError as exc:
        return BranchSyncResult(branch, SyncStatus.ERROR, str(exc))
    output = "\n".join(
        part.strip() for part in (proc.stdout or "", proc.stderr or "") if part.strip()
    )
    if proc.returncode == 0:
        return BranchSyncResult(branch, SyncStatus.OK, output)
    return BranchSyncResult(branch, classify_pull_failure(output), output)


def sync_all(git: Git, *, remote: str = DEFAULT_REMOTE) -> SyncReport:
    """Pull each local branch in listing order; failures do not stop the loop."""
    listing = git.list_branches()
    original = listing.current if listing.current is not None else git.current_branch()
    results: list[BranchSyncResult] = []
    restore_error = ""
    try:
        for branch in listing.branches:
            results.append(_pull_one(git, branch, remote))
    finally:
        # a conflicted pull leaves an unmerged index that blocks any checkout
        try:
            git.checkout(original)
        except VcsError as exc:
            restore_error = str(exc)
    return SyncReport(original=original, results=tuple(results), restore_error=restore_error)
