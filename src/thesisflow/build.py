"""Multi-pass build ordering for a set of document units.

A ``supporting-information`` unit, when present, wraps the others: it is
compiled first so the remaining units can reference it, and once more at
the end so it picks up their labels. Without it, stale auxiliary files are
removed before the run.

Every unit goes through the same fixed pass sequence. The sequence is a
fixed number of alternating typeset/resolve passes, not a convergence loop.
Only typeset passes abort on a non-zero status. A tool that cannot be
started at all aborts on any pass.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Protocol, Sequence

from thesisflow.diagnostics import Diagnostics
from thesisflow.exceptions import COMMAND_NOT_FOUND, ToolFailure

SUPPORTING_INFORMATION = "supporting-information"


class BuildPass(StrEnum):
    TYPESET = "typeset"
    RESOLVE_REFERENCES = "resolve-references"


PASS_SEQUENCE: tuple[BuildPass, ...] = (
    BuildPass.TYPESET,
    BuildPass.RESOLVE_REFERENCES,
    BuildPass.RESOLVE_REFERENCES,
    BuildPass.TYPESET,
    BuildPass.TYPESET,
    BuildPass.RESOLVE_REFERENCES,
    BuildPass.TYPESET,
)


class Toolchain(Protocol):
    def typeset(self, unit: str) -> int: ...

    def resolve_references(self, unit: str) -> int: ...

    def clean_stale_artifacts(self) -> list[Path]: ...


@dataclass(frozen=True)
class BuildFailure:
    unit: str
    pass_index: int
    build_pass: BuildPass
    returncode: int
    detail: str = ""

    def to_exception(self) -> ToolFailure:
        return ToolFailure(
            self.unit, self.pass_index, self.build_pass.value, self.returncode, self.detail
        )


@dataclass(frozen=True)
class BuildResult:
    compiled: tuple[str, ...]
    failure: BuildFailure | None = None
    cleaned: tuple[Path, ...] = ()

    @property
    def ok(self) -> bool:
        return self.failure is None

    def raise_for_failure(self) -> None:
        if self.failure is not None:
            raise self.failure.to_exception()


def has_supporting_information(units: Sequence[str]) -> bool:
    return SUPPORTING_INFORMATION in units


def build_order(units: Sequence[str]) -> list[str]:
    rest = [unit for unit in units if unit != SUPPORTING_INFORMATION]
    if not has_supporting_information(units):
        return rest
    return [SUPPORTING_INFORMATION, *rest, SUPPORTING_INFORMATION]


def compile_unit(
    toolchain: Toolchain,
    unit: str,
    *,
    diagnostics: Diagnostics,
) -> BuildFailure | None:
    for index, build_pass in enumerate(PASS_SEQUENCE, start=1):
        step = toolchain.typeset if build_pass is BuildPass.TYPESET else toolchain.resolve_references
        try:
            returncode = step(unit)
        except OSError as exc:
            # a tool that cannot be started fails the build whatever the pass
            return BuildFailure(unit, index, build_pass, COMMAND_NOT_FOUND, str(exc))
        if returncode == 0:
            continue
        if build_pass is BuildPass.TYPESET:
            return BuildFailure(unit, index, build_pass, returncode)
        diagnostics.warn(f"{unit}: {build_pass.value} pass {index} exited with status {returncode}")
    return None


def build(
    units: Sequence[str],
    *,
    toolchain: Toolchain,
    diagnostics: Diagnostics,
) -> BuildResult:
    """Compile ``units`` in wrap order, stopping at the first failing unit."""
    cleaned: tuple[Path, ...] = ()
    if not has_supporting_information(units):
        cleaned = tuple(toolchain.clean_stale_artifacts())
    compiled: list[str] = []
    for unit in build_order(units):
        compiled.append(unit)
        failure = compile_unit(toolchain, unit, diagnostics=diagnostics)
        if failure is not None:
            return BuildResult(tuple(compiled), failure, cleaned)
    return BuildResult(tuple(compiled), None, cleaned)
