from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Iterator


class Severity(StrEnum):
    NOTE = "note"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Diagnostic:
    severity: Severity
    message: str

    def render(self) -> str:
        if self.severity is Severity.NOTE:
            return self.message
        return f"{self.severity.value}: {self.message}"


@dataclass
class Diagnostics:
    """Messages collected while a command runs and printed once at the end."""

    entries: list[Diagnostic] = field(default_factory=list)

    def note(self, message: str) -> None:
        self.entries.append(Diagnostic(Severity.NOTE, message))

    def warn(self, message: str) -> None:
        self.entries.append(Diagnostic(Severity.WARNING, message))

    def error(self, message: str) -> None:
        self.entries.append(Diagnostic(Severity.ERROR, message))

    @property
    def warnings(self) -> list[Diagnostic]:
        return [entry for entry in self.entries if entry.severity is Severity.WARNING]

    def has_errors(self) -> bool:
        return any(entry.severity is Severity.ERROR for entry in self.entries)

    def messages(self, severity: Severity | None = None) -> list[str]:
        return [
            entry.message
            for entry in self.entries
            if severity is None or entry.severity is severity
        ]

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)
