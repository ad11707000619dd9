"""Idempotent creation of the remote repository and figure store.

The caller never ships code to the remote host: it sends a fixed ``sh``
script plus two arguments (target path and kind) and reads back one status
word. An existing target is reported and left alone, even when it is a
directory that is not a valid repository.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from thesisflow.exceptions import TransportError
from thesisflow.transport import RemoteTransport

ASSET_STORE_SEGMENT = "figures"


class BootstrapKind(StrEnum):
    REPOSITORY = "repository"
    DIRECTORY = "directory"


class BootstrapOutcome(StrEnum):
    CREATED = "created"
    ALREADY_EXISTS = "already-exists"


BOOTSTRAP_SCRIPT = """\
set -eu
target=$1
kind=$2
case $target in
    "~") target=$HOME ;;
    "~/"*) target=$HOME/${target#"~/"} ;;
esac
if [ -e "$target" ]; then
    echo already-exists
    exit 0
fi
mkdir -p "$target"
if [ "$kind" = repository ]; then
    git init --bare --quiet "$target"
fi
echo created
"""


@dataclass(frozen=True)
class RemotePath:
    segments: tuple[str, ...]
    absolute: bool = True

    @classmethod
    def parse(cls, text: str) -> "RemotePath":
        raw = text.strip()
        segments = tuple(part for part in raw.split("/") if part and part != ".")
        if not segments:
            raise ValueError(f"remote path has no segments: {text!r}")
        if ".." in segments:
            raise ValueError(f"remote path must not contain '..': {text!r}")
        return cls(segments=segments, absolute=raw.startswith("/"))

    @property
    def name(self) -> str:
        return self.segments[-1]

    @property
    def kind(self) -> BootstrapKind:
        if self.name == ASSET_STORE_SEGMENT:
            return BootstrapKind.DIRECTORY
        return BootstrapKind.REPOSITORY

    def child(self, *names: str) -> "RemotePath":
        extra: list[str] = []
        for name in names:
            extra.extend(part for part in name.split("/") if part and part != ".")
        return RemotePath(segments=self.segments + tuple(extra), absolute=self.absolute)

    def __str__(self) -> str:
        joined = "/".join(self.segments)
        return f"/{joined}" if self.absolute else joined


@dataclass(frozen=True)
class RemoteTarget:
    endpoint: str
    path: RemotePath

    @property
    def url(self) -> str:
        return f"{self.endpoint}:{self.path}"


@dataclass(frozen=True)
class BootstrapRequest:
    path: RemotePath
    kind: BootstrapKind

    @classmethod
    def for_path(cls, path: RemotePath) -> "BootstrapRequest":
        return cls(path=path, kind=path.kind)

    def argv(self) -> list[str]:
        return [str(self.path), self.kind.value]


def _parse_outcome(stdout: str) -> BootstrapOutcome | None:
    lines = [line.strip() for line in stdout.splitlines() if line.strip()]
    if not lines:
        return None
    try:
        return BootstrapOutcome(lines[-1])
    except ValueError:
        return None


def bootstrap(path: RemotePath, *, transport: RemoteTransport) -> BootstrapOutcome:
    request = BootstrapRequest.for_path(path)
    proc = transport.exec_script(BOOTSTRAP_SCRIPT, request.argv())
    if proc.returncode != 0:
        detail = (proc.stderr or "").strip()
        raise TransportError(
            f"bootstrap of {transport.endpoint}:{path} failed with status "
            f"{proc.returncode}" + (f": {detail}" if detail else ""),
            endpoint=transport.endpoint,
            returncode=proc.returncode,
        )
    outcome = _parse_outcome(proc.stdout or "")
    if outcome is None:
        raise TransportError(
            f"bootstrap of {transport.endpoint}:{path} returned unexpected output: "
            f"{(proc.stdout or '').strip()!r}",
            endpoint=transport.endpoint,
            returncode=proc.returncode,
        )
    return outcome
