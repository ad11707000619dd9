from __future__ import annotations

from datetime import date, datetime, time
from pathlib import Path
from typing import Any, Optional, TypeAlias
import tomllib

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator

from thesisflow.bootstrap import ASSET_STORE_SEGMENT, RemotePath, RemoteTarget
from thesisflow.exceptions import ConfigurationError
from thesisflow.permissions import MASTER, Branch, Role
from thesisflow.runtime.env_policy import config_path_override, default_editor

DEFAULT_CONFIG_NAME = "thesisflow.toml"

TomlScalar: TypeAlias = str | int | float | bool | None | date | datetime | time
TomlValue: TypeAlias = TomlScalar | list["TomlValue"] | dict[str, "TomlValue"]
TomlTable: TypeAlias = dict[str, TomlValue]


def _non_empty(value: str) -> str:
    stripped = value.strip()
    if not stripped:
        raise ValueError("must not be empty")
    return stripped


class ThesisSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    role: Role
    advisor: str
    student: str
    student_branch: str
    project: str = "thesis"

    @model_validator(mode="before")
    @classmethod
    def _default_student_branch(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("student_branch"):
            return {**data, "student_branch": data.get("student")}
        return data

    @field_validator("role", mode="before")
    @classmethod
    def _normalize_role(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("advisor", "student", "project")
    @classmethod
    def _require_text(cls, value: str) -> str:
        return _non_empty(value)

    @field_validator("student_branch")
    @classmethod
    def _valid_student_branch(cls, value: str) -> str:
        branch = Branch(_non_empty(value))
        if branch == MASTER:
            raise ValueError("the student branch must not be 'master'")
        return branch.name


class RemoteSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    host: str
    path: str

    @field_validator("host")
    @classmethod
    def _require_host(cls, value: str) -> str:
        return _non_empty(value)

    @field_validator("path")
    @classmethod
    def _valid_path(cls, value: str) -> str:
        return str(RemotePath.parse(_non_empty(value)))


class ToolSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    difftool: str = "meld"
    editor: Optional[str] = None
    typeset: str = "pdflatex"
    bibliography: str = "bibtex"
    document_dir: str = "."
    figures_dir: str = "figures"


class WorkflowConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    thesis: ThesisSettings
    remote: RemoteSettings
    tools: ToolSettings = ToolSettings()

    @property
    def role(self) -> Role:
        return self.thesis.role

    @property
    def student_branch(self) -> Branch:
        return Branch(self.thesis.student_branch)

    @property
    def remote_base(self) -> RemotePath:
        return RemotePath.parse(self.remote.path)

    @property
    def repository_target(self) -> RemoteTarget:
        path = self.remote_base.child(f"{self.thesis.project}.git")
        return RemoteTarget(endpoint=self.remote.host, path=path)

    @property
    def figures_target(self) -> RemoteTarget:
        path = self.remote_base.child(self.thesis.project, ASSET_STORE_SEGMENT)
        return RemoteTarget(endpoint=self.remote.host, path=path)

    @property
    def editor(self) -> str:
        return self.tools.editor or default_editor()


def _format_validation_error(path: Path, exc: ValidationError) -> str:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        problems.append(f"{location or '<root>'}: {error.get('msg', 'invalid value')}")
    return f"invalid configuration in {path}: " + "; ".join(problems)


def _load_toml(path: Path) -> TomlTable:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ConfigurationError(f"configuration file not found: {path}") from exc
    except OSError as exc:
        raise ConfigurationError(f"cannot read configuration file {path}: {exc}") from exc
    try:
        data = tomllib.loads(raw)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"malformed configuration file {path}: {exc}") from exc
    return data


def resolve_config_path(root: Path | None = None, config_path: Path | None = None) -> Path:
    if config_path is not None:
        return config_path
    override = config_path_override()
    if override is not None:
        return override
    base = root if root is not None else Path.cwd()
    return base / DEFAULT_CONFIG_NAME


def parse_config(data: TomlTable, *, source: Path) -> WorkflowConfig:
    try:
        return WorkflowConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(_format_validation_error(source, exc)) from exc


def load_config(root: Path | None = None, config_path: Path | None = None) -> WorkflowConfig:
    path = resolve_config_path(root=root, config_path=config_path)
    return parse_config(_load_toml(path), source=path)
