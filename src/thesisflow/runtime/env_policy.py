from __future__ import annotations

import os
from pathlib import Path
from typing import Sequence

CONFIG_PATH_ENV_KEY = "THESISFLOW_CONFIG"
EDITOR_ENV_KEYS: tuple[str, ...] = ("VISUAL", "EDITOR")
FALLBACK_EDITOR = "vi"


def env_text(name: str, *, default: str = "") -> str:
    return os.getenv(name, default).strip()


def first_non_empty_env(keys: Sequence[str]) -> str | None:
    for key in keys:
        value = env_text(key)
        if value:
            return value
    return None


def config_path_override() -> Path | None:
    value = env_text(CONFIG_PATH_ENV_KEY)
    return Path(value) if value else None


def default_editor() -> str:
    return first_non_empty_env(EDITOR_ENV_KEYS) or FALLBACK_EDITOR
