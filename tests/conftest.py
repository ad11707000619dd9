from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
for entry in (ROOT, ROOT / "src"):
    if str(entry) not in sys.path:
        sys.path.insert(0, str(entry))


import pytest

from tests.support import env_scope


@pytest.fixture(autouse=True)
def _isolated_env():
    with env_scope({"THESISFLOW_CONFIG": None, "VISUAL": None, "EDITOR": None}):
        yield


@pytest.fixture
def working_copy(tmp_path: Path) -> Path:
    root = tmp_path / "thesis"
    root.mkdir()
    return root
