from __future__ import annotations

from pathlib import Path

import pytest

from intent_proxy.core.config import Settings
from intent_proxy.tests.support import FakeClock


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(environment="test", sqlite_state_path=tmp_path / "state.sqlite")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
