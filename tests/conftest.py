from __future__ import annotations

import itertools
from pathlib import Path

import pytest

from vectorrecall.config import RecallConfig


class StepClock:
    """Millisecond clock that advances by one on every call."""

    def __init__(self, start: int = 1000):
        self._counter = itertools.count(start)
        self.last = start - 1

    def __call__(self) -> int:
        self.last = next(self._counter)
        return self.last


@pytest.fixture()
def config(tmp_path: Path) -> RecallConfig:
    return RecallConfig(db_path=tmp_path / "vectors.db", embed_provider="ollama")


@pytest.fixture()
def clock() -> StepClock:
    return StepClock()
