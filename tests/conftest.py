from __future__ import annotations

import pytest

from surge.config import RunConfig, TargetConfig
from surge.metrics import DashboardSnapshot


class RecordingSurface:
    def __init__(self, width: int = 16) -> None:
        self.width = width
        self.snapshots: list[DashboardSnapshot] = []

    def sparkline_width(self) -> int:
        return self.width

    def render(self, snapshot: DashboardSnapshot) -> None:
        self.snapshots.append(snapshot)


class FakeClock:
    def __init__(self, now: float = 0.0, step: float = 0.0) -> None:
        self.now = now
        self.step = step

    def __call__(self) -> float:
        value = self.now
        self.now += self.step
        return value


@pytest.fixture
def surface() -> RecordingSurface:
    return RecordingSurface()


@pytest.fixture
def make_config():
    def _make(**overrides) -> RunConfig:
        target = overrides.pop("target", TargetConfig(url="http://test.local/ping"))
        return RunConfig(target=target, **overrides)

    return _make
