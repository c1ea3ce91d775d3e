from __future__ import annotations

import io
import logging

from rich.console import Console

from surge.metrics import DashboardSnapshot
from surge.ui.dashboard import (
    MIN_HEIGHT,
    MIN_WIDTH,
    HeadlessDashboard,
    RichDashboard,
    bar,
    build_layout,
    sparkline,
    truncate_header,
)


def _snapshot(**overrides) -> DashboardSnapshot:
    values = dict(
        host="https://example.com/",
        method="GET",
        concurrency=10,
        headers=("authorization: Bearer 0123456789abcdef",),
        results_by_class=(900, 10, 32, 4),
        average_tps=1900.0,
        average_response_ms=5.2,
        error_percentage=3.97,
        recent_response_times=(1.0, 4.0, 2.0, 8.0),
        elapsed_sec=12.0,
        duration_sec=30.0,
    )
    values.update(overrides)
    return DashboardSnapshot(**values)


def test_sparkline_scales_to_max() -> None:
    assert sparkline([]) == ""
    assert sparkline([0.0, 0.0]) == "▁▁"
    line = sparkline([1.0, 4.0, 8.0])
    assert len(line) == 3
    assert line[-1] == "█"
    assert sparkline([1.0, 2.0, 3.0, 4.0], width=2) == sparkline([3.0, 4.0])
    assert sparkline([1.0], width=0) == ""


def test_bar_lengths() -> None:
    assert bar(10, 10, 20) == "█" * 20
    assert bar(0, 10, 20) == ""
    assert bar(1, 1000, 20) == "█"
    assert bar(5, 0, 20) == ""


def test_truncate_header_value() -> None:
    assert truncate_header("authorization: Bearer 0123456789abcdef") == "authorization: Bearer 01234"
    assert truncate_header("odd") == "odd"


def test_layout_renders_all_panels() -> None:
    console = Console(file=io.StringIO(), width=100, height=30, record=True)
    console.print(build_layout(_snapshot(finished=True), 100))
    text = console.export_text()
    for needle in ("Request Details", "Results", "Progress", "Host: https://example.com/", "2xx", "5xx", "done"):
        assert needle in text
    assert "Bearer 01234" in text
    assert "0123456789abcdef" not in text


def test_degenerate_terminal_does_not_fail() -> None:
    console = Console(file=io.StringIO(), width=1, height=1, force_terminal=True)
    with RichDashboard(console) as dashboard:
        dashboard.render(_snapshot(recent_response_times=(), results_by_class=(0, 0, 0, 0)))


def test_empty_snapshot_layout() -> None:
    console = Console(file=io.StringIO(), width=MIN_WIDTH, height=MIN_HEIGHT, record=True)
    console.print(build_layout(_snapshot(recent_response_times=(), results_by_class=(0, 0, 0, 0)), 0))
    assert "0" in console.export_text()


def test_rich_dashboard_clamps_size() -> None:
    console = Console(file=io.StringIO(), width=5, height=2)
    dashboard = RichDashboard(console)
    assert dashboard.size() == (MIN_WIDTH, MIN_HEIGHT)
    assert dashboard.sparkline_width() == MIN_WIDTH - 4


def test_rich_dashboard_lifecycle() -> None:
    console = Console(file=io.StringIO(), width=80, height=24, force_terminal=True)
    with RichDashboard(console) as dashboard:
        dashboard.render(_snapshot())
    assert not console.is_alt_screen


def test_headless_dashboard_logs_progress(caplog) -> None:
    with caplog.at_level(logging.INFO, logger="surge"):
        with HeadlessDashboard() as dashboard:
            assert dashboard.sparkline_width() == 0
            dashboard.render(_snapshot())
    assert "2xx=900" in caplog.text
    assert "tps=1900.0" in caplog.text
