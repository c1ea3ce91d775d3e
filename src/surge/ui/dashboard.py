from __future__ import annotations

import logging
from types import TracebackType
from typing import Sequence

from rich.console import Console, Group
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from surge.metrics import STATUS_CLASSES, DashboardSnapshot

logger = logging.getLogger(__name__)

MIN_WIDTH = 40
MIN_HEIGHT = 12
HEADER_VALUE_WIDTH = 12
SPARK_CHARS = "▁▂▃▄▅▆▇█"
BAR_STYLES = ("green", "cyan", "yellow", "red")


def sparkline(values: Sequence[float], width: int | None = None) -> str:
    if width is not None:
        values = values[-width:] if width > 0 else []
    if not values:
        return ""
    top = max(values)
    if top <= 0:
        return SPARK_CHARS[0] * len(values)
    last = len(SPARK_CHARS) - 1
    return "".join(SPARK_CHARS[min(last, int(v / top * last))] for v in values)


def bar(count: int, top: int, width: int) -> str:
    if top <= 0 or width <= 0:
        return ""
    return "█" * max(1 if count else 0, round(count / top * width))


def truncate_header(line: str) -> str:
    name, sep, value = line.partition(": ")
    if not sep:
        return line
    return f"{name}: {value[:HEADER_VALUE_WIDTH]}"


def build_layout(snapshot: DashboardSnapshot, width: int) -> Layout:
    """Arrange the panels:

    +-- Request Details --+ +-- Results ---------+
    | Host / Method / ... | | 2xx ███████  1000   |
    | Headers             | | 4xx █          32   |
    +---------------------+ +--------------------+
    +-- Response times --------------------------+
    +-- Progress --------------------------------+
    """
    width = max(MIN_WIDTH, width)
    layout = Layout()
    layout.split_column(
        Layout(name="top", ratio=1, minimum_size=6),
        Layout(name="latency", size=4),
        Layout(name="progress", size=3),
    )
    layout["top"].split_row(Layout(name="details"), Layout(name="results"))

    details = Text()
    details.append("Host: ", style="bold").append(f"{snapshot.host}\n")
    details.append("Method: ", style="bold").append(f"{snapshot.method}\n")
    details.append("Concurrency: ", style="bold").append(f"{snapshot.concurrency}\n")
    if snapshot.headers:
        details.append("Headers:\n", style="bold")
        for line in snapshot.headers:
            details.append(f"  {truncate_header(line)}\n")
    layout["details"].update(Panel(details, title="Request Details"))

    bar_width = max(1, width // 2 - 20)
    top = max(snapshot.results_by_class)
    chart = Table.grid(padding=(0, 1))
    chart.add_column(no_wrap=True)
    chart.add_column(no_wrap=True)
    chart.add_column(justify="right", no_wrap=True)
    for name, count, style in zip(STATUS_CLASSES, snapshot.results_by_class, BAR_STYLES):
        chart.add_row(name, Text(bar(count, top, bar_width), style=style), str(count))
    layout["results"].update(Panel(chart, title="Results"))

    latencies = snapshot.recent_response_times
    spark = Text(sparkline(latencies), style="magenta")
    caption = ""
    if latencies:
        caption = f"last {latencies[-1]:.0f} ms, max {max(latencies):.0f} ms"
    layout["latency"].update(Panel(Group(spark, Text(caption, style="dim")), title="Response times"))

    progress = (
        f"Avg TPS: {snapshot.average_tps:.1f} | "
        f"Avg response: {snapshot.average_response_ms:.1f} ms | "
        f"Errors: {snapshot.error_percentage:.1f}% | "
        f"Elapsed: {snapshot.elapsed_sec:.0f}/{snapshot.duration_sec:.0f}s"
    )
    if snapshot.finished:
        progress += " | done"
    layout["progress"].update(Panel(Text(progress, no_wrap=True, overflow="ellipsis"), title="Progress"))
    return layout


class RichDashboard:
    """Full-screen dashboard on the alternate screen; restores the terminal on exit."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()
        self._live = Live(
            console=self.console,
            screen=True,
            auto_refresh=False,
            redirect_stderr=True,
        )

    def __enter__(self) -> RichDashboard:
        self._live.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self._live.stop()

    def size(self) -> tuple[int, int]:
        width, height = self.console.size
        return max(MIN_WIDTH, width), max(MIN_HEIGHT, height)

    def sparkline_width(self) -> int:
        width, _ = self.size()
        return width - 4

    def render(self, snapshot: DashboardSnapshot) -> None:
        width, height = self.console.size
        if width < MIN_WIDTH or height < MIN_HEIGHT:
            notice = Text(f"Terminal too small ({width}x{height})", no_wrap=True, overflow="crop")
            self._live.update(notice, refresh=True)
            return
        self._live.update(build_layout(snapshot, width), refresh=True)


class HeadlessDashboard:
    """Logs one progress line per redraw instead of drawing to the terminal."""

    def __enter__(self) -> HeadlessDashboard:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        return None

    def sparkline_width(self) -> int:
        return 0

    def render(self, snapshot: DashboardSnapshot) -> None:
        counts = " ".join(f"{n}={c}" for n, c in zip(STATUS_CLASSES, snapshot.results_by_class))
        logger.info(
            "%.0fs/%.0fs %s tps=%.1f avg=%.1fms errors=%.1f%%",
            snapshot.elapsed_sec,
            snapshot.duration_sec,
            counts,
            snapshot.average_tps,
            snapshot.average_response_ms,
            snapshot.error_percentage,
        )
