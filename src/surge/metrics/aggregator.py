from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Iterable, Protocol

from surge.config import RunConfig
from surge.metrics.models import (
    DashboardSnapshot,
    Finished,
    Message,
    RequestOutcome,
    Result,
    status_class_index,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class RenderSurface(Protocol):
    def sparkline_width(self) -> int:
        ...

    def render(self, snapshot: DashboardSnapshot) -> None:
        ...


@dataclass(slots=True)
class AggregateState:
    concurrency: int
    history_size: int = 2048
    results_by_class: list[int] = field(default_factory=lambda: [0, 0, 0, 0])
    total_responses: int = 0
    average_response_time: float = 0.0
    rejected: int = 0
    recent_response_times: deque[float] = field(init=False)
    waiting_workers: int = field(init=False)

    def __post_init__(self) -> None:
        self.recent_response_times = deque(maxlen=self.history_size)
        self.waiting_workers = self.concurrency

    @property
    def complete(self) -> bool:
        return self.waiting_workers == 0

    def record(self, outcome: RequestOutcome) -> bool:
        try:
            index = status_class_index(outcome.status_code)
        except ValueError:
            self.rejected += 1
            logger.warning("Ignoring response with status code %s", outcome.status_code)
            return False
        self.results_by_class[index] += 1
        self.total_responses += 1
        self.average_response_time += (
            outcome.elapsed_ms - self.average_response_time
        ) / self.total_responses
        self.recent_response_times.append(outcome.elapsed_ms)
        return True

    def finish_worker(self) -> bool:
        if self.waiting_workers == 0:
            msg = "Received more Finished messages than workers"
            raise RuntimeError(msg)
        self.waiting_workers -= 1
        return self.complete

    def transactions_per_second(self, elapsed_sec: float) -> float:
        if elapsed_sec <= 0:
            return 0.0
        return self.total_responses / elapsed_sec

    def error_percentage(self) -> float:
        ok = self.results_by_class[0] + self.results_by_class[1]
        failed = self.results_by_class[2] + self.results_by_class[3]
        return 100.0 * failed / max(1, ok)


@dataclass(slots=True)
class RedrawThrottle:
    interval_sec: float
    last_render: float
    clock: Clock = time.perf_counter

    def due(self) -> bool:
        return self.clock() - self.last_render >= self.interval_sec

    def mark(self) -> None:
        self.last_render = self.clock()

    def remaining(self) -> float:
        return max(0.0, self.interval_sec - (self.clock() - self.last_render))


def latest(values: Iterable[float], width: int) -> tuple[float, ...]:
    """Keep the newest ``width`` values, dropping the oldest first."""
    if width <= 0:
        return ()
    return tuple(deque(values, maxlen=width))


class Aggregator:
    """Single consumer of run messages; owns the aggregate state and redraws."""

    def __init__(
        self,
        config: RunConfig,
        surface: RenderSurface,
        started: float,
        clock: Clock = time.perf_counter,
    ) -> None:
        self.config = config
        self.surface = surface
        self.started = started
        self.clock = clock
        self.state = AggregateState(config.concurrency, config.history_size)
        self.throttle = RedrawThrottle(config.redraw_interval_sec, started, clock)
        self.renders = 0
        self._inbox: asyncio.Queue[Message] = asyncio.Queue()

    def submit(self, message: Message) -> None:
        self._inbox.put_nowait(message)

    def handle(self, message: Message) -> None:
        if isinstance(message, Result):
            self.state.record(message.outcome)
        elif isinstance(message, Finished):
            self.state.finish_worker()
            logger.debug("Worker finished, %d still running", self.state.waiting_workers)
        else:
            msg = f"Unexpected message {message!r}"
            raise TypeError(msg)
        self.maybe_render()

    def maybe_render(self) -> bool:
        if not self.throttle.due():
            return False
        self.render()
        return True

    def render(self) -> None:
        self.surface.render(self.snapshot())
        self.renders += 1
        self.throttle.mark()

    def snapshot(self) -> DashboardSnapshot:
        elapsed = self.clock() - self.started
        target = self.config.target
        return DashboardSnapshot(
            host=target.url,
            method=target.method,
            concurrency=self.config.concurrency,
            headers=tuple(target.header_lines()),
            results_by_class=tuple(self.state.results_by_class),
            average_tps=self.state.transactions_per_second(elapsed),
            average_response_ms=self.state.average_response_time,
            error_percentage=self.state.error_percentage(),
            recent_response_times=latest(
                self.state.recent_response_times, self.surface.sparkline_width()
            ),
            elapsed_sec=elapsed,
            duration_sec=self.config.duration_sec,
            finished=self.state.complete,
        )

    async def run(self) -> AggregateState:
        getter: asyncio.Future[Message] | None = None
        try:
            while not self.state.complete:
                if getter is None:
                    getter = asyncio.ensure_future(self._inbox.get())
                done, _ = await asyncio.wait({getter}, timeout=self.throttle.remaining())
                if getter not in done:
                    self.maybe_render()
                    continue
                message = getter.result()
                getter = None
                self.handle(message)
                while not self.state.complete and not self._inbox.empty():
                    self.handle(self._inbox.get_nowait())
        finally:
            if getter is not None:
                getter.cancel()
        self.render()
        return self.state

    def finalize(self) -> None:
        """Draw a last frame for a run stopped before every worker finished."""
        while not self._inbox.empty():
            message = self._inbox.get_nowait()
            if isinstance(message, Result):
                self.state.record(message.outcome)
        self.render()
