from __future__ import annotations

import asyncio
import logging
import time
from collections import Counter
from contextlib import AsyncExitStack
from dataclasses import dataclass, field
from typing import Callable, Iterator

import httpx

from surge.config import RunConfig
from surge.loadgen.channel import ResultChannel
from surge.loadgen.client import RequestIssuer
from surge.loadgen.worker import WorkerStats, run_worker
from surge.metrics import (
    AggregateState,
    Aggregator,
    ErrorType,
    RenderSurface,
    RequestOutcome,
    Result,
    RunSummary,
    summarize,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ResultLog:
    """Append-only record of every completed request, in arrival order."""

    outcomes: list[RequestOutcome] = field(default_factory=list)

    def append(self, outcome: RequestOutcome) -> None:
        self.outcomes.append(outcome)

    def __len__(self) -> int:
        return len(self.outcomes)

    def __iter__(self) -> Iterator[RequestOutcome]:
        return iter(self.outcomes)


@dataclass(frozen=True, slots=True)
class RunResult:
    outcomes: list[RequestOutcome]
    state: AggregateState
    elapsed_sec: float
    transport_failures: int
    timed_out: bool
    worker_stats: list[WorkerStats]

    def failures_by_type(self) -> dict[ErrorType, int]:
        totals: Counter[ErrorType] = Counter()
        for stats in self.worker_stats:
            totals.update(stats.failures_by_type)
        return dict(totals)

    def summary(self) -> RunSummary:
        return summarize(
            self.outcomes,
            self.elapsed_sec,
            self.state.results_by_class,
            transport_failures=self.transport_failures,
            failures_by_type=self.failures_by_type(),
            timed_out=self.timed_out,
        )


async def run_load_test(
    config: RunConfig,
    surface: RenderSurface,
    transport: httpx.AsyncBaseTransport | None = None,
    clock: Callable[[], float] = time.perf_counter,
) -> RunResult:
    channel = ResultChannel(config.concurrency, config.queue_size)
    log = ResultLog()
    stats = [WorkerStats(i) for i in range(config.concurrency)]
    async with AsyncExitStack() as stack:
        issuers: list[RequestIssuer] = []
        for _ in range(config.concurrency):
            client = await stack.enter_async_context(httpx.AsyncClient(transport=transport, follow_redirects=True))
            issuers.append(RequestIssuer(config.target, client))

        started = clock()
        aggregator = Aggregator(config, surface, started, clock)
        workers = [
            asyncio.create_task(
                run_worker(i, issuer, channel, started, config.duration_sec, stats[i], clock),
                name=f"surge-worker-{i}",
            )
            for i, issuer in enumerate(issuers)
        ]
        for task in workers:
            task.add_done_callback(_log_worker_failure)
        aggregator_task = asyncio.create_task(aggregator.run(), name="surge-aggregator")
        logger.debug("Started %d workers against %s", config.concurrency, config.target.url)

        timed_out = False
        try:
            await asyncio.wait_for(_collect(channel, aggregator, log), timeout=config.deadline_sec())
        except asyncio.TimeoutError:
            timed_out = True
            logger.warning(
                "%d of %d workers still running after %.1fs, stopping the run",
                channel.open_producers,
                config.concurrency,
                config.deadline_sec(),
            )
            for task in workers:
                task.cancel()
            aggregator_task.cancel()

        await asyncio.gather(*workers, return_exceptions=True)
        if timed_out:
            await asyncio.gather(aggregator_task, return_exceptions=True)
            aggregator.finalize()
            state = aggregator.state
        else:
            state = await aggregator_task
        elapsed = clock() - started

    return RunResult(
        outcomes=log.outcomes,
        state=state,
        elapsed_sec=elapsed,
        transport_failures=sum(s.transport_failures for s in stats),
        timed_out=timed_out,
        worker_stats=stats,
    )


async def _collect(channel: ResultChannel, aggregator: Aggregator, log: ResultLog) -> None:
    async for message in channel:
        if isinstance(message, Result):
            log.append(message.outcome)
        aggregator.submit(message)


def _log_worker_failure(task: asyncio.Task[WorkerStats]) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("%s crashed before finishing: %r", task.get_name(), exc)
