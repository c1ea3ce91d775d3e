from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable

from surge.loadgen.channel import ResultChannel
from surge.loadgen.client import RequestIssuer, TransportError
from surge.metrics import ErrorType, Finished, Result

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class WorkerStats:
    worker_id: int
    sent: int = 0
    transport_failures: int = 0
    failures_by_type: dict[ErrorType, int] = field(default_factory=dict)
    finished: bool = False


async def run_worker(
    worker_id: int,
    issuer: RequestIssuer,
    channel: ResultChannel,
    started: float,
    duration_sec: float,
    stats: WorkerStats | None = None,
    clock: Callable[[], float] = time.perf_counter,
) -> WorkerStats:
    """Issue requests back to back until the deadline check trips.

    The deadline is checked after every attempt, so the request in flight when
    the deadline passes is still delivered, and a zero duration issues exactly
    one request. ``Finished`` is sent once, as the last message.
    """
    if stats is None:
        stats = WorkerStats(worker_id)
    while True:
        try:
            outcome = await issuer.issue()
        except TransportError as exc:
            stats.transport_failures += 1
            stats.failures_by_type[exc.error_type] = stats.failures_by_type.get(exc.error_type, 0) + 1
            logger.debug("Worker %d request failed: %s", worker_id, exc)
        else:
            await channel.send(Result(outcome))
            stats.sent += 1
        if clock() - started >= duration_sec:
            break
    await channel.send(Finished())
    stats.finished = True
    logger.debug("Worker %d done after %d requests", worker_id, stats.sent)
    return stats
