from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Sequence

import numpy as np
from rich.console import Console

from surge.metrics.models import STATUS_CLASSES, ErrorType, RequestOutcome


@dataclass(frozen=True, slots=True)
class RunSummary:
    elapsed_sec: float
    total_requests: int
    tps: float
    transport_failures: int
    results_by_class: dict[str, int]
    mean_ms: float
    p50_ms: float
    p95_ms: float
    p99_ms: float
    timed_out: bool = False
    failures_by_type: dict[str, int] = field(default_factory=dict)


def summarize(
    outcomes: Sequence[RequestOutcome],
    elapsed_sec: float,
    results_by_class: Sequence[int],
    transport_failures: int = 0,
    timed_out: bool = False,
    failures_by_type: Mapping[ErrorType, int] | None = None,
) -> RunSummary:
    latencies = [o.elapsed_ms for o in outcomes]
    if latencies:
        arr = np.array(latencies, dtype=np.float64)
        mean = float(arr.mean())
        p50 = float(np.percentile(arr, 50))
        p95 = float(np.percentile(arr, 95))
        p99 = float(np.percentile(arr, 99))
    else:
        mean = p50 = p95 = p99 = 0.0
    total = len(outcomes)
    failures = failures_by_type or {}
    return RunSummary(
        elapsed_sec=elapsed_sec,
        total_requests=total,
        tps=total / elapsed_sec if elapsed_sec > 0 else 0.0,
        transport_failures=transport_failures,
        results_by_class=dict(zip(STATUS_CLASSES, results_by_class)),
        mean_ms=mean,
        p50_ms=p50,
        p95_ms=p95,
        p99_ms=p99,
        timed_out=timed_out,
        failures_by_type={e.value: failures[e] for e in ErrorType if failures.get(e)},
    )


def print_summary(console: Console, summary: RunSummary) -> None:
    console.print()
    console.print(f"Time taken (seconds): {int(summary.elapsed_sec)}")
    console.print(f"Total requests sent: {summary.total_requests}")
    console.print(f"TPS: {summary.tps:.2f}")
    classes = "  ".join(f"{name}: {count}" for name, count in summary.results_by_class.items())
    console.print(f"Status classes: {classes}")
    console.print(
        f"Latency (ms): mean {summary.mean_ms:.2f}  p50 {summary.p50_ms:.2f}  "
        f"p95 {summary.p95_ms:.2f}  p99 {summary.p99_ms:.2f}"
    )
    if summary.transport_failures:
        breakdown = ", ".join(f"{name}: {count}" for name, count in summary.failures_by_type.items())
        suffix = f" ({breakdown})" if breakdown else ""
        console.print(f"Transport failures (not counted above): {summary.transport_failures}{suffix}")
    if summary.timed_out:
        console.print("[yellow]Run stopped by the grace-period supervisor; some workers never finished[/]")
