from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

STATUS_CLASSES = ("2xx", "3xx", "4xx", "5xx")


class ErrorType(str, Enum):
    TIMEOUT = "timeout"
    CONNECT = "connect"
    READ = "read"
    OTHER = "other"


@dataclass(frozen=True, slots=True)
class RequestOutcome:
    status_code: int
    elapsed_ms: float
    body: str | None = None

    @property
    def elapsed_millis(self) -> int:
        return int(round(self.elapsed_ms))


@dataclass(frozen=True, slots=True)
class Result:
    outcome: RequestOutcome


@dataclass(frozen=True, slots=True)
class Finished:
    pass


Message = Union[Result, Finished]


def status_class_index(status_code: int) -> int:
    """Bucket index into ``STATUS_CLASSES`` for a final HTTP status code.

    Codes outside 200..599 have no bucket and are rejected.
    """
    if not 200 <= status_code <= 599:
        msg = f"Status code {status_code} has no status class"
        raise ValueError(msg)
    return status_code // 100 - 2


@dataclass(frozen=True, slots=True)
class DashboardSnapshot:
    host: str
    method: str
    concurrency: int
    headers: tuple[str, ...]
    results_by_class: tuple[int, int, int, int]
    average_tps: float
    average_response_ms: float
    error_percentage: float
    recent_response_times: tuple[float, ...]
    elapsed_sec: float
    duration_sec: float
    finished: bool = False
