from __future__ import annotations

import time

import httpx

from surge.config import ConfigError, TargetConfig
from surge.metrics import ErrorType, RequestOutcome


class TransportError(Exception):
    """A request that never produced an HTTP response."""

    def __init__(self, error_type: ErrorType, cause: Exception) -> None:
        super().__init__(f"{error_type.value}: {cause!r}")
        self.error_type = error_type
        self.cause = cause


class RequestIssuer:
    def __init__(self, target: TargetConfig, client: httpx.AsyncClient) -> None:
        self.target = target
        self.client = client
        try:
            self._request = client.build_request(
                target.method,
                target.url,
                headers=list(target.headers),
                timeout=target.timeout_sec,
            )
        except (httpx.InvalidURL, TypeError, ValueError) as exc:
            msg = f"Cannot build {target.method} request for {target.url}: {exc}"
            raise ConfigError(msg) from exc

    async def issue(self) -> RequestOutcome:
        start = time.perf_counter()
        try:
            resp = await self.client.send(self._request)
        except httpx.TimeoutException as exc:
            raise TransportError(ErrorType.TIMEOUT, exc) from exc
        except httpx.ConnectError as exc:
            raise TransportError(ErrorType.CONNECT, exc) from exc
        except httpx.ReadError as exc:
            raise TransportError(ErrorType.READ, exc) from exc
        except httpx.HTTPError as exc:
            raise TransportError(ErrorType.OTHER, exc) from exc
        elapsed_ms = (time.perf_counter() - start) * 1000.0
        body = resp.text if self.target.record_body else None
        return RequestOutcome(status_code=resp.status_code, elapsed_ms=elapsed_ms, body=body)
