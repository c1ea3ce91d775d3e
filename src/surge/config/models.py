from __future__ import annotations

import ipaddress
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

import httpx

SUPPORTED_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE")
DEFAULT_OUT_FILE = Path("./out.csv")
_TOKEN = re.compile(r"[!#$%&'*+.^_`|~0-9A-Za-z-]+")
_HOST_LABEL = re.compile(r"[0-9A-Za-z_-]{1,63}")


class ConfigError(ValueError):
    """Fatal configuration problem, detected before any worker starts."""


@dataclass(frozen=True, slots=True)
class TargetConfig:
    url: str
    method: str = "GET"
    headers: tuple[tuple[str, str], ...] = ()
    timeout_sec: float = 10.0
    record_body: bool = False

    def header_lines(self) -> list[str]:
        return [f"{name}: {value}" for name, value in self.headers]


@dataclass(frozen=True, slots=True)
class RunConfig:
    target: TargetConfig
    concurrency: int = 10
    duration_sec: float = 30.0
    out_file: Path = field(default_factory=lambda: DEFAULT_OUT_FILE)
    redraw_interval_sec: float = 1.0
    history_size: int = 2048
    queue_size: int = 0
    grace_sec: float | None = 15.0
    debug: bool = False

    def deadline_sec(self) -> float | None:
        if self.grace_sec is None:
            return None
        return self.duration_sec + self.grace_sec


def parse_method(value: str) -> str:
    method = value.strip().upper()
    if method not in SUPPORTED_METHODS:
        msg = f"Unsupported HTTP method {value!r}, expected one of {', '.join(SUPPORTED_METHODS)}"
        raise ConfigError(msg)
    return method


def parse_url(value: str) -> str:
    if any(ch.isspace() for ch in value):
        msg = f"Invalid URL {value!r}: contains whitespace"
        raise ConfigError(msg)
    try:
        url = httpx.URL(value)
        port = url.port
    except httpx.InvalidURL as exc:
        msg = f"Invalid URL {value!r}: {exc}"
        raise ConfigError(msg) from exc
    if url.scheme not in ("http", "https"):
        msg = f"Invalid URL {value!r}: scheme must be http or https"
        raise ConfigError(msg)
    if not url.host:
        msg = f"Invalid URL {value!r}: missing host"
        raise ConfigError(msg)
    if not _valid_host(url.raw_host.decode("ascii", errors="replace")):
        msg = f"Invalid URL {value!r}: malformed host {url.host!r}"
        raise ConfigError(msg)
    if port is not None and not 1 <= port <= 65535:
        msg = f"Invalid URL {value!r}: port must be between 1 and 65535"
        raise ConfigError(msg)
    return str(url)


def _valid_host(host: str) -> bool:
    # httpx percent-encodes a bad host instead of rejecting it
    if ":" in host:
        try:
            ipaddress.IPv6Address(host.strip("[]"))
        except ValueError:
            return False
        return True
    return all(_HOST_LABEL.fullmatch(label) for label in host.removesuffix(".").split("."))


def parse_header(value: str) -> tuple[str, str]:
    name, sep, header_value = value.partition(":")
    name = name.strip()
    header_value = header_value.strip()
    if not sep or not name:
        msg = f"Invalid header {value!r}, expected 'name: value'"
        raise ConfigError(msg)
    if not _TOKEN.fullmatch(name):
        msg = f"Invalid header name {name!r}"
        raise ConfigError(msg)
    if "\r" in header_value or "\n" in header_value:
        msg = f"Invalid header value for {name!r}"
        raise ConfigError(msg)
    try:
        httpx.Headers({name: header_value})
    except (TypeError, ValueError, UnicodeEncodeError) as exc:
        msg = f"Invalid header {value!r}: {exc}"
        raise ConfigError(msg) from exc
    return name, header_value


def check_output_path(path: Path) -> Path:
    parent = path.parent
    if not parent.is_dir():
        msg = f"Output directory {parent} does not exist"
        raise ConfigError(msg)
    if path.is_dir():
        msg = f"Output path {path} is a directory"
        raise ConfigError(msg)
    target = path if path.exists() else parent
    if not os.access(target, os.W_OK):
        msg = f"Output path {path} is not writable"
        raise ConfigError(msg)
    return path


def build_config(
    url: str,
    *,
    method: str = "GET",
    headers: Iterable[str] = (),
    concurrency: int = 10,
    duration_sec: float = 30.0,
    out_file: Path | str = DEFAULT_OUT_FILE,
    timeout_sec: float = 10.0,
    record_body: bool = False,
    redraw_interval_sec: float = 1.0,
    history_size: int = 2048,
    queue_size: int = 0,
    grace_sec: float | None = 15.0,
    debug: bool = False,
) -> RunConfig:
    if concurrency < 1:
        msg = f"Concurrency must be at least 1, got {concurrency}"
        raise ConfigError(msg)
    if duration_sec < 0:
        msg = f"Test duration must not be negative, got {duration_sec}"
        raise ConfigError(msg)
    if timeout_sec <= 0:
        msg = f"Request timeout must be positive, got {timeout_sec}"
        raise ConfigError(msg)
    if redraw_interval_sec <= 0:
        msg = f"Redraw interval must be positive, got {redraw_interval_sec}"
        raise ConfigError(msg)
    if history_size < 1:
        msg = f"History size must be at least 1, got {history_size}"
        raise ConfigError(msg)
    if queue_size < 0:
        msg = f"Queue size must not be negative, got {queue_size}"
        raise ConfigError(msg)
    if grace_sec is not None and grace_sec < 0:
        msg = f"Grace period must not be negative, got {grace_sec}"
        raise ConfigError(msg)
    target = TargetConfig(
        url=parse_url(url),
        method=parse_method(method),
        headers=tuple(parse_header(h) for h in headers),
        timeout_sec=timeout_sec,
        record_body=record_body,
    )
    return RunConfig(
        target=target,
        concurrency=concurrency,
        duration_sec=duration_sec,
        out_file=check_output_path(Path(out_file)),
        redraw_interval_sec=redraw_interval_sec,
        history_size=history_size,
        queue_size=queue_size,
        grace_sec=grace_sec,
        debug=debug,
    )
