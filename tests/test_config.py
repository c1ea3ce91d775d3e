from __future__ import annotations

from pathlib import Path

import httpx
import pytest

from surge.config import (
    ConfigError,
    RunConfig,
    TargetConfig,
    build_config,
    check_output_path,
    parse_header,
    parse_method,
    parse_url,
)


@pytest.mark.parametrize("method", ["get", "POST", "Put", "patch", "DELETE"])
def test_supported_methods(method: str) -> None:
    assert parse_method(method) == method.upper()


@pytest.mark.parametrize("method", ["HEAD", "OPTIONS", "TRACE", "", "FETCH"])
def test_unsupported_methods_are_fatal(method: str) -> None:
    with pytest.raises(ConfigError):
        parse_method(method)


def test_parse_header() -> None:
    assert parse_header("Accept: application/json") == ("Accept", "application/json")
    assert parse_header("authorization:Bearer a:b:c") == ("authorization", "Bearer a:b:c")


@pytest.mark.parametrize("header", ["no-colon", ": value", "bad name: x", "x-val: a\r\nInjected: 1"])
def test_invalid_headers_are_fatal(header: str) -> None:
    with pytest.raises(ConfigError):
        parse_header(header)


@pytest.mark.parametrize(
    "url",
    [
        "example.com",
        "ftp://example.com/",
        "http://",
        "http://example.com:notaport/",
        "http://[not-a-host/",
        "http://exa mple.com/",
        "http://exa%20mple.com/",
        "http://example.com:99999/",
        "http://example.com:0/",
        "http://[::zz]/",
    ],
)
def test_invalid_urls_are_fatal(url: str) -> None:
    with pytest.raises(ConfigError):
        parse_url(url)


@pytest.mark.parametrize(
    "url",
    [
        "http://localhost:8081/api/v2",
        "https://example.com./",
        "http://127.0.0.1:65535/",
        "http://[::1]:8080/health",
        "http://my_service/ping",
    ],
)
def test_valid_urls(url: str) -> None:
    assert httpx.URL(parse_url(url)) == httpx.URL(url)


def test_build_config_rejects_malformed_host(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        build_config("http://[not-a-host/", out_file=tmp_path / "out.csv")



def test_output_path_checks(tmp_path: Path) -> None:
    assert check_output_path(tmp_path / "out.csv") == tmp_path / "out.csv"
    with pytest.raises(ConfigError):
        check_output_path(tmp_path / "missing" / "out.csv")
    with pytest.raises(ConfigError):
        check_output_path(tmp_path)


def test_build_config_defaults(tmp_path: Path) -> None:
    config = build_config(
        "https://example.com/api",
        headers=["x-api-key: secret-value-longer-than-twelve"],
        out_file=tmp_path / "out.csv",
    )
    assert config.concurrency == 10
    assert config.duration_sec == 30
    assert config.target.method == "GET"
    assert config.target.url == "https://example.com/api"
    assert config.target.header_lines() == ["x-api-key: secret-value-longer-than-twelve"]
    assert config.redraw_interval_sec == 1.0
    assert config.queue_size == 0
    assert config.deadline_sec() == 45.0


@pytest.mark.parametrize(
    "overrides",
    [
        {"concurrency": 0},
        {"duration_sec": -1},
        {"timeout_sec": 0},
        {"redraw_interval_sec": 0},
        {"history_size": 0},
        {"queue_size": -1},
        {"grace_sec": -1},
        {"method": "HEAD"},
        {"headers": ["broken"]},
    ],
)
def test_build_config_rejects_bad_values(tmp_path: Path, overrides: dict) -> None:
    with pytest.raises(ConfigError):
        build_config("http://example.com/", out_file=tmp_path / "out.csv", **overrides)


def test_config_is_immutable() -> None:
    config = RunConfig(target=TargetConfig(url="http://example.com/"), grace_sec=None)
    assert config.deadline_sec() is None
    with pytest.raises(AttributeError):
        config.concurrency = 3  # type: ignore[misc]
