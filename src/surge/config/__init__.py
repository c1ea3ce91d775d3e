from __future__ import annotations

from surge.config.models import (
    SUPPORTED_METHODS,
    ConfigError,
    RunConfig,
    TargetConfig,
    build_config,
    check_output_path,
    parse_header,
    parse_method,
    parse_url,
)

__all__ = [
    "SUPPORTED_METHODS",
    "ConfigError",
    "RunConfig",
    "TargetConfig",
    "build_config",
    "check_output_path",
    "parse_header",
    "parse_method",
    "parse_url",
]
