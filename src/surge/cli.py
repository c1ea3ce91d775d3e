from __future__ import annotations

import argparse
import asyncio
import logging

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from surge.config import SUPPORTED_METHODS, ConfigError, RunConfig, build_config
from surge.loadgen.runner import run_load_test
from surge.metrics import print_summary
from surge.storage import write_results
from surge.ui.dashboard import HeadlessDashboard, RichDashboard

logger = logging.getLogger("surge")

EXIT_EXPORT_FAILED = 1
EXIT_BAD_CONFIG = 2
EXIT_INCOMPLETE = 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="surge", description="HTTP load testing with a live terminal dashboard")
    parser.add_argument("-u", "--url", required=True, help="Host to make requests to")
    parser.add_argument(
        "-c",
        "--concurrent-requests",
        type=int,
        default=10,
        help="How many requests to send at once",
    )
    parser.add_argument(
        "-t",
        "--test-time",
        type=float,
        default=30,
        help="How long the test should last for (seconds)",
    )
    parser.add_argument(
        "-x",
        "--header",
        action="append",
        default=[],
        dest="headers",
        help="Request header as 'name: value', repeatable",
    )
    parser.add_argument(
        "-m",
        "--method",
        default="GET",
        help=f"HTTP method to use ({', '.join(SUPPORTED_METHODS)})",
    )
    parser.add_argument("-o", "--out-file", default="./out.csv", help="File to write the request log to")
    parser.add_argument("-d", "--debug", action="store_true", help="Perform some additional debug logging")
    parser.add_argument("--timeout", type=float, default=10.0, help="Per-request timeout (seconds)")
    parser.add_argument("--record-body", action="store_true", help="Include response bodies in the request log")
    parser.add_argument("--redraw-interval", type=float, default=1.0, help="Minimum seconds between redraws")
    parser.add_argument("--queue-size", type=int, default=0, help="Bound the result queue (0 = unbounded)")
    parser.add_argument(
        "--grace",
        type=float,
        default=15.0,
        help="Seconds past the test time before stragglers are stopped (negative disables)",
    )
    parser.add_argument("--no-dashboard", action="store_true", help="Log progress instead of drawing the dashboard")
    return parser


def config_from_args(args: argparse.Namespace) -> RunConfig:
    return build_config(
        args.url,
        method=args.method,
        headers=args.headers,
        concurrency=args.concurrent_requests,
        duration_sec=args.test_time,
        out_file=args.out_file,
        timeout_sec=args.timeout,
        record_body=args.record_body,
        redraw_interval_sec=args.redraw_interval,
        queue_size=args.queue_size,
        grace_sec=None if args.grace < 0 else args.grace,
        debug=args.debug,
    )


def configure_logging(debug: bool, console: Console) -> None:
    handler = RichHandler(console=console, show_path=debug, rich_tracebacks=True)
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )
    # httpx logs every request at INFO/DEBUG
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    console = Console()
    configure_logging(args.debug, console)

    try:
        config = config_from_args(args)
    except ConfigError as exc:
        console.print(f"[red]error:[/] {escape(str(exc))}")
        raise SystemExit(EXIT_BAD_CONFIG) from exc
    logger.debug("Configuration: %r", config)

    if args.no_dashboard or not console.is_terminal:
        if not args.debug:
            logger.setLevel(logging.INFO)
        dashboard = HeadlessDashboard()
    else:
        dashboard = RichDashboard(console)

    try:
        with dashboard:
            result = asyncio.run(run_load_test(config, dashboard))
    except ConfigError as exc:
        console.print(f"[red]error:[/] {escape(str(exc))}")
        raise SystemExit(EXIT_BAD_CONFIG) from exc

    try:
        write_results(config.out_file, config.target.url, result.outcomes, config.target.record_body)
    except OSError as exc:
        logger.error("Could not write request log to %s: %s", config.out_file, exc)
        print_summary(console, result.summary())
        raise SystemExit(EXIT_EXPORT_FAILED) from exc

    print_summary(console, result.summary())
    if result.timed_out:
        raise SystemExit(EXIT_INCOMPLETE)


if __name__ == "__main__":
    main()
