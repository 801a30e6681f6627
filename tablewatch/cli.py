from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

from rich.logging import RichHandler

from .config import AppConfig, load_config
from .headless import run_poller
from .ui import run_dashboard

DEFAULT_CONFIG_PATH = Path("tablewatch.json")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tablewatch",
        description="Live terminal viewer for a Supabase table, refreshed on a fixed interval.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help=f"Path to config JSON (default: {DEFAULT_CONFIG_PATH} if present).",
    )
    parser.add_argument("--table", default=None, help="Table to poll (overrides config).")
    parser.add_argument(
        "--interval-ms",
        type=int,
        default=None,
        help="Poll interval in milliseconds; 0 or less fetches once (overrides config).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Log more (-v for info, -vv for debug).",
    )

    sub = parser.add_subparsers(dest="cmd", required=False)

    run = sub.add_parser("run", help="Run the live viewer (default).")
    run.add_argument(
        "--no-screen",
        action="store_true",
        help="Disable alternate-screen mode (useful for logs).",
    )
    run.add_argument(
        "--once",
        action="store_true",
        help="Render one frame and exit (after the first fetch completes).",
    )

    poll = sub.add_parser("poll", help="Poll in a loop without the viewer.")
    poll.add_argument(
        "--once",
        action="store_true",
        help="Poll once and exit.",
    )
    poll.add_argument(
        "--log",
        action="store_true",
        help="Print a short line each poll.",
    )

    return parser


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(show_path=False)],
    )


def _resolve_config(parser: argparse.ArgumentParser, args: argparse.Namespace) -> AppConfig:
    config_path: Path | None
    if args.config is not None:
        config_path = Path(args.config)
        if not config_path.exists():
            parser.error(f"Config file not found: {config_path}")
    else:
        config_path = DEFAULT_CONFIG_PATH if DEFAULT_CONFIG_PATH.exists() else None

    try:
        cfg = load_config(config_path)
        return cfg.with_overrides(table_name=args.table, poll_interval_ms=args.interval_ms)
    except ValueError as e:
        parser.error(str(e))


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    cfg = _resolve_config(parser, args)

    cmd = args.cmd or "run"
    if cmd == "run":
        screen = not getattr(args, "no_screen", False)
        once = getattr(args, "once", False)
        try:
            asyncio.run(run_dashboard(cfg, screen=screen, once=once))
        except KeyboardInterrupt:
            pass
        return 0
    if cmd == "poll":
        if cfg.needs_configuration:
            parser.error("Supabase URL and key are not configured; set SUPABASE_URL and SUPABASE_KEY.")
        try:
            asyncio.run(run_poller(cfg, once=args.once, log=args.log))
        except KeyboardInterrupt:
            pass
        return 0

    parser.error(f"Unknown command: {cmd}")
