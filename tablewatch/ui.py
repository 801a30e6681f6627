from __future__ import annotations

import asyncio
import contextlib
import json
import sys
from collections.abc import Iterator
from typing import Any

from rich import box
from rich.align import Align
from rich.console import Console, Group, RenderableType
from rich.live import Live
from rich.panel import Panel
from rich.spinner import Spinner
from rich.table import Table
from rich.text import Text

from .config import KEY_ENV_VARS, PLACEHOLDER_KEY, PLACEHOLDER_URL, URL_ENV_VARS, AppConfig
from .poller import PollState, TablePoller
from .source import UNKNOWN_FAILURE, Connect, Record, SupabaseTableSource
from .status import PollStatus
from .timeutil import interval_label, local_time_label


AMBER = "rgb(255,176,0)"
DIM_AMBER = "rgb(160,110,0)"
RED = "rgb(255,80,80)"
YELLOW = "rgb(255,230,120)"

APP_TITLE = "Supabase Realtime Data Viewer"
FRAME_SECONDS = 0.25


def _field_label(key: str) -> str:
    return key.replace("_", " ")


def _json_value(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"), default=str)


def _heading(table_name: str) -> str:
    return f"{table_name[:1].upper()}{table_name[1:]} Records"


def render_record(record: Record) -> Panel:
    lines: list[Text] = []
    for key, value in record.items():
        line = Text()
        line.append(f"{_field_label(str(key))}:", style=f"bold {DIM_AMBER}")
        line.append(" ")
        line.append(_json_value(value), style=AMBER)
        lines.append(line)
    return Panel(Group(*lines), border_style=DIM_AMBER, box=box.ROUNDED, padding=(0, 1))


def _render_loading(table_name: str) -> RenderableType:
    text = Text(f"Loading data from '{table_name}'...", style=AMBER)
    return Align.center(Spinner("dots", text=text, style=AMBER))


def _render_blocking_error(table_name: str, error: str) -> Panel:
    body = Group(
        Text("Oops! An Error Occurred", style=f"bold {RED}"),
        Text(f"Could not fetch data from the '{table_name}' table.", style=RED),
        Panel(Text(error, style=RED), box=box.SQUARE, border_style=RED),
    )
    return Panel(body, border_style=RED, box=box.HEAVY, padding=(0, 1))


def _render_status_line(state: PollState) -> Table:
    status = Table.grid(padding=(0, 1))
    status.add_column(justify="right")
    status.add_column(justify="right")
    spinner: RenderableType = Text("")
    if state.is_refreshing:
        spinner = Spinner("dots", text=Text("Refreshing...", style=DIM_AMBER), style=DIM_AMBER)
    updated = Text("")
    if state.last_updated is not None:
        updated = Text(f"Last updated: {local_time_label(state.last_updated)}", style=DIM_AMBER)
    status.add_row(spinner, updated)
    return status


def _render_records(state: PollState) -> Group:
    header = Table.grid(expand=True)
    header.add_column(justify="left", ratio=1)
    header.add_column(justify="right")
    header.add_row(Text(_heading(state.table_name), style=f"bold {AMBER}"), _render_status_line(state))

    parts: list[RenderableType] = [header]
    if state.last_error is not None:
        banner = Text(
            f"Failed to refresh data. Showing last known records. Error: {state.last_error}",
            style=YELLOW,
        )
        parts.append(Panel(banner, border_style=YELLOW, box=box.SQUARE))
    parts.extend(render_record(r) for r in state.records)
    return Group(*parts)


def render_viewer(state: PollState) -> RenderableType:
    status = state.status
    if status is PollStatus.INITIAL_LOADING:
        return _render_loading(state.table_name)
    if status is PollStatus.REFRESH_FAILED_NO_DATA:
        return _render_blocking_error(state.table_name, state.last_error or UNKNOWN_FAILURE)
    if not state.records:
        return Align.center(Text(f"No records found in the '{state.table_name}' table.", style=DIM_AMBER))
    return _render_records(state)


def render_configuration_needed() -> Panel:
    body = Group(
        Text("Configuration Needed", style=f"bold {AMBER}"),
        Text.assemble(
            "Set ",
            (URL_ENV_VARS[0], "bold"),
            " and ",
            (KEY_ENV_VARS[0], "bold"),
            " (or add them to the config file), replacing ",
            (f"'{PLACEHOLDER_URL}'", "bold"),
            " and ",
            (f"'{PLACEHOLDER_KEY}'", "bold"),
            " with your actual Supabase credentials.",
            style=AMBER,
        ),
    )
    return Panel(body, border_style=AMBER, box=box.HEAVY, padding=(0, 1))


def render_app(cfg: AppConfig, state: PollState | None) -> Panel:
    if cfg.poll_interval_ms > 0:
        subtitle = f"Automatically refreshing every {interval_label(cfg.poll_interval_ms)}."
    else:
        subtitle = "Automatic refresh is off; data is fetched once."
    header = Group(
        Align.center(Text(APP_TITLE, style=f"bold {AMBER}")),
        Align.center(Text(subtitle, style=DIM_AMBER)),
        Text(""),
    )

    if cfg.needs_configuration or state is None:
        body: RenderableType = render_configuration_needed()
    else:
        body = render_viewer(state)
    return Panel(Group(header, body), border_style=AMBER, box=box.DOUBLE, padding=(0, 1))


@contextlib.contextmanager
def _quit_keys(loop: asyncio.AbstractEventLoop, quit_requested: asyncio.Event) -> Iterator[None]:
    """Sets `quit_requested` on q or Ctrl-C while stdin is a terminal."""
    if not sys.stdin.isatty():
        yield
        return
    try:
        import termios
        import tty
    except ImportError:
        yield
        return

    fd = sys.stdin.fileno()
    saved = termios.tcgetattr(fd)
    tty.setcbreak(fd)

    def _on_stdin() -> None:
        if sys.stdin.read(1).lower() in {"q", "\u0003"}:
            quit_requested.set()

    loop.add_reader(fd, _on_stdin)
    try:
        yield
    finally:
        loop.remove_reader(fd)
        termios.tcsetattr(fd, termios.TCSADRAIN, saved)


async def run_dashboard(
    cfg: AppConfig,
    *,
    screen: bool,
    once: bool,
    console: Console | None = None,
    connect: Connect = SupabaseTableSource.connect,
) -> None:
    if console is None:
        console = Console(highlight=False)

    if cfg.needs_configuration:
        console.print(render_app(cfg, None))
        return

    source = await connect(cfg.supabase_url, cfg.supabase_key)
    poller = TablePoller(source)
    try:
        poller.start(cfg.table_name, cfg.poll_interval_ms)
        if once:
            await poller.wait_until_loaded()
            console.print(render_app(cfg, poller.state()))
            return

        quit_requested = asyncio.Event()
        with _quit_keys(asyncio.get_running_loop(), quit_requested):
            with Live(console=console, screen=screen, auto_refresh=False, transient=False) as live:
                while not quit_requested.is_set():
                    live.update(render_app(cfg, poller.state()), refresh=True)
                    with contextlib.suppress(asyncio.TimeoutError):
                        await asyncio.wait_for(quit_requested.wait(), FRAME_SECONDS)
    finally:
        await poller.aclose()
        await source.aclose()
