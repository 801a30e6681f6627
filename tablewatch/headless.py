from __future__ import annotations

import asyncio
from datetime import datetime

from .config import AppConfig
from .poller import FetchOutcome, TablePoller
from .source import Connect, SupabaseTableSource, TableSource


def format_outcome(outcome: FetchOutcome, *, when: datetime | None = None) -> str:
    ts = (when or datetime.now()).astimezone().strftime("%Y-%m-%d %H:%M:%S")
    if outcome.ok:
        count = len(outcome.rows or ())
        return f"{ts} polled '{outcome.table_name}': {count} record(s)"
    return f"{ts} refresh of '{outcome.table_name}' failed: {outcome.error}"


async def run_poller(
    cfg: AppConfig,
    *,
    once: bool,
    log: bool,
    connect: Connect = SupabaseTableSource.connect,
) -> None:
    if cfg.needs_configuration:
        raise ValueError("Supabase URL and key are not configured; set SUPABASE_URL and SUPABASE_KEY.")

    def _report(outcome: FetchOutcome) -> None:
        if log:
            print(format_outcome(outcome), flush=True)

    source: TableSource = await connect(cfg.supabase_url, cfg.supabase_key)
    poller = TablePoller(source, listener=_report)
    try:
        poller.start(cfg.table_name, 0 if once else cfg.poll_interval_ms)
        await poller.wait_until_loaded()
        if once or cfg.poll_interval_ms <= 0:
            return
        while poller.running:
            await asyncio.sleep(3600)
    finally:
        await poller.aclose()
        await source.aclose()
