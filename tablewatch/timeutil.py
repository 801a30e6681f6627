from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def local_time_label(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone().strftime("%H:%M:%S")


def interval_label(poll_interval_ms: int) -> str:
    seconds = poll_interval_ms / 1000
    if seconds == int(seconds):
        return f"{int(seconds)} seconds"
    return f"{seconds:g} seconds"
