from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

DEFAULT_TABLE_NAME = "tickets"
DEFAULT_POLL_INTERVAL_MS = 5000

PLACEHOLDER_URL = "YOUR_SUPABASE_URL"
PLACEHOLDER_KEY = "YOUR_SUPABASE_ANON_KEY"

URL_ENV_VARS = ("SUPABASE_URL",)
KEY_ENV_VARS = ("SUPABASE_KEY", "SUPABASE_ANON_KEY")


@dataclass(frozen=True)
class AppConfig:
    table_name: str = DEFAULT_TABLE_NAME
    poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS
    supabase_url: str = PLACEHOLDER_URL
    supabase_key: str = PLACEHOLDER_KEY

    @property
    def needs_configuration(self) -> bool:
        url = self.supabase_url.strip()
        key = self.supabase_key.strip()
        return not url or url == PLACEHOLDER_URL or not key or key == PLACEHOLDER_KEY

    def with_overrides(self, *, table_name: str | None = None, poll_interval_ms: int | None = None) -> AppConfig:
        cfg = self
        if table_name is not None:
            cfg = replace(cfg, table_name=_table_name(table_name))
        if poll_interval_ms is not None:
            cfg = replace(cfg, poll_interval_ms=poll_interval_ms)
        return cfg


def _table_name(value: Any) -> str:
    name = str(value).strip()
    if not name:
        raise ValueError("'table_name' must be a non-empty string.")
    return name


def _interval(value: Any) -> int:
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ValueError("'poll_interval_ms' must be an integer number of milliseconds.")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError("'poll_interval_ms' must be an integer number of milliseconds.") from None


def _first_env(env: Mapping[str, str], names: tuple[str, ...]) -> str | None:
    for name in names:
        v = env.get(name)
        if v:
            return v
    return None


def load_config(path: Path | None = None, env: Mapping[str, str] | None = None) -> AppConfig:
    """Build the config from defaults, an optional JSON file, then the environment."""
    if env is None:
        env = os.environ

    raw: dict[str, Any] = {}
    if path is not None:
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValueError(f"Config file {path} is not valid JSON: {e}") from e
        if not isinstance(raw, dict):
            raise ValueError(f"Config file {path} must contain a JSON object.")

    table_name = _table_name(raw.get("table_name", DEFAULT_TABLE_NAME))
    poll_interval_ms = _interval(raw.get("poll_interval_ms", DEFAULT_POLL_INTERVAL_MS))

    supabase_url = _first_env(env, URL_ENV_VARS) or str(raw.get("supabase_url") or PLACEHOLDER_URL)
    supabase_key = _first_env(env, KEY_ENV_VARS) or str(raw.get("supabase_key") or PLACEHOLDER_KEY)

    return AppConfig(
        table_name=table_name,
        poll_interval_ms=poll_interval_ms,
        supabase_url=supabase_url.strip(),
        supabase_key=supabase_key.strip(),
    )
