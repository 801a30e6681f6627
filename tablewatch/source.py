from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, Protocol

import httpx
from supabase import AsyncClient, acreate_client

Record = dict[str, Any]

UNKNOWN_FAILURE = "An unknown error occurred during refresh."


class FetchError(Exception):
    """A fetch that reached the service but produced nothing usable."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class TableSource(Protocol):
    async def fetch_rows(self, table_name: str) -> list[Record]: ...

    async def aclose(self) -> None: ...


Connect = Callable[[str, str], Awaitable[TableSource]]


def describe_failure(exc: BaseException) -> str:
    """Collapse any fetch failure into the single message shown to the user."""
    if isinstance(exc, httpx.TimeoutException):
        return f"Request timed out ({type(exc).__name__})"
    if isinstance(exc, httpx.HTTPError):
        detail = str(exc).strip()
        return f"Network error: {detail or type(exc).__name__}"
    # Supabase/PostgREST errors carry a `message` attribute.
    message = getattr(exc, "message", None)
    if isinstance(message, str) and message.strip():
        return message.strip()
    text = str(exc).strip()
    return text or UNKNOWN_FAILURE


def _records(data: Any, table_name: str) -> list[Record]:
    if data is None:
        return []
    if not isinstance(data, list):
        raise FetchError(f"Malformed response from '{table_name}': expected a list of rows, got {type(data).__name__}.")
    rows: list[Record] = []
    for i, row in enumerate(data):
        if not isinstance(row, dict):
            raise FetchError(f"Malformed response from '{table_name}': row {i} is {type(row).__name__}, not an object.")
        rows.append(dict(row))
    return rows


class SupabaseTableSource:
    def __init__(self, client: AsyncClient) -> None:
        self._client = client

    @classmethod
    async def connect(cls, url: str, key: str) -> SupabaseTableSource:
        return cls(await acreate_client(url, key))

    async def fetch_rows(self, table_name: str) -> list[Record]:
        resp = await self._client.table(table_name).select("*").execute()
        return _records(resp.data, table_name)

    async def aclose(self) -> None:
        # The PostgREST client owns the httpx session used by fetch_rows.
        await self._client.postgrest.aclose()
