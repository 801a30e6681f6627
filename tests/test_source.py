from __future__ import annotations

import asyncio
from types import SimpleNamespace

import httpx
import pytest

from tablewatch.source import UNKNOWN_FAILURE, FetchError, SupabaseTableSource, describe_failure


class _Query:
    def __init__(self, client: "_FakeClient", table_name: str) -> None:
        self._client = client
        self._table_name = table_name

    def select(self, columns: str) -> "_Query":
        self._client.selects.append((self._table_name, columns))
        return self

    async def execute(self) -> SimpleNamespace:
        if isinstance(self._client.data, BaseException):
            raise self._client.data
        return SimpleNamespace(data=self._client.data)


class _Session:
    def __init__(self) -> None:
        self.closed = False

    async def aclose(self) -> None:
        self.closed = True


class _FakeClient:
    def __init__(self, data) -> None:
        self.data = data
        self.selects: list[tuple[str, str]] = []
        self.postgrest = _Session()

    def table(self, table_name: str) -> _Query:
        return _Query(self, table_name)


def _fetch(data):
    client = _FakeClient(data)
    rows = asyncio.run(SupabaseTableSource(client).fetch_rows("tickets"))
    return rows, client


def test_selects_all_columns():
    rows, client = _fetch([{"uuid": "a", "status": "open"}])
    assert rows == [{"uuid": "a", "status": "open"}]
    assert client.selects == [("tickets", "*")]


def test_no_data_is_an_empty_snapshot():
    rows, _ = _fetch(None)
    assert rows == []


def test_aclose_closes_the_postgrest_session():
    client = _FakeClient([])
    asyncio.run(SupabaseTableSource(client).aclose())
    assert client.postgrest.closed

@pytest.mark.parametrize("data", [{"uuid": "a"}, "oops", [{"uuid": "a"}, 3]])
def test_malformed_responses_raise_fetch_error(data):
    with pytest.raises(FetchError, match="Malformed response from 'tickets'"):
        _fetch(data)


def test_client_errors_propagate():
    with pytest.raises(httpx.ConnectError):
        _fetch(httpx.ConnectError("connection refused"))


class _ApiError(Exception):
    def __init__(self, message: str) -> None:
        super().__init__({"message": message, "code": "42P01"})
        self.message = message


@pytest.mark.parametrize(
    "exc, expected",
    [
        (httpx.ReadTimeout("timed out"), "Request timed out (ReadTimeout)"),
        (httpx.ConnectError("connection refused"), "Network error: connection refused"),
        (httpx.ConnectError(""), "Network error: ConnectError"),
        (_ApiError('relation "public.tickets" does not exist'), 'relation "public.tickets" does not exist'),
        (FetchError("Malformed response"), "Malformed response"),
        (RuntimeError("boom"), "boom"),
        (RuntimeError(), UNKNOWN_FAILURE),
    ],
)
def test_describe_failure(exc, expected):
    assert describe_failure(exc) == expected
