from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime

from .source import Record, TableSource, describe_failure
from .status import PollStatus, derive_status
from .timeutil import utc_now

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[object]]


@dataclass(frozen=True)
class FetchOutcome:
    table_name: str
    rows: tuple[Record, ...] | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class PollState:
    table_name: str
    poll_interval_ms: int
    records: tuple[Record, ...]
    last_error: str | None
    last_updated: datetime | None
    has_ever_loaded: bool
    is_refreshing: bool

    @property
    def status(self) -> PollStatus:
        return derive_status(
            has_ever_loaded=self.has_ever_loaded,
            in_flight=self.is_refreshing,
            last_error=self.last_error,
            has_rows=bool(self.records),
        )


@dataclass
class _TimerLease:
    """The timer resource bound to one (table, interval) pair."""

    table_name: str
    poll_interval_ms: int
    timer: asyncio.Task[None] | None = None
    in_flight: int = 0
    released: bool = False


class TablePoller:
    """Polls one table on a fixed period and keeps the last good snapshot.

    Ticks fire on the timer whether or not an earlier fetch is still running,
    so fetches may overlap; whichever completes last wins. Stopping releases
    the timer lease: in-flight fetches are left to finish but their results
    are discarded. update() also releases the lease, so a new interval for
    the same table drops results still in flight from the old timer.
    """

    def __init__(
        self,
        source: TableSource,
        *,
        sleep: Sleep = asyncio.sleep,
        now: Callable[[], datetime] = utc_now,
        listener: Callable[[FetchOutcome], None] | None = None,
    ) -> None:
        self.source = source
        self.sleep = sleep
        self.now = now
        self.listener = listener

        self.snapshot: tuple[Record, ...] = ()
        self.last_error: str | None = None
        self.last_updated: datetime | None = None
        self.has_ever_loaded = False

        self._lease: _TimerLease | None = None
        self._tasks: set[asyncio.Task[FetchOutcome]] = set()
        self._loaded = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._lease is not None

    def start(self, table_name: str, poll_interval_ms: int) -> None:
        if self._lease is not None:
            raise RuntimeError("Poller is already running; call stop() or update() first.")
        lease = _TimerLease(table_name=table_name, poll_interval_ms=poll_interval_ms)
        self._lease = lease
        self._spawn_fetch(lease)
        if poll_interval_ms > 0:
            lease.timer = asyncio.create_task(self._run_timer(lease), name=f"tablewatch-timer:{table_name}")
        logger.debug("Started polling %r every %sms", table_name, poll_interval_ms)

    def stop(self) -> None:
        lease = self._lease
        if lease is None:
            return
        self._lease = None
        lease.released = True
        if lease.timer is not None:
            lease.timer.cancel()
        logger.debug("Stopped polling %r", lease.table_name)

    def update(self, table_name: str, poll_interval_ms: int) -> None:
        lease = self._lease
        if lease is not None and (lease.table_name, lease.poll_interval_ms) == (table_name, poll_interval_ms):
            return
        self.stop()
        self.start(table_name, poll_interval_ms)

    async def aclose(self) -> None:
        lease = self._lease
        self.stop()
        if lease is not None and lease.timer is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await lease.timer

    async def wait_until_loaded(self) -> None:
        await self._loaded.wait()

    def state(self) -> PollState:
        lease = self._lease
        return PollState(
            table_name=lease.table_name if lease else "",
            poll_interval_ms=lease.poll_interval_ms if lease else 0,
            records=self.snapshot,
            last_error=self.last_error,
            last_updated=self.last_updated,
            has_ever_loaded=self.has_ever_loaded,
            is_refreshing=bool(lease and lease.in_flight),
        )

    async def fetch(self) -> FetchOutcome:
        """Run one fetch against the current lease outside the timer."""
        if self._lease is None:
            raise RuntimeError("Poller is not running.")
        lease = self._lease
        lease.in_flight += 1
        return await self._fetch(lease)

    def _spawn_fetch(self, lease: _TimerLease) -> None:
        # Counted when issued so the refresh indicator shows before the task first runs.
        lease.in_flight += 1
        task = asyncio.create_task(self._fetch(lease))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_timer(self, lease: _TimerLease) -> None:
        period = lease.poll_interval_ms / 1000
        while not lease.released:
            await self.sleep(period)
            if lease.released:
                break
            self._spawn_fetch(lease)

    async def _fetch(self, lease: _TimerLease) -> FetchOutcome:
        try:
            rows = await self.source.fetch_rows(lease.table_name)
        except Exception as e:
            logger.warning("Error polling data from %r: %s", lease.table_name, e)
            outcome = FetchOutcome(table_name=lease.table_name, error=describe_failure(e))
        else:
            outcome = FetchOutcome(table_name=lease.table_name, rows=tuple(rows or ()))
        finally:
            lease.in_flight -= 1

        if lease.released:
            logger.debug("Discarding late result for %r from a released timer", lease.table_name)
            return outcome

        self._apply(outcome)
        if self.listener is not None:
            self.listener(outcome)
        return outcome

    def _apply(self, outcome: FetchOutcome) -> None:
        if outcome.rows is not None:
            self.snapshot = outcome.rows
            self.last_updated = self.now()
            self.last_error = None
        else:
            self.last_error = outcome.error
        self.has_ever_loaded = True
        self._loaded.set()
