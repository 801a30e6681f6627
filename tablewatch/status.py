from __future__ import annotations

from enum import Enum


class PollStatus(Enum):
    INITIAL_LOADING = "initial_loading"
    READY = "ready"
    REFRESHING_IN_BACKGROUND = "refreshing"
    REFRESH_FAILED_WITH_STALE_DATA = "refresh_failed_stale"
    REFRESH_FAILED_NO_DATA = "refresh_failed_no_data"


def derive_status(*, has_ever_loaded: bool, in_flight: bool, last_error: str | None, has_rows: bool) -> PollStatus:
    if not has_ever_loaded:
        return PollStatus.INITIAL_LOADING
    if last_error is not None:
        if has_rows:
            return PollStatus.REFRESH_FAILED_WITH_STALE_DATA
        return PollStatus.REFRESH_FAILED_NO_DATA
    if in_flight:
        return PollStatus.REFRESHING_IN_BACKGROUND
    return PollStatus.READY
