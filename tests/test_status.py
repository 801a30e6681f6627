from __future__ import annotations

import pytest

from tablewatch.status import PollStatus, derive_status


@pytest.mark.parametrize(
    "has_ever_loaded, in_flight, last_error, has_rows, expected",
    [
        (False, True, None, False, PollStatus.INITIAL_LOADING),
        (False, False, None, False, PollStatus.INITIAL_LOADING),
        (True, False, None, True, PollStatus.READY),
        (True, False, None, False, PollStatus.READY),
        (True, True, None, True, PollStatus.REFRESHING_IN_BACKGROUND),
        (True, True, "boom", True, PollStatus.REFRESH_FAILED_WITH_STALE_DATA),
        (True, False, "boom", True, PollStatus.REFRESH_FAILED_WITH_STALE_DATA),
        (True, False, "boom", False, PollStatus.REFRESH_FAILED_NO_DATA),
    ],
)
def test_derive_status(has_ever_loaded, in_flight, last_error, has_rows, expected):
    status = derive_status(
        has_ever_loaded=has_ever_loaded,
        in_flight=in_flight,
        last_error=last_error,
        has_rows=has_rows,
    )
    assert status is expected

