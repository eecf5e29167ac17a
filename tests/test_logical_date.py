import asyncio
import time
from contextlib import aclosing
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from minimaltodo.core.logical_date import (
    logical_date,
    logical_date_for_today,
    logical_dates,
    next_boundary,
    parse_date_string,
    seconds_until,
    validate_date_string,
)
from minimaltodo.errors import ValidationError


def test_reset_hour_boundary() -> None:
    assert logical_date(datetime(2026, 1, 2, 2, 59), 3) == "2026-01-01"
    assert logical_date(datetime(2026, 1, 2, 3, 0), 3) == "2026-01-02"


def test_midnight_reset_is_calendar_date() -> None:
    assert logical_date(datetime(2026, 1, 2, 0, 0), 0) == "2026-01-02"
    assert logical_date(datetime(2026, 1, 1, 23, 59), 0) == "2026-01-01"


def test_early_hours_roll_back_across_month_and_year() -> None:
    assert logical_date(datetime(2026, 3, 1, 1, 0), 4) == "2026-02-28"
    assert logical_date(datetime(2026, 1, 1, 5, 30), 6) == "2025-12-31"


def test_logical_date_for_today_uses_clock() -> None:
    fixed = datetime(2026, 5, 10, 1, 15)
    assert logical_date_for_today(2, clock=lambda: fixed) == "2026-05-09"
    assert logical_date_for_today(0, clock=lambda: fixed) == "2026-05-10"


def test_next_boundary_is_strictly_after_now() -> None:
    assert next_boundary(datetime(2026, 1, 2, 2, 59), 3) == datetime(2026, 1, 2, 3, 0)
    assert next_boundary(datetime(2026, 1, 2, 3, 0), 3) == datetime(2026, 1, 3, 3, 0)
    assert next_boundary(datetime(2026, 12, 31, 23, 0), 0) == datetime(2027, 1, 1, 0, 0)


def test_date_string_validation() -> None:
    assert validate_date_string(" 2026-02-03 ") == "2026-02-03"
    assert parse_date_string("2024-02-29").day == 29
    for bad in ["", "2026-2-3", "03-02-2026", "2026-02-30", "2026/02/03"]:
        with pytest.raises(ValidationError):
            validate_date_string(bad)


async def _hours(*values: int, gap: float = 0.05):
    for index, value in enumerate(values):
        if index:
            await asyncio.sleep(gap)
        yield value


def test_stream_restarts_when_reset_hour_changes() -> None:
    fixed = datetime(2026, 3, 10, 2, 0)

    async def scenario() -> list[str]:
        seen: list[str] = []
        async with aclosing(logical_dates(_hours(0, 3), clock=lambda: fixed)) as dates:
            async for value in dates:
                seen.append(value)
                if len(seen) == 2:
                    break
        return seen

    assert asyncio.run(scenario()) == ["2026-03-10", "2026-03-09"]


def test_stream_skips_duplicate_dates() -> None:
    fixed = datetime(2026, 3, 10, 12, 0)

    async def scenario() -> tuple[str, bool]:
        async with aclosing(logical_dates(_hours(0, 1, 2), clock=lambda: fixed)) as dates:
            first = await asyncio.wait_for(anext(dates), timeout=2)
            try:
                await asyncio.wait_for(anext(dates), timeout=0.4)
            except asyncio.TimeoutError:
                return first, False
            return first, True

    first, emitted_again = asyncio.run(scenario())
    assert first == "2026-03-10"
    assert emitted_again is False


def test_stream_emits_on_day_rollover() -> None:
    start = datetime(2026, 3, 10, 23, 59, 59, 700000)
    t0 = time.monotonic()

    def clock() -> datetime:
        return start + timedelta(seconds=time.monotonic() - t0)

    async def scenario() -> list[str]:
        seen: list[str] = []
        async with aclosing(logical_dates(_hours(0), clock=clock)) as dates:
            async for value in dates:
                seen.append(value)
                if len(seen) == 2:
                    break
        return seen

    assert asyncio.run(asyncio.wait_for(scenario(), timeout=5)) == ["2026-03-10", "2026-03-11"]


def test_boundary_delay_counts_real_time_across_spring_forward() -> None:
    zone = ZoneInfo("America/New_York")
    now = datetime(2026, 3, 8, 0, 30, tzinfo=zone)
    boundary = next_boundary(now, 3)
    assert (boundary.hour, boundary.day) == (3, 8)
    assert seconds_until(boundary, now) == 5400.0


def test_boundary_delay_counts_real_time_across_fall_back() -> None:
    zone = ZoneInfo("America/New_York")
    now = datetime(2026, 11, 1, 0, 30, tzinfo=zone)
    assert seconds_until(next_boundary(now, 3), now) == 12600.0


def test_boundary_delay_for_naive_local_clock() -> None:
    now = datetime(2026, 6, 1, 22, 0)
    delay = seconds_until(next_boundary(now, 0), now)
    assert 0 < delay <= 3 * 3600


def test_failing_reset_hour_source_ends_stream_promptly() -> None:
    fixed = datetime(2026, 3, 10, 12, 0)

    async def failing():
        yield 0
        await asyncio.sleep(0.05)
        raise RuntimeError("preferences unavailable")

    async def scenario() -> str:
        async with aclosing(logical_dates(failing(), clock=lambda: fixed)) as dates:
            first = await asyncio.wait_for(anext(dates), timeout=2)
            await asyncio.wait_for(anext(dates), timeout=2)
        return first

    with pytest.raises(RuntimeError, match="preferences unavailable"):
        asyncio.run(scenario())
