"""Logical day computation.

A logical day starts at `reset_hour:00` local time instead of midnight, so a
habit ticked off at 01:30 with a reset hour of 3 still counts for the
previous calendar date.
"""

from __future__ import annotations

import asyncio
import re
from contextlib import suppress
from datetime import date, datetime, timedelta, timezone
from typing import AsyncIterator, Callable
from zoneinfo import ZoneInfo

from loguru import logger

from minimaltodo.errors import ValidationError

Clock = Callable[[], datetime]

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def now_local(tz_name: str | None = None) -> datetime:
    """Current wall-clock time.

    With `tz_name` the result is aware in that zone; otherwise it is naive
    system-local time, which `astimezone()` resolves with the zone's own DST
    rules when a real instant is needed.
    """
    if tz_name:
        return datetime.now(ZoneInfo(tz_name))
    return datetime.now()


def logical_date(now: datetime, reset_hour: int) -> str:
    """Return the YYYY-MM-DD logical date of `now` (wall clock as given)."""
    day = now.date()
    if now.hour < reset_hour:
        day = day - timedelta(days=1)
    return day.isoformat()


def next_boundary(now: datetime, reset_hour: int) -> datetime:
    """First wall-clock `reset_hour:00` strictly after `now`, in the same zone as `now`."""
    candidate = now.replace(hour=reset_hour, minute=0, second=0, microsecond=0)
    if candidate <= now:
        candidate = candidate + timedelta(days=1)
    return candidate


def seconds_until(boundary: datetime, now: datetime) -> float:
    """Real elapsed seconds from `now` to `boundary`, across DST changes."""
    delta = boundary.astimezone(timezone.utc) - now.astimezone(timezone.utc)
    return max(0.0, delta.total_seconds())


def logical_date_for_today(reset_hour: int, *, clock: Clock = now_local) -> str:
    return logical_date(clock(), reset_hour)


def parse_date_string(value: str) -> date:
    text = (value or "").strip()
    if not _DATE_RE.match(text):
        raise ValidationError(f"Date must be YYYY-MM-DD, got {value!r}")
    try:
        return date.fromisoformat(text)
    except ValueError as exc:
        raise ValidationError(f"Invalid date: {value!r}") from exc


def validate_date_string(value: str) -> str:
    return parse_date_string(value).isoformat()


async def logical_dates(
    reset_hours: AsyncIterator[int],
    *,
    clock: Clock = now_local,
) -> AsyncIterator[str]:
    """Stream the logical date, re-emitting only when it actually changes.

    Emits once the first reset hour arrives, again whenever the reset hour
    changes, and again when the clock passes the next reset boundary. Each
    boundary is awaited with a single timed wait which is dropped and
    re-armed when the reset hour changes; a failing `reset_hours` source
    ends the stream with its error at once. Closing the stream cancels the
    pending wait and stops reading `reset_hours`.
    """
    hours: asyncio.Queue[int] = asyncio.Queue()

    async def _pump() -> None:
        async for hour in reset_hours:
            await hours.put(hour)

    pump = asyncio.create_task(_pump())
    last: str | None = None
    try:
        hour = await _next_hour(hours, pump)
        if hour is None:
            return
        while True:
            current = logical_date(clock(), hour)
            if current != last:
                last = current
                yield current

            now = clock()
            delay = seconds_until(next_boundary(now, hour), now)
            logger.debug("logical_date_wait reset_hour={} delay_sec={:.1f}", hour, delay)
            changed = await _next_hour(hours, pump, timeout=delay)
            if changed is not None:
                hour = changed
    finally:
        if not pump.done():
            pump.cancel()
            with suppress(asyncio.CancelledError):
                await pump


async def _next_hour(
    hours: asyncio.Queue[int],
    pump: asyncio.Task,
    timeout: float | None = None,
) -> int | None:
    """Next queued reset hour, or None on timeout or once the source is exhausted.

    A failure of the source is raised as soon as it happens.
    """
    if not hours.empty():
        return hours.get_nowait()
    _raise_if_failed(pump)
    if pump.done() and timeout is None:
        return None
    getter = asyncio.ensure_future(hours.get())
    waiting = {getter} if pump.done() else {getter, pump}
    try:
        await asyncio.wait(waiting, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
    finally:
        if not getter.done():
            getter.cancel()
            with suppress(asyncio.CancelledError):
                await getter
    if getter.done() and not getter.cancelled():
        return getter.result()
    if not hours.empty():
        return hours.get_nowait()
    _raise_if_failed(pump)
    return None


def _raise_if_failed(pump: asyncio.Task) -> None:
    if pump.done() and not pump.cancelled() and pump.exception() is not None:
        raise pump.exception()
