from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

"""
Time source and duration arithmetic.

All worked/break durations are derived by subtracting stored timestamps.
Nothing in this module keeps a running counter, so a late tick, a suspended
process or a restart never changes the result.

Canonical form: UTC-naive datetimes (what SQLite hands back).
"""

SECONDS_PER_HOUR = 3600
DEFAULT_OVERTIME_THRESHOLD_HOURS = 8.0


class SystemClock:
    """Wall clock in UTC (naive, canonical)."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc).replace(tzinfo=None)


_clock = SystemClock()


def get_clock():
    return _clock


def set_clock(clock):
    """Install a process-wide clock and return the previous one."""
    global _clock
    previous = _clock
    _clock = clock
    return previous


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return _clock.now()


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DDTHH:MM" (naive) is interpreted as UTC
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    # Accept trailing Z
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)
    return to_naive_utc(dt)


def to_naive_utc(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None or dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


# =============================================================================
# DURATIONS
# =============================================================================

def seconds_between(start: datetime, end: datetime) -> float:
    """Signed number of seconds from start to end."""
    return (to_naive_utc(end) - to_naive_utc(start)).total_seconds()


def break_seconds(
    break_start: Optional[datetime],
    break_end: Optional[datetime],
    *,
    until: Optional[datetime] = None,
) -> float:
    """
    Length of a single break.

    An open break (no break_end) is measured up to `until`; with no `until`
    it counts as zero. Never negative.
    """
    if break_start is None:
        return 0.0
    end = break_end if break_end is not None else until
    if end is None:
        return 0.0
    return max(seconds_between(break_start, end), 0.0)


def worked_seconds(
    clock_in: Optional[datetime],
    *,
    now: datetime,
    clock_out: Optional[datetime] = None,
    break_start: Optional[datetime] = None,
    break_end: Optional[datetime] = None,
    prior_break_seconds: float = 0,
) -> float:
    """
    Worked time for one entry, recomputed from timestamps.

    worked = end - clock_in - prior breaks - current break, where `end` is
    clock_out for a closed entry and `now` for an active one. An open break
    runs up to `end`.
    """
    if clock_in is None:
        return 0.0
    end = clock_out if clock_out is not None else now
    total = seconds_between(clock_in, end)
    total -= prior_break_seconds or 0
    total -= break_seconds(break_start, break_end, until=end)
    return max(total, 0.0)


def round_hours(seconds: float) -> float:
    """Seconds to hours, rounded to 2 decimals."""
    return round(max(seconds, 0.0) / SECONDS_PER_HOUR, 2)


def overtime_hours(total_hours: float, threshold_hours: float = DEFAULT_OVERTIME_THRESHOLD_HOURS) -> float:
    if total_hours <= threshold_hours:
        return 0.0
    return round(total_hours - threshold_hours, 2)


def format_elapsed(seconds: float) -> str:
    """HH:MM:SS for display layers; hours are not wrapped at 24."""
    total = max(int(seconds), 0)
    hrs, rem = divmod(total, SECONDS_PER_HOUR)
    mins, secs = divmod(rem, 60)
    return f"{hrs:02d}:{mins:02d}:{secs:02d}"
