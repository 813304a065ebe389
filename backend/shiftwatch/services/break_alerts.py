# Overview: One-shot break-ending warnings derived from the stored break start.

"""
Break-ending warnings

The warning instant is break_start + planned duration - lead (5 minutes by
default). It is recomputed from the stored entry every time it is armed, so
a restarted process schedules exactly the same instant, or fires right away
when that instant has already passed.

Timers are process-local and carry no state of their own. Delivery claims
the entry's break_warning_shown_at column first, which is what makes the
warning fire once across restarts, duplicated tabs and multiple devices.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from ..models import TimeEntry
from shiftwatch.time_utils import seconds_between

DEFAULT_LEAD_MINUTES = 5

SCHEDULED = "scheduled"
FIRED = "fired"
SUPPRESSED = "suppressed"


@dataclass(frozen=True)
class BreakWarning:
    entry_id: int
    employee_id: int
    break_start: datetime
    break_ends_at: datetime
    fire_at: datetime

    def to_dict(self) -> dict:
        return {
            "entry_id": self.entry_id,
            "employee_id": self.employee_id,
            "break_start": self.break_start.isoformat(),
            "break_ends_at": self.break_ends_at.isoformat(),
            "fire_at": self.fire_at.isoformat(),
        }


def warning_for(entry: TimeEntry | None, *, lead_minutes: int = DEFAULT_LEAD_MINUTES) -> BreakWarning | None:
    """The pending warning for the entry's current break, or None if there is nothing to warn about."""
    if entry is None or not entry.on_break or not entry.break_duration_minutes:
        return None
    if entry.break_warning_shown_at is not None:
        return None

    ends_at = entry.break_start + timedelta(minutes=entry.break_duration_minutes)
    return BreakWarning(
        entry_id=entry.id,
        employee_id=entry.employee_id,
        break_start=entry.break_start,
        break_ends_at=ends_at,
        fire_at=ends_at - timedelta(minutes=lead_minutes),
    )


class BreakWarningScheduler:
    """
    Holds at most one pending timer per time entry.

    `deliver` is called with the BreakWarning, either synchronously (the fire
    instant is already past) or from the timer thread.
    """

    def __init__(self, deliver: Callable[[BreakWarning], None], *, timer_factory=threading.Timer):
        self._deliver = deliver
        self._timer_factory = timer_factory
        self._pending: dict[int, tuple[object, BreakWarning]] = {}
        self._lock = threading.Lock()

    def schedule(self, warning: BreakWarning, *, now: datetime) -> str:
        self.cancel(warning.entry_id)

        delay = seconds_between(now, warning.fire_at)
        if delay <= 0:
            self._deliver(warning)
            return FIRED

        timer = self._timer_factory(delay, self._fire, args=(warning,))
        timer.daemon = True
        with self._lock:
            self._pending[warning.entry_id] = (timer, warning)
        timer.start()
        return SCHEDULED

    def cancel(self, entry_id: int) -> bool:
        with self._lock:
            pending = self._pending.pop(entry_id, None)
        if pending is None:
            return False
        pending[0].cancel()
        return True

    def pending(self) -> dict[int, BreakWarning]:
        with self._lock:
            return {entry_id: warning for entry_id, (_, warning) in self._pending.items()}

    def shutdown(self) -> None:
        with self._lock:
            entry_ids = list(self._pending)
        for entry_id in entry_ids:
            self.cancel(entry_id)

    def _fire(self, warning: BreakWarning) -> None:
        with self._lock:
            pending = self._pending.get(warning.entry_id)
            # Rescheduled or cancelled after this timer was created.
            if pending is None or pending[1] != warning:
                return
            del self._pending[warning.entry_id]
        self._deliver(warning)
