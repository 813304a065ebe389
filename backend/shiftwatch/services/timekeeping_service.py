# Overview: Service-layer operations for timekeeping; encapsulates business logic.

"""
Timekeeping Service (Timestamp-Based)

WHY: Employees clock in/out and take breaks. Worked time is always derived
from the stored timestamps, never from a running counter, so any process can
reconstruct the same value after a restart or a missed tick.

RULES:
- At most one active entry (clock_out IS NULL) per employee.
- Clock-out while on break closes the break at the clock-out instant.
- Entries are immutable once clock_out is set.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Employee, TimeEntry
from ..models.timekeeping import STATE_IDLE, STATE_ON_BREAK
from . import shift_service
from .concurrency import commit_or_raise
from .errors import (
    AlreadyClockedIn,
    AlreadyOnBreak,
    InvalidBreakDuration,
    NoActiveEntry,
    NotOnBreak,
)
from .event_service import append_event
from shiftwatch.time_utils import (
    DEFAULT_OVERTIME_THRESHOLD_HOURS,
    break_seconds,
    format_elapsed,
    overtime_hours,
    round_hours,
    seconds_between,
    utcnow,
    worked_seconds,
)

RECENT_ENTRIES_LIMIT = 50


def _overtime_threshold() -> float:
    return float(current_app.config.get("OVERTIME_THRESHOLD_HOURS", DEFAULT_OVERTIME_THRESHOLD_HOURS))


def _company_id(employee_id: int) -> int | None:
    return db.session.query(Employee.company_id).filter_by(id=employee_id).scalar()


def get_active_entry(employee_id: int) -> TimeEntry | None:
    return (
        db.session.query(TimeEntry)
        .filter(TimeEntry.employee_id == employee_id, TimeEntry.clock_out.is_(None))
        .order_by(TimeEntry.clock_in.desc())
        .first()
    )


def _require_active_entry(employee_id: int) -> TimeEntry:
    entry = get_active_entry(employee_id)
    if not entry:
        raise NoActiveEntry()
    return entry


def open_entry(
    *,
    employee_id: int,
    clock_in_at: datetime,
    shift_id: int | None = None,
    notes: str | None = None,
    is_replacement: bool = False,
) -> TimeEntry:
    """
    Insert an active entry inside the caller's transaction (no commit).

    The partial unique index on (employee_id) WHERE clock_out IS NULL backs
    the check below when two clock-ins race.
    """
    if get_active_entry(employee_id):
        raise AlreadyClockedIn()

    entry = TimeEntry(
        employee_id=employee_id,
        shift_id=shift_id,
        clock_in=clock_in_at,
        notes=notes,
        is_replacement=is_replacement,
        prior_break_seconds=0,
    )
    db.session.add(entry)
    try:
        db.session.flush()
    except IntegrityError as exc:
        db.session.rollback()
        raise AlreadyClockedIn() from exc
    return entry


def clock_in(*, employee_id: int, shift_id: int | None = None, notes: str | None = None) -> TimeEntry:
    shift = shift_service.get_shift(shift_id) if shift_id is not None else None

    now = utcnow()
    entry = open_entry(employee_id=employee_id, clock_in_at=now, shift_id=shift_id, notes=notes)
    if shift is not None:
        shift_service.mark_started_by_owner(shift, employee_id)

    append_event(
        event_type="timeclock.clock_in",
        entity_type="time_entry",
        entity_id=entry.id,
        company_id=_company_id(employee_id),
        actor_employee_id=employee_id,
        occurred_at=now,
    )
    commit_or_raise()
    return entry


def clock_out(*, employee_id: int) -> TimeEntry:
    entry = _require_active_entry(employee_id)

    now = utcnow()
    if entry.on_break:
        entry.break_end = now

    entry.clock_out = now
    worked = worked_seconds(
        entry.clock_in,
        now=now,
        clock_out=now,
        break_start=entry.break_start,
        break_end=entry.break_end,
        prior_break_seconds=entry.prior_break_seconds or 0,
    )
    entry.total_hours = round_hours(worked)
    entry.overtime_hours = overtime_hours(entry.total_hours, _overtime_threshold())
    db.session.flush()

    if entry.shift_id is not None:
        shift_service.mark_completed(entry.shift_id)

    append_event(
        event_type="timeclock.clock_out",
        entity_type="time_entry",
        entity_id=entry.id,
        company_id=_company_id(employee_id),
        actor_employee_id=employee_id,
        occurred_at=now,
    )
    commit_or_raise()
    return entry


def start_break(*, employee_id: int, duration_minutes) -> TimeEntry:
    if isinstance(duration_minutes, bool):
        raise InvalidBreakDuration()
    try:
        duration = int(duration_minutes)
    except (TypeError, ValueError):
        raise InvalidBreakDuration()
    if duration <= 0:
        raise InvalidBreakDuration()

    entry = _require_active_entry(employee_id)
    if entry.on_break:
        raise AlreadyOnBreak()

    now = utcnow()
    if entry.break_start is not None and entry.break_end is not None:
        finished = break_seconds(entry.break_start, entry.break_end)
        entry.prior_break_seconds = (entry.prior_break_seconds or 0) + int(round(finished))

    entry.break_start = now
    entry.break_end = None
    entry.break_duration_minutes = duration
    entry.break_warning_shown_at = None
    db.session.flush()

    append_event(
        event_type="timeclock.break_start",
        entity_type="time_entry",
        entity_id=entry.id,
        company_id=_company_id(employee_id),
        actor_employee_id=employee_id,
        occurred_at=now,
    )
    commit_or_raise()
    return entry


def end_break(*, employee_id: int) -> TimeEntry:
    entry = _require_active_entry(employee_id)
    if not entry.on_break:
        raise NotOnBreak()

    now = utcnow()
    entry.break_end = now
    db.session.flush()

    append_event(
        event_type="timeclock.break_end",
        entity_type="time_entry",
        entity_id=entry.id,
        company_id=_company_id(employee_id),
        actor_employee_id=employee_id,
        occurred_at=now,
    )
    commit_or_raise()
    return entry


def mark_break_warning_shown(*, entry_id: int, break_start: datetime) -> bool:
    """
    Claim delivery of the break-ending warning for one specific break.

    Only the first caller for a given (entry, break_start) gets True, no
    matter how many processes scheduled the same warning.
    """
    now = utcnow()
    claimed = (
        db.session.query(TimeEntry)
        .filter(
            TimeEntry.id == entry_id,
            TimeEntry.clock_out.is_(None),
            TimeEntry.break_start == break_start,
            TimeEntry.break_end.is_(None),
            TimeEntry.break_warning_shown_at.is_(None),
        )
        .update({TimeEntry.break_warning_shown_at: now}, synchronize_session=False)
    )
    if not claimed:
        db.session.rollback()
        return False

    employee_id = db.session.query(TimeEntry.employee_id).filter_by(id=entry_id).scalar()
    append_event(
        event_type="break.ending_soon",
        entity_type="time_entry",
        entity_id=entry_id,
        company_id=_company_id(employee_id),
        actor_employee_id=employee_id,
        occurred_at=now,
    )
    commit_or_raise()
    return True


# =============================================================================
# DERIVED READS
# =============================================================================

def elapsed_seconds(entry: TimeEntry | None, now: datetime) -> float:
    """Worked seconds for an entry at `now`; pure, safe to poll at any rate."""
    if entry is None:
        return 0.0
    return worked_seconds(
        entry.clock_in,
        now=now,
        clock_out=entry.clock_out,
        break_start=entry.break_start,
        break_end=entry.break_end,
        prior_break_seconds=entry.prior_break_seconds or 0,
    )


def break_remaining_seconds(entry: TimeEntry | None, now: datetime) -> float | None:
    """Seconds left in the planned break; None when not on a planned break."""
    if entry is None or not entry.on_break or not entry.break_duration_minutes:
        return None
    planned = entry.break_duration_minutes * 60
    return max(planned - seconds_between(entry.break_start, now), 0.0)


@dataclass(frozen=True)
class TimerSnapshot:
    state: str
    entry: TimeEntry | None
    elapsed_seconds: float
    break_elapsed_seconds: float
    break_remaining_seconds: float | None

    def to_dict(self) -> dict:
        return {
            "state": self.state,
            "entry": self.entry.to_dict() if self.entry else None,
            "on_break": self.state == STATE_ON_BREAK,
            "elapsed_seconds": int(self.elapsed_seconds),
            "elapsed_formatted": format_elapsed(self.elapsed_seconds),
            "break_elapsed_seconds": int(self.break_elapsed_seconds),
            "break_remaining_seconds": (
                int(self.break_remaining_seconds) if self.break_remaining_seconds is not None else None
            ),
        }


def snapshot(entry: TimeEntry | None, *, now: datetime) -> TimerSnapshot:
    if entry is None or not entry.is_active:
        return TimerSnapshot(STATE_IDLE, None, 0.0, 0.0, None)
    current_break = break_seconds(entry.break_start, entry.break_end, until=now)
    return TimerSnapshot(
        state=entry.state,
        entry=entry,
        elapsed_seconds=elapsed_seconds(entry, now),
        break_elapsed_seconds=current_break if entry.on_break else 0.0,
        break_remaining_seconds=break_remaining_seconds(entry, now),
    )


def get_current_status(employee_id: int, *, now: datetime | None = None) -> TimerSnapshot:
    return snapshot(get_active_entry(employee_id), now=now or utcnow())


def list_entries(employee_id: int, *, limit: int = RECENT_ENTRIES_LIMIT) -> list[TimeEntry]:
    return (
        db.session.query(TimeEntry)
        .filter(TimeEntry.employee_id == employee_id)
        .order_by(TimeEntry.clock_in.desc(), TimeEntry.id.desc())
        .limit(limit)
        .all()
    )


def list_active_entries() -> list[TimeEntry]:
    return db.session.query(TimeEntry).filter(TimeEntry.clock_out.is_(None)).all()


def hours_by_employee(
    *,
    company_id: int,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[dict]:
    """Closed-entry totals per employee of a company, optionally by clock-in range."""
    query = (
        db.session.query(
            Employee.id,
            Employee.first_name,
            Employee.last_name,
            func.coalesce(func.sum(TimeEntry.total_hours), 0.0),
            func.coalesce(func.sum(TimeEntry.overtime_hours), 0.0),
            func.count(TimeEntry.id),
        )
        .join(TimeEntry, TimeEntry.employee_id == Employee.id)
        .filter(Employee.company_id == company_id, TimeEntry.clock_out.isnot(None))
    )
    if start is not None:
        query = query.filter(TimeEntry.clock_in >= start)
    if end is not None:
        query = query.filter(TimeEntry.clock_in <= end)

    rows = query.group_by(Employee.id, Employee.first_name, Employee.last_name).order_by(Employee.id).all()
    return [
        {
            "employee_id": emp_id,
            "name": f"{first} {last}".strip(),
            "hours": round(float(hours), 2),
            "overtime": round(float(overtime), 2),
            "entries": int(count),
        }
        for emp_id, first, last, hours, overtime, count in rows
    ]
