# Overview: Shift store access and the conditional shift transitions used by the watchdog and timekeeping.

"""
Shift Service

Shifts are created by scheduling (outside this service). The transitions
here are written as conditional UPDATEs so two writers can never both apply
the same transition:

- scheduled -> missed           (watchdog; only with no clock-in for the shift)
- scheduled/confirmed/pending -> in_progress  (owner clocks in)
- in_progress -> completed      (covering entry clocks out)
"""

from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import exists

from ..extensions import db
from ..models import Employee, Shift, TimeEntry
from ..models.scheduling import (
    SHIFT_COMPLETED,
    SHIFT_IN_PROGRESS,
    SHIFT_MISSED,
    SHIFT_SCHEDULED,
    STARTABLE_STATUSES,
)
from .concurrency import compare_and_set
from .errors import ShiftNotFound
from .event_service import append_event

# Reminder window for the upcoming-shift query, relative to shift start.
UPCOMING_LOOKAHEAD_MINUTES = 5
UPCOMING_LOOKBEHIND_MINUTES = 10


def get_shift(shift_id: int) -> Shift:
    shift = db.session.query(Shift).filter_by(id=shift_id).first()
    if not shift:
        raise ShiftNotFound()
    return shift


def _clock_in_exists(shift_id: int):
    return exists().where(
        TimeEntry.shift_id == shift_id,
        TimeEntry.clock_in.isnot(None),
    )


def find_overdue_shift_ids(*, now: datetime, grace_minutes: int, company_id: int | None = None) -> list[int]:
    """Scheduled, not-yet-missed shifts whose start is older than the grace threshold."""
    grace_threshold = now - timedelta(minutes=grace_minutes)
    query = db.session.query(Shift.id).filter(
        Shift.status == SHIFT_SCHEDULED,
        Shift.is_missed.is_(False),
        Shift.start_time < grace_threshold,
    )
    if company_id:
        query = query.filter(Shift.company_id == company_id)
    return [row.id for row in query.order_by(Shift.start_time.asc()).all()]


def mark_missed(shift_id: int, *, now: datetime) -> bool:
    """
    Flag one shift as missed, at most once.

    The NOT EXISTS on time entries is evaluated inside the UPDATE itself, so
    a clock-in that commits first always wins and a repeated call is a no-op.
    Commits on success; returns False when nothing changed.
    """
    marked = compare_and_set(
        Shift,
        [
            Shift.id == shift_id,
            Shift.is_missed.is_(False),
            Shift.status == SHIFT_SCHEDULED,
            ~_clock_in_exists(shift_id),
        ],
        {
            Shift.is_missed: True,
            Shift.missed_at: now,
            Shift.status: SHIFT_MISSED,
        },
    )
    if not marked:
        db.session.rollback()
        return False

    company_id = db.session.query(Shift.company_id).filter_by(id=shift_id).scalar()
    append_event(
        event_type="shift.missed",
        entity_type="shift",
        entity_id=shift_id,
        company_id=company_id,
        occurred_at=now,
    )
    db.session.commit()
    return True


def mark_started_by_owner(shift: Shift, employee_id: int) -> bool:
    """Owner clock-in moves a not-yet-started shift to in_progress. Caller commits."""
    if shift.employee_id != employee_id:
        return False
    return compare_and_set(
        Shift,
        [Shift.id == shift.id, Shift.status.in_(STARTABLE_STATUSES)],
        {Shift.status: SHIFT_IN_PROGRESS},
    )


def mark_completed(shift_id: int) -> bool:
    """Caller commits."""
    return compare_and_set(
        Shift,
        [Shift.id == shift_id, Shift.status == SHIFT_IN_PROGRESS],
        {Shift.status: SHIFT_COMPLETED},
    )


def list_missed_shifts(
    *,
    company_id: int | None = None,
    exclude_employee_id: int | None = None,
) -> list[Shift]:
    """
    Missed shifts, newest first.

    exclude_employee_id hides the viewer's own missed shifts; an employee
    cannot cover for themself.
    """
    query = db.session.query(Shift).filter(Shift.is_missed.is_(True))
    if company_id:
        query = query.filter(Shift.company_id == company_id)
    if exclude_employee_id:
        query = query.filter(Shift.employee_id != exclude_employee_id)
    return query.order_by(Shift.missed_at.desc(), Shift.id.desc()).all()


def get_upcoming_shift(employee_id: int, *, now: datetime) -> Shift | None:
    """
    The employee's shift that is about to start (or just started) with no
    clock-in yet: start within [now - 10 min, now + 5 min].
    """
    window_start = now - timedelta(minutes=UPCOMING_LOOKBEHIND_MINUTES)
    window_end = now + timedelta(minutes=UPCOMING_LOOKAHEAD_MINUTES)
    return (
        db.session.query(Shift)
        .filter(
            Shift.employee_id == employee_id,
            Shift.start_time >= window_start,
            Shift.start_time <= window_end,
            Shift.status.in_(STARTABLE_STATUSES),
            ~exists().where(TimeEntry.shift_id == Shift.id, TimeEntry.clock_in.isnot(None)),
        )
        .order_by(Shift.start_time.asc())
        .first()
    )


def employee_names(employee_ids) -> dict[int, str]:
    """Batch-resolve display names for serialisation."""
    ids = {i for i in employee_ids if i}
    if not ids:
        return {}
    rows = db.session.query(Employee).filter(Employee.id.in_(ids)).all()
    return {e.id: e.display_name for e in rows}


def shift_to_dict(shift: Shift, names: dict[int, str] | None = None) -> dict:
    names = names if names is not None else employee_names([shift.employee_id, shift.replacement_employee_id])
    d = shift.to_dict()
    d["employee_name"] = names.get(shift.employee_id)
    d["replacement_employee_name"] = names.get(shift.replacement_employee_id)
    return d
