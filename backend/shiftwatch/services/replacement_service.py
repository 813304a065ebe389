# Overview: Replacement coverage for missed shifts; request, single-winner approval, and start.

"""
Replacement Coordinator

WHY: When the watchdog flags a shift as missed, colleagues volunteer to
cover it and a manager approves exactly one of them.

DESIGN:
- A request can only be created against a shift that is already missed.
- Approval is one transaction: claim the shift, approve the request, reject
  the other pending requests. The claim is a conditional UPDATE on the shift
  row (replacement_employee_id IS NULL) under SELECT ... FOR UPDATE, so of
  two concurrent approvals exactly one changes a row; the other rolls back
  with AlreadyReplaced and leaves nothing behind.
- Starting the replacement opens the covering employee's time entry in the
  same transaction as the shift update.
"""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import ReplacementRequest, Shift
from ..models.replacements import REQUEST_APPROVED, REQUEST_PENDING, REQUEST_REJECTED
from ..models.scheduling import SHIFT_IN_PROGRESS
from . import timekeeping_service
from .concurrency import commit_or_raise, compare_and_set, lock_for_update
from .errors import (
    AlreadyClockedIn,
    AlreadyReplaced,
    AlreadyRequested,
    AlreadyStarted,
    NotApprovedReplacement,
    RequestAlreadyReviewed,
    RequestNotFound,
    SelfReplacement,
    ShiftNotFound,
    ShiftNotMissed,
)
from .event_service import append_event
from shiftwatch.time_utils import utcnow

SUPERSEDED_NOTE = "Another replacement was approved"


def get_request(request_id: int) -> ReplacementRequest:
    req = db.session.query(ReplacementRequest).filter_by(id=request_id).first()
    if not req:
        raise RequestNotFound()
    return req


def request_replacement(*, shift_id: int, requesting_employee_id: int) -> ReplacementRequest:
    shift = db.session.query(Shift).filter_by(id=shift_id).first()
    if not shift:
        raise ShiftNotFound()
    if shift.employee_id == requesting_employee_id:
        raise SelfReplacement()
    if not shift.is_missed:
        raise ShiftNotMissed()

    existing = db.session.query(ReplacementRequest.id).filter_by(
        shift_id=shift_id,
        replacement_employee_id=requesting_employee_id,
    ).first()
    if existing:
        raise AlreadyRequested()

    now = utcnow()
    req = ReplacementRequest(
        shift_id=shift.id,
        original_employee_id=shift.employee_id,
        replacement_employee_id=requesting_employee_id,
        company_id=shift.company_id,
        status=REQUEST_PENDING,
        requested_at=now,
    )
    db.session.add(req)
    try:
        db.session.flush()
    except IntegrityError as exc:
        db.session.rollback()
        raise AlreadyRequested() from exc

    append_event(
        event_type="replacement.requested",
        entity_type="replacement_request",
        entity_id=req.id,
        company_id=shift.company_id,
        actor_employee_id=requesting_employee_id,
        occurred_at=now,
    )
    commit_or_raise()
    return req


def approve_request(*, request_id: int, reviewer_id: int) -> ReplacementRequest:
    try:
        req = lock_for_update(db.session.query(ReplacementRequest).filter_by(id=request_id)).first()
        if not req:
            raise RequestNotFound()

        shift = lock_for_update(db.session.query(Shift).filter_by(id=req.shift_id)).first()
        if not shift:
            raise ShiftNotFound()
        if shift.replacement_employee_id is not None:
            raise AlreadyReplaced()
        if req.status != REQUEST_PENDING:
            raise RequestAlreadyReviewed()

        now = utcnow()
        claimed = compare_and_set(
            Shift,
            [Shift.id == shift.id, Shift.replacement_employee_id.is_(None)],
            {
                Shift.replacement_employee_id: req.replacement_employee_id,
                Shift.replacement_approved_at: now,
            },
        )
        if not claimed:
            raise AlreadyReplaced()

        approved = compare_and_set(
            ReplacementRequest,
            [ReplacementRequest.id == req.id, ReplacementRequest.status == REQUEST_PENDING],
            {
                ReplacementRequest.status: REQUEST_APPROVED,
                ReplacementRequest.reviewed_at: now,
                ReplacementRequest.reviewed_by: reviewer_id,
            },
        )
        if not approved:
            raise RequestAlreadyReviewed()

        db.session.query(ReplacementRequest).filter(
            ReplacementRequest.shift_id == req.shift_id,
            ReplacementRequest.id != req.id,
            ReplacementRequest.status == REQUEST_PENDING,
        ).update(
            {
                ReplacementRequest.status: REQUEST_REJECTED,
                ReplacementRequest.reviewed_at: now,
                ReplacementRequest.reviewed_by: reviewer_id,
                ReplacementRequest.reviewer_notes: SUPERSEDED_NOTE,
            },
            synchronize_session=False,
        )

        append_event(
            event_type="replacement.approved",
            entity_type="replacement_request",
            entity_id=req.id,
            company_id=req.company_id,
            occurred_at=now,
            note=f"reviewed_by={reviewer_id}",
        )
    except Exception:
        db.session.rollback()
        raise

    commit_or_raise()
    return get_request(request_id)


def reject_request(*, request_id: int, reviewer_id: int, notes: str | None = None) -> ReplacementRequest:
    req = get_request(request_id)
    if req.status != REQUEST_PENDING:
        raise RequestAlreadyReviewed()

    now = utcnow()
    rejected = compare_and_set(
        ReplacementRequest,
        [ReplacementRequest.id == req.id, ReplacementRequest.status == REQUEST_PENDING],
        {
            ReplacementRequest.status: REQUEST_REJECTED,
            ReplacementRequest.reviewed_at: now,
            ReplacementRequest.reviewed_by: reviewer_id,
            ReplacementRequest.reviewer_notes: notes,
        },
    )
    if not rejected:
        db.session.rollback()
        raise RequestAlreadyReviewed()

    append_event(
        event_type="replacement.rejected",
        entity_type="replacement_request",
        entity_id=req.id,
        company_id=req.company_id,
        occurred_at=now,
        note=notes,
    )
    commit_or_raise()
    return get_request(request_id)


def start_replacement_shift(*, shift_id: int, employee_id: int):
    """Returns the replacement employee's new time entry."""
    try:
        shift = lock_for_update(db.session.query(Shift).filter_by(id=shift_id)).first()
        if not shift:
            raise ShiftNotFound()
        if shift.replacement_employee_id != employee_id or shift.replacement_approved_at is None:
            raise NotApprovedReplacement()
        if shift.replacement_started_at is not None:
            raise AlreadyStarted()
        if timekeeping_service.get_active_entry(employee_id):
            raise AlreadyClockedIn()

        now = utcnow()
        started = compare_and_set(
            Shift,
            [
                Shift.id == shift.id,
                Shift.replacement_employee_id == employee_id,
                Shift.replacement_started_at.is_(None),
            ],
            {
                Shift.replacement_started_at: now,
                Shift.status: SHIFT_IN_PROGRESS,
            },
        )
        if not started:
            raise AlreadyStarted()

        entry = timekeeping_service.open_entry(
            employee_id=employee_id,
            clock_in_at=now,
            shift_id=shift.id,
            notes=f"Replacement shift - original employee: {shift.employee_id}",
            is_replacement=True,
        )

        append_event(
            event_type="replacement.started",
            entity_type="shift",
            entity_id=shift.id,
            company_id=shift.company_id,
            actor_employee_id=employee_id,
            occurred_at=now,
        )
    except Exception:
        db.session.rollback()
        raise

    commit_or_raise()
    return entry


def list_requests(
    *,
    status: str | None = None,
    company_id: int | None = None,
    shift_id: int | None = None,
) -> list[ReplacementRequest]:
    query = db.session.query(ReplacementRequest)
    if status:
        query = query.filter(ReplacementRequest.status == status)
    if company_id:
        query = query.filter(ReplacementRequest.company_id == company_id)
    if shift_id:
        query = query.filter(ReplacementRequest.shift_id == shift_id)
    return query.order_by(ReplacementRequest.requested_at.desc(), ReplacementRequest.id.desc()).all()
