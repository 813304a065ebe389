# Overview: Append-only attendance change feed; written inside the caller's transaction.

from __future__ import annotations

from typing import Optional
from datetime import datetime

from ..extensions import db
from ..models import AttendanceEvent
from shiftwatch.time_utils import utcnow

"""
Change feed invariants

- Append-only: no updates or deletes of existing events.
- Events are flushed inside the same DB transaction as the change they
  record; the caller commits.
- Readers page forward by id (after_id), which is monotonic.
"""

EVENT_PAGE_LIMIT = 200


def append_event(
    *,
    event_type: str,
    entity_type: str,
    entity_id: int,
    company_id: int | None = None,
    actor_employee_id: int | None = None,
    occurred_at: Optional[datetime] = None,
    note: Optional[str] = None,
) -> AttendanceEvent:
    ev = AttendanceEvent(
        company_id=company_id,
        event_type=event_type,
        entity_type=entity_type,
        entity_id=entity_id,
        actor_employee_id=actor_employee_id,
        occurred_at=occurred_at or utcnow(),
        note=note,
    )
    db.session.add(ev)
    db.session.flush()
    return ev


def list_events(
    *,
    after_id: int = 0,
    company_id: int | None = None,
    limit: int = EVENT_PAGE_LIMIT,
) -> list[AttendanceEvent]:
    query = db.session.query(AttendanceEvent).filter(AttendanceEvent.id > (after_id or 0))
    if company_id:
        query = query.filter(AttendanceEvent.company_id == company_id)
    limit = max(1, min(limit, EVENT_PAGE_LIMIT))
    return query.order_by(AttendanceEvent.id.asc()).limit(limit).all()
