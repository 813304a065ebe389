from __future__ import annotations

from ..extensions import db
from shiftwatch.time_utils import to_utc_z


class AttendanceEvent(db.Model):
    """
    Append-only change feed for attendance mutations.

    Rows are written in the same transaction as the change they describe,
    so a reader polling by id never sees an event for a rolled-back change.
    """
    __tablename__ = "attendance_events"
    __table_args__ = (
        db.Index("ix_attendance_events_company_id", "company_id", "id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=True)

    event_type = db.Column(db.String(64), nullable=False, index=True)
    entity_type = db.Column(db.String(64), nullable=False)
    entity_id = db.Column(db.Integer, nullable=False)
    actor_employee_id = db.Column(db.Integer, nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False)
    note = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "event_type": self.event_type,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "actor_employee_id": self.actor_employee_id,
            "occurred_at": to_utc_z(self.occurred_at),
            "note": self.note,
        }
