from __future__ import annotations

from ..extensions import db
from shiftwatch.time_utils import to_utc_z

REQUEST_PENDING = "pending"
REQUEST_APPROVED = "approved"
REQUEST_REJECTED = "rejected"

REQUEST_STATUSES = (REQUEST_PENDING, REQUEST_APPROVED, REQUEST_REJECTED)


class ReplacementRequest(db.Model):
    """
    An employee volunteering to cover a missed shift.

    WHY: Missed shifts are covered by peers; a manager picks one volunteer.

    INVARIANTS:
    - one request per (shift, volunteer)
    - at most one approved request per shift; approving one rejects the
      other pending requests for that shift in the same transaction
    - approved/rejected are terminal; requests are never deleted
    """
    __tablename__ = "replacement_requests"
    __table_args__ = (
        db.UniqueConstraint("shift_id", "replacement_employee_id", name="uq_replacement_requests_shift_employee"),
        db.Index("ix_replacement_requests_shift_status", "shift_id", "status"),
        db.Index("ix_replacement_requests_company_status", "company_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shift_id = db.Column(db.Integer, db.ForeignKey("shifts.id"), nullable=False)
    original_employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False)
    replacement_employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False)

    status = db.Column(db.String(16), nullable=False, default=REQUEST_PENDING)
    requested_at = db.Column(db.DateTime(timezone=True), nullable=False)

    reviewed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    reviewed_by = db.Column(db.Integer, nullable=True)
    reviewer_notes = db.Column(db.Text, nullable=True)

    shift = db.relationship("Shift", backref=db.backref("replacement_requests", lazy=True))
    original_employee = db.relationship("Employee", foreign_keys=[original_employee_id])
    replacement_employee = db.relationship("Employee", foreign_keys=[replacement_employee_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shift_id": self.shift_id,
            "original_employee_id": self.original_employee_id,
            "replacement_employee_id": self.replacement_employee_id,
            "company_id": self.company_id,
            "status": self.status,
            "requested_at": to_utc_z(self.requested_at),
            "reviewed_at": to_utc_z(self.reviewed_at),
            "reviewed_by": self.reviewed_by,
            "reviewer_notes": self.reviewer_notes,
        }
