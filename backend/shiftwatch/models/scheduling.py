from __future__ import annotations

from ..extensions import db
from shiftwatch.time_utils import to_utc_z

SHIFT_SCHEDULED = "scheduled"
SHIFT_CONFIRMED = "confirmed"
SHIFT_PENDING = "pending"
SHIFT_IN_PROGRESS = "in_progress"
SHIFT_COMPLETED = "completed"
SHIFT_CANCELLED = "cancelled"
SHIFT_NO_SHOW = "no_show"
SHIFT_MISSED = "missed"

SHIFT_STATUSES = (
    SHIFT_SCHEDULED,
    SHIFT_CONFIRMED,
    SHIFT_PENDING,
    SHIFT_IN_PROGRESS,
    SHIFT_COMPLETED,
    SHIFT_CANCELLED,
    SHIFT_NO_SHOW,
    SHIFT_MISSED,
)

# Statuses a clock-in against the shift moves to in_progress.
STARTABLE_STATUSES = (SHIFT_SCHEDULED, SHIFT_CONFIRMED, SHIFT_PENDING)


class Shift(db.Model):
    """
    Scheduled work period for one employee.

    LIFECYCLE:
    - scheduled: created by scheduling
    - missed: watchdog found no clock-in after the grace period
    - in_progress: the employee (or an approved replacement) clocked in
    - completed: the covering entry clocked out

    INVARIANTS:
    - replacement_approved_at set => replacement_employee_id set
    - replacement_started_at set => replacement_approved_at set
    - is_missed only goes false -> true

    Concurrency: the shift row is the lock boundary for replacement approval.
    Mutations that race are written as conditional UPDATEs, never as
    read-modify-write on a loaded object.
    """
    __tablename__ = "shifts"
    __table_args__ = (
        db.Index("ix_shifts_watchdog", "status", "is_missed", "start_time"),
        db.Index("ix_shifts_company_missed", "company_id", "is_missed"),
        db.Index("ix_shifts_employee_start", "employee_id", "start_time"),
        db.CheckConstraint(
            "replacement_approved_at IS NULL OR replacement_employee_id IS NOT NULL",
            name="ck_shifts_approved_has_replacement",
        ),
        db.CheckConstraint(
            "replacement_started_at IS NULL OR replacement_approved_at IS NOT NULL",
            name="ck_shifts_started_was_approved",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False)
    department_id = db.Column(db.Integer, nullable=True)

    start_time = db.Column(db.DateTime(timezone=True), nullable=False)
    end_time = db.Column(db.DateTime(timezone=True), nullable=False)

    status = db.Column(db.String(16), nullable=False, default=SHIFT_SCHEDULED)

    is_missed = db.Column(db.Boolean, nullable=False, default=False)
    missed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    replacement_employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True, index=True)
    replacement_approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    replacement_started_at = db.Column(db.DateTime(timezone=True), nullable=True)

    notes = db.Column(db.Text, nullable=True)
    hourly_rate = db.Column(db.Numeric(10, 2), nullable=True)
    break_minutes = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    employee = db.relationship("Employee", foreign_keys=[employee_id])
    replacement_employee = db.relationship("Employee", foreign_keys=[replacement_employee_id])
    company = db.relationship("Company")

    def __repr__(self) -> str:
        return f"<Shift id={self.id} employee_id={self.employee_id} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "company_id": self.company_id,
            "department_id": self.department_id,
            "start_time": to_utc_z(self.start_time),
            "end_time": to_utc_z(self.end_time),
            "status": self.status,
            "is_missed": self.is_missed,
            "missed_at": to_utc_z(self.missed_at),
            "replacement_employee_id": self.replacement_employee_id,
            "replacement_approved_at": to_utc_z(self.replacement_approved_at),
            "replacement_started_at": to_utc_z(self.replacement_started_at),
            "notes": self.notes,
            "hourly_rate": float(self.hourly_rate) if self.hourly_rate is not None else None,
            "break_minutes": self.break_minutes,
        }
