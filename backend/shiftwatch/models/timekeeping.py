from __future__ import annotations

from ..extensions import db
from shiftwatch.time_utils import to_utc_z

STATE_IDLE = "idle"
STATE_WORKING = "working"
STATE_ON_BREAK = "on_break"


class TimeEntry(db.Model):
    """
    Clock-in/clock-out record with its break interval.

    LIFECYCLE:
    - active: clock_in set, clock_out NULL (at most one per employee)
    - closed: clock_out set, total_hours/overtime_hours computed; immutable

    BREAKS:
    - break_start/break_end describe the current (most recent) break
    - starting another break folds the finished one into prior_break_seconds
    - break_duration_minutes is the planned length, kept so a restarted
      process can reschedule the break-ending warning
    - break_warning_shown_at records that the warning for the current break
      was delivered; it is claimed with a conditional update

    Elapsed time is never stored while the entry is active; it is derived
    from the timestamps on every read.
    """
    __tablename__ = "time_entries"
    __table_args__ = (
        db.Index("ix_time_entries_employee_clock_in", "employee_id", "clock_in"),
        db.Index("ix_time_entries_shift", "shift_id"),
        db.Index(
            "uq_time_entries_active_employee",
            "employee_id",
            unique=True,
            sqlite_where=db.text("clock_out IS NULL"),
            postgresql_where=db.text("clock_out IS NULL"),
        ),
        db.CheckConstraint(
            "break_end IS NULL OR (break_start IS NOT NULL AND break_end >= break_start)",
            name="ck_time_entries_break_order",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False)
    shift_id = db.Column(db.Integer, db.ForeignKey("shifts.id"), nullable=True)

    # Clock times
    clock_in = db.Column(db.DateTime(timezone=True), nullable=True)
    clock_out = db.Column(db.DateTime(timezone=True), nullable=True)

    # Current break
    break_start = db.Column(db.DateTime(timezone=True), nullable=True)
    break_end = db.Column(db.DateTime(timezone=True), nullable=True)
    break_duration_minutes = db.Column(db.Integer, nullable=True)
    break_warning_shown_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Finished breaks before the current one
    prior_break_seconds = db.Column(db.Integer, nullable=False, default=0)

    # Calculated on clock-out
    total_hours = db.Column(db.Float, nullable=True)
    overtime_hours = db.Column(db.Float, nullable=True)

    is_replacement = db.Column(db.Boolean, nullable=False, default=False)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    employee = db.relationship("Employee", backref=db.backref("time_entries", lazy=True))
    shift = db.relationship("Shift", backref=db.backref("time_entries", lazy=True))

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_active(self) -> bool:
        return self.clock_out is None

    @property
    def on_break(self) -> bool:
        return self.clock_out is None and self.break_start is not None and self.break_end is None

    @property
    def state(self) -> str:
        if not self.is_active:
            return STATE_IDLE
        return STATE_ON_BREAK if self.on_break else STATE_WORKING

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "shift_id": self.shift_id,
            "clock_in": to_utc_z(self.clock_in),
            "clock_out": to_utc_z(self.clock_out),
            "break_start": to_utc_z(self.break_start),
            "break_end": to_utc_z(self.break_end),
            "break_duration_minutes": self.break_duration_minutes,
            "break_warning_shown_at": to_utc_z(self.break_warning_shown_at),
            "prior_break_seconds": self.prior_break_seconds,
            "total_hours": self.total_hours,
            "overtime_hours": self.overtime_hours,
            "is_replacement": self.is_replacement,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }
