# Overview: Typed errors raised by the attendance services; one kind per precondition.

"""
Every failure a caller can act on has its own class so it can be rendered
specifically ("you already requested this shift" vs "this shift already has
an approved replacement"). Nothing here is retried automatically.
"""


class AttendanceError(ValueError):
    """Base for attendance/timekeeping precondition failures."""

    code = "attendance_error"
    status_code = 400
    default_message = "Attendance operation failed"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)

    def to_dict(self) -> dict:
        return {"error": str(self), "code": self.code}


# Timekeeping ------------------------------------------------------------------

class AlreadyClockedIn(AttendanceError):
    code = "already_clocked_in"
    status_code = 409
    default_message = "Employee is already clocked in"


class NoActiveEntry(AttendanceError):
    code = "no_active_entry"
    status_code = 409
    default_message = "Employee is not clocked in"


class AlreadyOnBreak(AttendanceError):
    code = "already_on_break"
    status_code = 409
    default_message = "Break already in progress"


class NotOnBreak(AttendanceError):
    code = "not_on_break"
    status_code = 409
    default_message = "No active break"


class InvalidBreakDuration(AttendanceError):
    code = "invalid_break_duration"
    default_message = "Break duration must be a positive number of minutes"


class EntryChanged(AttendanceError):
    code = "entry_changed"
    status_code = 409
    default_message = "Time entry was modified concurrently; reload and retry"


# Shifts and replacements --------------------------------------------------------

class ShiftNotFound(AttendanceError):
    code = "shift_not_found"
    status_code = 404
    default_message = "Shift not found"


class RequestNotFound(AttendanceError):
    code = "request_not_found"
    status_code = 404
    default_message = "Replacement request not found"


class AlreadyRequested(AttendanceError):
    code = "already_requested"
    status_code = 409
    default_message = "You have already requested this shift"


class SelfReplacement(AttendanceError):
    code = "self_replacement"
    default_message = "You cannot replace your own shift"


class ShiftNotMissed(AttendanceError):
    code = "shift_not_missed"
    status_code = 409
    default_message = "Shift is not marked as missed"


class AlreadyReplaced(AttendanceError):
    code = "already_replaced"
    status_code = 409
    default_message = "This shift already has an approved replacement"


class RequestAlreadyReviewed(AttendanceError):
    code = "request_already_reviewed"
    status_code = 409
    default_message = "Replacement request was already reviewed"


class NotApprovedReplacement(AttendanceError):
    code = "not_approved_replacement"
    status_code = 403
    default_message = "You are not approved to work this shift"


class AlreadyStarted(AttendanceError):
    code = "already_started"
    status_code = 409
    default_message = "Replacement shift already started"


# Infrastructure -----------------------------------------------------------------

class StoreUnavailable(AttendanceError):
    """Transient database failure; surfaced unchanged, never retried here."""

    code = "store_unavailable"
    status_code = 503
    default_message = "Attendance store is unavailable"
