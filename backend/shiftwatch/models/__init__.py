from .directory import Company, Employee
from .scheduling import Shift
from .timekeeping import TimeEntry
from .replacements import ReplacementRequest
from .events import AttendanceEvent

__all__ = [
    'Company', 'Employee',
    'Shift',
    'TimeEntry',
    'ReplacementRequest',
    'AttendanceEvent',
]
