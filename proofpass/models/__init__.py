from .organizer import Organizer
from .student import Student
from .event import Event, AttendanceStatus
from .registration import Registration, CLAIM_FIELDS
from .user import User

__all__ = [
    "Organizer",
    "Student",
    "Event", "AttendanceStatus",
    "Registration", "CLAIM_FIELDS",
    "User",
]
