"""Domain models for the SKC accounts service."""

from .audit_event import AuditEvent
from .outcome import ErrorKind, Outcome
from .user import Principal, User, UserDetails

__all__ = [
    "AuditEvent",
    "ErrorKind",
    "Outcome",
    "Principal",
    "User",
    "UserDetails",
]
