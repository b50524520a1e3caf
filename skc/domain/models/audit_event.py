"""Persisted security audit events."""

from datetime import datetime, timezone
from typing import Dict, Optional

AUTHENTICATION_SUCCESS = "AUTHENTICATION_SUCCESS"
AUTHENTICATION_FAILURE = "AUTHENTICATION_FAILURE"
AUTHORIZATION_FAILURE = "AUTHORIZATION_FAILURE"

# Width of the stored data value column.
EVENT_DATA_MAX_LENGTH = 255


class AuditEvent:
    """
    Something security-relevant that happened to a principal.

    Attributes:
        id: Unique identifier, assigned by the store
        principal: Login the event is about
        event_type: Event name, e.g. ``AUTHENTICATION_SUCCESS``
        event_date: When the event happened
        data: Extra details as string pairs
    """

    def __init__(
        self,
        principal: str,
        event_type: str,
        event_date: Optional[datetime] = None,
        data: Optional[Dict[str, str]] = None,
        id: Optional[int] = None,
    ):
        self.id = id
        self.principal = principal
        self.event_type = event_type
        self.event_date = event_date or datetime.now(timezone.utc)
        self.data: Dict[str, str] = dict(data or {})

    def __repr__(self) -> str:
        return f"<AuditEvent id={self.id} principal={self.principal} type={self.event_type}>"
