"""Service for recording and querying security audit events."""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from ...domain.models import AuditEvent
from ...domain.models.audit_event import AUTHORIZATION_FAILURE, EVENT_DATA_MAX_LENGTH
from ...domain.models.constants import ANONYMOUS_USER
from ...domain.ports.persistence import AuditEventRepository

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventService:
    """Stores audit events and serves them to administrators.

    Authorization failures and events about the anonymous user are not
    stored. Data values longer than the column width are truncated.
    """

    def __init__(
        self,
        repository: AuditEventRepository,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._repository = repository
        self._clock = clock

    def add_event(
        self,
        principal: str,
        event_type: str,
        data: Optional[Mapping[str, Any]] = None,
    ) -> Optional[AuditEvent]:
        """
        Persist an event.

        Returns:
            The stored event, or None when the event is filtered out
        """
        if event_type == AUTHORIZATION_FAILURE or principal == ANONYMOUS_USER:
            return None
        event = AuditEvent(
            principal=principal,
            event_type=event_type,
            event_date=self._clock(),
            data=self._truncate(data or {}),
        )
        return self._repository.add_audit_event(event)

    def find(
        self,
        principal: Optional[str] = None,
        after: Optional[datetime] = None,
        event_type: Optional[str] = None,
    ) -> List[AuditEvent]:
        return self._repository.find_audit_events(principal, after, event_type)

    def find_by_dates(
        self,
        from_date: Optional[date],
        to_date: Optional[date],
        page: int,
        size: int,
    ) -> Tuple[List[AuditEvent], int]:
        """Events from the start of ``from_date`` up to the end of ``to_date`` (UTC), newest first."""
        start = datetime.combine(from_date, time.min, tzinfo=timezone.utc) if from_date else None
        end = datetime.combine(to_date + timedelta(days=1), time.min, tzinfo=timezone.utc) if to_date else None
        return self._repository.list_audit_events(start, end, offset=page * size, limit=size)

    def find_by_id(self, event_id: int) -> Optional[AuditEvent]:
        return self._repository.get_audit_event(event_id)

    @staticmethod
    def _truncate(data: Mapping[str, Any]) -> Dict[str, str]:
        results: Dict[str, str] = {}
        for key, raw in data.items():
            value = "null" if raw is None else str(raw)
            length = len(value)
            if length > EVENT_DATA_MAX_LENGTH:
                value = value[:EVENT_DATA_MAX_LENGTH]
                logger.warning(
                    "Event data for %s too long (%s) has been truncated to %s. Consider increasing column width.",
                    key,
                    length,
                    EVENT_DATA_MAX_LENGTH,
                )
            results[key] = value
        return results
