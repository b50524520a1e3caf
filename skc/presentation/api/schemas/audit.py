"""Pydantic schema for audit events exposed to administrators."""

from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from ....domain.models import AuditEvent


class AuditEventSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[int] = None
    timestamp: datetime
    principal: str
    type: str
    data: Dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_event(cls, event: AuditEvent) -> "AuditEventSchema":
        return cls(
            id=event.id,
            timestamp=event.event_date,
            principal=event.principal,
            type=event.event_type,
            data=dict(event.data),
        )
