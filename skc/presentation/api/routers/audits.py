"""API router for reading security audit events. Requires ``ROLE_ADMIN``."""

import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, Request, Response

from ....application.services.audit_event_service import AuditEventService
from ....core.dependencies import get_audit_event_service
from ...api.dependencies import require_admin
from ...api.errors import not_found
from ...api.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, pagination_headers
from ...api.schemas.audit import AuditEventSchema

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/management/audits", tags=["audits"], dependencies=[Depends(require_admin)])


@router.get("", response_model=List[AuditEventSchema])
def get_audit_events(
    request: Request,
    response: Response,
    from_date: Optional[date] = Query(None, alias="fromDate"),
    to_date: Optional[date] = Query(None, alias="toDate"),
    page: int = Query(0, ge=0),
    size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    audit_service: AuditEventService = Depends(get_audit_event_service),
) -> List[AuditEventSchema]:
    """
    List audit events, newest first.

    ``fromDate`` and ``toDate`` are inclusive days (``YYYY-MM-DD``, UTC). When
    only one is given the range is open on the other side.
    """
    events, total = audit_service.find_by_dates(from_date, to_date, page, size)
    response.headers.update(pagination_headers(request.url, page, size, total))
    return [AuditEventSchema.from_event(event) for event in events]


@router.get("/{event_id}", response_model=AuditEventSchema)
def get_audit_event(
    event_id: int = Path(...),
    audit_service: AuditEventService = Depends(get_audit_event_service),
) -> AuditEventSchema:
    event = audit_service.find_by_id(event_id)
    if event is None:
        raise not_found()
    return AuditEventSchema.from_event(event)
