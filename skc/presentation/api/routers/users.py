"""API router for administrating users. Every endpoint requires ``ROLE_ADMIN``."""

import logging
from typing import List

from fastapi import APIRouter, Depends, Path, Query, Request, Response, status

from ....application.services.user_service import UserService
from ....core.dependencies import get_user_service
from ....domain.models import ErrorKind, Principal
from ....domain.models.constants import LOGIN_REGEX
from ....infrastructure.persistence.sqlite import SORTABLE_COLUMNS
from ...api.dependencies import require_admin
from ...api.errors import bad_request_alert, not_found, problem_for
from ...api.headers import create_alert
from ...api.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, pagination_headers, parse_sort
from ...api.schemas.account import UserSchema

logger = logging.getLogger(__name__)

ENTITY_NAME = "userManagement"

router = APIRouter(prefix="/api/users", tags=["users"], dependencies=[Depends(require_admin)])


@router.post("", response_model=UserSchema, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserSchema,
    response: Response,
    principal: Principal = Depends(require_admin),
    user_service: UserService = Depends(get_user_service),
) -> UserSchema:
    """
    Create a new user.

    The user is activated on creation and receives an email with a link to
    choose a password.
    """
    logger.debug("REST request to save User : %s", payload.login)
    outcome = user_service.create_user(payload.to_dto(), actor=principal.login)
    if not outcome.ok:
        raise problem_for(outcome.error)
    user = outcome.unwrap()
    response.headers["Location"] = f"/api/users/{user.login}"
    response.headers.update(create_alert(f"{ENTITY_NAME}.created", user.login or ""))
    return UserSchema.from_user(user)


@router.put("", response_model=UserSchema)
def update_user(
    payload: UserSchema,
    response: Response,
    principal: Principal = Depends(require_admin),
    user_service: UserService = Depends(get_user_service),
) -> UserSchema:
    logger.debug("REST request to update User : %s", payload.login)
    outcome = user_service.update_user(payload.to_dto(), actor=principal.login)
    if not outcome.ok:
        raise problem_for(outcome.error)
    user = outcome.unwrap()
    response.headers.update(create_alert(f"{ENTITY_NAME}.updated", user.login or ""))
    return UserSchema.from_user(user)


@router.get("", response_model=List[UserSchema])
def get_all_users(
    request: Request,
    response: Response,
    page: int = Query(0, ge=0),
    size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    sort: List[str] = Query(default=[]),
    user_service: UserService = Depends(get_user_service),
) -> List[UserSchema]:
    try:
        orders = parse_sort(sort, sorted(SORTABLE_COLUMNS))
    except ValueError as exc:
        raise bad_request_alert(str(exc), ENTITY_NAME, "sort") from exc
    users, total = user_service.get_all_managed_users(page, size, orders)
    response.headers.update(pagination_headers(request.url, page, size, total))
    return [UserSchema.from_user(user) for user in users]


@router.get("/authorities", response_model=List[str])
def get_authorities(user_service: UserService = Depends(get_user_service)) -> List[str]:
    return user_service.get_authorities()


@router.get("/{login}", response_model=UserSchema)
def get_user(
    login: str = Path(..., pattern=LOGIN_REGEX),
    user_service: UserService = Depends(get_user_service),
) -> UserSchema:
    logger.debug("REST request to get User : %s", login)
    user = user_service.get_user_with_authorities_by_login(login)
    if user is None:
        raise not_found()
    return UserSchema.from_user(user)


@router.delete("/{login}")
def delete_user(
    login: str = Path(..., pattern=LOGIN_REGEX),
    user_service: UserService = Depends(get_user_service),
) -> Response:
    logger.debug("REST request to delete User: %s", login)
    outcome = user_service.delete_user(login)
    if not outcome.ok and outcome.error is not ErrorKind.NOT_FOUND:
        raise problem_for(outcome.error)
    return Response(status_code=status.HTTP_200_OK, headers=create_alert(f"{ENTITY_NAME}.deleted", login))
