"""API router for managing the current user's account."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status
from fastapi.responses import PlainTextResponse
from starlette.concurrency import run_in_threadpool

from ....application.services.user_service import UserService
from ....core.config import Settings
from ....core.dependencies import get_settings, get_user_service
from ....domain.models import ErrorKind, Principal
from ...api.dependencies import get_optional_principal, require_authenticated
from ...api.errors import (
    email_already_used,
    email_not_found,
    internal_server_error,
    invalid_password,
    problem_for,
)
from ...api.schemas.account import (
    KeyAndPasswordRequest,
    ManagedUserRequest,
    PasswordChangeRequest,
    UserSchema,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["account"])


def check_password_length(password: Optional[str], settings: Settings) -> bool:
    return bool(password) and settings.password_min_length <= len(password) <= settings.password_max_length


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register_account(
    payload: ManagedUserRequest,
    user_service: UserService = Depends(get_user_service),
    settings: Settings = Depends(get_settings),
) -> Response:
    """Register the user; the activation email is sent by the service."""
    if not check_password_length(payload.password, settings):
        raise invalid_password()
    outcome = user_service.register_user(payload.to_dto(), payload.password or "")
    if not outcome.ok:
        raise problem_for(outcome.error)
    return Response(status_code=status.HTTP_201_CREATED)


@router.get("/activate")
def activate_account(
    key: str = Query(...),
    user_service: UserService = Depends(get_user_service),
) -> Response:
    outcome = user_service.activate_registration(key)
    if not outcome.ok:
        raise internal_server_error("No user was found for this activation key")
    return Response(status_code=status.HTTP_200_OK)


@router.get("/authenticate", response_class=PlainTextResponse)
def is_authenticated(principal: Optional[Principal] = Depends(get_optional_principal)) -> str:
    """Return the login of the caller if it is authenticated."""
    logger.debug("REST request to check if the current user is authenticated")
    return principal.login if principal else ""


@router.get("/account", response_model=UserSchema)
def get_account(
    principal: Principal = Depends(require_authenticated),
    user_service: UserService = Depends(get_user_service),
) -> UserSchema:
    user = user_service.get_user_with_authorities_by_login(principal.login)
    if user is None:
        raise internal_server_error("User could not be found")
    return UserSchema.from_user(user)


@router.post("/account")
def save_account(
    payload: UserSchema,
    principal: Principal = Depends(require_authenticated),
    user_service: UserService = Depends(get_user_service),
) -> Response:
    """Update the current user information."""
    if payload.email:
        existing = user_service.get_user_by_email(payload.email)
        if existing is not None and (existing.login or "").lower() != principal.login.lower():
            raise email_already_used()
    outcome = user_service.update_account(
        principal.login,
        payload.first_name,
        payload.last_name,
        payload.email,
        payload.lang_key,
        payload.image_url,
    )
    if not outcome.ok:
        if outcome.error is ErrorKind.NOT_FOUND:
            raise internal_server_error("User could not be found")
        raise problem_for(outcome.error)
    return Response(status_code=status.HTTP_200_OK)


@router.post("/account/change-password")
def change_password(
    payload: PasswordChangeRequest,
    principal: Principal = Depends(require_authenticated),
    user_service: UserService = Depends(get_user_service),
    settings: Settings = Depends(get_settings),
) -> Response:
    if not check_password_length(payload.new_password, settings):
        raise invalid_password()
    outcome = user_service.change_password(principal.login, payload.current_password, payload.new_password or "")
    if not outcome.ok:
        raise problem_for(outcome.error)
    return Response(status_code=status.HTTP_200_OK)


@router.post("/account/reset-password/init")
async def request_password_reset(
    request: Request,
    user_service: UserService = Depends(get_user_service),
) -> Response:
    """Send an email to reset the password of the user. The body is the raw email address."""
    try:
        mail = (await request.body()).decode("utf-8").strip().strip('"')
    except UnicodeDecodeError as exc:
        raise email_not_found() from exc
    # Blocking: store access and SMTP delivery.
    outcome = await run_in_threadpool(user_service.request_password_reset, mail)
    if not outcome.ok:
        raise email_not_found()
    return Response(status_code=status.HTTP_200_OK)


@router.post("/account/reset-password/finish")
def finish_password_reset(
    payload: KeyAndPasswordRequest,
    user_service: UserService = Depends(get_user_service),
    settings: Settings = Depends(get_settings),
) -> Response:
    if not check_password_length(payload.new_password, settings):
        raise invalid_password()
    outcome = user_service.complete_password_reset(payload.new_password or "", payload.key)
    if not outcome.ok:
        raise internal_server_error("No user was found for this reset key")
    return Response(status_code=status.HTTP_200_OK)
