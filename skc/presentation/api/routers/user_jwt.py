"""API router issuing bearer tokens."""

import logging

from fastapi import APIRouter, Depends, Request, Response

from ....application.services.authentication_service import AuthenticationService
from ....core.dependencies import get_authentication_service
from ...api.errors import unauthorized
from ...api.schemas.account import JWTTokenResponse, LoginRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["auth"])


@router.post("/authenticate", response_model=JWTTokenResponse)
def authorize(
    payload: LoginRequest,
    request: Request,
    response: Response,
    authentication_service: AuthenticationService = Depends(get_authentication_service),
) -> JWTTokenResponse:
    """Exchange credentials for a token, also returned in the Authorization header."""
    remote_address = request.client.host if request.client else None
    outcome = authentication_service.authenticate(
        payload.username, payload.password, payload.remember_me, remote_address=remote_address
    )
    if not outcome.ok:
        logger.debug("Authentication failed for %s: %s", payload.username, outcome.error)
        raise unauthorized("Bad credentials")
    token = outcome.unwrap()
    response.headers["Authorization"] = f"Bearer {token}"
    return JWTTokenResponse(id_token=token)
