from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ...application.services.token_provider import TokenProvider
from ...core.dependencies import get_token_provider
from ...domain.models import Principal
from ...domain.models.constants import ROLE_ADMIN
from .errors import forbidden, unauthorized

_bearer_scheme = HTTPBearer(auto_error=False)


def get_optional_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    token_provider: TokenProvider = Depends(get_token_provider),
) -> Optional[Principal]:
    """Principal of a request carrying a valid bearer token, otherwise None."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        return None
    outcome = token_provider.get_authentication(credentials.credentials)
    return outcome.value if outcome.ok else None


def require_authenticated(principal: Optional[Principal] = Depends(get_optional_principal)) -> Principal:
    if principal is None:
        raise unauthorized("Full authentication is required to access this resource")
    return principal


def require_admin(principal: Principal = Depends(require_authenticated)) -> Principal:
    if not principal.has_authority(ROLE_ADMIN):
        raise forbidden()
    return principal
