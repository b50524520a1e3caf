import logging
from typing import Dict, Optional

from ...domain.models import ErrorKind, Outcome
from ...domain.models.audit_event import AUTHENTICATION_FAILURE, AUTHENTICATION_SUCCESS
from ...infrastructure.security.password_hasher import PasswordHasher
from .audit_event_service import AuditEventService
from .token_provider import TokenProvider
from .user_details_service import UserDetailsService

logger = logging.getLogger(__name__)


class AuthenticationService:
    """Checks login credentials and issues a bearer token on success.

    Every attempt is recorded as an authentication audit event.
    """

    def __init__(
        self,
        user_details_service: UserDetailsService,
        hasher: PasswordHasher,
        token_provider: TokenProvider,
        audit_service: AuditEventService,
    ) -> None:
        self._user_details = user_details_service
        self._hasher = hasher
        self._tokens = token_provider
        self._audit = audit_service

    def authenticate(
        self,
        username: str,
        password: str,
        remember_me: bool = False,
        remote_address: Optional[str] = None,
    ) -> Outcome[str]:
        details: Dict[str, str] = {}
        if remote_address:
            details["remoteAddress"] = remote_address

        resolved = self._user_details.load_user_by_username(username)
        if not resolved.ok:
            return self._failure(username, resolved.error, details)  # type: ignore[arg-type]
        user = resolved.unwrap()
        if not self._hasher.verify(password, user.password_hash):
            logger.debug("Bad credentials for %s", user.login)
            return self._failure(user.login, ErrorKind.WRONG_PASSWORD, details)

        token = self._tokens.create_token(user.login, user.authorities, remember_me)
        self._audit.add_event(user.login, AUTHENTICATION_SUCCESS, details)
        return Outcome.success(token)

    def _failure(self, principal: str, error: ErrorKind, details: Dict[str, str]) -> Outcome[str]:
        data = dict(details, type=error.value, message="Bad credentials")
        self._audit.add_event(principal, AUTHENTICATION_FAILURE, data)
        return Outcome.failure(error)
