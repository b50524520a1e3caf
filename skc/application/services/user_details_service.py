from __future__ import annotations

import logging

from email_validator import EmailNotValidError, validate_email

from ...domain.models import ErrorKind, Outcome, User, UserDetails
from ...infrastructure.cache.user_cache import UserLookupCache

logger = logging.getLogger(__name__)


def _looks_like_email(identifier: str) -> bool:
    try:
        validate_email(identifier, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


class UserDetailsService:
    """Authenticate a user from the database.

    Resolves a login identifier (login or email) to the stored credential.
    Passwords are never compared here.
    """

    def __init__(self, cache: UserLookupCache) -> None:
        self._cache = cache

    def load_user_by_username(self, identifier: str) -> Outcome[UserDetails]:
        logger.debug("Authenticating %s", identifier)
        if _looks_like_email(identifier):
            user = self._cache.get_by_email(identifier)
            if user is None:
                logger.debug("User with email %s was not found in the database", identifier)
                return Outcome.failure(ErrorKind.NOT_FOUND)
            return self._to_user_details(identifier, user)

        lowercase_login = identifier.lower()
        user = self._cache.get_by_login(lowercase_login)
        if user is None:
            logger.debug("User %s was not found in the database", lowercase_login)
            return Outcome.failure(ErrorKind.NOT_FOUND)
        return self._to_user_details(lowercase_login, user)

    @staticmethod
    def _to_user_details(identifier: str, user: User) -> Outcome[UserDetails]:
        if not user.activated:
            logger.debug("User %s was not activated", identifier)
            return Outcome.failure(ErrorKind.NOT_ACTIVATED)
        return Outcome.success(UserDetails(user.login or "", user.password_hash or "", user.authorities))
