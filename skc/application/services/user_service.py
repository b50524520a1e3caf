"""Service for managing user accounts through their lifecycle."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Sequence, Tuple

from ...domain.models import ErrorKind, Outcome, User
from ...domain.models.constants import ROLE_ADMIN, ROLE_USER, SYSTEM_ACCOUNT
from ...domain.ports.persistence import PersistenceGateway
from ...infrastructure.cache.user_cache import UserLookupCache
from ...infrastructure.security.password_hasher import (
    PasswordHasher,
    generate_activation_key,
    generate_password,
    generate_reset_key,
)
from ...services.mail_service import MailService
from ..dto import UserDTO

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserService:
    """Registration, activation, password flows, profile updates and purging.

    Every write to a user record is followed by an eviction of the by-login
    and by-email lookup caches before the operation returns.
    """

    def __init__(
        self,
        persistence: PersistenceGateway,
        cache: UserLookupCache,
        hasher: PasswordHasher,
        mail_service: MailService,
        *,
        default_language: str = "en",
        reset_key_validity: timedelta = timedelta(hours=24),
        unactivated_retention: timedelta = timedelta(days=3),
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._persistence = persistence
        self._cache = cache
        self._hasher = hasher
        self._mail = mail_service
        self._default_language = default_language
        self._reset_key_validity = reset_key_validity
        self._unactivated_retention = unactivated_retention
        self._clock = clock

    # Self-service ---------------------------------------------------------
    def register_user(self, user_dto: UserDTO, password: str) -> Outcome[User]:
        """
        Register a new, not yet activated user.

        An existing record holding the same login or email is replaced when it
        was never activated. Replacement happens in the same transaction as
        the insert, so a rejected registration leaves pending accounts intact.
        Any authorities in ``user_dto`` are ignored: a self-registered account
        only ever receives ``ROLE_USER``.

        Returns:
            The created user, or LOGIN_IN_USE / EMAIL_IN_USE
        """
        login = user_dto.login.lower()
        stale: List[User] = []
        existing = self._persistence.get_user_by_login(login)
        if existing is not None:
            if existing.activated:
                return Outcome.failure(ErrorKind.LOGIN_IN_USE)
            stale.append(existing)
        if user_dto.email:
            existing = self._persistence.get_user_by_email(user_dto.email)
            if existing is not None:
                if existing.activated:
                    return Outcome.failure(ErrorKind.EMAIL_IN_USE)
                if all(user.id != existing.id for user in stale):
                    stale.append(existing)

        new_user = User(
            login=login,
            password_hash=self._hasher.hash(password),
            first_name=user_dto.first_name,
            last_name=user_dto.last_name,
            email=user_dto.email,
            image_url=user_dto.image_url,
            lang_key=user_dto.lang_key,
            activated=False,
            activation_key=generate_activation_key(),
            authorities={ROLE_USER},
            created_date=self._clock(),
        )
        outcome = self._persistence.replace_unactivated_and_create(
            [user.id for user in stale], new_user, actor=SYSTEM_ACCOUNT
        )
        if not outcome.ok:
            return outcome
        for removed in stale:
            self._clear_user_caches(removed)
            logger.debug("Removed not activated user %s to reclaim its identifiers", removed.login)
        user = outcome.unwrap()
        self._clear_user_caches(user)
        logger.debug("Created information for user: %s", user)
        self._mail.send_activation_email(user)
        return outcome

    def activate_registration(self, key: str) -> Outcome[User]:
        logger.debug("Activating user for activation key %s", key)
        user = self._persistence.get_user_by_activation_key(key)
        if user is None:
            return Outcome.failure(ErrorKind.NOT_FOUND)
        user.activated = True
        user.activation_key = None
        outcome = self._save(user, actor=user.login)
        if outcome.ok:
            logger.debug("Activated user: %s", user)
        return outcome

    def request_password_reset(self, email: str) -> Outcome[User]:
        """Open a reset window for an activated account and mail its key."""
        user = self._persistence.get_user_by_email(email.strip())
        if user is None or not user.activated:
            return Outcome.failure(ErrorKind.NOT_FOUND)
        user.reset_key = generate_reset_key()
        user.reset_date = self._clock()
        outcome = self._save(user, actor=user.login)
        if outcome.ok:
            self._mail.send_password_reset_mail(outcome.unwrap())
        return outcome

    def complete_password_reset(self, new_password: str, key: str) -> Outcome[User]:
        """
        Set a new password using a reset key issued less than 24 hours ago.

        Unknown and expired keys produce the same NOT_FOUND outcome.
        """
        logger.debug("Reset user password for reset key %s", key)
        user = self._persistence.get_user_by_reset_key(key)
        if user is None:
            return Outcome.failure(ErrorKind.NOT_FOUND)
        if user.reset_date is None or self._clock() - user.reset_date >= self._reset_key_validity:
            logger.debug("Reset key for user %s has expired", user.login)
            return Outcome.failure(ErrorKind.NOT_FOUND)
        user.password_hash = self._hasher.hash(new_password)
        user.reset_key = None
        user.reset_date = None
        return self._save(user, actor=user.login)

    def change_password(self, login: str, current_password: str, new_password: str) -> Outcome[User]:
        user = self._persistence.get_user_by_login(login)
        if user is None:
            return Outcome.failure(ErrorKind.NOT_AUTHENTICATED)
        if not self._hasher.verify(current_password, user.password_hash or ""):
            return Outcome.failure(ErrorKind.WRONG_PASSWORD)
        user.password_hash = self._hasher.hash(new_password)
        outcome = self._save(user, actor=login)
        if outcome.ok:
            logger.debug("Changed password for user: %s", user)
        return outcome

    def update_account(
        self,
        login: str,
        first_name: Optional[str],
        last_name: Optional[str],
        email: Optional[str],
        lang_key: Optional[str],
        image_url: Optional[str],
    ) -> Outcome[User]:
        """
        Update basic information (first name, last name, email, language) for the current user.

        Email uniqueness is not re-checked here; only the store constraint applies.
        """
        user = self._persistence.get_user_by_login(login)
        if user is None:
            return Outcome.failure(ErrorKind.NOT_FOUND)
        self._clear_user_caches(user)
        user.first_name = first_name
        user.last_name = last_name
        user.email = email.lower() if email else email
        user.lang_key = lang_key
        user.image_url = image_url
        outcome = self._save(user, actor=login)
        if outcome.ok:
            logger.debug("Changed information for user: %s", user)
        return outcome

    # Administration -------------------------------------------------------
    def create_user(self, user_dto: UserDTO, actor: str = SYSTEM_ACCOUNT) -> Outcome[User]:
        """
        Create an activated user with a random password and an open reset window.

        The reset key lets the owner choose a real password through the reset
        flow. Authorities are applied as requested.
        """
        if user_dto.id is not None:
            return Outcome.failure(ErrorKind.ID_EXISTS)
        if self._persistence.get_user_by_login(user_dto.login) is not None:
            return Outcome.failure(ErrorKind.LOGIN_IN_USE)
        if user_dto.email and self._persistence.get_user_by_email(user_dto.email) is not None:
            return Outcome.failure(ErrorKind.EMAIL_IN_USE)

        now = self._clock()
        user = User(
            login=user_dto.login,
            password_hash=self._hasher.hash(generate_password()),
            first_name=user_dto.first_name,
            last_name=user_dto.last_name,
            email=user_dto.email,
            image_url=user_dto.image_url,
            lang_key=user_dto.lang_key or self._default_language,
            activated=True,
            reset_key=generate_reset_key(),
            reset_date=now,
            authorities=user_dto.authorities,
            created_date=now,
        )
        outcome = self._persistence.create_user(user, actor=actor)
        if not outcome.ok:
            return outcome
        created = outcome.unwrap()
        self._clear_user_caches(created)
        logger.debug("Created information for user: %s", created)
        self._mail.send_creation_email(created)
        return outcome

    def update_user(self, user_dto: UserDTO, actor: str = SYSTEM_ACCOUNT) -> Outcome[User]:
        """Replace every field of a user, including its authorities."""
        if user_dto.email:
            existing = self._persistence.get_user_by_email(user_dto.email)
            if existing is not None and existing.id != user_dto.id:
                return Outcome.failure(ErrorKind.EMAIL_IN_USE)
        existing = self._persistence.get_user_by_login(user_dto.login)
        if existing is not None and existing.id != user_dto.id:
            return Outcome.failure(ErrorKind.LOGIN_IN_USE)

        user = self._persistence.get_user_by_id(user_dto.id) if user_dto.id is not None else None
        if user is None:
            return Outcome.failure(ErrorKind.NOT_FOUND)
        self._clear_user_caches(user)
        user.login = user_dto.login.lower()
        user.first_name = user_dto.first_name
        user.last_name = user_dto.last_name
        user.email = user_dto.email.lower() if user_dto.email else user_dto.email
        user.image_url = user_dto.image_url
        user.activated = user_dto.activated
        if user.activated:
            user.activation_key = None
        user.lang_key = user_dto.lang_key
        user.authorities = set(user_dto.authorities)
        outcome = self._save(user, actor=actor)
        if outcome.ok:
            logger.debug("Changed information for user: %s", user)
        return outcome

    def delete_user(self, login: str) -> Outcome[User]:
        user = self._persistence.get_user_by_login(login)
        if user is None:
            return Outcome.failure(ErrorKind.NOT_FOUND)
        self._persistence.delete_user(user.id)
        self._clear_user_caches(user)
        logger.debug("Deleted user: %s", user)
        return Outcome.success(user)

    def remove_not_activated_users(self) -> int:
        """
        Delete accounts that were never activated within the retention window.

        Safe to run repeatedly; returns the number of deleted accounts.
        """
        cutoff = self._clock() - self._unactivated_retention
        removed = 0
        for user in self._persistence.find_unactivated_created_before(cutoff):
            logger.debug("Deleting not activated user %s", user.login)
            self._persistence.delete_user(user.id)
            self._clear_user_caches(user)
            removed += 1
        if removed:
            logger.info("Removed %s not activated users created before %s", removed, cutoff.isoformat())
        return removed

    def ensure_default_admin(
        self,
        login: Optional[str],
        email: Optional[str],
        password: Optional[str],
    ) -> Optional[User]:
        if not login or not password:
            return None
        existing = self._persistence.get_user_by_login(login)
        if existing:
            return existing
        logger.info("Creating default administrator account %s", login)
        admin = User(
            login=login,
            email=email,
            password_hash=self._hasher.hash(password),
            activated=True,
            lang_key=self._default_language,
            authorities={ROLE_ADMIN, ROLE_USER},
            created_date=self._clock(),
        )
        outcome = self._persistence.create_user(admin, actor=SYSTEM_ACCOUNT)
        if not outcome.ok:
            logger.warning("Unable to create default administrator %s: %s", login, outcome.error)
            return None
        return outcome.unwrap()

    # Queries --------------------------------------------------------------
    def get_user_with_authorities_by_login(self, login: str) -> Optional[User]:
        return self._persistence.get_user_by_login(login)

    def get_user_with_authorities(self, user_id: int) -> Optional[User]:
        return self._persistence.get_user_by_id(user_id)

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self._persistence.get_user_by_email(email)

    def get_all_managed_users(
        self,
        page: int,
        size: int,
        sort: Sequence[Tuple[str, bool]] = (),
    ) -> Tuple[List[User], int]:
        return self._persistence.list_managed_users(offset=page * size, limit=size, sort=sort)

    def get_authorities(self) -> List[str]:
        return self._persistence.get_authorities()

    # Helpers --------------------------------------------------------------
    def _save(self, user: User, actor: str) -> Outcome[User]:
        outcome = self._persistence.update_user(user, actor=actor)
        self._clear_user_caches(user)
        return outcome

    def _clear_user_caches(self, user: User) -> None:
        self._cache.evict(user)
