from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Optional, Protocol, Sequence, Tuple

from ..models import AuditEvent, Outcome, User


class UserRepository(Protocol):
    """Persistence functions related to user accounts."""

    def get_user_by_id(self, user_id: int) -> Optional[User]:
        ...

    def get_user_by_login(self, login: str) -> Optional[User]:
        ...

    def get_user_by_email(self, email: str) -> Optional[User]:
        ...

    def get_user_by_activation_key(self, key: str) -> Optional[User]:
        ...

    def get_user_by_reset_key(self, key: str) -> Optional[User]:
        ...

    def create_user(self, user: User, actor: str = "system") -> Outcome[User]:
        ...

    def replace_unactivated_and_create(
        self,
        stale_user_ids: Iterable[int],
        user: User,
        actor: str = "system",
    ) -> Outcome[User]:
        ...

    def update_user(self, user: User, actor: str = "system") -> Outcome[User]:
        ...

    def delete_user(self, user_id: int) -> None:
        ...

    def list_managed_users(
        self,
        offset: int,
        limit: int,
        sort: Sequence[Tuple[str, bool]] = (),
    ) -> Tuple[List[User], int]:
        ...

    def find_unactivated_created_before(self, cutoff: datetime) -> List[User]:
        ...


class AuthorityRepository(Protocol):
    """Persistence functions related to role names."""

    def get_authorities(self) -> List[str]:
        ...


class AuditEventRepository(Protocol):
    """Persistence functions related to security audit events."""

    def add_audit_event(self, event: AuditEvent) -> AuditEvent:
        ...

    def get_audit_event(self, event_id: int) -> Optional[AuditEvent]:
        ...

    def find_audit_events(
        self,
        principal: Optional[str] = None,
        after: Optional[datetime] = None,
        event_type: Optional[str] = None,
    ) -> List[AuditEvent]:
        ...

    def list_audit_events(
        self,
        from_date: Optional[datetime],
        to_date: Optional[datetime],
        offset: int,
        limit: int,
    ) -> Tuple[List[AuditEvent], int]:
        ...


class PersistenceGateway(UserRepository, AuthorityRepository, AuditEventRepository, Protocol):
    """Composite gateway combining every persistence concern used by the app."""

    def close(self) -> None:
        ...
