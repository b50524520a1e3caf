from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Set

from ..domain.models import User


@dataclass(slots=True)
class UserDTO:
    """A user as exchanged with the REST boundary, with its authorities."""

    login: str
    id: Optional[int] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    image_url: Optional[str] = None
    activated: bool = False
    lang_key: Optional[str] = None
    authorities: Set[str] = field(default_factory=set)

    @classmethod
    def from_user(cls, user: User) -> "UserDTO":
        return cls(
            id=user.id,
            login=user.login or "",
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            image_url=user.image_url,
            activated=user.activated,
            lang_key=user.lang_key,
            authorities=set(user.authorities),
        )
