"""User domain model for account management and authentication."""

from datetime import datetime, timezone
from typing import Iterable, Optional, Set


class User:
    """
    User account with credentials, profile and lifecycle state.

    Attributes:
        id: Unique identifier, assigned by the store on creation
        login: Unique login, always stored lower-cased
        password_hash: Hashed password, never serialized outward
        first_name: Optional first name
        last_name: Optional last name
        email: Unique email address, always stored lower-cased
        image_url: Optional avatar URL
        lang_key: Preferred language key
        activated: Whether the account has been activated
        activation_key: One-time key, present only while pending activation
        reset_key: One-time key, present only during an open reset window
        reset_date: Timestamp the reset key was issued
        authorities: Names of the roles granted to the user
        created_by: Audit - who created the record
        created_date: Audit - creation timestamp
        last_modified_by: Audit - who last modified the record
        last_modified_date: Audit - last modification timestamp
    """

    def __init__(
        self,
        id: Optional[int] = None,
        login: Optional[str] = None,
        password_hash: Optional[str] = None,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        email: Optional[str] = None,
        image_url: Optional[str] = None,
        lang_key: Optional[str] = None,
        activated: bool = False,
        activation_key: Optional[str] = None,
        reset_key: Optional[str] = None,
        reset_date: Optional[datetime] = None,
        authorities: Optional[Iterable[str]] = None,
        created_by: str = "system",
        created_date: Optional[datetime] = None,
        last_modified_by: Optional[str] = None,
        last_modified_date: Optional[datetime] = None,
    ):
        self.id = id
        self.login = login.lower() if login else login
        self.password_hash = password_hash
        self.first_name = first_name
        self.last_name = last_name
        self.email = email.lower() if email else email
        self.image_url = image_url
        self.lang_key = lang_key
        self.activated = activated
        self.activation_key = activation_key
        self.reset_key = reset_key
        self.reset_date = reset_date
        self.authorities: Set[str] = set(authorities or ())
        self.created_by = created_by
        self.created_date = created_date or datetime.now(timezone.utc)
        self.last_modified_by = last_modified_by
        self.last_modified_date = last_modified_date

    def __repr__(self) -> str:
        return (
            f"<User id={self.id} login={self.login} email={self.email} "
            f"activated={self.activated} authorities={sorted(self.authorities)}>"
        )


class UserDetails:
    """Credential record handed to the password-check step of a login."""

    def __init__(self, login: str, password_hash: str, authorities: Iterable[str]):
        self.login = login
        self.password_hash = password_hash
        self.authorities = sorted(authorities)

    def __repr__(self) -> str:
        return f"<UserDetails login={self.login} authorities={self.authorities}>"


class Principal:
    """Authenticated identity resolved from a verified bearer token."""

    def __init__(self, login: str, authorities: Iterable[str], token: Optional[str] = None):
        self.login = login
        self.authorities = frozenset(authorities)
        self.token = token

    def has_authority(self, authority: str) -> bool:
        return authority in self.authorities

    def __repr__(self) -> str:
        return f"<Principal login={self.login} authorities={sorted(self.authorities)}>"
