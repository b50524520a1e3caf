"""Typed results returned by lifecycle and token operations."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    LOGIN_IN_USE = "login_in_use"
    EMAIL_IN_USE = "email_in_use"
    INVALID_PASSWORD = "invalid_password"
    WRONG_PASSWORD = "wrong_password"
    NOT_FOUND = "not_found"
    NOT_ACTIVATED = "not_activated"
    NOT_AUTHENTICATED = "not_authenticated"
    TOKEN_INVALID = "token_invalid"
    ID_EXISTS = "id_exists"


@dataclass(frozen=True, slots=True)
class Outcome(Generic[T]):
    """Either a value or the kind of failure that prevented producing one."""

    value: Optional[T] = None
    error: Optional[ErrorKind] = None

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: ErrorKind) -> "Outcome[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise ValueError(f"Outcome holds an error: {self.error.value}")
        return self.value  # type: ignore[return-value]
