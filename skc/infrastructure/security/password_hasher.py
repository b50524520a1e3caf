import secrets
import string

from passlib.context import CryptContext

from ...domain.models.constants import RANDOM_KEY_LENGTH

_ALPHABET = string.ascii_letters + string.digits


class PasswordHasher:
    """One-way password hashing backed by bcrypt."""

    def __init__(self, rounds: int = 10) -> None:
        self._pwd = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)

    def hash(self, raw_password: str) -> str:
        return self._pwd.hash(raw_password)

    def verify(self, raw_password: str, password_hash: str) -> bool:
        if not raw_password or not password_hash:
            return False
        return self._pwd.verify(raw_password, password_hash)


def _random_string(length: int = RANDOM_KEY_LENGTH) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def generate_password() -> str:
    return _random_string()


def generate_activation_key() -> str:
    return _random_string()


def generate_reset_key() -> str:
    return _random_string()
