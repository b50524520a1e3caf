"""Pytest configuration for all tests."""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from skc.application.dto import UserDTO
from skc.application.services.audit_event_service import AuditEventService
from skc.application.services.user_service import UserService
from skc.core.app_factory import create_application
from skc.core.config import Settings
from skc.infrastructure.cache.user_cache import UserLookupCache
from skc.infrastructure.persistence.sqlite import SQLitePersistence
from skc.infrastructure.security.password_hasher import PasswordHasher
from skc.services.mail_service import MailService

JWT_TEST_SECRET = "test-secret-key-that-is-long-enough-for-hs512-signatures-0123456789abcdef"
ADMIN_LOGIN = "admin"
ADMIN_PASSWORD = "admin-password"


class FrozenClock:
    """Callable clock returning a fixed instant that tests move forward by hand."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def persistence(tmp_path):
    store = SQLitePersistence(tmp_path / "skc-test.db")
    yield store
    store.close()


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture
def user_cache(persistence) -> UserLookupCache:
    return UserLookupCache(persistence, ttl_seconds=3600)


@pytest.fixture
def mail_service() -> MagicMock:
    return MagicMock(spec=MailService)


@pytest.fixture
def user_service(persistence, user_cache, hasher, mail_service, clock) -> UserService:
    return UserService(persistence, user_cache, hasher, mail_service, clock=clock)


@pytest.fixture
def audit_service(persistence, clock) -> AuditEventService:
    return AuditEventService(persistence, clock=clock)


@pytest.fixture
def make_user_dto():
    def _make(login: str = "john", email: str = "john@example.com", **kwargs) -> UserDTO:
        kwargs.setdefault("first_name", "John")
        kwargs.setdefault("last_name", "Doe")
        kwargs.setdefault("lang_key", "en")
        return UserDTO(login=login, email=email, **kwargs)

    return _make


@pytest.fixture
def app_env(monkeypatch, tmp_path):
    """Environment for an application backed by a temporary database."""
    for key in ("JWT_BASE64_SECRET", "SMTP_HOST", "SMTP_FROM_EMAIL", "CORS_ALLOW_ORIGINS"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "skc-api.db"))
    monkeypatch.setenv("JWT_SECRET", JWT_TEST_SECRET)
    monkeypatch.setenv("JWT_TOKEN_VALIDITY_SECONDS", "86400")
    monkeypatch.setenv("JWT_TOKEN_VALIDITY_SECONDS_REMEMBER_ME", "2592000")
    monkeypatch.setenv("BCRYPT_ROUNDS", "4")
    monkeypatch.setenv("ADMIN_LOGIN", ADMIN_LOGIN)
    monkeypatch.setenv("ADMIN_EMAIL", "admin@example.com")
    monkeypatch.setenv("ADMIN_PASSWORD", ADMIN_PASSWORD)
    return monkeypatch


@pytest.fixture
def client(app_env):
    app = create_application(Settings())
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def container(client):
    return client.app.state.container


@pytest.fixture
def admin_headers(client):
    response = client.post("/api/authenticate", json={"username": ADMIN_LOGIN, "password": ADMIN_PASSWORD})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['id_token']}"}


@pytest.fixture
def register_and_activate(client, container):
    """Register an account through the API and activate it with its stored key."""

    def _register(login: str = "alice", email: str = "alice@example.com", password: str = "alice-pass") -> dict:
        response = client.post(
            "/api/register",
            json={"login": login, "email": email, "password": password, "langKey": "en"},
        )
        assert response.status_code == 201
        key = container.persistence.get_user_by_login(login).activation_key
        assert client.get("/api/activate", params={"key": key}).status_code == 200
        token = client.post("/api/authenticate", json={"username": login, "password": password}).json()["id_token"]
        return {"Authorization": f"Bearer {token}"}

    return _register
