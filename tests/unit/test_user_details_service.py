"""Tests for resolving login identifiers and checking credentials."""

from unittest.mock import MagicMock

import pytest

from skc.application.services.authentication_service import AuthenticationService
from skc.application.services.token_provider import TokenProvider
from skc.application.services.user_details_service import UserDetailsService
from skc.domain.models import ErrorKind, User
from skc.domain.models.audit_event import AUTHENTICATION_FAILURE, AUTHENTICATION_SUCCESS
from skc.domain.models.constants import ROLE_USER


@pytest.fixture
def activated_user(persistence, hasher):
    user = User(
        login="john",
        email="john@example.com",
        password_hash=hasher.hash("john-pass"),
        activated=True,
        authorities={ROLE_USER},
    )
    return persistence.create_user(user).unwrap()


@pytest.fixture
def details_service(user_cache):
    return UserDetailsService(user_cache)


def test_resolves_login_case_insensitively(details_service, activated_user):
    details = details_service.load_user_by_username("JOHN").unwrap()

    assert details.login == "john"
    assert details.authorities == [ROLE_USER]


def test_resolves_email(details_service, activated_user):
    details = details_service.load_user_by_username("John@Example.com").unwrap()

    assert details.login == "john"


def test_unknown_identifier_is_not_found(details_service):
    assert details_service.load_user_by_username("ghost").error is ErrorKind.NOT_FOUND
    assert details_service.load_user_by_username("ghost@example.com").error is ErrorKind.NOT_FOUND


def test_unactivated_user_is_rejected(details_service, persistence, hasher):
    persistence.create_user(User(login="pending", email="pending@example.com", password_hash=hasher.hash("x")))

    assert details_service.load_user_by_username("pending").error is ErrorKind.NOT_ACTIVATED


def test_authentication_issues_token(details_service, hasher, audit_service, activated_user):
    tokens = MagicMock(spec=TokenProvider)
    tokens.create_token.return_value = "token"
    service = AuthenticationService(details_service, hasher, tokens, audit_service)

    outcome = service.authenticate("john", "john-pass", remember_me=True)

    assert outcome.unwrap() == "token"
    tokens.create_token.assert_called_once_with("john", [ROLE_USER], True)


def test_authentication_rejects_wrong_password(details_service, hasher, audit_service, activated_user):
    tokens = MagicMock(spec=TokenProvider)
    service = AuthenticationService(details_service, hasher, tokens, audit_service)

    assert service.authenticate("john", "wrong").error is ErrorKind.WRONG_PASSWORD
    tokens.create_token.assert_not_called()
    assert [event.event_type for event in audit_service.find(principal="john")] == [AUTHENTICATION_FAILURE]


def test_successful_login_is_audited(details_service, hasher, audit_service, activated_user):
    tokens = MagicMock(spec=TokenProvider)
    tokens.create_token.return_value = "token"
    service = AuthenticationService(details_service, hasher, tokens, audit_service)

    service.authenticate("John@Example.com", "john-pass", remote_address="10.0.0.7")

    (event,) = audit_service.find(principal="john")
    assert event.event_type == AUTHENTICATION_SUCCESS
    assert event.data == {"remoteAddress": "10.0.0.7"}


def test_failed_login_records_reason(details_service, hasher, audit_service):
    service = AuthenticationService(details_service, hasher, MagicMock(spec=TokenProvider), audit_service)

    assert service.authenticate("ghost", "whatever").error is ErrorKind.NOT_FOUND

    (event,) = audit_service.find(principal="ghost", event_type=AUTHENTICATION_FAILURE)
    assert event.data == {"type": "not_found", "message": "Bad credentials"}
