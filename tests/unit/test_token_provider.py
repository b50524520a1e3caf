"""Tests for bearer token creation and verification."""

import base64
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from skc.application.services.token_provider import AUTHORITIES_KEY, TokenProvider
from skc.domain.models import ErrorKind

SECRET = "token-provider-test-secret-that-is-long-enough-for-hs512-0123456789abcdef"


def make_provider(**kwargs) -> TokenProvider:
    kwargs.setdefault("token_validity_seconds", 60)
    kwargs.setdefault("token_validity_seconds_for_remember_me", 3600)
    if "base64_secret" not in kwargs:
        kwargs.setdefault("secret", SECRET)
    return TokenProvider(**kwargs)


def test_round_trip_preserves_subject_and_authorities():
    provider = make_provider()

    token = provider.create_token("john", ["ROLE_ADMIN", "ROLE_USER"])
    outcome = provider.get_authentication(token)

    assert outcome.ok
    principal = outcome.unwrap()
    assert principal.login == "john"
    assert principal.authorities == {"ROLE_ADMIN", "ROLE_USER"}
    assert principal.token == token


def test_claims_use_comma_joined_authorities():
    provider = make_provider()

    token = provider.create_token("john", ["ROLE_USER"])
    claims = jwt.decode(token, SECRET, algorithms=["HS512"])

    assert claims["sub"] == "john"
    assert claims[AUTHORITIES_KEY] == "ROLE_USER"


def test_remember_me_extends_expiry():
    provider = make_provider()
    now = datetime.now(timezone.utc)

    short = jwt.decode(provider.create_token("john", []), SECRET, algorithms=["HS512"])
    long = jwt.decode(provider.create_token("john", [], remember_me=True), SECRET, algorithms=["HS512"])

    assert short["exp"] <= (now + timedelta(seconds=120)).timestamp()
    assert long["exp"] >= (now + timedelta(seconds=3000)).timestamp()


def test_empty_authorities_decode_to_empty_set():
    provider = make_provider()

    principal = provider.get_authentication(provider.create_token("john", [])).unwrap()

    assert principal.authorities == frozenset()


def test_expired_token_is_invalid():
    provider = make_provider(token_validity_seconds=-10)

    token = provider.create_token("john", ["ROLE_USER"])

    assert not provider.validate_token(token)
    assert provider.get_authentication(token).error is ErrorKind.TOKEN_INVALID


def test_token_signed_with_other_key_is_invalid():
    provider = make_provider()
    other = make_provider(secret="another-secret-that-is-also-long-enough-for-hs512-signing-abcdef0123456789")

    assert not provider.validate_token(other.create_token("john", ["ROLE_USER"]))


def test_token_with_other_algorithm_is_invalid():
    provider = make_provider()
    token = jwt.encode({"sub": "john", "auth": "ROLE_USER"}, SECRET, algorithm="HS256")

    assert not provider.validate_token(token)


@pytest.mark.parametrize("token", ["", "not-a-token", "a.b.c"])
def test_malformed_token_is_invalid(token):
    assert not make_provider().validate_token(token)


def test_token_without_subject_is_invalid():
    provider = make_provider()
    token = jwt.encode({"auth": "ROLE_USER"}, SECRET, algorithm="HS512")

    assert provider.get_authentication(token).error is ErrorKind.TOKEN_INVALID


def test_token_without_expiry_is_invalid():
    provider = make_provider()
    token = jwt.encode({"sub": "john", "auth": "ROLE_USER"}, SECRET, algorithm="HS512")

    assert not provider.validate_token(token)
    assert provider.get_authentication(token).error is ErrorKind.TOKEN_INVALID


def test_base64_secret_is_decoded():
    raw = b"k" * 64
    provider = make_provider(base64_secret=base64.b64encode(raw).decode("ascii"))

    token = provider.create_token("john", ["ROLE_USER"])

    assert jwt.decode(token, raw, algorithms=["HS512"])["sub"] == "john"


def test_missing_secret_is_rejected():
    with pytest.raises(RuntimeError):
        TokenProvider(token_validity_seconds=60, token_validity_seconds_for_remember_me=60)


def test_invalid_base64_secret_is_rejected():
    with pytest.raises(RuntimeError):
        make_provider(base64_secret="%%% not base64 %%%")
