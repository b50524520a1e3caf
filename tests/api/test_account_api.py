"""Tests for the self-service account endpoints."""

import asyncio
from datetime import timedelta

from skc.domain.models import Outcome, User


def test_register_activate_and_login_scenario(client, container):
    response = client.post(
        "/api/register",
        json={"login": "alice", "email": "alice@x.com", "password": "Secret123", "langKey": "en"},
    )
    assert response.status_code == 201

    wrong = client.get("/api/activate", params={"key": "wrongKey"})
    assert wrong.status_code == 500
    assert wrong.json()["title"] == "No user was found for this activation key"

    key = container.persistence.get_user_by_login("alice").activation_key
    assert client.get("/api/activate", params={"key": key}).status_code == 200
    assert container.persistence.get_user_by_login("alice").activated

    first = client.post("/api/authenticate", json={"username": "alice", "password": "Secret123"})
    second = client.post("/api/authenticate", json={"username": "ALICE", "password": "Secret123"})
    assert first.status_code == 200
    assert second.status_code == 200

    for response in (first, second):
        token = response.json()["id_token"]
        principal = container.token_provider.get_authentication(token).unwrap()
        assert principal.login == "alice"


def test_register_rejects_short_password(client):
    response = client.post("/api/register", json={"login": "bob", "email": "bob@example.com", "password": "abc"})

    assert response.status_code == 400
    assert response.json()["type"].endswith("/invalid-password")


def test_register_rejects_invalid_login(client):
    response = client.post(
        "/api/register",
        json={"login": "bad login!", "email": "bob@example.com", "password": "password"},
    )

    assert response.status_code == 400
    assert response.json()["message"] == "error.validation"


def test_register_duplicate_login_of_activated_account(client, register_and_activate):
    register_and_activate("alice", "alice@example.com")

    response = client.post(
        "/api/register",
        json={"login": "Alice", "email": "other@example.com", "password": "password"},
    )

    assert response.status_code == 400
    assert response.json()["message"] == "error.userexists"


def test_register_duplicate_email_of_activated_account(client, register_and_activate):
    register_and_activate("alice", "alice@example.com")

    response = client.post(
        "/api/register",
        json={"login": "other", "email": "ALICE@example.com", "password": "password"},
    )

    assert response.status_code == 400
    assert response.json()["message"] == "error.emailexists"


def test_login_of_unactivated_account_is_unauthorized(client):
    client.post("/api/register", json={"login": "pending", "email": "pending@example.com", "password": "password"})

    response = client.post("/api/authenticate", json={"username": "pending", "password": "password"})

    assert response.status_code == 401


def test_is_authenticated_returns_login(client, register_and_activate):
    headers = register_and_activate()

    assert client.get("/api/authenticate", headers=headers).text == "alice"
    assert client.get("/api/authenticate").text == ""
    assert client.get("/api/authenticate", headers={"Authorization": "Bearer garbage"}).text == ""


def test_get_account(client, register_and_activate):
    headers = register_and_activate()

    response = client.get("/api/account", headers=headers)

    assert response.status_code == 200
    body = response.json()
    assert body["login"] == "alice"
    assert body["email"] == "alice@example.com"
    assert body["activated"] is True
    assert body["langKey"] == "en"
    assert body["authorities"] == ["ROLE_USER"]
    assert "password" not in body
    assert "passwordHash" not in body


def test_get_account_requires_authentication(client):
    response = client.get("/api/account")

    assert response.status_code == 401


def test_get_account_for_deleted_user_is_server_error(client, container, register_and_activate):
    headers = register_and_activate()
    container.user_service.delete_user("alice").unwrap()

    response = client.get("/api/account", headers=headers)

    assert response.status_code == 500
    assert response.json()["title"] == "User could not be found"


def test_save_account(client, container, register_and_activate):
    headers = register_and_activate()

    response = client.post(
        "/api/account",
        headers=headers,
        json={"login": "alice", "firstName": "Alice", "lastName": "Liddell", "email": "NEW@example.com", "langKey": "fr"},
    )

    assert response.status_code == 200
    stored = container.persistence.get_user_by_login("alice")
    assert stored.first_name == "Alice"
    assert stored.email == "new@example.com"
    assert stored.lang_key == "fr"


def test_save_account_rejects_email_of_other_user(client, register_and_activate):
    headers = register_and_activate()
    register_and_activate("bob", "bob@example.com", "bob-pass")

    response = client.post(
        "/api/account",
        headers=headers,
        json={"login": "alice", "email": "bob@example.com", "langKey": "en"},
    )

    assert response.status_code == 400
    assert response.json()["message"] == "error.emailexists"


def test_change_password(client, register_and_activate):
    headers = register_and_activate()

    response = client.post(
        "/api/account/change-password",
        headers=headers,
        json={"currentPassword": "alice-pass", "newPassword": "brand-new"},
    )

    assert response.status_code == 200
    login = client.post("/api/authenticate", json={"username": "alice", "password": "brand-new"})
    assert login.status_code == 200


def test_change_password_with_wrong_current_password(client, register_and_activate):
    headers = register_and_activate()

    response = client.post(
        "/api/account/change-password",
        headers=headers,
        json={"currentPassword": "wrong-pass", "newPassword": "brand-new"},
    )

    assert response.status_code == 400
    assert client.post("/api/authenticate", json={"username": "alice", "password": "alice-pass"}).status_code == 200


def test_change_password_rejects_too_long_password(client, register_and_activate):
    headers = register_and_activate()

    response = client.post(
        "/api/account/change-password",
        headers=headers,
        json={"currentPassword": "alice-pass", "newPassword": "x" * 101},
    )

    assert response.status_code == 400


def test_password_reset_flow(client, container, register_and_activate):
    register_and_activate()

    init = client.post(
        "/api/account/reset-password/init",
        content="alice@example.com",
        headers={"Content-Type": "text/plain"},
    )
    assert init.status_code == 200
    key = container.persistence.get_user_by_login("alice").reset_key

    finish = client.post("/api/account/reset-password/finish", json={"key": key, "newPassword": "reset-pass"})

    assert finish.status_code == 200
    assert client.post("/api/authenticate", json={"username": "alice", "password": "reset-pass"}).status_code == 200


def test_password_reset_init_for_unknown_email(client):
    response = client.post("/api/account/reset-password/init", content="ghost@example.com")

    assert response.status_code == 400
    assert response.json()["type"].endswith("/email-not-found")


def test_password_reset_init_for_unactivated_account(client):
    client.post("/api/register", json={"login": "pending", "email": "pending@example.com", "password": "password"})

    response = client.post("/api/account/reset-password/init", content="pending@example.com")

    assert response.status_code == 400


def test_password_reset_finish_with_unknown_key(client):
    response = client.post("/api/account/reset-password/finish", json={"key": "nope", "newPassword": "reset-pass"})

    assert response.status_code == 500
    assert response.json()["title"] == "No user was found for this reset key"


def test_password_reset_finish_with_expired_key(client, container, register_and_activate):
    register_and_activate()
    client.post("/api/account/reset-password/init", content="alice@example.com")
    user = container.persistence.get_user_by_login("alice")
    user.reset_date = user.reset_date - timedelta(hours=25)
    container.persistence.update_user(user).unwrap()

    response = client.post(
        "/api/account/reset-password/finish",
        json={"key": user.reset_key, "newPassword": "reset-pass"},
    )

    assert response.status_code == 500


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["ok"] is True


def test_password_reset_init_with_undecodable_body(client):
    response = client.post(
        "/api/account/reset-password/init",
        content=b"\xff\xfealice@example.com",
        headers={"Content-Type": "text/plain"},
    )

    assert response.status_code == 400
    assert response.json()["type"].endswith("/email-not-found")


def test_password_reset_init_runs_in_worker_thread(client, container, monkeypatch):
    loop_seen = []

    def request_password_reset(mail):
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            loop_seen.append(False)
        else:
            loop_seen.append(True)
        return Outcome.success(User(login="alice", email=mail))

    monkeypatch.setattr(container.user_service, "request_password_reset", request_password_reset)

    response = client.post("/api/account/reset-password/init", content="alice@example.com")

    assert response.status_code == 200
    assert loop_seen == [False]


def test_register_with_taken_email_keeps_pending_account(client, container, register_and_activate):
    first = client.post("/api/register", json={"login": "bob", "email": "bob@example.com", "password": "bob-pass"})
    assert first.status_code == 201
    register_and_activate(login="carol", email="carol@example.com")
    pending = container.persistence.get_user_by_login("bob")

    response = client.post(
        "/api/register",
        json={"login": "bob", "email": "carol@example.com", "password": "bob-pass"},
    )

    assert response.status_code == 400
    assert response.json()["type"].endswith("/email-already-used")
    assert container.persistence.get_user_by_login("bob").id == pending.id
