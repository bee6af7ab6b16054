from __future__ import annotations

import pytest

from src.bug_tracker.bug_tracker.core.enums import Role


def _bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def _login(client, email="user@example.com", password="secret123") -> str:
    res = client.post("/api/v1/auth/login", json={"email": email, "password": password})
    assert res.status_code == 200, res.get_json()
    return res.get_json()["token"]


def _cookie_header(res) -> str:
    return next(h for h in res.headers.getlist("Set-Cookie") if h.startswith("token="))


# -------- auth --------
def test_register_then_confirm(client, users_repo, mailer):
    res = client.post(
        "/api/v1/auth/register",
        json={"name": "Jane", "email": "jane@example.com", "password": "secret123"},
    )
    body = res.get_json()
    assert res.status_code == 200
    assert body["success"] is True
    assert body["data"] == "Email sent successfully"
    assert body["user"]["isEmailConfirmed"] is False
    assert "HttpOnly" in _cookie_header(res)
    assert "http://localhost/api/v1/auth/confirmemail?token=" in mailer.last_body

    res = client.get("/api/v1/auth/confirmemail", query_string={"token": mailer.last_confirm_token()})
    assert res.status_code == 200
    assert res.get_json()["data"]["isEmailConfirmed"] is True
    assert users_repo.get_by_email("jane@example.com").is_email_confirmed


def test_register_duplicate_and_invalid(client, users_repo):
    users_repo.add(email="jane@example.com")

    res = client.post(
        "/api/v1/auth/register",
        json={"name": "Jane", "email": "jane@example.com", "password": "secret123"},
    )
    assert res.status_code == 400
    assert res.get_json()["code"] == "duplicate_email"

    res = client.post("/api/v1/auth/register", json={"name": "Jane", "email": "nope", "password": "secret123"})
    assert res.status_code == 400
    assert res.get_json() == {
        "success": False,
        "status": 400,
        "code": "validation_error",
        "message": "Please add a valid email",
    }


def test_register_delivery_failure(client, mailer, users_repo):
    mailer.fail = True
    res = client.post(
        "/api/v1/auth/register",
        json={"name": "Jane", "email": "jane@example.com", "password": "secret123"},
    )
    assert res.status_code == 500
    assert res.get_json()["code"] == "delivery_error"
    assert users_repo.get_by_email("jane@example.com").confirm_email_token_hash is None


def test_confirm_with_bad_token(client):
    res = client.get("/api/v1/auth/confirmemail", query_string={"token": "abc"})
    assert res.status_code == 400
    assert res.get_json()["code"] == "invalid_token"


def test_login_errors_do_not_reveal_accounts(client, users_repo):
    users_repo.add(email="user@example.com", password="secret123")

    unknown = client.post("/api/v1/auth/login", json={"email": "ghost@example.com", "password": "secret123"})
    wrong = client.post("/api/v1/auth/login", json={"email": "user@example.com", "password": "bad-password"})
    assert unknown.status_code == wrong.status_code == 401
    assert unknown.get_json() == wrong.get_json()

    missing = client.post("/api/v1/auth/login", json={"email": "user@example.com"})
    assert missing.status_code == 400
    assert missing.get_json()["code"] == "bad_request"


def test_login_unconfirmed(client, users_repo):
    users_repo.add(email="user@example.com", password="secret123", confirmed=False)
    res = client.post("/api/v1/auth/login", json={"email": "user@example.com", "password": "secret123"})
    assert res.status_code == 401
    assert res.get_json()["code"] == "email_not_confirmed"


def test_two_factor_flow(client, users_repo, mailer):
    users_repo.add(email="user@example.com", password="secret123")
    token = _login(client)

    res = client.put("/api/v1/auth/toggle-2fa", headers=_bearer(token))
    assert res.get_json()["data"] == {"twoFactorEnabled": True}

    res = client.post("/api/v1/auth/login", json={"email": "user@example.com", "password": "secret123"})
    assert res.get_json() == {"success": True, "twoFactorRequired": True, "message": "2FA code sent to email"}
    assert "token" not in res.get_json()

    bad = client.post("/api/v1/auth/verify-2fa", json={"email": "user@example.com", "code": "000000"})
    assert bad.status_code == 400
    assert bad.get_json()["code"] == "invalid_or_expired_code"

    res = client.post("/api/v1/auth/verify-2fa", json={"email": "user@example.com", "code": mailer.last_code()})
    assert res.status_code == 200
    assert res.get_json()["token"]


def test_forgot_and_reset_password(client, users_repo, mailer):
    users_repo.add(email="user@example.com", password="secret123")

    res = client.post("/api/v1/auth/forgotpassword", json={"email": "ghost@example.com"})
    assert res.get_json() == {"success": True, "data": "Email sent"}
    assert mailer.sent == []

    res = client.post("/api/v1/auth/forgotpassword", json={"email": "user@example.com"})
    assert res.get_json() == {"success": True, "data": "Email sent"}
    reset_token = mailer.last_reset_token()

    res = client.put(f"/api/v1/auth/resetpassword/{reset_token}", json={"password": "brand-new-pass"})
    assert res.status_code == 200
    assert _login(client, password="brand-new-pass")

    res = client.put(f"/api/v1/auth/resetpassword/{reset_token}", json={"password": "brand-new-pass"})
    assert res.status_code == 400
    assert res.get_json()["code"] == "invalid_token"


def test_account_routes(client, users_repo):
    users_repo.add(name="User", email="user@example.com", password="secret123")
    users_repo.add(name="Taken", email="taken@example.com")
    assert client.get("/api/v1/auth/me").status_code == 401
    token = _login(client)

    me = client.get("/api/v1/auth/me", headers=_bearer(token)).get_json()["data"]
    assert me["email"] == "user@example.com"
    assert "password_hash" not in me

    res = client.put("/api/v1/auth/updatedetails", headers=_bearer(token), json={"email": "taken@example.com"})
    assert res.get_json()["code"] == "duplicate_email"
    res = client.put("/api/v1/auth/updatedetails", headers=_bearer(token), json={"name": "Renamed"})
    assert res.get_json()["data"]["name"] == "Renamed"

    res = client.put(
        "/api/v1/auth/updatepassword",
        headers=_bearer(token),
        json={"currentPassword": "wrong-one", "newPassword": "brand-new-pass"},
    )
    assert res.status_code == 401
    assert res.get_json()["code"] == "incorrect_password"


def test_session_cookie_and_logout(app, users_repo):
    client = app.test_client()
    users_repo.add(email="user@example.com", password="secret123")
    res = client.post("/api/v1/auth/login", json={"email": "user@example.com", "password": "secret123"})
    assert "HttpOnly" in _cookie_header(res)

    # the test client sends the cookie back
    assert client.get("/api/v1/auth/me").status_code == 200

    res = client.get("/api/v1/auth/logout")
    assert res.status_code == 200
    assert _cookie_header(res).startswith("token=none")


def test_bad_bearer_token(client):
    res = client.get("/api/v1/auth/me", headers=_bearer("not-a-jwt"))
    assert res.status_code == 401
    assert res.get_json()["code"] == "not_authenticated"


# -------- bugs / comments --------
@pytest.fixture
def tokens(client, users_repo):
    users_repo.add(name="Reporter", email="reporter@example.com", password="secret123")
    users_repo.add(name="Other", email="other@example.com", password="secret123")
    users_repo.add(name="Dev", email="dev@example.com", password="secret123", role=Role.DEVELOPER)
    return {
        "reporter": _login(client, "reporter@example.com"),
        "other": _login(client, "other@example.com"),
        "dev": _login(client, "dev@example.com"),
    }


def test_bug_routes(client, tokens):
    assert client.get("/api/v1/bugs").status_code == 401

    res = client.post(
        "/api/v1/bugs",
        headers=_bearer(tokens["reporter"]),
        json={"title": "Crash", "description": "Crash on save", "priority": "high", "labels": ["ui"]},
    )
    assert res.status_code == 201
    bug = res.get_json()["data"]
    assert bug["status"] == "open"
    assert bug["labels"] == ["ui"]

    listed = client.get("/api/v1/bugs", headers=_bearer(tokens["other"])).get_json()
    assert listed["count"] == 1

    assert client.get(f"/api/v1/bugs/{bug['id']}", headers=_bearer(tokens["other"])).status_code == 403
    assert client.get("/api/v1/bugs/999", headers=_bearer(tokens["reporter"])).status_code == 404

    res = client.put(f"/api/v1/bugs/{bug['id']}", headers=_bearer(tokens["reporter"]), json={"status": "resolved"})
    assert res.get_json()["data"]["status"] == "resolved"

    history = client.get(f"/api/v1/bugs/{bug['id']}/history", headers=_bearer(tokens["reporter"])).get_json()
    assert history["data"][0]["to"] == "resolved"

    stats = client.get("/api/v1/bugs/stats/status", headers=_bearer(tokens["other"])).get_json()
    assert stats["data"] == [{"status": "resolved", "count": 1}]

    res = client.post("/api/v1/bugs", headers=_bearer(tokens["reporter"]), json={"title": "No description"})
    assert res.status_code == 400

    assert client.delete(f"/api/v1/bugs/{bug['id']}", headers=_bearer(tokens["reporter"])).status_code == 200


def test_comment_routes(client, tokens):
    bug = client.post(
        "/api/v1/bugs",
        headers=_bearer(tokens["reporter"]),
        json={"title": "Crash", "description": "Crash on save"},
    ).get_json()["data"]
    base = f"/api/v1/bugs/{bug['id']}/comments"

    assert client.post(base, json={"text": "Anonymous"}).status_code == 401
    res = client.post(base, headers=_bearer(tokens["dev"]), json={"text": "From a developer"})
    assert res.status_code == 403
    assert res.get_json()["code"] == "forbidden"

    res = client.post(base, headers=_bearer(tokens["other"]), json={"text": "Same here"})
    assert res.status_code == 201
    comment = res.get_json()["data"]
    assert comment["user"]["name"] == "Other"

    listed = client.get(base).get_json()
    assert listed["count"] == 1

    likes = client.post(f"{base}/{comment['id']}/like", headers=_bearer(tokens["dev"])).get_json()["data"]
    assert len(likes) == 1
    unliked = client.delete(f"{base}/{comment['id']}/like", headers=_bearer(tokens["dev"])).get_json()["data"]
    assert unliked == []

    flags = client.post(f"{base}/{comment['id']}/flag", headers=_bearer(tokens["dev"]), json={}).get_json()["data"]
    assert flags[0]["reason"] == "Inappropriate content"

    res = client.put(f"{base}/{comment['id']}", headers=_bearer(tokens["other"]), json={"text": "Edited"})
    assert res.get_json()["data"]["edited"] is True

    assert client.delete(f"{base}/{comment['id']}", headers=_bearer(tokens["reporter"])).status_code == 403
    assert client.delete(f"{base}/{comment['id']}", headers=_bearer(tokens["other"])).status_code == 200
    assert client.get(f"{base}/{comment['id']}").status_code == 404


def test_unknown_route_uses_json_errors(client):
    res = client.get("/api/v1/nowhere")
    assert res.status_code == 404
    assert res.get_json()["code"] == "http_error"


def test_numeric_passwords_are_client_errors(client, users_repo):
    res = client.post(
        "/api/v1/auth/register",
        json={"name": "Jane", "email": "jane@example.com", "password": 12345678},
    )
    assert res.status_code == 400
    assert res.get_json()["code"] == "validation_error"

    users_repo.add(email="user@example.com", password="12345678")
    res = client.post("/api/v1/auth/login", json={"email": "user@example.com", "password": 12345678})
    assert res.status_code == 400
    assert res.get_json()["code"] == "bad_request"


def test_malformed_and_overlong_emails_are_client_errors(client):
    for email in ("a" * 40 + "!", "a" * 244 + "@example.com"):
        res = client.post("/api/v1/auth/register", json={"name": "Jane", "email": email, "password": "secret123"})
        assert res.status_code == 400
        assert res.get_json()["code"] == "validation_error"
