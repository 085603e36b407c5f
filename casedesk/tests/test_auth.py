"""
Authentication tests: registration, login cookie, token resolution and
revocation.
"""

from datetime import timedelta

import pytest

from casedesk.auth import (
    UserIdentity,
    create_access_token,
    decode_token,
    extract_token,
    get_password_hash,
    is_password_too_long,
    verify_password,
)
from casedesk.db.models import UserRole

from conftest import auth_headers, create_user


def _register(client, email="new.client@example.com", role="CLIENT", password="correct-horse"):
    return client.post("/api/auth/register", json={
        "email": email,
        "password": password,
        "firstName": "Ada",
        "lastName": "Lovelace",
        "role": role,
    })


class TestPasswordHelpers:

    def test_hash_and_verify(self, sqlalchemy_db):
        hashed = get_password_hash("s3cret-pass")
        assert hashed != "s3cret-pass"
        assert verify_password("s3cret-pass", hashed)
        assert not verify_password("wrong-pass", hashed)

    def test_garbage_hash_does_not_verify(self, sqlalchemy_db):
        assert not verify_password("anything", "not-a-bcrypt-hash")

    def test_long_password_detection(self):
        assert not is_password_too_long("a" * 72)
        assert is_password_too_long("a" * 73)
        assert is_password_too_long("é" * 40)


class TestTokens:

    def test_token_carries_claims(self, sqlalchemy_db):
        payload = decode_token(create_access_token({"sub": "user-1", "role": "CLIENT"}))
        assert payload["sub"] == "user-1"
        assert payload["type"] == "access"
        assert payload["jti"]

    def test_expired_token_is_invalid(self, sqlalchemy_db):
        token = create_access_token({"sub": "user-1"}, expires_delta=timedelta(seconds=-5))
        assert decode_token(token) is None

    @pytest.mark.parametrize("authorization,cookie,expected", [
        ("Bearer abc", None, "abc"),
        ("Bearer abc", "xyz", "abc"),
        (None, "xyz", "xyz"),
        ("Basic abc", None, None),
        (None, None, None),
    ])
    def test_extract_token(self, authorization, cookie, expected):
        assert extract_token(authorization, cookie) == expected

    def test_identity_role_flags(self):
        lawyer = UserIdentity(id="u", role=UserRole.LAWYER)
        assert lawyer.is_lawyer and not lawyer.is_client and not lawyer.is_admin


class TestRegister:

    def test_register_client(self, client):
        resp = _register(client)
        assert resp.status_code == 201
        body = resp.json()
        assert body["message"] == "User registered successfully"
        assert body["data"]["role"] == "CLIENT"
        assert "passwordHash" not in body["data"]

    def test_duplicate_email_conflicts(self, client):
        _register(client)
        resp = _register(client, email="NEW.CLIENT@example.com")
        assert resp.status_code == 409
        assert resp.json()["error"] == "User with this email already exists"

    def test_admin_self_registration_rejected(self, client):
        resp = _register(client, role="ADMIN")
        assert resp.status_code == 400

    def test_short_password_rejected(self, client):
        resp = _register(client, password="short")
        assert resp.status_code == 400
        assert resp.json()["code"] == "VALIDATION_ERROR"


class TestLoginFlow:

    def test_login_sets_cookie_and_me_works(self, client):
        _register(client, role="LAWYER")
        resp = client.post("/api/auth/login", json={"email": "new.client@example.com", "password": "correct-horse"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["message"] == "Login successful"
        assert body["data"]["user"]["role"] == "LAWYER"
        assert "token" in resp.cookies

        me = client.get("/api/auth/me")
        assert me.status_code == 200
        assert me.json()["data"]["email"] == "new.client@example.com"

    def test_bad_password(self, client):
        _register(client)
        resp = client.post("/api/auth/login", json={"email": "new.client@example.com", "password": "nope-nope"})
        assert resp.status_code == 401
        assert resp.json() == {"success": False, "error": "Invalid credentials"}

    def test_logout_revokes_token(self, client):
        _register(client)
        token = client.post(
            "/api/auth/login", json={"email": "new.client@example.com", "password": "correct-horse"}
        ).json()["data"]["token"]
        client.cookies.clear()
        headers = {"Authorization": f"Bearer {token}"}

        assert client.get("/api/auth/me", headers=headers).status_code == 200
        assert client.post("/api/auth/logout", headers=headers).status_code == 200

        resp = client.get("/api/auth/me", headers=headers)
        assert resp.status_code == 401
        assert resp.json()["error"] == "Token has been revoked"

    def test_role_is_reloaded_from_database(self, client):
        """A forged role claim does not elevate the caller."""
        lawyer_id = create_user(UserRole.LAWYER)
        forged = auth_headers(lawyer_id, UserRole.CLIENT)
        resp = client.post("/api/cases", json={"title": "X", "category": "OTHER"}, headers=forged)
        assert resp.status_code == 403

    def test_inactive_user_rejected(self, client):
        user_id = create_user(UserRole.CLIENT, active=False)
        resp = client.get("/api/auth/me", headers=auth_headers(user_id, UserRole.CLIENT))
        assert resp.status_code == 401
        assert resp.json()["error"] == "User not found or inactive"
