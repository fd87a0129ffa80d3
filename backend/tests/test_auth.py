"""
Authentication tests: password rules, login through the API, lockout,
bearer sessions, and logout.
"""

from datetime import timedelta

import pytest

from conftest import PASSWORD, auth_headers, login
from ona.errors import ConflictError, RateLimitError, UnauthorizedError, ValidationFailed
from ona.models import AuthToken
from ona.services import auth_service, session_service
from ona.time_utils import utcnow


# =============================================================================
# PASSWORDS AND ACCOUNTS
# =============================================================================


class TestPasswords:
    @pytest.mark.parametrize("password", ["short1A", "alllowercase1", "ALLUPPERCASE1", "NoDigitsHere"])
    def test_weak_passwords(self, password):
        with pytest.raises(ValidationFailed):
            auth_service.validate_password_strength(password)

    def test_strong_password(self):
        auth_service.validate_password_strength(PASSWORD)

    def test_hash_is_not_plaintext(self, app):
        hashed = auth_service.hash_password(PASSWORD)
        assert hashed != PASSWORD
        assert auth_service.verify_password(PASSWORD, hashed) is True
        assert auth_service.verify_password("Password124", hashed) is False

    def test_malformed_hash(self):
        assert auth_service.verify_password(PASSWORD, "not-a-bcrypt-hash") is False


class TestCreateUser:
    def test_email_is_normalized(self, db_session):
        user = auth_service.create_user(email="  Mixed@Ona.TEST ", password=PASSWORD)
        assert user.email == "mixed@ona.test"
        assert user.role == "user"

    def test_duplicate_email(self, regular_user):
        with pytest.raises(ConflictError):
            auth_service.create_user(email="USER@ona.test", password=PASSWORD)

    def test_unknown_role(self, db_session):
        with pytest.raises(ValidationFailed):
            auth_service.create_user(email="x@ona.test", password=PASSWORD, role="owner")


# =============================================================================
# LOGIN API
# =============================================================================


class TestLogin:
    def test_login_returns_token(self, client, regular_user):
        response = login(client, "user@ona.test")
        assert response.status_code == 200
        data = response.get_json()["data"]
        assert len(data["token"]) == 64
        assert data["user"]["email"] == "user@ona.test"
        assert "passwordHash" not in data["user"]

    def test_login_by_username(self, client, regular_user):
        response = client.post("/api/auth/login", json={"username": "customer", "password": PASSWORD})
        assert response.status_code == 200

    def test_bad_password(self, client, regular_user):
        response = login(client, "user@ona.test", "Password999")
        assert response.status_code == 401
        body = response.get_json()
        assert body["success"] is False
        assert body["error"] == {"message": "Invalid credentials", "code": "UNAUTHORIZED"}

    def test_unknown_account_looks_the_same(self, client, db_session):
        response = login(client, "ghost@ona.test")
        assert response.status_code == 401
        assert response.get_json()["error"]["message"] == "Invalid credentials"

    def test_missing_fields(self, client, db_session):
        response = client.post("/api/auth/login", json={})
        assert response.status_code == 422
        assert set(response.get_json()["error"]["details"]) == {"email", "password"}

    def test_malformed_json(self, client, db_session):
        response = client.post("/api/auth/login", data="{", content_type="application/json")
        assert response.status_code == 400
        assert response.get_json()["error"]["code"] == "BAD_REQUEST"

    def test_lockout_after_failures(self, client, regular_user):
        for _ in range(3):
            assert login(client, "user@ona.test", "Password999").status_code == 401
        response = login(client, "user@ona.test")
        assert response.status_code == 429
        error = response.get_json()["error"]
        assert error["code"] == "RATE_LIMIT_EXCEEDED"
        assert error["details"]["retryAfterSeconds"] > 0

    def test_lockout_is_per_identifier(self, client, regular_user, admin_user):
        for _ in range(3):
            login(client, "user@ona.test", "Password999")
        assert login(client, "admin@ona.test").status_code == 200

    def test_inactive_user_cannot_log_in(self, regular_user, db_session):
        regular_user.is_active = False
        db_session.commit()
        with pytest.raises(UnauthorizedError):
            auth_service.authenticate("user@ona.test", PASSWORD)

    def test_service_lockout(self, regular_user):
        for _ in range(3):
            with pytest.raises(UnauthorizedError):
                auth_service.authenticate("user@ona.test", "wrong")
        with pytest.raises(RateLimitError):
            auth_service.authenticate("user@ona.test", PASSWORD)
        assert auth_service.lockout_status("user@ona.test")["locked"] is True


# =============================================================================
# SESSIONS
# =============================================================================


class TestSessions:
    def test_me(self, client, user_headers):
        response = client.get("/api/auth/me", headers=user_headers)
        assert response.status_code == 200
        data = response.get_json()["data"]
        assert data["user"]["username"] == "customer"
        assert data["subscription"]["tier"] == "free"

    def test_me_without_token(self, client, db_session):
        response = client.get("/api/auth/me")
        assert response.status_code == 401
        assert response.get_json()["error"]["code"] == "UNAUTHORIZED"

    def test_garbage_token(self, client, db_session):
        assert client.get("/api/auth/me", headers=auth_headers("nope")).status_code == 401

    def test_logout_revokes_token(self, client, regular_user):
        token = login(client, "user@ona.test").get_json()["data"]["token"]
        assert client.post("/api/auth/logout", headers=auth_headers(token)).status_code == 200
        assert client.get("/api/auth/me", headers=auth_headers(token)).status_code == 401

    def test_token_is_stored_hashed(self, regular_user, db_session):
        record, token = session_service.create_session(regular_user.id)
        assert record.token_hash == session_service.hash_token(token)
        assert db_session.query(AuthToken).filter_by(token_hash=token).first() is None

    def test_idle_session_is_revoked(self, regular_user, db_session):
        record, token = session_service.create_session(regular_user.id)
        record.last_used_at = utcnow() - timedelta(hours=3)
        db_session.commit()
        assert session_service.validate_session(token) is None
        assert record.revoked_at is not None

    def test_api_key_ignores_idle_time(self, regular_user, db_session):
        record, token = session_service.issue_api_key(regular_user.id)
        record.last_used_at = utcnow() - timedelta(days=3)
        db_session.commit()
        assert session_service.validate_session(token).user.id == regular_user.id

    def test_expired_session(self, regular_user, db_session):
        record, token = session_service.create_session(regular_user.id)
        record.expires_at = utcnow() - timedelta(minutes=1)
        db_session.commit()
        assert session_service.validate_session(token) is None

    def test_deactivated_user_loses_sessions(self, regular_user, db_session):
        _, token = session_service.create_session(regular_user.id)
        regular_user.is_active = False
        db_session.commit()
        assert session_service.validate_session(token) is None

    def test_revoke_all(self, regular_user):
        session_service.create_session(regular_user.id)
        session_service.create_session(regular_user.id)
        assert session_service.revoke_all_user_sessions(regular_user.id) == 2

    def test_cleanup(self, regular_user, db_session):
        record, _ = session_service.create_session(regular_user.id)
        record.revoked_at = utcnow()
        record.created_at = utcnow() - timedelta(days=40)
        db_session.commit()
        assert session_service.cleanup_expired_sessions() == 1
