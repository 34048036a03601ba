"""
Authentication and session token tests.
"""

from datetime import timedelta

import pytest

from marketease.extensions import db
from marketease.models import AuditLog, ROLE_ADMIN, ROLE_USER, SessionToken
from marketease.services import auth_service, session_service
from marketease.services.auth_service import AuthError
from marketease.validation import ValidationError


def _signup(name="Casey", email="casey@example.com", password="secret1", confirm=None):
    return auth_service.signup(name, email, password, password if confirm is None else confirm)


class TestSignup:

    def test_creates_user_with_hashed_password(self, db_session):
        user = _signup()
        assert user.role == ROLE_USER
        assert user.password_hash != "secret1"
        assert auth_service.verify_password("secret1", user.password_hash)

    def test_email_normalized(self, db_session):
        user = _signup(email="  Casey@Example.COM ")
        assert user.email == "casey@example.com"

    def test_admin_email_gets_admin_role(self, db_session):
        user = _signup(email="admin@marketease.com")
        assert user.role == ROLE_ADMIN

    @pytest.mark.parametrize(
        "kwargs,field",
        [
            ({"name": "C"}, "name"),
            ({"email": "not-an-email"}, "email"),
            ({"password": "12345"}, "password"),
            ({"confirm": "different"}, "confirm_password"),
        ],
    )
    def test_invalid_signup(self, db_session, kwargs, field):
        with pytest.raises(ValidationError) as exc:
            _signup(**kwargs)
        assert field in exc.value.field_errors
        assert db_session.query(AuditLog).filter_by(action="USER_SIGNUP_FAILED").count() == 1

    def test_duplicate_email(self, db_session):
        _signup()
        with pytest.raises(ValidationError) as exc:
            _signup(email="CASEY@example.com")
        assert "email" in exc.value.field_errors


class TestAuthenticate:

    def test_success_records_login(self, db_session, cashier):
        user = auth_service.authenticate("cashier@marketease.com", "secret123")
        assert user.id == cashier.id
        assert user.last_login_at is not None
        assert db_session.query(AuditLog).filter_by(action="USER_LOGIN_SUCCESS").count() == 1

    @pytest.mark.parametrize(
        "email,password",
        [
            ("cashier@marketease.com", "wrong-password"),
            ("nobody@marketease.com", "secret123"),
        ],
    )
    def test_failures_share_one_message(self, db_session, cashier, email, password):
        with pytest.raises(AuthError) as exc:
            auth_service.authenticate(email, password)
        assert str(exc.value) == "Invalid email or password."
        assert db_session.query(AuditLog).filter_by(action="USER_LOGIN_FAILED").count() == 1

    def test_deactivated_user_rejected(self, db_session, cashier):
        cashier.is_active = False
        db_session.commit()
        with pytest.raises(AuthError):
            auth_service.authenticate("cashier@marketease.com", "secret123")


class TestSessions:

    def test_token_is_hashed_at_rest(self, db_session, cashier):
        session, token = session_service.create_session(cashier.id)
        assert len(token) == 64
        assert session.token_hash == session_service.hash_token(token)
        assert db_session.query(SessionToken).filter_by(token_hash=token).count() == 0

    def test_validate_returns_context(self, db_session, cashier):
        _, token = session_service.create_session(cashier.id)
        context = session_service.validate_session(token)
        assert context.user_id == cashier.id
        assert context.is_admin is False

    def test_unknown_token(self, db_session):
        assert session_service.validate_session("nope") is None
        assert session_service.validate_session("") is None

    def test_revoked_token(self, db_session, cashier):
        _, token = session_service.create_session(cashier.id)
        assert session_service.revoke_session(token) is True
        assert session_service.validate_session(token) is None
        assert session_service.revoke_session(token) is False

    def test_expired_token(self, db_session, cashier):
        session, token = session_service.create_session(cashier.id)
        session.expires_at = session.created_at - timedelta(seconds=1)
        db.session.commit()
        assert session_service.validate_session(token) is None

    def test_deactivated_user_token(self, db_session, cashier):
        _, token = session_service.create_session(cashier.id)
        cashier.is_active = False
        db_session.commit()
        assert session_service.validate_session(token) is None

    def test_unknown_user(self, db_session):
        with pytest.raises(ValueError):
            session_service.create_session("missing-id")
