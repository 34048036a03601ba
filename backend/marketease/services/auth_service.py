# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

Every action is attributable to a user. Passwords are hashed with bcrypt.

- Signup validates name, email, password length and confirmation.
- Signups whose email is listed in ADMIN_EMAILS get the ADMIN role.
- Login failures use one message for unknown email and wrong password.
- Every attempt is written to the audit trail.
"""

import re

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import User, ROLE_ADMIN, ROLE_USER, ROLES
from ..validation import FieldErrors, ValidationError
from .audit_service import AuditDetails, record_event
from marketease.time_utils import utcnow

PASSWORD_MIN_LENGTH = 6
NAME_MIN_LENGTH = 2

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class AuthError(Exception):
    """Raised when credentials are rejected."""
    pass


def hash_password(password: str) -> str:
    """Hash password using bcrypt with the configured cost factor."""
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    Returns True if password matches hash, False otherwise.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed stored hash
        return False


def _normalize_email(email) -> str:
    return email.strip().lower() if isinstance(email, str) else ""


def validate_signup(name, email, password, confirm_password) -> None:
    errors = FieldErrors()

    if not isinstance(name, str) or len(name.strip()) < NAME_MIN_LENGTH:
        errors.add("name", "Name must be at least 2 characters.")
    if not EMAIL_RE.match(_normalize_email(email)):
        errors.add("email", "Invalid email address.")
    if not isinstance(password, str) or len(password) < PASSWORD_MIN_LENGTH:
        errors.add("password", "Password must be at least 6 characters.")
    if password != confirm_password:
        errors.add("confirm_password", "Passwords do not match.")

    errors.raise_if_any()


def create_user(*, name: str | None, email: str, password: str, role: str = ROLE_USER) -> User:
    """Create a user directly (CLI bootstrap). Raises ValueError on duplicate email or bad role."""
    if role not in ROLES:
        raise ValueError(f"role must be one of {sorted(ROLES)}")

    email = _normalize_email(email)
    if db.session.query(User).filter_by(email=email).first():
        raise ValueError("Email already in use.")

    user = User(
        name=name.strip() if name else None,
        email=email,
        password_hash=hash_password(password),
        role=role,
        is_active=True,
    )
    db.session.add(user)
    db.session.commit()
    return user


def signup(
    name: str,
    email: str,
    password: str,
    confirm_password: str,
    *,
    ip_address: str | None = None,
) -> User:
    try:
        validate_signup(name, email, password, confirm_password)
    except ValidationError as exc:
        record_event(
            "USER_SIGNUP_FAILED",
            details=AuditDetails("auth", {"error": "Invalid fields", "fields": sorted(exc.field_errors)}),
            ip_address=ip_address,
        )
        raise

    email = _normalize_email(email)
    if db.session.query(User).filter_by(email=email).first():
        record_event(
            "USER_SIGNUP_FAILED",
            details=AuditDetails("auth", {"error": "Email already in use", "email": email}),
            ip_address=ip_address,
        )
        raise ValidationError("Email already in use.", {"email": ["Email already in use."]})

    admin_emails = current_app.config.get("ADMIN_EMAILS") or set()
    role = ROLE_ADMIN if email in admin_emails else ROLE_USER

    user = create_user(name=name, email=email, password=password, role=role)

    record_event(
        "USER_SIGNUP_SUCCESS",
        user_id=user.id,
        details=AuditDetails("auth", {"email": email, "role": role}),
        ip_address=ip_address,
    )
    return user


def authenticate(email: str, password: str, *, ip_address: str | None = None) -> User:
    """
    Check credentials. Raises AuthError with a deliberately vague message.
    """
    email = _normalize_email(email)
    user = db.session.query(User).filter_by(email=email).first() if email else None

    if not user or not isinstance(password, str) or not verify_password(password, user.password_hash):
        record_event(
            "USER_LOGIN_FAILED",
            user_id=user.id if user else None,
            details=AuditDetails("auth", {
                "error": "Incorrect password" if user else "User not found",
                "email": email,
            }),
            ip_address=ip_address,
        )
        raise AuthError("Invalid email or password.")

    if not user.is_active:
        record_event(
            "USER_LOGIN_FAILED",
            user_id=user.id,
            details=AuditDetails("auth", {"error": "Account deactivated", "email": email}),
            ip_address=ip_address,
        )
        raise AuthError("Invalid email or password.")

    user.last_login_at = utcnow()
    db.session.commit()

    record_event(
        "USER_LOGIN_SUCCESS",
        user_id=user.id,
        details=AuditDetails("auth", {"email": email}),
        ip_address=ip_address,
    )
    return user
