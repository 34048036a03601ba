# backend/marketease/config.py
from __future__ import annotations
import os


def _csv(value: str) -> set[str]:
    return {part.strip().lower() for part in value.split(",") if part.strip()}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/marketease.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///marketease.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Fernet key for audit log details. Unset -> details stored as plain JSON.
    AUDIT_ENCRYPTION_KEY = os.environ.get("AUDIT_ENCRYPTION_KEY")

    # Signups with these emails receive the ADMIN role
    ADMIN_EMAILS = _csv(os.environ.get("ADMIN_EMAILS", "admin@marketease.com"))

    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))
    SESSION_TTL_HOURS = int(os.environ.get("SESSION_TTL_HOURS", "24"))

    LOW_STOCK_THRESHOLD = int(os.environ.get("LOW_STOCK_THRESHOLD", "50"))

    EXCHANGE_RATE_API_URL = os.environ.get(
        "EXCHANGE_RATE_API_URL",
        "https://economia.awesomeapi.com.br/json/last/",
    )
    EXCHANGE_RATE_CACHE_SECONDS = int(os.environ.get("EXCHANGE_RATE_CACHE_SECONDS", "3600"))
    EXCHANGE_RATE_TIMEOUT_SECONDS = float(os.environ.get("EXCHANGE_RATE_TIMEOUT_SECONDS", "5"))

    SALE_RETRY_ATTEMPTS = int(os.environ.get("SALE_RETRY_ATTEMPTS", "3"))
