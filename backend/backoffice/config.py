# backend/backoffice/config.py
from __future__ import annotations
import os


def _csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/backoffice.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///backoffice.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Price multiplier applied to a base store product when a promotion is declared
    DISCOUNT_QUOTIENT = float(os.environ.get("DISCOUNT_QUOTIENT", "0.8"))

    # Session tokens are TOKEN_BYTE_LENGTH random bytes, hex-encoded
    TOKEN_BYTE_LENGTH = int(os.environ.get("TOKEN_BYTE_LENGTH", "32"))
    SESSION_TIMEOUT_MINUTES = int(os.environ.get("SESSION_TIMEOUT_MINUTES", "120"))

    HASH_SALT_ROUNDS = int(os.environ.get("HASH_SALT_ROUNDS", "12"))

    CORS_ORIGINS = _csv(os.environ.get(
        "CORS_ORIGINS",
        "http://localhost:5173,http://127.0.0.1:5173,http://localhost:4173,http://127.0.0.1:4173",
    ))
