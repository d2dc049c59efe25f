"""Configuration classes for the Flask application."""

from __future__ import annotations

import os
import secrets


def _load_secret() -> str:
    """Return the Flask secret key for the current process."""

    secret = os.environ.get("FORMULAFORGE_SECRET")
    if secret:
        return secret
    # Generate an unpredictable per-process key for local development.
    return secrets.token_urlsafe(64)


class BaseConfig:
    SECRET_KEY = _load_secret()
    MAX_CONTENT_LENGTH = 2 * 1024 * 1024  # 2 MiB, calculator documents are small
    SESSION_COOKIE_SECURE = False
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Strict"
    JSON_SORT_KEYS = False
    LOG_LEVEL = os.environ.get("FORMULAFORGE_LOG_LEVEL", "INFO")
    DATA_STORE = {"root": "data", "env": "FORMULAFORGE_STORE"}
    RESPONSE_HEADERS = {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "Content-Security-Policy": (
            "default-src 'self'; "
            "style-src 'self' 'unsafe-inline'; "
            "script-src 'self'; "
            "img-src 'self' data:; "
            "object-src 'none'; "
            "frame-ancestors 'none'"
        ),
        "Referrer-Policy": "no-referrer",
    }


class TestingConfig(BaseConfig):
    TESTING = True
    LOG_LEVEL = "WARNING"
    # Tests never touch the repository's data directory.
    DATA_STORE = {"root": None, "env": None}


__all__ = ["BaseConfig", "TestingConfig"]
