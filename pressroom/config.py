"""
Centralized configuration for all environments.

Select a config by setting:
  APP_CONFIG=pressroom.config.DevConfig      # local dev
  APP_CONFIG=pressroom.config.ProdConfig     # production (default if unset)
  APP_CONFIG=pressroom.config.TestConfig     # pytest

Notes:
- SECRET_KEY is read from FLASK_SECRET_KEY
- Rate limiting uses Flask-Limiter v3 keys (RATELIMIT_*).
"""

from __future__ import annotations
import os
from datetime import timedelta


def _csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class BaseConfig:
    # Secrets & basics
    SECRET_KEY = os.getenv("FLASK_SECRET_KEY", "")
    DEBUG = False
    TESTING = False

    # Session configuration
    PERMANENT_SESSION_LIFETIME = timedelta(days=30)
    SESSION_COOKIE_SECURE = True  # Only send cookies over HTTPS (overridden in dev)
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"

    # Supabase (Database + Auth)
    SUPABASE_URL = os.getenv("SUPABASE_URL", "")
    SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY", "")
    SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")

    # Comment moderation
    COMMENT_MIN_LENGTH = int(os.getenv("COMMENT_MIN_LENGTH", "1"))
    COMMENT_MAX_LENGTH = int(os.getenv("COMMENT_MAX_LENGTH", "1000"))
    MODERATION_EXTRA_BLOCKED_WORDS = _csv(os.getenv("MODERATION_EXTRA_BLOCKED_WORDS", ""))

    # Reviewer assistant
    LANGUAGE_TOOL_ENDPOINT = os.getenv("LANGUAGE_TOOL_ENDPOINT", "https://api.languagetool.org/v2/check")

    # Duplicate draft cleanup (flask cleanup-duplicate-drafts)
    CLEANUP_WINDOW_MINUTES = float(os.getenv("CLEANUP_WINDOW_MINUTES", "120"))
    CLEANUP_EARLY_TOLERANCE_MINUTES = float(os.getenv("CLEANUP_EARLY_TOLERANCE_MINUTES", "1"))

    # Flask-Limiter v3
    RATELIMIT_ENABLED = os.getenv("RATELIMIT_ENABLED", "true").lower() == "true"
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_DEFAULT = os.getenv("RATELIMIT_DEFAULT", "40 per minute; 2000 per day")
    RATELIMIT_COMMENTS = os.getenv("RATELIMIT_COMMENTS", "10 per minute; 200 per day")

    # Misc
    PREFERRED_URL_SCHEME = os.getenv("PREFERRED_URL_SCHEME", "https")


class ProdConfig(BaseConfig):
    """Production settings (selected by default if APP_CONFIG is unset)."""
    pass


class DevConfig(BaseConfig):
    """Developer-friendly settings."""
    ENV = "development"
    DEBUG = True
    PREFERRED_URL_SCHEME = "http"
    # Allow cookies over HTTP in dev
    SESSION_COOKIE_SECURE = False
    RATELIMIT_COMMENTS = "100 per minute"


class TestConfig(BaseConfig):
    """CI/pytest settings."""
    TESTING = True
    DEBUG = True
    # Usually disable the limiter in tests to avoid flakiness
    RATELIMIT_ENABLED = False
    WTF_CSRF_ENABLED = False
    # Test client requests are plain HTTP
    PREFERRED_URL_SCHEME = "http"
    SESSION_COOKIE_SECURE = False
