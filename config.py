"""Application configuration module."""

import os
from datetime import timedelta


def _get_bool(value, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value, default):
    if value is None:
        return default
    return tuple(item.strip() for item in value.split(",") if item.strip())


class Config:
    """Base configuration for the Flask application."""

    # Core
    ENV_NAME = os.getenv("APP_ENV", os.getenv("ENV", "development")).lower()
    IS_PRODUCTION = ENV_NAME == "production"
    PORT = int(os.getenv("PORT", "3000"))
    SECRET_KEY = os.getenv("SECRET_KEY", "change-me")
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///app.db")
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Bodies over this size are refused with 413 before any hook reads them.
    MAX_CONTENT_LENGTH = int(os.getenv("MAX_CONTENT_LENGTH", str(1024 * 1024)))

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "info")
    LOG_DIR = os.getenv("LOG_DIR")

    # Session tokens, carried in an HTTP-only cookie
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(
        seconds=int(os.getenv("JWT_EXPIRES_SECONDS", str(24 * 60 * 60)))
    )
    JWT_TOKEN_LOCATION = ["cookies"]
    JWT_ACCESS_COOKIE_NAME = "token"
    JWT_ACCESS_COOKIE_PATH = "/"
    JWT_COOKIE_SAMESITE = "Strict"
    JWT_COOKIE_SECURE = IS_PRODUCTION
    JWT_COOKIE_CSRF_PROTECT = False
    JWT_SESSION_COOKIE = False

    # CORS
    _raw_origins = os.getenv("ORIGINS", "*")
    if _raw_origins.strip() == "*":
        CORS_ORIGINS = "*"
    else:
        CORS_ORIGINS = [o.strip() for o in _raw_origins.split(",") if o.strip()]

    # Sign-in throttling (Flask-Limiter)
    SIGN_IN_RATE_LIMIT = os.getenv("SIGN_IN_RATE_LIMIT", "10 per minute")
    RATELIMIT_ENABLED = _get_bool(os.getenv("RATELIMIT_ENABLED"), default=True)
    RATELIMIT_HEADERS_ENABLED = True
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_KEY_PREFIX = os.getenv("RATELIMIT_KEY_PREFIX", "")

    # Request risk evaluation
    SECURITY_SERVICE_KEY = os.getenv("SECURITY_SERVICE_KEY", os.getenv("ARCJET_KEY"))
    SECURITY_ENABLED = _get_bool(os.getenv("SECURITY_ENABLED"), default=True)
    SECURITY_FAIL_OPEN = _get_bool(os.getenv("SECURITY_FAIL_OPEN"), default=True)
    SECURITY_SHIELD_MODE = os.getenv("SECURITY_SHIELD_MODE", "LIVE")
    SECURITY_BOT_MODE = os.getenv("SECURITY_BOT_MODE", "LIVE")
    SECURITY_RATE_LIMIT_MODE = os.getenv("SECURITY_RATE_LIMIT_MODE", "LIVE")
    SECURITY_STORAGE_URI = os.getenv("SECURITY_STORAGE_URI", RATELIMIT_STORAGE_URI)
    SECURITY_EXEMPT_PATHS = _get_list(os.getenv("SECURITY_EXEMPT_PATHS"), ("/health",))
    SECURITY_BASE_RATE_LIMIT = os.getenv("SECURITY_BASE_RATE_LIMIT", "5 per 2 seconds") or None

    ALLOW_TESTING_TOOLS = _get_bool(os.getenv("ALLOW_TESTING_TOOLS"))
    SECURITY_BOT_ALLOW = ["CATEGORY:SEARCH_ENGINE", "CATEGORY:PREVIEW"]
    if ALLOW_TESTING_TOOLS or not IS_PRODUCTION:
        SECURITY_BOT_ALLOW += ["PostmanRuntime/*", "insomnia/*", "curl/*", "Thunder Client/*"]

    RATE_LIMIT_POLICIES = {
        "admin": os.getenv("RATE_LIMIT_ADMIN", "20 per minute"),
        "user": os.getenv("RATE_LIMIT_USER", "10 per minute"),
        "guest": os.getenv("RATE_LIMIT_GUEST", "5 per minute"),
    }


def validate_runtime_config(config) -> None:
    """Refuse to run in production with the default signing secret."""

    if config.get("IS_PRODUCTION") and config.get("JWT_SECRET_KEY") == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
