"""Application settings with environment-based configuration classes."""

from __future__ import annotations

import os
from collections.abc import Mapping
from datetime import timedelta
from typing import Any, Final

from dotenv import load_dotenv

# Public selector env var
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'

# Placeholder secrets that must never reach production
PLACEHOLDER_SECRETS: Final[frozenset[str]] = frozenset(
    {
        "CHANGE_ME",
        "CHANGE_ME_ACCESS",
        "CHANGE_ME_REFRESH",
        "CHANGE_ME_VERIFY",
        "CHANGE_ME_RESET",
    }
)

# Load .env for local runs (no-op when absent)
load_dotenv()


def env_bool(name: str, default: bool = False) -> bool:
    """Parse a boolean flag from an environment variable.

    Parameters
    ----------
    name: str
        Environment variable to inspect.
    default: bool, optional
        Value returned when the variable is unset. Defaults to ``False``.

    Returns
    -------
    bool
        ``True`` if the value resembles ``{"1", "true", "yes", "y", "on"}``
        ignoring case; otherwise ``False`` or ``default`` when missing.
    """
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "y", "on"}


def env_seconds(name: str, default: int) -> timedelta:
    """Read a duration expressed in seconds from the environment."""
    raw = os.getenv(name)
    return timedelta(seconds=int(raw) if raw else default)


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    API_BASE_PREFIX: str
        Root path for registering API blueprints.
    SECRET_KEY: str
        Flask secret. Not used for tokens.
    ACCESS_TOKEN_SECRET / JWT_SECRET_KEY: str
        Secret *A*, signs access tokens through ``flask-jwt-extended``.
    REFRESH_TOKEN_SECRET: str
        Secret *B*, signs refresh tokens. Must differ from secret *A* so that
        one verifier secret can never forge the other token class.
    EMAIL_VERIFY_TOKEN_SECRET / PASSWORD_RESET_TOKEN_SECRET: str
        Secrets for the mailed single-purpose links.
    JWT_ACCESS_TOKEN_EXPIRES: timedelta
        Access token lifetime (5 minutes).
    REFRESH_TOKEN_EXPIRES: timedelta
        Refresh token lifetime (15 minutes). The session cookie ``Max-Age`` is
        derived from it.
    REFRESH_REUSE_GRACE_SECONDS: int
        Window during which a just-rotated refresh token is rejected without
        revoking the account's sessions (10 seconds). ``0`` disables it.
    REFRESH_TOKEN_STORE: str
        ``"sql"`` (default) or ``"redis"``.
    REFRESH_COOKIE_*: misc
        Session cookie attributes.
    LOG_LEVEL: str
        Root logging verbosity.
    CORS_ORIGINS: str
        Comma-separated list of allowed origins for CORS.
    """

    API_BASE_PREFIX = "/api"

    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME")
    ACCESS_TOKEN_SECRET = os.getenv("ACCESS_TOKEN_SECRET", "CHANGE_ME_ACCESS")
    REFRESH_TOKEN_SECRET = os.getenv("REFRESH_TOKEN_SECRET", "CHANGE_ME_REFRESH")
    EMAIL_VERIFY_TOKEN_SECRET = os.getenv("EMAIL_VERIFY_TOKEN_SECRET", "CHANGE_ME_VERIFY")
    PASSWORD_RESET_TOKEN_SECRET = os.getenv("PASSWORD_RESET_TOKEN_SECRET", "CHANGE_ME_RESET")

    # flask-jwt-extended (access tokens only)
    JWT_SECRET_KEY = ACCESS_TOKEN_SECRET
    JWT_ALGORITHM = "HS256"
    JWT_TOKEN_LOCATION = ["headers"]
    JWT_ACCESS_TOKEN_EXPIRES = env_seconds("ACCESS_TOKEN_TTL_SECONDS", 5 * 60)

    # Refresh tokens and mailed links
    REFRESH_TOKEN_ALGORITHM = "HS256"
    REFRESH_TOKEN_EXPIRES = env_seconds("REFRESH_TOKEN_TTL_SECONDS", 15 * 60)
    REFRESH_REUSE_GRACE_SECONDS = int(os.getenv("REFRESH_REUSE_GRACE_SECONDS", "10"))
    REFRESH_TOKEN_STORE = os.getenv("REFRESH_TOKEN_STORE", "sql")
    EMAIL_VERIFY_TOKEN_EXPIRES = env_seconds("EMAIL_VERIFY_TTL_SECONDS", 24 * 60 * 60)
    PASSWORD_RESET_TOKEN_EXPIRES = env_seconds("PASSWORD_RESET_TTL_SECONDS", 10 * 60)

    # Session cookie
    REFRESH_COOKIE_NAME = os.getenv("REFRESH_COOKIE_NAME", "jwt")
    REFRESH_COOKIE_PATH = os.getenv("REFRESH_COOKIE_PATH", "/api/v1/auth")
    REFRESH_COOKIE_DOMAIN = os.getenv("REFRESH_COOKIE_DOMAIN") or None
    REFRESH_COOKIE_SECURE = env_bool("REFRESH_COOKIE_SECURE", True)
    REFRESH_COOKIE_SAMESITE = os.getenv("REFRESH_COOKIE_SAMESITE", "None")

    # Storage
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./dev.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    REDIS_URL = os.getenv("REDIS_URL") or None
    REDIS_SOCKET_TIMEOUT = float(os.getenv("REDIS_SOCKET_TIMEOUT", "2.0"))

    # Rate limiting (flask-limiter)
    AUTH_LOGIN_RATE_LIMIT = os.getenv("AUTH_LOGIN_RATE_LIMIT", "5 per minute")
    RATELIMIT_ENABLED = env_bool("RATELIMIT_ENABLED", True)
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")

    # Outbound mail
    MAIL_SENDER = os.getenv("MAIL_SENDER", "no-reply@frends.local")
    FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

    # Flask & JSON
    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False

    # Logging & CORS
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:5173")

    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    """Configuration tailored for local development.

    Notes
    -----
    Local servers usually run over plain HTTP, so the ``Secure`` cookie flag
    follows ``REFRESH_COOKIE_SECURE`` (default ``False`` here).
    """

    DEBUG = env_bool("FLASK_DEBUG", True)
    REFRESH_COOKIE_SECURE = env_bool("REFRESH_COOKIE_SECURE", False)
    CORS_MAX_AGE = 600


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Uses an in-memory SQLite database unless ``TEST_DATABASE_URL`` is set.
    - Disables login rate limiting.
    - Uses fixed, distinct secrets so tokens are reproducible.
    """

    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    ACCESS_TOKEN_SECRET = "test-access-secret-0123456789abcdef"
    REFRESH_TOKEN_SECRET = "test-refresh-secret-0123456789abcdef"
    EMAIL_VERIFY_TOKEN_SECRET = "test-verify-secret-0123456789abcdef"
    PASSWORD_RESET_TOKEN_SECRET = "test-reset-secret-0123456789abcdef"
    JWT_SECRET_KEY = ACCESS_TOKEN_SECRET
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(minutes=5)
    REFRESH_TOKEN_EXPIRES = timedelta(minutes=15)
    REFRESH_TOKEN_STORE = "sql"
    REDIS_URL = None
    RATELIMIT_ENABLED = False
    USE_PROXYFIX = False
    PROPAGATE_EXCEPTIONS = True


class ProductionConfig(BaseConfig):
    """Configuration defaults for production deployments."""

    DEBUG = False
    SQLALCHEMY_ECHO = False
    PROPAGATE_EXCEPTIONS = False


CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Return the configuration class inferred from ``APP_ENV``.

    Falls back to :class:`DevelopmentConfig` when ``APP_ENV`` is unset or
    unknown.
    """
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)


def validate_secrets(config: Mapping[str, Any]) -> None:
    """Refuse unsafe token secrets outside debug/testing.

    :param config: Loaded Flask configuration.
    :raises RuntimeError: When a placeholder secret is configured, or when the
        access and refresh secrets are identical.
    """
    if config.get("ACCESS_TOKEN_SECRET") == config.get("REFRESH_TOKEN_SECRET"):
        raise RuntimeError("ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must differ.")
    if config.get("DEBUG") or config.get("TESTING"):
        return
    keys = (
        "SECRET_KEY",
        "ACCESS_TOKEN_SECRET",
        "REFRESH_TOKEN_SECRET",
        "EMAIL_VERIFY_TOKEN_SECRET",
        "PASSWORD_RESET_TOKEN_SECRET",
    )
    unsafe = [key for key in keys if config.get(key) in PLACEHOLDER_SECRETS]
    if unsafe:
        raise RuntimeError(f"Refusing to start with placeholder secrets: {', '.join(unsafe)}")
