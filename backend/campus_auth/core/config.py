"""Application settings with environment-based simple classes."""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from datetime import timedelta
from typing import Final

from dotenv import load_dotenv

# Public selector env var (keep neutral name to avoid collisions)
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'

PLACEHOLDER_ACCESS_SECRET: Final[str] = "CHANGE_ME_ACCESS"
PLACEHOLDER_REFRESH_SECRET: Final[str] = "CHANGE_ME_REFRESH"

_TTL_RE = re.compile(r"^(\d+)([smhd])$", re.IGNORECASE)
_TTL_UNITS: Final[Mapping[str, str]] = {
    "s": "seconds",
    "m": "minutes",
    "h": "hours",
    "d": "days",
}

# Load .env in development (no-op when the file is missing)
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


def parse_ttl(raw: str | timedelta | None, default: timedelta) -> timedelta:
    """Parse a compact lifetime such as ``"15m"`` or ``"14d"``.

    Parameters
    ----------
    raw: str | timedelta | None
        Value read from configuration. ``timedelta`` instances pass through.
    default: timedelta
        Lifetime returned when ``raw`` is missing or malformed.

    Returns
    -------
    timedelta
        Parsed, strictly positive lifetime.
    """
    if isinstance(raw, timedelta):
        return raw if raw > timedelta(0) else default
    if raw is None:
        return default
    match = _TTL_RE.match(str(raw).strip())
    if not match:
        return default
    amount = int(match.group(1))
    if amount <= 0:
        return default
    return timedelta(**{_TTL_UNITS[match.group(2).lower()]: amount})


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    API_BASE_PREFIX: str
        Root path for registering API blueprints.
    SECRET_KEY: str
        Flask secret used for session signing.
    JWT_ACCESS_SECRET: str
        HMAC key for access credentials.
    JWT_REFRESH_SECRET: str
        HMAC key for refresh credentials. Must differ from the access key so a
        credential of one kind never verifies as the other.
    JWT_ALGORITHM: str
        Signing algorithm handed to PyJWT.
    JWT_ISSUER: str | None
        Optional ``iss`` claim stamped on and required from every credential.
    JWT_ACCESS_TTL / JWT_REFRESH_TTL: str
        Lifetimes in ``<n>[smhd]`` notation.
    AUTH_REVOKE_CHAIN_ON_REUSE: bool
        Revoke the whole rotation chain when a rotated refresh token is
        presented again.
    AUTH_LOGIN_RATE_LIMIT: str
        Flask-Limiter expression applied to the login and resend-code routes.
    AUTH_EXPOSE_VERIFICATION_CODE: bool
        Echo freshly issued email verification codes in the API response
        (local development and tests; production delivers them by mail).
    RATELIMIT_STORAGE_URI: str
        Backend for rate-limit counters.
    SQLALCHEMY_DATABASE_URI: str
        Database connection string consumed by SQLAlchemy.
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).
    CORS_ORIGINS: str
        Comma-separated list of allowed origins for CORS.

    Notes
    -----
    Values are primarily sourced from environment variables, enabling
    configuration without code changes.
    """

    API_BASE_PREFIX = "/api"

    # Secrets / security
    SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME")
    JWT_ACCESS_SECRET = os.getenv("JWT_ACCESS_SECRET", PLACEHOLDER_ACCESS_SECRET)
    JWT_REFRESH_SECRET = os.getenv("JWT_REFRESH_SECRET", PLACEHOLDER_REFRESH_SECRET)
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_ISSUER = os.getenv("JWT_ISSUER") or None
    JWT_ACCESS_TTL = os.getenv("JWT_ACCESS_TTL", "15m")
    JWT_REFRESH_TTL = os.getenv("JWT_REFRESH_TTL", "14d")
    JWT_LEEWAY_SECONDS = int(os.getenv("JWT_LEEWAY_SECONDS", "0"))
    AUTH_REVOKE_CHAIN_ON_REUSE = env_bool("AUTH_REVOKE_CHAIN_ON_REUSE", False)
    AUTH_EXPOSE_VERIFICATION_CODE = env_bool("AUTH_EXPOSE_VERIFICATION_CODE", False)

    # Rate limiting
    AUTH_LOGIN_RATE_LIMIT = os.getenv("AUTH_LOGIN_RATE_LIMIT", "5 per minute")
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_ENABLED = env_bool("RATELIMIT_ENABLED", True)

    # DB
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./dev.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)

    # Flask & JSON
    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False

    # Logging & CORS
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:5173")
    PROXY_FIX_HOPS = int(os.getenv("PROXY_FIX_HOPS", "0"))

    # Flask built-ins
    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    """Configuration tailored for local development."""

    DEBUG = env_bool("FLASK_DEBUG", True)
    AUTH_EXPOSE_VERIFICATION_CODE = env_bool("AUTH_EXPOSE_VERIFICATION_CODE", True)
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    CORS_MAX_AGE = 600  # 10 minutes


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Forces ``TESTING`` mode and disables debug logs.
    - Uses an in-memory SQLite database unless ``TEST_DATABASE_URL`` is set.
    - Disables rate limiting so suites can log in repeatedly.
    """

    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    PROPAGATE_EXCEPTIONS = True
    RATELIMIT_ENABLED = False
    AUTH_EXPOSE_VERIFICATION_CODE = True


class ProductionConfig(BaseConfig):
    """Configuration defaults for production deployments."""

    DEBUG = False
    SQLALCHEMY_ECHO = False
    PROPAGATE_EXCEPTIONS = False


# Map names -> classes (simple, explicit)
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


def validate_secrets(config: Mapping[str, object]) -> None:
    """Refuse unsafe signing keys outside development and testing.

    :param config: Loaded Flask configuration.
    :raises RuntimeError: When production runs with placeholder or shared keys.
    """
    if config.get("DEBUG") or config.get("TESTING"):
        return
    access = config.get("JWT_ACCESS_SECRET")
    refresh = config.get("JWT_REFRESH_SECRET")
    if not access or not refresh:
        raise RuntimeError("JWT_ACCESS_SECRET and JWT_REFRESH_SECRET must be set.")
    if access in (PLACEHOLDER_ACCESS_SECRET, PLACEHOLDER_REFRESH_SECRET) or refresh in (
        PLACEHOLDER_ACCESS_SECRET,
        PLACEHOLDER_REFRESH_SECRET,
    ):
        raise RuntimeError("Placeholder JWT secrets are not allowed in production.")
    if access == refresh:
        raise RuntimeError("Access and refresh credentials must use different secrets.")
