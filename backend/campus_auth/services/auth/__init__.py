"""
Session engine bound to the running Flask app.

Services are built once per app from its config and cached in
``app.extensions["campus_auth"]``. Nothing mutable lives there: every call
still reads records and session versions from the database.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from flask import Flask, current_app

from campus_auth.core.config import parse_ttl
from campus_auth.infra.jwt.pyjwt_token_codec import JWTTokenCodec
from campus_auth.infra.sqlalchemy import SQLAlchemyRefreshTokenStore
from campus_auth.services.auth.dto import (
    AuthTokenConfig,
    IdentityRef,
    SessionOut,
    TokenPairOut,
)
from campus_auth.services.auth.guard import AccessGuard
from campus_auth.services.auth.service import SessionAuthority

EXTENSION_KEY = "campus_auth"

__all__ = [
    "AccessGuard",
    "AuthEngine",
    "AuthTokenConfig",
    "IdentityRef",
    "SessionAuthority",
    "SessionOut",
    "TokenPairOut",
    "authenticate",
    "build_engine",
    "get_engine",
    "init_app",
    "issue_session",
]


@dataclass(frozen=True, slots=True)
class AuthEngine:
    """The wired session authority and access guard of one app."""

    authority: SessionAuthority
    guard: AccessGuard


def build_engine(config: Any) -> AuthEngine:
    """Wire codec, store and services from a Flask config mapping."""
    codec = JWTTokenCodec.from_config(config)
    defaults = AuthTokenConfig()
    token_cfg = AuthTokenConfig(
        access_ttl=parse_ttl(config.get("JWT_ACCESS_TTL"), defaults.access_ttl),
        refresh_ttl=parse_ttl(config.get("JWT_REFRESH_TTL"), defaults.refresh_ttl),
        revoke_chain_on_reuse=bool(config.get("AUTH_REVOKE_CHAIN_ON_REUSE", False)),
    )
    return AuthEngine(
        authority=SessionAuthority(
            codec=codec,
            refresh_store=SQLAlchemyRefreshTokenStore(),
            token_cfg=token_cfg,
        ),
        guard=AccessGuard(codec=codec),
    )


def init_app(app: Flask) -> None:
    """Build the engine for ``app``."""
    app.extensions[EXTENSION_KEY] = build_engine(app.config)


def get_engine() -> AuthEngine:
    """Return the engine of the current app, building it on first use."""
    engine = current_app.extensions.get(EXTENSION_KEY)
    if engine is None:
        engine = build_engine(current_app.config)
        current_app.extensions[EXTENSION_KEY] = engine
    return engine


def issue_session(identity: Any) -> TokenPairOut:
    """Issue a credential pair for ``identity`` (``User``, ``IdentityRef`` or id)."""
    return get_engine().authority.login(identity)


def authenticate(access_token: str) -> int:
    """Return the identity id of a valid access credential."""
    return get_engine().guard.validate(access_token)
