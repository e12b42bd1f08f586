"""SQLAlchemy adapters for service-layer ports."""

from .refresh_token_store import SQLAlchemyRefreshTokenStore

__all__ = ["SQLAlchemyRefreshTokenStore"]
