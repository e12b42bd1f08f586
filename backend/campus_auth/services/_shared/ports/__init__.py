"""
campus_auth.services._shared.ports
==================================

*Ports* (hexagonal interfaces) the session engine depends on.

Modules
-------
- :mod:`token_codec`:
    Defines :class:`~.TokenCodec`, the signed-credential encoder/verifier,
    plus :class:`~.TokenKind` and :class:`~.DecodedCredential`.

- :mod:`refresh_token_store`:
    Defines :class:`~.RefreshTokenStore` and :class:`~.RefreshRecordView`,
    the durable record of issued refresh credentials, and an in-memory
    implementation.

Concrete adapters (PyJWT, SQLAlchemy) live under ``campus_auth.infra``.
"""

from __future__ import annotations

from .refresh_token_store import (
    InMemoryRefreshTokenStore,
    RecordStatus,
    RefreshRecordView,
    RefreshTokenStore,
    hash_token,
)
from .token_codec import DecodedCredential, TokenCodec, TokenKind

__all__ = [
    "TokenCodec",
    "TokenKind",
    "DecodedCredential",
    "RefreshTokenStore",
    "RefreshRecordView",
    "RecordStatus",
    "InMemoryRefreshTokenStore",
    "hash_token",
]
