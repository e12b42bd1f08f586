# campus_auth/infra/jwt/pyjwt_token_codec.py
from __future__ import annotations

import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt

from campus_auth.services._shared.errors import ExpiredCredential, MalformedCredential
from campus_auth.services._shared.ports import DecodedCredential, TokenCodec, TokenKind

_REQUIRED_CLAIMS = ["exp", "iat", "sub", "ver", "type", "jti"]


@dataclass(slots=True)
class JWTTokenCodec(TokenCodec):
    """
    HMAC-signed JWT codec backed by PyJWT.

    Access and refresh credentials are signed with different secrets, so a
    credential of one kind never verifies as the other even before the
    ``type`` claim is checked.

    .. note::
       Holds no Flask state; build it once with :meth:`from_config`.
    """

    access_secret: str
    refresh_secret: str
    algorithm: str = "HS256"
    issuer: str | None = None
    leeway: int = 0

    def __post_init__(self) -> None:
        if not self.access_secret or not self.refresh_secret:
            raise ValueError("Both access and refresh secrets are required.")

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> JWTTokenCodec:
        """Build a codec from a Flask config mapping."""
        return cls(
            access_secret=str(config["JWT_ACCESS_SECRET"]),
            refresh_secret=str(config["JWT_REFRESH_SECRET"]),
            algorithm=str(config.get("JWT_ALGORITHM") or "HS256"),
            issuer=config.get("JWT_ISSUER") or None,
            leeway=int(config.get("JWT_LEEWAY_SECONDS") or 0),
        )

    def _secret(self, kind: TokenKind) -> str:
        return self.access_secret if kind is TokenKind.ACCESS else self.refresh_secret

    # ------------------------------------------------------------------ #

    def encode(self, kind: TokenKind, subject_id: int, version: int, ttl: timedelta) -> str:
        kind = TokenKind(kind)
        if isinstance(version, bool) or not isinstance(version, int) or version < 0:
            raise ValueError("version must be a non-negative integer")
        if ttl <= timedelta(0):
            raise ValueError("ttl must be positive")

        now = datetime.now(UTC)
        payload: dict[str, Any] = {
            "sub": str(subject_id),
            "ver": version,
            "type": kind.value,
            "iat": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
            # Random id: two credentials minted in the same second still differ.
            "jti": uuid.uuid4().hex,
        }
        if self.issuer:
            payload["iss"] = self.issuer
        return jwt.encode(payload, self._secret(kind), algorithm=self.algorithm)

    def decode(self, kind: TokenKind, raw_token: str) -> DecodedCredential:
        kind = TokenKind(kind)
        if not raw_token or not isinstance(raw_token, str):
            raise MalformedCredential()

        required = list(_REQUIRED_CLAIMS)
        if self.issuer:
            required.append("iss")
        try:
            payload = jwt.decode(
                raw_token,
                self._secret(kind),
                algorithms=[self.algorithm],
                issuer=self.issuer,
                leeway=self.leeway,
                options={"require": required},
            )
        except jwt.ExpiredSignatureError as exc:
            raise ExpiredCredential() from exc
        except jwt.InvalidTokenError as exc:
            raise MalformedCredential() from exc

        if payload.get("type") != kind.value:
            raise MalformedCredential()
        return DecodedCredential(
            subject_id=_parse_subject(payload.get("sub")),
            version=_parse_version(payload.get("ver")),
            issued_at=datetime.fromtimestamp(payload["iat"], UTC),
            expires_at=datetime.fromtimestamp(payload["exp"], UTC),
            token_id=str(payload["jti"]),
        )


def _parse_subject(subject: Any) -> int:
    if not isinstance(subject, str) or not subject.isdigit():
        raise MalformedCredential()
    return int(subject)


def _parse_version(version: Any) -> int:
    if isinstance(version, bool) or not isinstance(version, int) or version < 0:
        raise MalformedCredential()
    return version
