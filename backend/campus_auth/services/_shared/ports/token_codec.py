from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Protocol


class TokenKind(str, Enum):
    """Credential kinds. Each kind is signed with its own secret."""

    ACCESS = "access"
    REFRESH = "refresh"


@dataclass(frozen=True, slots=True)
class DecodedCredential:
    """
    Verified claims of a credential.

    :ivar subject_id: Identity the credential was issued to.
    :ivar version: Identity session version at issuance.
    :ivar issued_at: ``iat`` claim (UTC).
    :ivar expires_at: ``exp`` claim (UTC).
    :ivar token_id: Random ``jti`` making every raw credential unique.
    """

    subject_id: int
    version: int
    issued_at: datetime
    expires_at: datetime
    token_id: str


class TokenCodec(Protocol):
    """Port for encoding and verifying signed, time-bounded credentials."""

    def encode(self, kind: TokenKind, subject_id: int, version: int, ttl: timedelta) -> str:
        """
        Produce a signed credential expiring ``ttl`` from now.

        :raises ValueError: If ``version`` is negative or ``ttl`` is not positive.
        """
        ...

    def decode(self, kind: TokenKind, raw_token: str) -> DecodedCredential:
        """
        Verify signature, kind tag and expiry.

        :raises ExpiredCredential: Past ``exp``.
        :raises MalformedCredential: Bad signature/structure or kind mismatch.
        """
        ...
