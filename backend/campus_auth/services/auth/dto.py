# campus_auth/services/auth/dto.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class IdentityRef:
    """
    Reference to an identity by id, for callers that hold no ``User`` row.

    :param id: User identifier.
    :type id: int
    """

    id: int


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class TokenPairOut:
    """
    Output DTO with access and refresh tokens.

    :param access_token: Encoded access JWT.
    :type access_token: str
    :param refresh_token: Encoded refresh JWT.
    :type refresh_token: str
    """

    access_token: str
    refresh_token: str


@dataclass(frozen=True, slots=True)
class SessionOut:
    """
    One active login session (refresh record), without its hash.

    :param id: Refresh record identifier.
    :param created_at: When the record was issued.
    :param expires_at: When the refresh credential stops being accepted.
    """

    id: int
    created_at: datetime | None
    expires_at: datetime


# ------------------------------ Config DTO -------------------------------- #


@dataclass(frozen=True, slots=True)
class AuthTokenConfig:
    """
    Token emission configuration.

    :param access_ttl: Access token lifetime.
    :type access_ttl: timedelta
    :param refresh_ttl: Refresh token lifetime.
    :type refresh_ttl: timedelta
    :param revoke_chain_on_reuse: Revoke every descendant of a rotated
        refresh record when it is presented again.
    :type revoke_chain_on_reuse: bool
    """

    access_ttl: timedelta = timedelta(minutes=15)
    refresh_ttl: timedelta = timedelta(days=14)
    revoke_chain_on_reuse: bool = False
