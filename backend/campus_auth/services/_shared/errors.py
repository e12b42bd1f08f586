"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic** and should never import or depend
on Flask or HTTP. They serve as stable contracts between repositories, stores,
and application services.

The translation to HTTP responses (RFC 7807) is handled by
``campus_auth/core/errors.py`` via ``translate_service_error()``.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError


def violates(exc: IntegrityError, constraint_name: str) -> bool:
    """
    Check whether an IntegrityError originates from a specific constraint.

    Parameters
    ----------
    exc : IntegrityError
        The exception raised by SQLAlchemy during flush/commit.
    constraint_name : str
        The name of the database constraint to match.

    Returns
    -------
    bool
        True if the IntegrityError message mentions the given constraint.
    """
    message = str(exc.orig).lower() if exc.orig else ""
    return constraint_name.lower() in message


# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - They can be safely raised from repositories, stores or domain logic.
    """

    pass


# --------------------------------------------------------------------------- #
# Specific domain-level errors
# --------------------------------------------------------------------------- #


@dataclass(slots=True)
class NotFoundError(ServiceError):
    """
    Raised when an entity is not found in the repository.

    :param entity: Entity name (e.g., "User").
    :type entity: str
    :param key: Identifier or search key.
    :type key: str | int
    """

    entity: str
    key: str | int

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.entity} not found: {self.key}"


@dataclass(slots=True)
class ConflictError(ServiceError):
    """
    Raised when a unique constraint or business rule conflict occurs.

    :param entity: Entity name (e.g., "User").
    :type entity: str
    :param detail: Short human-readable explanation.
    :type detail: str
    """

    entity: str
    detail: str

    def __str__(self) -> str:  # pragma: no cover
        return f"Conflict on {self.entity}: {self.detail}"


class StoreUnavailableError(ServiceError):
    """Raised when the store of record cannot serve a request (connection loss, timeouts)."""

    def __init__(self, message: str = "Session store unavailable") -> None:
        super().__init__(message)


class InvalidVerificationCode(ServiceError):
    """Raised when an email verification code is unknown, expired or already used."""

    def __init__(self, message: str = "invalid or expired code") -> None:
        super().__init__(message)


class RotationConflictError(ServiceError):
    """
    Raised by a refresh store when a rotation lost the race for its parent record.

    The parent was already rotated or revoked by a concurrent transaction, so the
    successor was discarded. Services map this to :class:`InvalidCredential`.
    """

    def __init__(self, record_id: int | str) -> None:
        super().__init__(f"Refresh record {record_id} is no longer active")
        self.record_id = record_id


# --------------------------------------------------------------------------- #
# Authentication failures
# --------------------------------------------------------------------------- #


class AuthenticationError(ServiceError):
    """
    Base class for every credential rejection.

    All subclasses surface to callers as an authentication failure; none are
    retried by the engine. ``code`` is a stable machine identifier.
    """

    code = "unauthorized"
    default_message = "Unauthorized"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class MalformedCredential(AuthenticationError):
    """Bad signature, broken structure, wrong claim types or wrong token kind."""

    code = "invalid_token"
    default_message = "invalid token"


class ExpiredCredential(AuthenticationError):
    """The credential's time bound has passed; re-authenticate or refresh."""

    code = "token_expired"
    default_message = "token expired"


class InvalidCredential(AuthenticationError):
    """
    Refresh credential unusable: unknown, rotated, revoked, expired or stale.

    The reasons are deliberately indistinguishable to the caller.
    """

    code = "invalid_refresh"
    default_message = "Invalid refresh"


class RevokedCredential(AuthenticationError):
    """Access credential carries a session version that is no longer current."""

    code = "token_revoked"
    default_message = "token revoked"
