# campus_auth/services/_shared/base.py
from __future__ import annotations

from dataclasses import dataclass

from campus_auth.core import errors as api_errors
from campus_auth.services._shared.errors import (
    AuthenticationError,
    ConflictError,
    InvalidVerificationCode,
    NotFoundError,
    ServiceError,
    StoreUnavailableError,
)
from campus_auth.uow.sqlalchemy_uow import (
    SQLAlchemyReadOnlyUnitOfWork,
    SQLAlchemyUnitOfWork,
)


@dataclass(slots=True)
class ServiceContext:
    """
    Carry cross-cutting request-scoped data (auth, request ids, etc.).

    :param actor_id: Authenticated identity, when known.
    :param request_id: Correlation id for logging/tracing.
    """

    actor_id: int | None = None
    request_id: str | None = None


def translate_service_error(exc: Exception) -> Exception:
    """
    Map domain/service-level errors to API-level (HTTP) errors.

    :param exc: Exception raised within the service.
    :returns: Translated exception ready to be re-raised.
    """
    if isinstance(exc, AuthenticationError):
        # → 401, code tells expired apart from revoked/malformed
        return api_errors.Unauthorized(str(exc), code=exc.code)

    if isinstance(exc, NotFoundError):
        return api_errors.NotFound(str(exc))

    if isinstance(exc, ConflictError):
        return api_errors.Conflict(str(exc))

    if isinstance(exc, InvalidVerificationCode):
        return api_errors.APIError(
            message=str(exc), status_code=400, code="invalid_verification_code"
        )

    if isinstance(exc, StoreUnavailableError):
        return api_errors.ServiceUnavailable(str(exc))

    # Any other ServiceError subclass → 400 Bad Request
    if isinstance(exc, ServiceError):
        return api_errors.APIError(message=str(exc), status_code=400, code="bad_request")

    # Fallback: return untouched (will bubble up to Flask handler)
    return exc


class BaseService:
    """
    Base class for application services.

    Responsibilities
    ----------------
    * Provide helpers to run read-only and read-write units of work.
    * Centralize error translation.
    * Keep services thin, orchestration-only, no web/ORM leakage.

    Notes
    -----
    - Services must never touch the global session; always use a Unit of Work.
    """

    DEFAULT_READ_ISOLATION = "READ COMMITTED"

    def __init__(self, *, ctx: ServiceContext | None = None) -> None:
        """
        Initialize the base service.

        :param ctx: Optional request-scoped context (auth, tracing).
        """
        self.ctx = ctx or ServiceContext()

    # -------------------------- UoW helpers ---------------------------------

    def rw_uow(self) -> SQLAlchemyUnitOfWork:
        """Create a read-write Unit of Work."""
        return SQLAlchemyUnitOfWork()

    def ro_uow(
        self, *, isolation: str | None = None, enforce_db_readonly: bool = True
    ) -> SQLAlchemyReadOnlyUnitOfWork:
        """
        Create a read-only Unit of Work.

        :param isolation: Transaction isolation level (e.g. "READ COMMITTED").
        :param enforce_db_readonly: Apply ``SET TRANSACTION READ ONLY`` when supported.
        """
        return SQLAlchemyReadOnlyUnitOfWork(
            isolation_level=isolation or self.DEFAULT_READ_ISOLATION,
            enforce_db_readonly=enforce_db_readonly,
        )

    # -------------------------- Error handling ------------------------------

    def translate_exceptions(self, exc: Exception) -> Exception:
        """Instance shortcut for :func:`translate_service_error`."""
        return translate_service_error(exc)
