"""
SQLAlchemy implementation of UnitOfWork for Flask.
"""

from __future__ import annotations

import logging
from contextlib import suppress

from sqlalchemy import event, text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import InvalidRequestError, SQLAlchemyError
from sqlalchemy.orm import Session, scoped_session

from campus_auth.core.extensions import db
from campus_auth.repositories import (
    EmailVerificationRepository,
    RefreshTokenRepository,
    UserRepository,
)
from campus_auth.uow.base import UnitOfWork

log = logging.getLogger(__name__)


class SQLAlchemyRepositoryContainer:
    """Provide repository instances that share a SQLAlchemy session."""

    def __init__(self, *, session: Session) -> None:
        self.session = session
        self.users = UserRepository(session=self.session)
        self.refresh_tokens = RefreshTokenRepository(session=self.session)
        self.email_verifications = EmailVerificationRepository(session=self.session)


class SQLAlchemyUnitOfWork(SQLAlchemyRepositoryContainer, UnitOfWork):
    """
    SQLAlchemy-backed UoW using the Flask-scoped session.

    The same session is shared across all repositories for a consistent
    transaction: everything staged inside the ``with`` block commits together
    or not at all.
    """

    def __init__(self) -> None:
        super().__init__(session=db.session)

    def __enter__(self) -> SQLAlchemyUnitOfWork:
        # No-op: the session is lazily started on the first statement.
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            try:
                self.commit()
            except Exception:
                self.rollback()
                raise
        else:
            self.rollback()

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()


class SQLAlchemyReadOnlyUnitOfWork(SQLAlchemyRepositoryContainer, UnitOfWork):
    """
    Read-only Unit of Work backed by the Flask-scoped SQLAlchemy session.

    This UoW:
    - Optionally sets the transaction isolation level (PostgreSQL/MySQL only).
    - Applies database-level READ ONLY when enabled (``SET TRANSACTION READ ONLY``).
    - Installs portable write-guards and always rolls back on exit.
    - Disallows ``commit()``.

    Notes
    -----
    *PostgreSQL*: fully supported (read-only + isolation).
    *SQLite*: directives are skipped; write-guards still prevent writes.
    """

    _WRITE_PREFIXES = (
        "insert",
        "update",
        "delete",
        "merge",
        "alter",
        "drop",
        "truncate",
        "create",
        "replace",
        "grant",
        "revoke",
    )
    _ISOLATION_LEVELS = ("READ COMMITTED", "REPEATABLE READ", "SERIALIZABLE", "READ UNCOMMITTED")
    _DIRECTIVE_DIALECTS = ("postgresql", "mysql", "mariadb")

    def __init__(
        self,
        *,
        isolation_level: str | None = "READ COMMITTED",
        enforce_db_readonly: bool = True,
    ) -> None:
        super().__init__(session=db.session)
        self.isolation_level = isolation_level
        self.enforce_db_readonly = enforce_db_readonly

        self._conn: Connection | None = None
        self._owns_transaction = False
        self._listeners_installed = False

    # ----------------------------- Context Manager -----------------------------

    def __enter__(self) -> SQLAlchemyReadOnlyUnitOfWork:
        """Enter a transactional scope that enforces read protections when possible.

        When a transaction is already running on the session (autobegin, outer
        fixture) the scope attaches to it instead of failing; guards still
        intercept writes but ``SET TRANSACTION`` directives are skipped.
        """
        self._owns_transaction = False
        try:
            self.session.begin()
            self._owns_transaction = True
        except InvalidRequestError:
            pass

        self._conn = self.session.connection()
        self._install_listeners()

        if self._owns_transaction and self._conn.dialect.name in self._DIRECTIVE_DIALECTS:
            self._apply_directives()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        """Always remove guards. Roll back only if we own the transaction."""
        try:
            if self._owns_transaction:
                with suppress(SQLAlchemyError):
                    self.session.rollback()
                self._owns_transaction = False
        finally:
            self._remove_listeners()
            self._conn = None

    # ----------------------------- Public API ---------------------------------

    def commit(self) -> None:
        """
        Disallow commit in read-only Unit of Work.

        :raises RuntimeError: always, to prevent accidental writes.
        """
        raise RuntimeError("Read-only UnitOfWork does not allow commit().")

    def rollback(self) -> None:
        self.session.rollback()

    # ----------------------------- Guards & Listeners --------------------------

    def _apply_directives(self) -> None:
        try:
            if self.isolation_level:
                iso = self.isolation_level.upper().strip()
                if iso not in self._ISOLATION_LEVELS:
                    raise ValueError(f"Unknown isolation level: {iso!r}")
                self.session.execute(text(f"SET TRANSACTION ISOLATION LEVEL {iso}"))
            if self.enforce_db_readonly:
                self.session.execute(text("SET TRANSACTION READ ONLY"))
        except SQLAlchemyError as exc:
            log.warning("SET TRANSACTION directives failed (%s). Falling back to guards-only.", exc)

    def _flush_target(self) -> Session:
        """Return the concrete Session so guards never leak to other threads."""
        if isinstance(self.session, scoped_session):
            return self.session()
        return self.session

    def _install_listeners(self) -> None:
        """Install ORM/db-level listeners to prevent any write attempt."""
        if self._listeners_installed:
            return

        def _before_flush(session, flush_context, instances):
            if session.new or session.dirty or session.deleted:
                raise RuntimeError(
                    "Read-only UnitOfWork: ORM flush blocked (new/dirty/deleted objects present)."
                )

        event.listen(self._flush_target(), "before_flush", _before_flush)

        def _before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
            first_token = statement.lstrip().split(None, 1)[0].lower() if statement else ""
            if first_token.startswith(self._WRITE_PREFIXES):
                raise RuntimeError(
                    f"Read-only UnitOfWork: SQL statement blocked: {first_token.upper()}"
                )

        target = self._conn if self._conn is not None else self.session.get_bind()
        event.listen(target, "before_cursor_execute", _before_cursor_execute)

        self._ro__before_flush = _before_flush
        self._ro__before_cursor_execute = _before_cursor_execute
        self._listeners_installed = True

    def _remove_listeners(self) -> None:
        """Detach previously installed listeners."""
        if not self._listeners_installed:
            return

        with suppress(InvalidRequestError):
            event.remove(self._flush_target(), "before_flush", self._ro__before_flush)

        with suppress(InvalidRequestError):
            target = self._conn if self._conn is not None else self.session.get_bind()
            event.remove(target, "before_cursor_execute", self._ro__before_cursor_execute)

        self._listeners_installed = False
