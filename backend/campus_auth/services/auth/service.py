# campus_auth/services/auth/service.py
from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from campus_auth.models.base import utcnow
from campus_auth.repositories.user import UserRepository
from campus_auth.services._shared.base import BaseService, ServiceContext
from campus_auth.services._shared.errors import (
    AuthenticationError,
    InvalidCredential,
    NotFoundError,
    RotationConflictError,
)
from campus_auth.services._shared.ports import (
    RecordStatus,
    RefreshTokenStore,
    TokenCodec,
    TokenKind,
)
from campus_auth.services.auth.dto import AuthTokenConfig, SessionOut, TokenPairOut
from campus_auth.services.identity.dto import UserPublicOut

log = logging.getLogger(__name__)


def _identity_id(identity: Any) -> int:
    """Accept a ``User``, an ``IdentityRef``/DTO with ``id`` or a bare int."""
    value = getattr(identity, "id", identity)
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError("identity must be a User, an IdentityRef or an int id")
    return value


class SessionAuthority(BaseService):
    """
    Session lifecycle service (login / refresh / logout / logout-all).

    Issues credential pairs through a :class:`TokenCodec` and keeps the
    server-side record of refresh credentials in a :class:`RefreshTokenStore`.
    Every refresh rotates: the presented record is retired and replaced in a
    single atomic store call, so a refresh credential is usable once.

    The identity's ``token_version`` is re-read from the database on every
    call; bumping it (``logout_all``) invalidates all outstanding access
    credentials of that identity at once.
    """

    def __init__(
        self,
        *,
        codec: TokenCodec,
        refresh_store: RefreshTokenStore,
        token_cfg: AuthTokenConfig | None = None,
        ctx: ServiceContext | None = None,
    ) -> None:
        """
        Initialize the service with its dependencies.

        :param codec: Adapter for encoding/verifying credentials.
        :param refresh_store: Store of record for refresh credentials.
        :param token_cfg: Lifetimes and reuse policy.
        """
        super().__init__(ctx=ctx)
        self.codec = codec
        self.refresh_store = refresh_store
        self.cfg = token_cfg or AuthTokenConfig()

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _current_version(self, identity_id: int) -> int | None:
        with self.ro_uow() as uow:
            repo: UserRepository = uow.users
            return repo.get_token_version(identity_id)

    def _issue_pair(self, identity_id: int, version: int) -> TokenPairOut:
        return TokenPairOut(
            access_token=self.codec.encode(
                TokenKind.ACCESS, identity_id, version, self.cfg.access_ttl
            ),
            refresh_token=self.codec.encode(
                TokenKind.REFRESH, identity_id, version, self.cfg.refresh_ttl
            ),
        )

    @staticmethod
    def _event(event: str, identity_id: int, **extra: Any) -> dict[str, Any]:
        return {"event": event, "identity_id": identity_id, **extra}

    # ------------------------------------------------------------------ #
    # Login
    # ------------------------------------------------------------------ #

    def login(self, identity: Any) -> TokenPairOut:
        """
        Issue a fresh credential pair for an already-authenticated identity.

        :param identity: ``User``, ``IdentityRef`` or user id.
        :returns: Access/refresh pair stamped with the current session version.
        :raises NotFoundError: If the identity does not exist.
        """
        identity_id = _identity_id(identity)
        version = self._current_version(identity_id)
        if version is None:
            raise NotFoundError("User", identity_id)

        pair = self._issue_pair(identity_id, version)
        record = self.refresh_store.put(identity_id, pair.refresh_token, self.cfg.refresh_ttl)
        log.info(
            "Session issued",
            extra=self._event("auth.session.login", identity_id, record_id=record.id),
        )
        return pair

    def authenticate_credentials(self, login: str, password: str) -> UserPublicOut:
        """
        Verify a username-or-email and password.

        :raises InvalidCredential: On unknown login or wrong password.
        """
        with self.ro_uow() as uow:
            repo: UserRepository = uow.users
            user = repo.authenticate(login, password)
            if user is None:
                log.info("Credential check failed", extra={"event": "auth.login.failed"})
                raise InvalidCredential("Invalid credentials")
            return UserPublicOut.from_model(user)

    # ------------------------------------------------------------------ #
    # Refresh with atomic rotation
    # ------------------------------------------------------------------ #

    def refresh(self, raw_refresh: str) -> TokenPairOut:
        """
        Rotate a refresh credential and emit a new pair.

        Every rejection is an :class:`InvalidCredential`, whatever the reason
        (bad token, unknown, already rotated, revoked, expired, stale version,
        lost race), and nothing is issued.
        """
        _, pair = self.refresh_session(raw_refresh)
        return pair

    def refresh_session(self, raw_refresh: str) -> tuple[int, TokenPairOut]:
        """Like :meth:`refresh`, also returning the identity the pair belongs to."""
        try:
            decoded = self.codec.decode(TokenKind.REFRESH, raw_refresh)
        except AuthenticationError as exc:
            raise InvalidCredential() from exc

        identity_id = decoded.subject_id
        record = self.refresh_store.find_by_raw(raw_refresh)
        if record is None or record.identity_id != identity_id:
            raise InvalidCredential()

        status = record.status(utcnow())
        if status is RecordStatus.ROTATED:
            revoked = 0
            if self.cfg.revoke_chain_on_reuse:
                revoked = self.refresh_store.revoke_chain(record)
            log.warning(
                "Rotated refresh token presented again",
                extra=self._event(
                    "auth.session.reuse", identity_id, record_id=record.id, count=revoked
                ),
            )
            raise InvalidCredential()
        if status is not RecordStatus.ACTIVE:
            raise InvalidCredential()

        version = self._current_version(identity_id)
        if version is None or version != decoded.version:
            raise InvalidCredential()

        pair = self._issue_pair(identity_id, version)
        try:
            successor = self.refresh_store.rotate(
                record, identity_id, pair.refresh_token, self.cfg.refresh_ttl
            )
        except RotationConflictError as exc:
            log.warning(
                "Refresh rotation lost a race",
                extra=self._event("auth.session.reuse", identity_id, record_id=record.id),
            )
            raise InvalidCredential() from exc

        log.info(
            "Session rotated",
            extra=self._event("auth.session.rotated", identity_id, record_id=successor.id),
        )
        return identity_id, pair

    # ------------------------------------------------------------------ #
    # Logout
    # ------------------------------------------------------------------ #

    def logout(self, identity_id: int, raw_refresh: str) -> None:
        """
        Revoke one refresh credential of ``identity_id``.

        Unknown, foreign or already inactive credentials are ignored.
        """
        record = self.refresh_store.find_by_raw(raw_refresh)
        if record is None or record.identity_id != identity_id:
            return
        if not record.is_active(utcnow()):
            return
        if self.refresh_store.revoke(record):
            log.info(
                "Session revoked",
                extra=self._event("auth.session.logout", identity_id, record_id=record.id),
            )

    def logout_all(self, identity_id: int) -> int:
        """
        Revoke every refresh credential and invalidate every access credential.

        Runs as two statements: revoke all refresh records, then bump
        ``token_version``. Re-running after a partial failure is harmless.

        :returns: New session version.
        :raises NotFoundError: If the identity does not exist.
        """
        if self._current_version(identity_id) is None:
            raise NotFoundError("User", identity_id)

        revoked = self.refresh_store.revoke_all(identity_id)
        with self.rw_uow() as uow:
            repo: UserRepository = uow.users
            new_version = repo.bump_token_version(identity_id)
            if new_version is None:
                raise NotFoundError("User", identity_id)

        log.info(
            "All sessions revoked",
            extra=self._event("auth.session.logout_all", identity_id, count=revoked),
        )
        return new_version

    # ------------------------------------------------------------------ #
    # Maintenance / listing
    # ------------------------------------------------------------------ #

    def list_sessions(self, identity_id: int) -> Sequence[SessionOut]:
        """Active refresh sessions of an identity, newest first."""
        return [
            SessionOut(id=r.id, created_at=r.created_at, expires_at=r.expires_at)
            for r in self.refresh_store.list_active(identity_id)
        ]

    def prune_expired(self) -> int:
        """Delete expired refresh records. :returns: rows deleted."""
        count = self.refresh_store.prune_expired(utcnow())
        log.info("Expired sessions pruned", extra={"event": "auth.session.pruned", "count": count})
        return count
