# campus_auth/services/auth/guard.py
from __future__ import annotations

import logging

from campus_auth.repositories.user import UserRepository
from campus_auth.services._shared.base import BaseService, ServiceContext
from campus_auth.services._shared.errors import AuthenticationError, RevokedCredential
from campus_auth.services._shared.ports import TokenCodec, TokenKind

log = logging.getLogger(__name__)


class AccessGuard(BaseService):
    """
    Validates access credentials on every authenticated request.

    Signature and expiry come from the codec; revocation comes from comparing
    the embedded version with the identity's current ``token_version``, read
    fresh on each call.
    """

    def __init__(self, *, codec: TokenCodec, ctx: ServiceContext | None = None) -> None:
        super().__init__(ctx=ctx)
        self.codec = codec

    def validate(self, raw_access: str) -> int:
        """
        Return the identity id carried by a valid access credential.

        :raises ExpiredCredential: Past ``exp``.
        :raises MalformedCredential: Bad signature, structure or kind.
        :raises RevokedCredential: Version no longer current, or identity gone.
        """
        decoded = self.codec.decode(TokenKind.ACCESS, raw_access)
        with self.ro_uow() as uow:
            repo: UserRepository = uow.users
            current = repo.get_token_version(decoded.subject_id)
        if current is None or current != decoded.version:
            raise RevokedCredential()
        return decoded.subject_id

    def validate_optional(self, raw_access: str | None) -> int | None:
        """Like :meth:`validate`, but anonymous on any credential problem."""
        if not raw_access:
            return None
        try:
            return self.validate(raw_access)
        except AuthenticationError as exc:
            log.debug("Ignoring unusable access credential: %s", exc.code)
            return None
