"""Service layer public API.

This package exposes the essential building blocks for the service layer so that
callers can import from :mod:`campus_auth.services` without knowing internal structure.

Re-exports
----------
- Base primitives (from ``campus_auth.services._shared.base``)
    * :class:`BaseService`
    * :class:`ServiceContext`

- Identity service (from ``campus_auth.services.identity``)
    * :class:`IdentityService`
    * DTOs: :class:`UserRegisterIn`, :class:`UserPublicOut`, :class:`VerificationCodeOut`

The session engine (``issue_session``, ``authenticate``, :class:`SessionAuthority`,
:class:`AccessGuard`) lives in :mod:`campus_auth.services.auth`.
"""

from __future__ import annotations

from ._shared.base import BaseService, ServiceContext
from .identity.dto import UserPublicOut, UserRegisterIn, VerificationCodeOut
from .identity.service import IdentityService

__all__ = [
    "BaseService",
    "ServiceContext",
    "IdentityService",
    "UserRegisterIn",
    "UserPublicOut",
    "VerificationCodeOut",
]
