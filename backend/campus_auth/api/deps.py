"""Shared API helpers for request parsing and cross-cutting concerns."""

from __future__ import annotations

import functools
import time
from collections.abc import Callable
from typing import Any, TypeVar, cast

from flask import Response, current_app, g, jsonify, request

from campus_auth.core.errors import Unauthorized
from campus_auth.services.auth import get_engine

F = TypeVar("F", bound=Callable[..., Any])

ACCESS_COOKIE = "access_token"


def read_access_token() -> str | None:
    """Return the raw access credential from ``Authorization: Bearer`` or the cookie."""

    header = request.headers.get("Authorization", "")
    scheme, _, value = header.partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip()
    return request.cookies.get(ACCESS_COOKIE) or None


def require_auth(func: F) -> F:
    """Ensure the request carries a valid access credential; sets ``g.identity_id``."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        raw = read_access_token()
        if not raw:
            raise Unauthorized("Missing access token")
        g.identity_id = get_engine().guard.validate(raw)
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def optional_auth(func: F) -> F:
    """Resolve the caller when possible; ``g.identity_id`` is ``None`` otherwise."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        g.identity_id = get_engine().guard.validate_optional(read_access_token())
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def current_identity_id() -> int:
    """Return the identity resolved by :func:`require_auth`."""

    return cast(int, g.identity_id)


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""

    response = jsonify(payload)
    response.status_code = status
    return response


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            request_endpoint = getattr(request, "endpoint", None)
            current_app.logger.debug(
                "request.elapsed",
                extra={"endpoint": request_endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]
