"""WSGI proxy middleware configuration helper."""

from __future__ import annotations

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix


def init_app(app: Flask) -> None:
    """Trust ``X-Forwarded-*`` headers from ``PROXY_FIX_HOPS`` upstream proxies.

    The login rate limit is keyed by client address, so behind a reverse
    proxy this must be enabled or every caller shares one bucket. ``0``
    leaves the WSGI pipeline untouched.
    """
    hops = int(app.config.get("PROXY_FIX_HOPS", 0) or 0)
    if hops > 0:
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=hops, x_proto=hops, x_host=hops)
