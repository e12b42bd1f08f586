"""Tests for the JSON log formatter and token redaction."""

from __future__ import annotations

import json
import logging

from campus_auth.core.logger import REDACTED, JSONFormatter, redact_tokens


def test_redact_tokens_hides_jwts(codec):
    from datetime import timedelta

    from campus_auth.services._shared.ports import TokenKind

    raw = codec.encode(TokenKind.REFRESH, 7, 0, timedelta(days=1))

    out = redact_tokens(f"refresh failed for {raw} (retry)")

    assert raw not in out
    assert out == f"refresh failed for {REDACTED} (retry)"


def test_redact_tokens_leaves_plain_text():
    assert redact_tokens("user 7 logged in") == "user 7 logged in"


def test_formatter_emits_extras():
    record = logging.LogRecord("campus_auth", logging.INFO, __file__, 1, "Session issued", None, None)
    record.event = "auth.session.login"
    record.identity_id = 7

    payload = json.loads(JSONFormatter().format(record))

    assert payload["message"] == "Session issued"
    assert payload["event"] == "auth.session.login"
    assert payload["identity_id"] == 7
    assert payload["level"] == "INFO"
