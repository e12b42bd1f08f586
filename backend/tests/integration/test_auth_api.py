"""End-to-end tests of the /api/v1/auth endpoints."""

from __future__ import annotations

from datetime import timedelta

import pytest
from freezegun import freeze_time

from campus_auth.services._shared.errors import RevokedCredential
from campus_auth.services.auth import AccessGuard
from tests.factories.user import DEFAULT_PASSWORD, UserFactory

BASE = "/api/v1/auth"


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _login(client, user) -> dict:
    resp = client.post(
        f"{BASE}/login",
        json={"usernameOrEmail": user.username, "password": DEFAULT_PASSWORD},
    )
    assert resp.status_code == 200, resp.get_json()
    return resp.get_json()


class TestRegisterAndLogin:
    def test_register_signs_in(self, client):
        resp = client.post(
            f"{BASE}/register",
            json={
                "username": "grace",
                "email": "grace@example.com",
                "password": "cobol-4-ever",
                "nickname": "hopper",
            },
        )

        assert resp.status_code == 201
        body = resp.get_json()
        assert body["user"]["username"] == "grace"
        assert "password" not in body["user"]
        me = client.get(f"{BASE}/me", headers=_bearer(body["access"]))
        assert me.status_code == 200
        assert me.get_json()["id"] == body["user"]["id"]

    def test_register_duplicate_is_409(self, client):
        UserFactory(username="grace")
        resp = client.post(
            f"{BASE}/register",
            json={
                "username": "grace",
                "email": "other@example.com",
                "password": "cobol-4-ever",
                "nickname": "other",
            },
        )
        assert resp.status_code == 409

    def test_register_validation_is_422(self, client):
        resp = client.post(f"{BASE}/register", json={"username": "x"})
        assert resp.status_code == 422
        assert resp.get_json()["code"] == "validation_error"

    def test_login_by_email(self, client):
        user = UserFactory()
        resp = client.post(
            f"{BASE}/login",
            json={"usernameOrEmail": user.email, "password": DEFAULT_PASSWORD},
        )
        assert resp.status_code == 200
        assert resp.get_json()["user"]["id"] == user.id

    def test_login_wrong_password_is_401(self, client):
        user = UserFactory()
        resp = client.post(
            f"{BASE}/login",
            json={"usernameOrEmail": user.username, "password": "nope"},
        )
        assert resp.status_code == 401
        assert resp.get_json()["detail"] == "Invalid credentials"


class TestRefresh:
    def test_refresh_twice_second_fails(self, client):
        user = UserFactory()
        tokens = _login(client, user)

        first = client.post(f"{BASE}/refresh", json={"refresh": tokens["refresh"]})
        second = client.post(f"{BASE}/refresh", json={"refresh": tokens["refresh"]})

        assert first.status_code == 200
        assert first.get_json()["user"]["id"] == user.id
        assert second.status_code == 401
        assert second.get_json()["code"] == "invalid_refresh"

    def test_refresh_chain(self, client):
        user = UserFactory()
        tokens = _login(client, user)

        for _ in range(3):
            resp = client.post(f"{BASE}/refresh", json={"refresh": tokens["refresh"]})
            assert resp.status_code == 200
            tokens = resp.get_json()

        assert client.get(f"{BASE}/me", headers=_bearer(tokens["access"])).status_code == 200

    def test_refresh_does_not_recheck_the_new_access_token(self, client, monkeypatch):
        user = UserFactory()
        tokens = _login(client, user)

        def _revoked(self, raw_access):
            raise RevokedCredential()

        # A revoke-all landing right after rotation must not turn the rotation into a 401
        monkeypatch.setattr(AccessGuard, "validate", _revoked)
        resp = client.post(f"{BASE}/refresh", json={"refresh": tokens["refresh"]})

        assert resp.status_code == 200
        assert resp.get_json()["user"]["id"] == user.id

    def test_refresh_with_access_token_is_401(self, client):
        tokens = _login(client, UserFactory())
        resp = client.post(f"{BASE}/refresh", json={"refresh": tokens["access"]})
        assert resp.status_code == 401

    def test_refresh_missing_body_is_422(self, client):
        assert client.post(f"{BASE}/refresh", json={}).status_code == 422


class TestAccess:
    def test_me_without_token(self, client):
        resp = client.get(f"{BASE}/me")
        assert resp.status_code == 401
        assert resp.get_json()["detail"] == "Missing access token"

    def test_me_with_garbage_token(self, client):
        resp = client.get(f"{BASE}/me", headers=_bearer("garbage"))
        assert resp.status_code == 401
        assert resp.get_json()["code"] == "invalid_token"

    def test_me_with_expired_token(self, client):
        user = UserFactory()
        with freeze_time("2026-01-01 00:00:00") as frozen:
            tokens = _login(client, user)
            frozen.tick(timedelta(minutes=16))
            resp = client.get(f"{BASE}/me", headers=_bearer(tokens["access"]))
        assert resp.status_code == 401
        assert resp.get_json()["code"] == "token_expired"

    def test_me_with_cookie(self, client):
        tokens = _login(client, UserFactory())
        client.set_cookie("access_token", tokens["access"])
        assert client.get(f"{BASE}/me").status_code == 200

    def test_whoami_anonymous_and_authenticated(self, client):
        user = UserFactory()
        anon = client.get(f"{BASE}/whoami", headers=_bearer("garbage"))
        assert anon.get_json() == {"authenticated": False, "user": None}

        tokens = _login(client, user)
        resp = client.get(f"{BASE}/whoami", headers=_bearer(tokens["access"]))
        assert resp.get_json()["authenticated"] is True
        assert resp.get_json()["user"]["id"] == user.id


class TestLogout:
    def test_logout_one_device(self, client):
        user = UserFactory()
        phone = _login(client, user)
        laptop = _login(client, user)

        resp = client.post(
            f"{BASE}/logout", json={"refresh": phone["refresh"]}, headers=_bearer(phone["access"])
        )

        assert resp.get_json() == {"ok": True}
        assert client.post(f"{BASE}/refresh", json={"refresh": phone["refresh"]}).status_code == 401
        assert client.post(f"{BASE}/refresh", json={"refresh": laptop["refresh"]}).status_code == 200

    def test_logout_all_revokes_access_everywhere(self, client):
        user = UserFactory()
        phone = _login(client, user)
        laptop = _login(client, user)

        resp = client.post(f"{BASE}/logout/all", headers=_bearer(phone["access"]))
        assert resp.status_code == 200

        for tokens in (phone, laptop):
            me = client.get(f"{BASE}/me", headers=_bearer(tokens["access"]))
            assert me.status_code == 401
            assert me.get_json()["code"] == "token_revoked"
            refreshed = client.post(f"{BASE}/refresh", json={"refresh": tokens["refresh"]})
            assert refreshed.status_code == 401

        fresh = _login(client, user)
        assert client.get(f"{BASE}/me", headers=_bearer(fresh["access"])).status_code == 200

    def test_logout_requires_auth(self, client):
        assert client.post(f"{BASE}/logout/all").status_code == 401


class TestSessions:
    def test_lists_active_sessions(self, client):
        user = UserFactory()
        first = _login(client, user)
        second = _login(client, user)
        client.post(f"{BASE}/refresh", json={"refresh": first["refresh"]})

        resp = client.get(f"{BASE}/sessions", headers=_bearer(second["access"]))

        rows = resp.get_json()["data"]
        assert len(rows) == 2
        assert all("token_hash" not in row for row in rows)
        assert rows[0]["id"] > rows[1]["id"]


def test_health(client):
    resp = client.get("/api/v1/health")
    assert resp.status_code == 200
    assert resp.get_json()["db"] == "ok"


class TestCli:
    @pytest.fixture()
    def runner(self, app, session):
        return app.test_cli_runner()

    def test_revoke_all(self, runner, client):
        user = UserFactory()
        tokens = _login(client, user)

        result = runner.invoke(args=["sessions", "revoke-all", str(user.id)])

        assert result.exit_code == 0, result.output
        assert "token_version is now 1" in result.output
        assert client.get(f"{BASE}/me", headers=_bearer(tokens["access"])).status_code == 401

    def test_revoke_all_unknown_user(self, runner):
        result = runner.invoke(args=["sessions", "revoke-all", "999999"])
        assert result.exit_code != 0
        assert "not found" in result.output

    def test_prune(self, runner):
        result = runner.invoke(args=["sessions", "prune"])
        assert result.exit_code == 0
        assert "Pruned 0 expired" in result.output


class TestEmailVerification:
    def test_resend_then_verify(self, client):
        user = UserFactory()

        issued = client.post(f"{BASE}/resend-code", json={"email": user.email})
        assert issued.status_code == 200
        body = issued.get_json()
        assert body["ok"] is True
        assert body["expires_at"]

        resp = client.post(
            f"{BASE}/verify-email", json={"email": user.email, "code": body["code"]}
        )
        assert resp.get_json() == {"ok": True, "email_verified": True}

        tokens = _login(client, user)
        assert tokens["user"]["email_verified"] is True

        again = client.post(
            f"{BASE}/verify-email", json={"email": user.email, "code": body["code"]}
        )
        assert again.status_code == 400
        assert again.get_json()["code"] == "invalid_verification_code"

    def test_resend_hides_code_unless_exposed(self, app, client, monkeypatch):
        user = UserFactory()
        monkeypatch.setitem(app.config, "AUTH_EXPOSE_VERIFICATION_CODE", False)

        body = client.post(f"{BASE}/resend-code", json={"email": user.email}).get_json()

        assert "code" not in body
        assert body["expires_at"]

    def test_resend_unknown_email_is_404(self, client):
        resp = client.post(f"{BASE}/resend-code", json={"email": "ghost@example.com"})
        assert resp.status_code == 404

    @pytest.mark.parametrize("code", ["12345", "abcdef", ""])
    def test_verify_rejects_malformed_code(self, client, code):
        resp = client.post(f"{BASE}/verify-email", json={"email": "a@example.com", "code": code})
        assert resp.status_code == 422
