"""Authentication endpoints using the session engine."""

from __future__ import annotations

from flask import Blueprint, current_app, g, request

from campus_auth.api.deps import (
    current_identity_id,
    json_response,
    optional_auth,
    require_auth,
    timing,
)
from campus_auth.core.extensions import limiter
from campus_auth.schemas import (
    LoginSchema,
    RefreshSchema,
    RegisterSchema,
    ResendCodeSchema,
    SessionSchema,
    UserSchema,
    VerificationCodeSchema,
    VerifyEmailSchema,
)
from campus_auth.services import IdentityService, UserRegisterIn
from campus_auth.services.auth import TokenPairOut, get_engine, issue_session

bp = Blueprint("auth", __name__)

register_schema = RegisterSchema()
login_schema = LoginSchema()
refresh_schema = RefreshSchema()
user_schema = UserSchema()
session_schema = SessionSchema(many=True)
resend_code_schema = ResendCodeSchema()
verify_email_schema = VerifyEmailSchema()


def _login_rate_limit() -> str:
    return str(current_app.config.get("AUTH_LOGIN_RATE_LIMIT", "5 per minute"))


def _session_body(user, pair: TokenPairOut) -> dict:
    return {
        "user": user_schema.dump(user),
        "access": pair.access_token,
        "refresh": pair.refresh_token,
    }


@bp.post("/register")
@timing
def register():
    """Create an account and sign it in."""

    data = register_schema.load(request.get_json(silent=True) or {})
    user = IdentityService().register_user(UserRegisterIn(**data))
    pair = issue_session(user)
    return json_response(_session_body(user, pair), status=201)


@bp.post("/login")
@limiter.limit(_login_rate_limit)
@timing
def login():
    """Authenticate username-or-email + password and issue a session."""

    data = login_schema.load(request.get_json(silent=True) or {})
    authority = get_engine().authority
    user = authority.authenticate_credentials(data["login"], data["password"])
    pair = authority.login(user)
    return json_response(_session_body(user, pair))


@bp.post("/refresh")
@timing
def refresh():
    """Rotate a refresh credential into a new pair."""

    data = refresh_schema.load(request.get_json(silent=True) or {})
    identity_id, pair = get_engine().authority.refresh_session(data["refresh"])
    user = IdentityService().get_user(identity_id)
    return json_response(_session_body(user, pair))


@bp.post("/logout")
@require_auth
@timing
def logout():
    """Sign out the device holding the given refresh credential."""

    data = refresh_schema.load(request.get_json(silent=True) or {})
    get_engine().authority.logout(current_identity_id(), data["refresh"])
    return json_response({"ok": True})


@bp.post("/logout/all")
@require_auth
@timing
def logout_all():
    """Sign out every device of the caller."""

    get_engine().authority.logout_all(current_identity_id())
    return json_response({"ok": True})


@bp.get("/me")
@require_auth
@timing
def me():
    """Return the authenticated user."""

    user = IdentityService().get_user(current_identity_id())
    return json_response(user_schema.dump(user))


@bp.get("/whoami")
@optional_auth
@timing
def whoami():
    """Return the caller when a usable access credential is present."""

    if g.identity_id is None:
        return json_response({"authenticated": False, "user": None})
    user = IdentityService().get_user(g.identity_id)
    return json_response({"authenticated": True, "user": user_schema.dump(user)})


@bp.get("/sessions")
@require_auth
@timing
def sessions():
    """List the caller's active sessions."""

    rows = get_engine().authority.list_sessions(current_identity_id())
    return json_response({"data": session_schema.dump(rows)})


@bp.post("/resend-code")
@limiter.limit(_login_rate_limit)
@timing
def resend_code():
    """Issue a fresh email verification code for a registered address."""

    data = resend_code_schema.load(request.get_json(silent=True) or {})
    issued = IdentityService().issue_verification_code(data["email"])
    only = None if current_app.config.get("AUTH_EXPOSE_VERIFICATION_CODE") else ("expires_at",)
    body = VerificationCodeSchema(only=only).dump(issued)
    return json_response({"ok": True, **body})


@bp.post("/verify-email")
@timing
def verify_email():
    """Redeem a verification code and mark the email as verified."""

    data = verify_email_schema.load(request.get_json(silent=True) or {})
    verified = IdentityService().verify_email(data["email"], data["code"])
    return json_response({"ok": True, "email_verified": verified})
