from campus_auth.models.email_verification import EmailVerification
from campus_auth.models.refresh_token import RefreshToken
from campus_auth.models.user import User

__all__ = [
    "EmailVerification",
    "RefreshToken",
    "User",
]
