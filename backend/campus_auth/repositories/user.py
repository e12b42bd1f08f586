"""User repository: identity lookups and the session-version counter."""

from __future__ import annotations

from typing import cast

from sqlalchemy import or_, select, update

from campus_auth.models.user import User
from campus_auth.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Persistence-only repository for :class:`User`.

    It never creates credentials; it only reads identities and mutates
    ``token_version`` on behalf of the session authority.
    """

    model = User

    # ---------------------------- Lookup helpers ----------------------------

    def get_by_login(self, login: str) -> User | None:
        """Fetch a user by username or email (email compared lowercase).

        :param login: Username or email typed by the caller.
        :type login: str
        :returns: User instance or ``None`` when not found.
        :rtype: User | None
        """
        value = login.strip()
        stmt = select(User).where(or_(User.username == value, User.email == value.lower()))
        result = self.session.execute(stmt).scalars().first()
        return cast(User | None, result)

    def find_duplicate(self, *, username: str, email: str, nickname: str) -> User | None:
        """Return any user clashing on username, email or nickname."""
        stmt = select(User).where(
            or_(
                User.username == username.strip(),
                User.email == email.strip().lower(),
                User.nickname == nickname.strip(),
            )
        )
        return cast(User | None, self.session.execute(stmt).scalars().first())

    def authenticate(self, login: str, password: str) -> User | None:
        """Authenticate a user by username-or-email and password.

        :returns: Authenticated user or ``None`` when credentials fail.
        """
        user = self.get_by_login(login)
        if not user or not user.verify_password(password):
            return None
        return user

    # ---------------------------- Session version ----------------------------

    def get_token_version(self, user_id: int) -> int | None:
        """
        Return the current token_version, or ``None`` when the user is gone.

        Always hits the database; callers must not cache the result across
        requests.
        """
        stmt = select(User.token_version).where(User.id == user_id)
        value = self.session.execute(stmt).scalar_one_or_none()
        return None if value is None else int(value)

    def bump_token_version(self, user_id: int) -> int | None:
        """
        Atomically increment token_version by one.

        :returns: New token_version, or ``None`` when the user does not exist.
        """
        # Single UPDATE so concurrent bumps never lose an increment.
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(token_version=User.token_version + 1)
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        if result.rowcount == 0:
            return None
        return self.get_token_version(user_id)

    # ---------------------------- Email verification ----------------------------

    def get_by_email(self, email: str) -> User | None:
        """Fetch a user by normalized email."""
        stmt = select(User).where(User.email == email.strip().lower())
        return cast(User | None, self.session.execute(stmt).scalars().first())

    def mark_email_verified(self, user_id: int) -> bool:
        """Set ``email_verified``. :returns: ``True`` when the user exists."""
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(email_verified=True)
            .execution_options(synchronize_session=False)
        )
        return self.session.execute(stmt).rowcount == 1
