"""Unit tests for EmailVerificationRepository."""

from datetime import timedelta

import pytest

from campus_auth.models.base import utcnow
from campus_auth.repositories.email_verification import EmailVerificationRepository
from campus_auth.repositories.user import UserRepository
from tests.factories.user import UserFactory


class TestEmailVerificationRepository:
    @pytest.fixture()
    def repo(self, session):
        return EmailVerificationRepository(session=session)

    @pytest.fixture()
    def user(self, session):
        return UserFactory()

    def _insert(self, repo, user, code, *, ttl=timedelta(minutes=15)):
        return repo.insert(
            email=user.email, code=code, expires_at=utcnow() + ttl, user_id=user.id
        )

    def test_find_usable_matches_email_and_code(self, repo, user):
        row = self._insert(repo, user, "123456")
        now = utcnow()

        assert repo.find_usable(email=user.email, code="123456", now=now).id == row.id
        assert repo.find_usable(email=user.email, code="654321", now=now) is None
        assert repo.find_usable(email="x@example.com", code="123456", now=now) is None

    def test_expired_code_is_not_usable(self, repo, user):
        self._insert(repo, user, "123456", ttl=timedelta(minutes=-1))
        assert repo.find_usable(email=user.email, code="123456", now=utcnow()) is None

    def test_mark_consumed_only_once(self, repo, user):
        row = self._insert(repo, user, "123456")
        now = utcnow()

        assert repo.mark_consumed(record_id=row.id, now=now) is True
        assert repo.mark_consumed(record_id=row.id, now=now) is False
        assert repo.find_usable(email=user.email, code="123456", now=now) is None

    def test_mark_email_verified(self, session, user):
        users = UserRepository(session=session)

        assert users.mark_email_verified(user.id) is True
        assert users.mark_email_verified(999_999) is False
        session.expire_all()
        assert users.get_by_email(user.email.upper()).email_verified is True
