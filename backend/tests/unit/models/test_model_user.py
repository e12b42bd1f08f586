"""Unit tests for the User model."""

import pytest

from campus_auth.models import User
from tests.factories.user import DEFAULT_PASSWORD, UserFactory


class TestUserModel:
    def test_email_is_normalized(self, session):
        u = UserFactory(email="  Mixed@Example.COM ")
        assert u.email == "mixed@example.com"

    def test_password_is_write_only_and_hashed(self, session):
        u = UserFactory()
        assert u.password_hash != DEFAULT_PASSWORD
        assert u.verify_password(DEFAULT_PASSWORD)
        assert not u.verify_password("nope")
        with pytest.raises(AttributeError):
            _ = u.password

    def test_empty_password_rejected(self):
        with pytest.raises(ValueError):
            User(username="x", email="x@example.com", nickname="x", password="")

    def test_invalid_email_rejected(self):
        with pytest.raises(ValueError):
            User(username="x", email="not-an-email", nickname="x", password="secret123")

    def test_token_version_defaults_to_zero(self, session):
        u = User(username="fresh", email="fresh@example.com", nickname="fresh", password="pw123456")
        session.add(u)
        session.commit()
        assert u.token_version == 0

    def test_token_version_cannot_decrease(self, session):
        u = UserFactory(token_version=3)
        with pytest.raises(ValueError):
            u.token_version = 2
        u.token_version = 4
        assert u.token_version == 4

    def test_email_verified_defaults_to_false(self, session):
        u = UserFactory()
        session.expire_all()
        assert u.email_verified is False
