"""Unit tests for UserRepository."""

import pytest

from campus_auth.repositories.user import UserRepository
from tests.factories.user import DEFAULT_PASSWORD, UserFactory


class TestUserRepository:
    """Ensure ``UserRepository`` performs lookups and version bumps."""

    @pytest.fixture()
    def repo(self, session):
        return UserRepository(session=session)

    def test_get_by_login_matches_username_or_email(self, repo):
        u = UserFactory(username="alice", email="alice@example.com")

        assert repo.get_by_login("alice").id == u.id
        assert repo.get_by_login("ALICE@example.com ").id == u.id
        assert repo.get_by_login("nobody") is None

    def test_find_duplicate(self, repo):
        UserFactory(username="bob", email="bob@example.com", nickname="bobby")

        assert repo.find_duplicate(username="bob", email="x@example.com", nickname="x") is not None
        assert repo.find_duplicate(username="x", email="BOB@example.com", nickname="x") is not None
        assert repo.find_duplicate(username="x", email="x@example.com", nickname="bobby") is not None
        assert repo.find_duplicate(username="x", email="x@example.com", nickname="x") is None

    def test_authenticate_valid_and_invalid(self, repo):
        u = UserFactory(username="authuser", email="auth@example.com")

        assert repo.authenticate("auth@example.com", DEFAULT_PASSWORD).id == u.id
        assert repo.authenticate("authuser", DEFAULT_PASSWORD).id == u.id
        assert repo.authenticate("authuser", "wrongpass") is None
        assert repo.authenticate("nope@example.com", DEFAULT_PASSWORD) is None

    def test_token_version_read_and_bump(self, repo, session):
        u = UserFactory()

        assert repo.get_token_version(u.id) == 0
        assert repo.bump_token_version(u.id) == 1
        assert repo.bump_token_version(u.id) == 2
        session.commit()
        assert repo.get_token_version(u.id) == 2

    def test_token_version_of_missing_user(self, repo):
        assert repo.get_token_version(999_999) is None
        assert repo.bump_token_version(999_999) is None
