"""Factory Boy definition for :class:`campus_auth.models.user.User`."""

from __future__ import annotations

import factory

from campus_auth.models.user import User
from tests.factories import BaseFactory

DEFAULT_PASSWORD = "Passw0rd!"


class UserFactory(BaseFactory):
    """Build persisted :class:`campus_auth.models.user.User` instances."""

    class Meta:
        model = User

    id = None  # let autoincrement handle it
    username = factory.Sequence(lambda n: f"user{n}")
    email = factory.Sequence(lambda n: f"user{n}@example.com")
    nickname = factory.Sequence(lambda n: f"nick{n}")
    password = DEFAULT_PASSWORD
    token_version = 0
