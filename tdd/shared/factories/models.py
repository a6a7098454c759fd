"""
Model factories for creating test data.

These build SQLAlchemy model instances; use BaseFactory.persist to store
them through an async session.
"""
from datetime import datetime

import factory
from faker import Faker

from app.models import Repository, User

from .base import BaseFactory, generate_uuid

fake = Faker()


class UserFactory(BaseFactory):
    """Factory for creating User instances."""

    class Meta:
        model = User

    username = factory.Sequence(lambda n: f"{fake.user_name()}{n}")
    email = factory.LazyAttribute(lambda o: f"{o.username}@example.com")
    is_active = True
    created_at = factory.LazyFunction(datetime.utcnow)

    class Params:
        inactive = factory.Trait(is_active=False)


class RepositoryFactory(BaseFactory):
    """Factory for creating Repository instances.

    `url` defaults to a remote that does not exist; pass the path of a
    bare repository built with shared.git_helpers for git operations.
    """

    class Meta:
        model = Repository

    id = factory.LazyFunction(generate_uuid)
    name = factory.LazyFunction(lambda: fake.word().capitalize() + "Project")
    description = factory.LazyFunction(lambda: fake.sentence(nb_words=6))
    url = factory.LazyFunction(lambda: f"https://github.com/{fake.user_name()}/{fake.slug()}.git")
    is_private = False
    user_id = 1
    branch_count = 0
    commit_count = 0
    last_updated = factory.LazyFunction(datetime.utcnow)
    created_at = factory.LazyFunction(datetime.utcnow)
    updated_at = factory.LazyFunction(datetime.utcnow)

    class Params:
        private = factory.Trait(is_private=True)
