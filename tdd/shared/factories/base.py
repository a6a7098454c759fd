"""
factory_boy base for SQLAlchemy models.

build() gives a detached instance; persist() stores one through the async
session used by the test, since factory_boy's own create() is synchronous.
"""
from uuid import uuid4

import factory


class BaseFactory(factory.Factory):

    class Meta:
        abstract = True

    @classmethod
    async def persist(cls, session, **kwargs):
        """Build, add, commit and refresh an instance."""
        obj = cls.build(**kwargs)
        session.add(obj)
        await session.commit()
        await session.refresh(obj)
        return obj


def generate_uuid() -> str:
    return str(uuid4())
