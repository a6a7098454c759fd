# Test data factories: model instances and API payloads

from .base import BaseFactory, generate_uuid
from .models import RepositoryFactory, UserFactory
from .api import (
    branch_create_payload,
    commit_payload,
    merge_payload,
    repository_create_payload,
    repository_update_payload,
    save_file_payload,
)

__all__ = [
    "BaseFactory",
    "generate_uuid",
    "UserFactory",
    "RepositoryFactory",
    "repository_create_payload",
    "repository_update_payload",
    "branch_create_payload",
    "merge_payload",
    "save_file_payload",
    "commit_payload",
]
