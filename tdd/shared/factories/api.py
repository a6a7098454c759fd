"""
Request payloads for the repository and git APIs.

Arguments left out are filled with Faker data.
"""
from typing import Any

from faker import Faker

fake = Faker()


# -----------------------------------------------------------------------------
# Repository API Factories
# -----------------------------------------------------------------------------

def repository_create_payload(
    name: str | None = None,
    url: str | None = None,
    description: str | None = None,
    is_private: bool = False,
) -> dict[str, Any]:
    """Create a payload for POST /api/repositories."""
    return {
        "name": name or fake.word().capitalize() + "Repo",
        "url": url or f"https://github.com/{fake.user_name()}/{fake.slug()}.git",
        "description": description,
        "is_private": is_private,
    }


def repository_update_payload(**kwargs) -> dict[str, Any]:
    """Create a payload for PATCH /api/repositories/{id}.

    Only includes fields that are explicitly provided.
    """
    valid_fields = {"name", "description", "url", "is_private"}
    return {k: v for k, v in kwargs.items() if k in valid_fields}


# -----------------------------------------------------------------------------
# Git API Factories
# -----------------------------------------------------------------------------

def branch_create_payload(name: str | None = None, from_branch: str | None = None) -> dict[str, Any]:
    """Create a payload for POST /api/git/repositories/{id}/branches."""
    return {"name": name or f"feature/{fake.slug()}", "from_branch": from_branch}


def merge_payload(source: str, target: str = "main") -> dict[str, Any]:
    return {"source_branch": source, "target_branch": target}


def save_file_payload(path: str | None = None, content: str | None = None) -> dict[str, Any]:
    """Create a payload for PUT /api/git/repositories/{id}/files/save."""
    return {
        "path": path or f"{fake.word()}.txt",
        "content": content if content is not None else fake.paragraph(nb_sentences=2) + "\n",
    }


def commit_payload(message: str | None = None) -> dict[str, Any]:
    return {"message": message if message is not None else fake.sentence(nb_words=5)}
