"""
Assertion helpers for models, schemas and git result values.
"""
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ValidationError


def assert_model_fields(model: Any, expected: dict[str, Any]) -> None:
    """Assert an object (ORM row, dataclass, schema) has the expected attributes."""
    for field, value in expected.items():
        actual = getattr(model, field, None)
        assert actual == value, (
            f"Expected {field}={value!r}, got {field}={actual!r}"
        )


def assert_model_has_uuid(model: Any) -> None:
    """Assert a repository style row carries a UUID string id."""
    assert isinstance(model.id, str), f"Expected str ID, got {type(model.id)}"
    assert len(model.id) == 36, f"Expected UUID length 36, got {len(model.id)}"


def assert_model_has_timestamps(model: Any, *fields: str) -> None:
    """Assert the named timestamp attributes (default created_at) are datetimes."""
    for name in fields or ("created_at",):
        value = getattr(model, name)
        assert isinstance(value, datetime), f"Expected datetime for {name}, got {type(value)}"


def assert_schema_valid(schema_class: type[BaseModel], data: dict[str, Any]) -> BaseModel:
    """Validate data against a schema, failing the test with the pydantic error."""
    try:
        return schema_class.model_validate(data)
    except ValidationError as e:
        raise AssertionError(f"Schema validation failed: {e}")


def assert_schema_invalid(schema_class: type[BaseModel], data: dict[str, Any]) -> ValidationError:
    """Assert data is rejected by a schema and return the error."""
    try:
        schema_class.model_validate(data)
    except ValidationError as e:
        return e
    raise AssertionError(
        f"Expected validation to fail for {schema_class.__name__} with data: {data}"
    )


def assert_clean_status(status: Any) -> None:
    """Assert a RepositoryStatus has no staged, modified or untracked paths."""
    assert not status.staged, f"Unexpected staged paths: {status.staged}"
    assert not status.modified, f"Unexpected modified paths: {status.modified}"
    assert not status.untracked, f"Unexpected untracked paths: {status.untracked}"
