"""Assertion helpers shared by unit and integration tests."""
from .api import (
    assert_commit_hash,
    assert_created_response,
    assert_deleted_response,
    assert_json_contains,
    assert_json_list_length,
    assert_not_found,
    assert_operation_failure,
    assert_operation_success,
    assert_single_current_branch,
    assert_status_code,
    assert_updated_response,
    assert_validation_error,
)
from .models import (
    assert_clean_status,
    assert_model_fields,
    assert_model_has_timestamps,
    assert_model_has_uuid,
    assert_schema_invalid,
    assert_schema_valid,
)

__all__ = [
    "assert_clean_status",
    "assert_commit_hash",
    "assert_created_response",
    "assert_deleted_response",
    "assert_json_contains",
    "assert_json_list_length",
    "assert_model_fields",
    "assert_model_has_timestamps",
    "assert_model_has_uuid",
    "assert_not_found",
    "assert_operation_failure",
    "assert_operation_success",
    "assert_schema_invalid",
    "assert_schema_valid",
    "assert_single_current_branch",
    "assert_status_code",
    "assert_updated_response",
    "assert_validation_error",
]
