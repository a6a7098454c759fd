"""
Assertion helpers for HTTP responses.

Failures print the response body, which is usually the fastest way to see
why a git operation was rejected.
"""
from typing import Any

from httpx import Response


def assert_status_code(response: Response, expected: int) -> None:
    assert response.status_code == expected, (
        f"Expected status {expected}, got {response.status_code}. "
        f"Response body: {response.text}"
    )


def assert_json_contains(response: Response, expected: dict[str, Any] | None = None, **fields) -> None:
    """Partial match: every given field must be present with that value.

    Accepts a dict, keyword arguments, or both.
    """
    wanted = {**(expected or {}), **fields}
    body = response.json()
    for key, value in wanted.items():
        assert key in body, f"Missing '{key}' in response: {body}"
        assert body[key] == value, f"Expected {key}={value!r}, got {key}={body[key]!r}"


def assert_json_list_length(response: Response, expected_length: int) -> None:
    body = response.json()
    assert isinstance(body, list), f"Expected a JSON list, got {type(body).__name__}"
    assert len(body) == expected_length, f"Expected {expected_length} items, got {len(body)}: {body}"


def assert_created_response(response: Response, expected: dict[str, Any] | None = None, **fields) -> dict[str, Any]:
    """201 with an id and the given fields; returns the body."""
    assert_status_code(response, 201)
    assert_json_contains(response, expected, **fields)
    body = response.json()
    assert "id" in body, f"Created resource has no id: {body}"
    return body


def assert_updated_response(response: Response, expected: dict[str, Any] | None = None, **fields) -> dict[str, Any]:
    assert_status_code(response, 200)
    assert_json_contains(response, expected, **fields)
    return response.json()


def assert_deleted_response(response: Response) -> None:
    assert_status_code(response, 204)


def assert_not_found(response: Response, resource_type: str | None = None) -> None:
    """404 whose detail is "<resource_type> not found", or mentions "not found"."""
    assert_status_code(response, 404)
    detail = response.json().get("detail", "")
    if resource_type:
        assert detail == f"{resource_type} not found", f"Unexpected detail: {detail!r}"
    else:
        assert "not found" in detail.lower(), f"Unexpected detail: {detail!r}"


def assert_validation_error(response: Response) -> dict[str, Any]:
    """422 from request body validation; returns the error body."""
    assert_status_code(response, 422)
    return response.json()


# -----------------------------------------------------------------------------
# Git API
# -----------------------------------------------------------------------------

def assert_operation_success(response: Response) -> dict[str, Any]:
    """Commit/push response with success=true; returns the body."""
    assert_status_code(response, 200)
    body = response.json()
    assert body["success"] is True, f"Expected success, got: {body}"
    return body


def assert_operation_failure(response: Response, message: str | None = None) -> dict[str, Any]:
    """Commit/push precondition failures are a 200 with success=false."""
    assert_status_code(response, 200)
    body = response.json()
    assert body["success"] is False, f"Expected failure, got: {body}"
    if message is not None:
        assert body["message"] == message, f"Expected message {message!r}, got {body['message']!r}"
    return body


def assert_commit_hash(value: str) -> None:
    """A full 40 character hex commit id."""
    assert isinstance(value, str) and len(value) == 40, f"Not a commit hash: {value!r}"
    int(value, 16)


def assert_single_current_branch(branches: list[dict[str, Any]]) -> dict[str, Any]:
    current = [b for b in branches if b["is_current"]]
    assert len(current) == 1, f"Expected exactly one current branch, got {current}"
    return current[0]
