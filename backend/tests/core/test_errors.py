"""Error Hierarchy & Envelopes — status codes, codes and response bodies.

Tests:
    - Each client error maps to its HTTP status and code
    - Failure envelopes only carry details when there are any
    - Success and paginated envelopes dump Pydantic models by alias
"""

from uuid import uuid4

from app.core.envelope import error_body, paginated_response, success_response
from app.core.errors import (
    BusinessRuleError, DatabaseError, ErrorCategory, ForbiddenError,
    InsufficientStockError, ResourceNotFoundError, UnauthorizedError,
    ValidationFailedError,
)
from app.core.pagination import PaginationParams
from app.schemas.common import CountResult


def test_status_codes():
    assert ValidationFailedError.single("email", "Email already exists").http_status == 400
    assert BusinessRuleError("nope").http_status == 400
    assert UnauthorizedError().http_status == 401
    assert ForbiddenError().http_status == 403
    assert ResourceNotFoundError("Student").http_status == 404
    assert DatabaseError("timeout", "query").http_status == 503


def test_validation_error_envelope():
    err = ValidationFailedError.single("admissionNumber", "Admission number already exists")
    assert err.category == ErrorCategory.VALIDATION
    assert err.to_response() == {
        "success": False, "error": "Validation failed", "code": "VALIDATION_ERROR",
        "details": {"admissionNumber": ["Admission number already exists"]},
    }


def test_not_found_envelope_has_no_details():
    body = ResourceNotFoundError("Student", str(uuid4())).to_response()
    assert body == {"success": False, "error": "Student not found", "code": "RESOURCE_NOT_FOUND"}


def test_insufficient_stock_names_the_product():
    err = InsufficientStockError("Geometry Box")
    assert err.message == "Insufficient stock for product: Geometry Box"
    assert err.details == {"items": ["Insufficient stock for product: Geometry Box"]}


def test_forbidden_default_message():
    assert ForbiddenError().message == "Insufficient permissions"


def test_error_body_omits_empty_details():
    assert error_body("Bad", "X") == {"success": False, "error": "Bad", "code": "X"}
    assert error_body("Bad", "X", {})["code"] == "X"
    assert "details" not in error_body("Bad", "X", {})


def test_success_envelope_dumps_by_alias():
    body = success_response(CountResult(message="2 notifications marked as read", count=2))
    assert body == {
        "success": True,
        "data": {"message": "2 notifications marked as read", "count": 2},
    }


def test_success_envelope_message_is_optional():
    assert "message" not in success_response({"id": 1})
    assert success_response({"id": 1}, "Done")["message"] == "Done"


def test_paginated_envelope():
    body = paginated_response([{"a": 1}], total=1, params=PaginationParams(page=1, limit=20))
    assert body["success"] is True
    assert body["data"] == [{"a": 1}]
    assert body["pagination"]["totalPages"] == 1
