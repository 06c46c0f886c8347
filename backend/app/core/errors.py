"""Error Hierarchy — typed, categorized exceptions for every SchoolHub failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - to_response() produces the failure envelope {success: false, error, code, details?}
    - Validation failures carry field-keyed message lists: {field: [messages]}
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with SchoolHubError base: FastAPI global handler catches all
      (ADR: uniform error shape for every route)
    - ErrorContext as dataclass: request identity travels with the error into logs
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    RESOURCE_NOT_FOUND = "resource_not_found"
    DATABASE = "database"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Who and where: attached to log records, never to responses."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    user_id: str | None = None
    school_id: str | None = None
    module: str | None = None
    debug_info: dict[str, Any] | None = None


class SchoolHubError(Exception):
    """Base exception for all SchoolHub errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
        details: dict[str, list[str]] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status
        self.details = details

    def to_response(self) -> dict:
        """Convert to the failure envelope."""
        body: dict[str, Any] = {
            "success": False,
            "error": self.message,
            "code": self.code,
        }
        if self.details:
            body["details"] = self.details
        return body


# ─── Client Errors (400-level) ──────────────────────────────────

class ValidationFailedError(SchoolHubError):
    """Input failed a field-level rule (format, uniqueness, cross-reference)."""
    def __init__(
        self, details: dict[str, list[str]], context: ErrorContext | None = None,
    ):
        super().__init__(
            "Validation failed", "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 400, details,
        )

    @classmethod
    def single(cls, field_name: str, message: str) -> "ValidationFailedError":
        return cls({field_name: [message]})


class BusinessRuleError(SchoolHubError):
    """Operation is well-formed but not allowed in the current state."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "BUSINESS_RULE_VIOLATION", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.WARNING, context, 400,
        )


class InsufficientStockError(SchoolHubError):
    """A marketplace order asked for more units than the product has."""
    def __init__(self, product_name: str, context: ErrorContext | None = None):
        message = f"Insufficient stock for product: {product_name}"
        super().__init__(
            message, "INSUFFICIENT_STOCK", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.WARNING, context, 400, {"items": [message]},
        )
        self.product_name = product_name


class InsufficientBalanceError(SchoolHubError):
    """A wallet debit exceeds the wallet balance."""
    def __init__(self, balance: float, required: float, context: ErrorContext | None = None):
        super().__init__(
            f"Insufficient wallet balance: {balance:.2f} available, {required:.2f} required",
            "INSUFFICIENT_BALANCE", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.WARNING, context, 400,
        )


class UnauthorizedError(SchoolHubError):
    """No valid credentials on the request."""
    def __init__(self, message: str = "Unauthorized", context: ErrorContext | None = None):
        super().__init__(
            message, "UNAUTHORIZED", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, context, 401,
        )


class ForbiddenError(SchoolHubError):
    """Authenticated, but the role or tenant does not permit the operation."""
    def __init__(self, message: str = "Insufficient permissions", context: ErrorContext | None = None):
        super().__init__(
            message, "FORBIDDEN", ErrorCategory.AUTHORIZATION,
            ErrorSeverity.WARNING, context, 403,
        )


class ResourceNotFoundError(SchoolHubError):
    """Requested resource does not exist or lies outside the caller's school."""
    def __init__(
        self, resource_type: str, resource_id: str | None = None,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} not found", "RESOURCE_NOT_FOUND",
            ErrorCategory.RESOURCE_NOT_FOUND, ErrorSeverity.WARNING, context, 404,
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


# ─── Infrastructure Errors (500-level) ──────────────────────────

class DatabaseError(SchoolHubError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation
