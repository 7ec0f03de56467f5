"""
Base exception classes for application-wide error handling.

Every domain error raised by a service derives from BaseApplicationError and
from exactly one family below. Views translate the family into an HTTP status
via ``http_status`` so that new domain errors need no view changes.

Exception Hierarchy:
    BaseApplicationError (base, 500)
    ├── ValidationError - Rejected input or business rule violation (400)
    ├── NotFoundError - Resource not found (404)
    └── ConflictError - Duplicates, concurrent modifications (409)

Usage:
    from core.exceptions import NotFoundError

    raise NotFoundError(
        "Account not found",
        error_code="ACCOUNT_NOT_FOUND",
        details={"payer_id": str(payer_id)},
    )

    # In a view
    except BaseApplicationError as e:
        return Response(e.to_dict(), status=e.http_status)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (ids, amounts, field errors)
    """

    default_error_code: str = "APPLICATION_ERROR"
    http_status: int = 500

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Example:
            {
                "error": "Account not found",
                "error_code": "ACCOUNT_NOT_FOUND",
                "details": {"payer_id": "..."}
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input is rejected by service-layer validation.

    For request parsing, DRF serializers validate first; services still
    validate because they are also called from tasks and the shell.
    """

    default_error_code: str = "VALIDATION_ERROR"
    http_status: int = 400


class NotFoundError(BaseApplicationError):
    """
    Raised when a single-resource lookup finds nothing.

    List queries return empty results instead of raising.
    """

    default_error_code: str = "NOT_FOUND"
    http_status: int = 404


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with current resource state.

    Use for:
    - Duplicate entries (unique constraint violations)
    - Concurrent modification conflicts (optimistic locking failures)
    """

    default_error_code: str = "CONFLICT"
    http_status: int = 409
