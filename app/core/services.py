"""
Base service layer patterns for business logic encapsulation.

This module provides foundational patterns for the service layer:
- ServiceResult: Standard result wrapper for consistent success/failure handling
- BaseService: Base class with common service utilities

Pattern Comparison:
    - Exceptions: single operations raise typed errors (core.exceptions)
      and let the caller decide.
    - ServiceResult: used where many independent operations are collected
      and one failure must not abort the others (e.g. bulk ledger commands).

Usage:
    from core.services import BaseService, ServiceResult

    class ReceiptService(BaseService):
        @classmethod
        def issue(cls, account) -> ServiceResult[Receipt]:
            try:
                with cls.atomic():
                    receipt = Receipt.objects.create(account=account)
            except BaseApplicationError as exc:
                return cls.handle_exception(exc, "receipt issue", logging.WARNING)
            return ServiceResult.ok(receipt)
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import transaction

from core.exceptions import BaseApplicationError

if TYPE_CHECKING:
    from collections.abc import Generator
    from typing import Any

T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Standard result wrapper for service operations.

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful (None if failed)
        error: Error message if failed (None if successful)
        error_code: Machine-readable error code for client handling
        details: Structured error context copied from the raised error
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, data: T) -> ServiceResult[T]:
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> ServiceResult[T]:
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            details=details or {},
        )

    @classmethod
    def from_exception(
        cls, exc: Exception, error_code: str | None = None
    ) -> ServiceResult[T]:
        """
        Create a failed result from an exception.

        Application errors keep their own message, code and details;
        anything else is reported under ``error_code`` (default
        INTERNAL_ERROR) so internals are not leaked to API clients.
        """
        if isinstance(exc, BaseApplicationError):
            return cls.failure(
                exc.message,
                error_code=error_code or exc.error_code,
                details=exc.details,
            )
        return cls.failure(
            "Unexpected error while processing this item",
            error_code=error_code or "INTERNAL_ERROR",
            details={"exception": exc.__class__.__name__},
        )

    def __bool__(self) -> bool:
        return self.success


class BaseService:
    """
    Base class for service layer classes.

    Design Notes:
        - Use @staticmethod or @classmethod (no instance state)
        - Raise exceptions for failures of a single operation
        - Use ServiceResult when collecting many independent outcomes
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Logger named after the service class for easy filtering."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Execute operations in a database transaction.

        A thin wrapper around Django's transaction.atomic() that makes
        transaction boundaries explicit in service code.
        """
        with transaction.atomic():
            yield

    @classmethod
    def handle_exception(
        cls,
        exc: Exception,
        context: str = "",
        log_level: int = logging.ERROR,
        extra: dict[str, Any] | None = None,
    ) -> ServiceResult:
        """
        Convert exception to ServiceResult with logging.

        Tracebacks are attached for unexpected exceptions only; expected
        application errors are logged with their code.
        """
        logger = cls.get_logger()
        message = f"{context}: {exc}" if context else str(exc)
        logger.log(
            log_level,
            message,
            exc_info=not isinstance(exc, BaseApplicationError),
            extra=extra or {},
        )
        return ServiceResult.from_exception(exc)
