"""
Ledger-specific exceptions.

Every ledger error inherits from LedgerError and from one core exception
family, so callers can catch either "anything the ledger raised" or "any
not-found error" and views map the family straight to an HTTP status.

Exception Hierarchy:
    LedgerError (base)
    ├── InvalidAmount        (ValidationError) - non-positive amount, bad date
    ├── Overpayment          (ValidationError) - payment above remaining balance
    ├── AccountNotFound      (NotFoundError)   - no account for (kind, payer)
    ├── PayerNotFound        (NotFoundError)   - payer id does not resolve
    ├── ConcurrentConflict   (ConflictError)   - lost a race; safe to retry
    ├── DuplicateTransaction (ConflictError)   - transaction id already used
    └── InstallmentImmutable                   - attempt to edit/delete history

Usage:
    from ledger.exceptions import Overpayment

    if amount > account.remaining_paise:
        raise Overpayment(account.id, attempted=amount, remaining=account.remaining_paise)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import (
    BaseApplicationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)

if TYPE_CHECKING:
    import uuid


class LedgerError(BaseApplicationError):
    """Base exception for all ledger operations."""

    default_error_code: str = "LEDGER_ERROR"


class InvalidAmount(LedgerError, ValidationError):
    """
    Raised for a non-positive total or amount, a negative adjustment, or a
    malformed due date. Also raised when a replacement total would drop
    below what has already been paid.
    """

    default_error_code: str = "INVALID_AMOUNT"


class Overpayment(LedgerError, ValidationError):
    """
    Raised when a payment exceeds the account's remaining balance.

    Stores the attempted amount and the remaining balance for the caller to
    show ("only 2,000.00 left to pay").
    """

    default_error_code: str = "OVERPAYMENT"

    def __init__(
        self,
        account_id: uuid.UUID,
        attempted: int,
        remaining: int,
        message: str | None = None,
    ):
        from ledger.types import Money

        self.account_id = account_id
        self.attempted = attempted
        self.remaining = remaining

        super().__init__(
            message
            or (
                f"Payment of {Money(attempted)} exceeds remaining balance "
                f"of {Money(remaining)}"
            ),
            details={
                "account_id": str(account_id),
                "attempted_paise": attempted,
                "remaining_paise": remaining,
            },
        )


class AccountNotFound(LedgerError, NotFoundError):
    default_error_code: str = "ACCOUNT_NOT_FOUND"


class PayerNotFound(LedgerError, NotFoundError):
    """Raised when a payer id is not an active user eligible for the ledger."""

    default_error_code: str = "PAYER_NOT_FOUND"


class ConcurrentConflict(LedgerError, ConflictError):
    """
    Raised when a concurrent writer changed the account first.

    Also raised when the database gives up waiting for a row lock. Nothing
    was written; the operation can be retried against fresh state.
    """

    default_error_code: str = "CONCURRENT_CONFLICT"


class DuplicateTransaction(LedgerError, ConflictError):
    """
    Raised when a transaction id is already recorded for a different
    account or amount. An exact repeat is a replay, not an error.
    """

    default_error_code: str = "DUPLICATE_TRANSACTION"


class InstallmentImmutable(LedgerError):
    default_error_code: str = "INSTALLMENT_IMMUTABLE"
