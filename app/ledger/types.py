"""
Data types for ledger operations.

This module defines dataclasses used between the API layer, the engine and
the bulk coordinator. Command parameters validate themselves on
construction, so an engine call never sees a non-positive amount or a
malformed date regardless of who built the command.

Types:
    Money: A monetary amount in paise with currency
    SetDueParams: Payload of a SetDue command
    RecordPaymentParams: Payload of a RecordPayment command
    PaymentReceipt: What RecordPayment returns
    InstallmentPage: One page of installment history
    TargetOutcome / BulkResult: Per-target results of a bulk command

Usage:
    from ledger.types import Money, SetDueParams

    params = SetDueParams(total_paise=50_000_00, due_date="2026-07-31")
    print(Money(params.total_paise))  # "₹50,000.00 INR"
"""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING, Any

from ledger.exceptions import InvalidAmount

if TYPE_CHECKING:
    from ledger.models import Account, Installment


CURRENCY_SYMBOLS = {"inr": "₹"}

# Largest value a PositiveBigIntegerField column holds on every backend
MAX_AMOUNT_PAISE = 9_223_372_036_854_775_807


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _require_positive(name: str, value: Any) -> None:
    if not _is_int(value) or value <= 0:
        raise InvalidAmount(
            f"{name} must be a positive integer amount in paise",
            details={"field": name, "value": repr(value)},
        )
    _require_within_cap(name, value)


def _require_non_negative(name: str, value: Any) -> None:
    if not _is_int(value) or value < 0:
        raise InvalidAmount(
            f"{name} must be a non-negative integer amount in paise",
            details={"field": name, "value": repr(value)},
        )
    _require_within_cap(name, value)


def _require_within_cap(name: str, value: int) -> None:
    if value > MAX_AMOUNT_PAISE:
        raise InvalidAmount(
            f"{name} exceeds the largest amount the ledger can store",
            details={"field": name, "max_paise": MAX_AMOUNT_PAISE},
        )


def parse_due_date(value: Any) -> date:
    """Accept a date or an ISO-8601 date string; raise InvalidAmount otherwise."""
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value)
        except ValueError:
            pass
    raise InvalidAmount(
        "due_date must be a calendar date (YYYY-MM-DD)",
        details={"field": "due_date", "value": repr(value)},
    )


@dataclass(frozen=True)
class Money:
    """
    A monetary amount in the smallest currency unit.

    Example:
        str(Money(123456))   # "₹1,234.56 INR"
        Money(500) + Money(250) == Money(750)
    """

    paise: int
    currency: str = "inr"

    def __str__(self) -> str:
        sign = "-" if self.paise < 0 else ""
        major, minor = divmod(abs(self.paise), 100)
        symbol = CURRENCY_SYMBOLS.get(self.currency.lower(), "")
        return f"{sign}{symbol}{major:,}.{minor:02d} {self.currency.upper()}"

    def _check_currency(self, other: Money, verb: str) -> None:
        if self.currency != other.currency:
            raise ValueError(
                f"Cannot {verb} Money with different currencies: "
                f"{self.currency} and {other.currency}"
            )

    def __add__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other, "add")
        return Money(self.paise + other.paise, self.currency)

    def __sub__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other, "subtract")
        return Money(self.paise - other.paise, self.currency)


# =============================================================================
# Commands
# =============================================================================


@dataclass
class SetDueParams:
    """
    Parameters for SetDue.

    Attributes:
        total_paise: New amount due (replaces any previous total)
        due_date: date or ISO string; normalized to a date
        late_fee_paise / scholarship_paise: Display adjustments
    """

    total_paise: int
    due_date: date
    late_fee_paise: int = 0
    scholarship_paise: int = 0

    def __post_init__(self):
        _require_positive("total_paise", self.total_paise)
        _require_non_negative("late_fee_paise", self.late_fee_paise)
        _require_non_negative("scholarship_paise", self.scholarship_paise)
        self.due_date = parse_due_date(self.due_date)


@dataclass
class RecordPaymentParams:
    """
    Parameters for RecordPayment.

    Attributes:
        amount_paise: Positive amount being paid
        method: Channel tag, stored verbatim
        transaction_id: External reference for idempotent replays
        expected_version: Account version the client last saw; when given,
            the payment is refused if the account changed since
        recorded_by: Operator identifier for the audit trail
    """

    amount_paise: int
    method: str = ""
    transaction_id: str | None = None
    expected_version: int | None = None
    recorded_by: str | None = None

    def __post_init__(self):
        _require_positive("amount_paise", self.amount_paise)
        self.method = (self.method or "").strip()
        self.transaction_id = (self.transaction_id or "").strip() or None


# =============================================================================
# Results
# =============================================================================


@dataclass
class PaymentReceipt:
    account: Account
    installment: Installment
    replayed: bool = False


@dataclass
class InstallmentPage:
    """Installments newest first; ``next_cursor`` is None on the last page."""

    results: list[Installment]
    next_cursor: uuid.UUID | None = None


class OutcomeStatus(str, enum.Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class TargetOutcome:
    """
    Result of a bulk command for one payer.

    ``data`` holds the engine's return value on success (an Account for
    SetDue, a PaymentReceipt for RecordPayment).
    """

    payer_id: uuid.UUID
    status: OutcomeStatus
    data: Any = None
    error: str | None = None
    error_code: str | None = None
    details: dict[str, Any] = field(default_factory=dict)
    attempts: int = 0

    @property
    def succeeded(self) -> bool:
        return self.status is OutcomeStatus.SUCCEEDED


@dataclass
class BulkResult:
    """Outcomes in the order the (deduplicated) targets were given."""

    outcomes: list[TargetOutcome]
    cancelled: bool = False

    @property
    def total(self) -> int:
        return len(self.outcomes)

    def _count(self, status: OutcomeStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status is status)

    @property
    def succeeded(self) -> int:
        return self._count(OutcomeStatus.SUCCEEDED)

    @property
    def failed(self) -> int:
        return self._count(OutcomeStatus.FAILED)

    @property
    def skipped(self) -> int:
        return self._count(OutcomeStatus.SKIPPED)

    @property
    def summary(self) -> str:
        return f"succeeded for {self.succeeded} of {self.total}"
