"""
Ledger models for college fees and staff salaries.

This module defines the two persistent records of the ledger:
- Account: What one payer owes on one ledger (fee or salary) and how much
  of it has been paid
- Installment: One immutable payment against an account

Both ledgers share the same shape; ``Account.kind`` says which one a row
belongs to. ``Account.paid_paise`` is a cached projection of the account's
installments and is only ever changed together with an installment append
(see ledger.services.engine).

Status is never stored. It is derived from (total, paid, due_date, today)
either in Python (``derive_status``/``Account.status``) or in SQL
(``Account.objects.with_status(today)``); both implement the same rule.

Usage:
    from ledger.models import Account, AccountStatus, LedgerKind

    account = Account.objects.get(kind=LedgerKind.FEE, payer_id=student.id)
    account.status           # AccountStatus.PARTIAL
    account.remaining_paise  # total - paid

    overdue = Account.objects.with_status(today).filter(status_value="overdue")
"""

from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings
from django.db import models
from django.db.models import Case, CharField, F, Q, Value, When
from django.utils import timezone

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel
from ledger.exceptions import InstallmentImmutable


class LedgerKind(models.TextChoices):
    """
    The two ledger instances.

    Values:
        FEE: Students paying tuition and other dues to the college
        SALARY: The college paying teaching and non-teaching staff
    """

    FEE = "fee", "Fee"
    SALARY = "salary", "Salary"


class AccountStatus(models.TextChoices):
    """Derived payment status of an account."""

    UNPAID = "unpaid", "Unpaid"
    PARTIAL = "partial", "Partially paid"
    PAID = "paid", "Paid"
    OVERDUE = "overdue", "Overdue"


def derive_status(total: int, paid: int, due_date: date, today: date) -> AccountStatus:
    """
    Derive an account's status. Pure: no clock, no database.

    A fully paid account is PAID even after its due date; an account with
    money outstanding past its due date is OVERDUE whether or not anything
    was paid.
    """
    if paid >= total:
        return AccountStatus.PAID
    if today > due_date:
        return AccountStatus.OVERDUE
    if paid > 0:
        return AccountStatus.PARTIAL
    return AccountStatus.UNPAID


# =============================================================================
# Account
# =============================================================================


def default_currency() -> str:
    return settings.LEDGER_CURRENCY


class AccountQuerySet(models.QuerySet):
    def for_kind(self, kind: str) -> AccountQuerySet:
        return self.filter(kind=kind)

    def with_status(self, today: date | None = None) -> AccountQuerySet:
        """
        Annotate ``status_value`` with the same rule as derive_status().

        The When clauses are evaluated in order, mirroring the if-chain.
        """
        today = today or timezone.localdate()
        return self.annotate(
            status_value=Case(
                When(paid_paise__gte=F("total_paise"), then=Value(AccountStatus.PAID)),
                When(due_date__lt=today, then=Value(AccountStatus.OVERDUE)),
                When(paid_paise__gt=0, then=Value(AccountStatus.PARTIAL)),
                default=Value(AccountStatus.UNPAID),
                output_field=CharField(),
            )
        )


class Account(UUIDPrimaryKeyMixin, BaseModel):
    """
    One payer's position on one ledger.

    Fields:
        kind: Which ledger (fee or salary)
        payer_id: Id of the student or staff member. Not a foreign key: the
            user may be deleted while the account, being financial history,
            is kept (see ledger.directory for the display fallback)
        total_paise: Amount due, in the smallest currency unit
        paid_paise: Sum of this account's installments
        late_fee_paise / scholarship_paise: Display adjustments; they do not
            change what can be recorded against the account
        due_date: Calendar date after which unpaid money is overdue
        version: Incremented on every mutation, for optimistic locking

    Invariants:
        0 <= paid_paise <= total_paise (enforced by check constraints)
        paid_paise == sum of installment amounts (audited by
        ledger.tasks.audit_ledger_integrity)
    """

    kind = models.CharField(
        max_length=10,
        choices=LedgerKind.choices,
        help_text="Ledger this account belongs to",
    )
    payer_id = models.UUIDField(
        db_index=True,
        help_text="User who owes (fee) or is owed (salary) the amount",
    )
    total_paise = models.PositiveBigIntegerField(
        help_text="Amount due in paise",
    )
    paid_paise = models.PositiveBigIntegerField(
        default=0,
        help_text="Cumulative amount paid in paise",
    )
    late_fee_paise = models.PositiveBigIntegerField(
        default=0,
        help_text="Late fee shown to the payer (not part of total)",
    )
    scholarship_paise = models.PositiveBigIntegerField(
        default=0,
        help_text="Scholarship shown to the payer (not part of total)",
    )
    currency = models.CharField(
        max_length=3,
        default=default_currency,
        help_text="ISO currency code (lowercase)",
    )
    due_date = models.DateField()
    version = models.PositiveIntegerField(
        default=1,
        help_text="Version for optimistic locking - incremented on each mutation",
    )

    objects = AccountQuerySet.as_manager()

    class Meta:
        ordering = ["due_date", "created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["kind", "payer_id"],
                name="unique_ledger_account_per_payer",
            ),
            models.CheckConstraint(
                condition=Q(total_paise__gt=0),
                name="ledger_account_total_positive",
            ),
            models.CheckConstraint(
                condition=Q(paid_paise__lte=F("total_paise")),
                name="ledger_account_paid_within_total",
            ),
        ]
        indexes = [
            models.Index(fields=["kind", "due_date"], name="ledger_acct_kind_due_idx"),
        ]

    def __str__(self) -> str:
        return (
            f"{self.get_kind_display()} account {self.payer_id} "
            f"({self.paid_paise}/{self.total_paise} {self.currency.upper()})"
        )

    def save(self, *args, **kwargs):
        """
        Save with version auto-increment for optimistic locking.

        Engine mutations go through guarded QuerySet.update() calls instead;
        this covers every other save of an existing row.
        """
        is_update = not self._state.adding and not kwargs.get("force_insert", False)
        if is_update:
            self.version = F("version") + 1
        super().save(*args, **kwargs)
        if is_update:
            self.refresh_from_db(fields=["version"])

    def status_on(self, today: date) -> AccountStatus:
        return derive_status(self.total_paise, self.paid_paise, self.due_date, today)

    @property
    def status(self) -> AccountStatus:
        """Status as of the current local date."""
        return self.status_on(timezone.localdate())

    @property
    def remaining_paise(self) -> int:
        return self.total_paise - self.paid_paise

    @property
    def effective_payable_paise(self) -> int:
        """Total adjusted by late fee and scholarship, floored at zero."""
        return max(self.total_paise + self.late_fee_paise - self.scholarship_paise, 0)

    @property
    def percent_paid(self) -> Decimal:
        if not self.total_paise:
            return Decimal("0.00")
        ratio = Decimal(self.paid_paise) * 100 / Decimal(self.total_paise)
        return ratio.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


# =============================================================================
# Installment
# =============================================================================


class Installment(UUIDPrimaryKeyMixin, models.Model):
    """
    One payment recorded against an account. Append-only.

    Fields:
        account: The account paid into (PROTECT: history is never cascaded)
        amount_paise: Positive amount in paise
        paid_on: When the payment was recorded
        method: Free-form channel tag ("cash", "upi", "bank_transfer", ...)
        transaction_id: Optional external reference; unique when present and
            used to make payment recording idempotent
        recorded_by: Who recorded it (user id or task name), for audit

    Rows cannot be changed or deleted through the ORM instance API; a
    correction is a new installment on a new or replaced due.
    """

    account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="installments",
    )
    amount_paise = models.PositiveBigIntegerField(
        help_text="Amount paid in paise (always positive)",
    )
    paid_on = models.DateTimeField(
        default=timezone.now,
        db_index=True,
    )
    method = models.CharField(
        max_length=50,
        blank=True,
        default="",
        help_text="Payment channel, e.g. cash, upi, bank_transfer",
    )
    transaction_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="External reference; repeated submissions are deduplicated on it",
    )
    recorded_by = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Operator who recorded the payment",
    )

    class Meta:
        ordering = ["-paid_on", "-id"]
        indexes = [
            models.Index(
                fields=["account", "-paid_on"], name="ledger_inst_account_paid_idx"
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount_paise__gt=0),
                name="ledger_installment_amount_positive",
            ),
            models.UniqueConstraint(
                fields=["transaction_id"],
                condition=Q(transaction_id__isnull=False),
                name="unique_installment_transaction_id",
            ),
        ]

    def __str__(self) -> str:
        return f"Installment {self.id}: {self.amount_paise} paise on {self.paid_on:%Y-%m-%d}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise InstallmentImmutable(
                "Installments cannot be modified once recorded",
                details={"installment_id": str(self.pk)},
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise InstallmentImmutable(
            "Installments cannot be deleted",
            details={"installment_id": str(self.pk)},
        )
