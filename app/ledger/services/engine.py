"""
Ledger engine: the only code that mutates accounts.

Operations:
    set_due        - create an account, or replace its total and due date
    record_payment - append an installment and advance ``paid`` with it
    get_account / get_balance / list_accounts - reads

Every mutation runs in one database transaction that:
1. locks the account row (SELECT ... FOR UPDATE, plus check_version when
   the caller supplied the version it last saw),
2. validates against the locked state,
3. writes through a guarded UPDATE that re-checks version and invariant.

So two payments racing on one account serialize on the row lock, and
if anything slips past the lock the guarded UPDATE refuses it
(ConcurrentConflict). Payments on different accounts never wait on each
other.

Usage:
    from ledger.services.engine import engine
    from ledger.types import RecordPaymentParams, SetDueParams

    engine.set_due(LedgerKind.FEE, student.id, SetDueParams(10_000_00, "2026-07-31"))
    receipt = engine.record_payment(
        LedgerKind.FEE, student.id, RecordPaymentParams(4_000_00, method="upi")
    )
    receipt.account.status  # AccountStatus.PARTIAL
"""

from __future__ import annotations

import uuid

from django.db import IntegrityError, OperationalError, transaction
from django.db.models import F, Q

from core.exceptions import ValidationError
from core.services import BaseService
from ledger.directory import PayerDirectory, payer_directory
from ledger.exceptions import (
    AccountNotFound,
    ConcurrentConflict,
    DuplicateTransaction,
    InvalidAmount,
    Overpayment,
    PayerNotFound,
)
from ledger.locks import check_version, compare_and_swap
from ledger.models import Account, AccountQuerySet, Installment, LedgerKind
from ledger.services.installment_log import InstallmentLog
from ledger.types import Money, PaymentReceipt, RecordPaymentParams, SetDueParams


def _ledger_kind(kind: str) -> LedgerKind:
    try:
        return LedgerKind(kind)
    except ValueError:
        raise ValidationError(
            f"Unknown ledger {kind!r}",
            error_code="UNKNOWN_LEDGER",
            details={"kind": str(kind)},
        ) from None


class LedgerEngine(BaseService):
    """
    Service for fee and salary ledger mutations.

    ``directory`` is class-level so tests and alternative deployments can
    swap the payer lookup without touching call sites.
    """

    directory: PayerDirectory = payer_directory

    # =========================================================================
    # Reads
    # =========================================================================

    @staticmethod
    def get_account(kind: str, payer_id: uuid.UUID) -> Account:
        """
        Raises:
            AccountNotFound: If the payer has no account on this ledger
        """
        account = Account.objects.filter(
            kind=_ledger_kind(kind), payer_id=payer_id
        ).first()
        if account is None:
            raise AccountNotFound(
                f"No {kind} account for payer {payer_id}",
                details={"kind": str(kind), "payer_id": str(payer_id)},
            )
        return account

    @classmethod
    def get_balance(cls, kind: str, payer_id: uuid.UUID) -> Money:
        """Remaining amount to be paid."""
        account = cls.get_account(kind, payer_id)
        return Money(account.remaining_paise, account.currency)

    @staticmethod
    def list_accounts(kind: str, status: str | None = None) -> AccountQuerySet:
        queryset = Account.objects.for_kind(_ledger_kind(kind)).with_status()
        if status:
            queryset = queryset.filter(status_value=status)
        return queryset

    # =========================================================================
    # SetDue
    # =========================================================================

    @classmethod
    def set_due(
        cls,
        kind: str,
        payer_id: uuid.UUID,
        params: SetDueParams,
    ) -> Account:
        """
        Create the payer's account, or replace total/due date/adjustments.

        Replacement keeps ``paid`` and the installment history. A new total
        below what has already been paid is refused.

        Raises:
            InvalidAmount: Replacement total below amount already paid
            PayerNotFound: Payer is not an active user of the right role
            ConcurrentConflict: Lost a race or timed out waiting for the row
        """
        kind = _ledger_kind(kind)
        if cls.directory.resolve(kind, payer_id) is None:
            raise PayerNotFound(
                f"Payer {payer_id} is not an active {kind} payer",
                details={"kind": kind.value, "payer_id": str(payer_id)},
            )

        logger = cls.get_logger()
        try:
            with cls.atomic():
                account = (
                    Account.objects.select_for_update()
                    .filter(kind=kind, payer_id=payer_id)
                    .first()
                )
                if account is None:
                    account = cls._create_account(kind, payer_id, params)
                    if account is not None:
                        logger.info(
                            "Ledger account created",
                            extra={
                                "account_id": str(account.id),
                                "kind": kind.value,
                                "payer_id": str(payer_id),
                                "total_paise": params.total_paise,
                                "due_date": params.due_date.isoformat(),
                            },
                        )
                        return account
                    # Lost the creation race: replace what the winner wrote
                    account = Account.objects.select_for_update().get(
                        kind=kind, payer_id=payer_id
                    )

                cls._replace_due(account, params)
                account.refresh_from_db()
        except OperationalError as exc:
            raise cls._contention_error(kind, payer_id, exc) from exc

        logger.info(
            "Ledger due replaced",
            extra={
                "account_id": str(account.id),
                "kind": kind.value,
                "payer_id": str(payer_id),
                "total_paise": account.total_paise,
                "paid_paise": account.paid_paise,
                "due_date": account.due_date.isoformat(),
                "version": account.version,
            },
        )
        return account

    @staticmethod
    def _create_account(
        kind: LedgerKind, payer_id: uuid.UUID, params: SetDueParams
    ) -> Account | None:
        """Insert a new account; None if a concurrent SetDue inserted first."""
        try:
            with transaction.atomic():
                return Account.objects.create(
                    kind=kind,
                    payer_id=payer_id,
                    total_paise=params.total_paise,
                    paid_paise=0,
                    late_fee_paise=params.late_fee_paise,
                    scholarship_paise=params.scholarship_paise,
                    due_date=params.due_date,
                )
        except IntegrityError:
            if Account.objects.filter(kind=kind, payer_id=payer_id).exists():
                return None
            raise

    @staticmethod
    def _replace_due(account: Account, params: SetDueParams) -> None:
        if params.total_paise < account.paid_paise:
            raise InvalidAmount(
                f"Total {Money(params.total_paise, account.currency)} is below the "
                f"{Money(account.paid_paise, account.currency)} already paid",
                details={
                    "account_id": str(account.id),
                    "total_paise": params.total_paise,
                    "paid_paise": account.paid_paise,
                },
            )
        compare_and_swap(
            Account,
            account.pk,
            account.version,
            guard=Q(paid_paise__lte=params.total_paise),
            total_paise=params.total_paise,
            due_date=params.due_date,
            late_fee_paise=params.late_fee_paise,
            scholarship_paise=params.scholarship_paise,
        )

    # =========================================================================
    # RecordPayment
    # =========================================================================

    @classmethod
    def record_payment(
        cls,
        kind: str,
        payer_id: uuid.UUID,
        params: RecordPaymentParams,
    ) -> PaymentReceipt:
        """
        Record one payment against the payer's account.

        A repeated call with the same ``transaction_id`` and amount on the
        same account returns the original installment (``replayed=True``)
        and changes nothing.

        Raises:
            AccountNotFound: No account for (kind, payer)
            Overpayment: Amount exceeds the remaining balance
            DuplicateTransaction: transaction_id used for another payment
            ConcurrentConflict: expected_version is stale, a concurrent
                writer won, or the row lock timed out
        """
        kind = _ledger_kind(kind)
        logger = cls.get_logger()

        try:
            with cls.atomic():
                account = cls._lock_account(kind, payer_id)

                replay = cls._find_replay(account, params)
                if replay is not None:
                    logger.info(
                        "Payment replay ignored",
                        extra={
                            "account_id": str(account.id),
                            "installment_id": str(replay.id),
                            "transaction_id": params.transaction_id,
                        },
                    )
                    return PaymentReceipt(account=account, installment=replay, replayed=True)

                if params.expected_version is not None:
                    account = check_version(Account, account.pk, params.expected_version)

                remaining = account.remaining_paise
                if params.amount_paise > remaining:
                    logger.warning(
                        "Payment rejected: overpayment",
                        extra={
                            "account_id": str(account.id),
                            "attempted_paise": params.amount_paise,
                            "remaining_paise": remaining,
                        },
                    )
                    raise Overpayment(
                        account.id,
                        attempted=params.amount_paise,
                        remaining=remaining,
                    )

                installment = InstallmentLog.append(
                    account,
                    params.amount_paise,
                    method=params.method,
                    transaction_id=params.transaction_id,
                    recorded_by=params.recorded_by,
                )
                compare_and_swap(
                    Account,
                    account.pk,
                    account.version,
                    guard=Q(paid_paise__lte=F("total_paise") - params.amount_paise),
                    paid_paise=F("paid_paise") + params.amount_paise,
                )
                account.refresh_from_db()
        except OperationalError as exc:
            raise cls._contention_error(kind, payer_id, exc) from exc

        logger.info(
            "Payment recorded",
            extra={
                "account_id": str(account.id),
                "installment_id": str(installment.id),
                "kind": kind.value,
                "payer_id": str(payer_id),
                "amount_paise": params.amount_paise,
                "paid_paise": account.paid_paise,
                "total_paise": account.total_paise,
            },
        )
        return PaymentReceipt(account=account, installment=installment)

    @staticmethod
    def _lock_account(kind: LedgerKind, payer_id: uuid.UUID) -> Account:
        account_id = (
            Account.objects.filter(kind=kind, payer_id=payer_id)
            .values_list("id", flat=True)
            .first()
        )
        if account_id is None:
            raise AccountNotFound(
                f"No {kind} account for payer {payer_id}",
                details={"kind": kind.value, "payer_id": str(payer_id)},
            )
        return Account.objects.select_for_update().get(pk=account_id)

    @staticmethod
    def _find_replay(account: Account, params: RecordPaymentParams) -> Installment | None:
        if not params.transaction_id:
            return None
        existing = Installment.objects.filter(
            transaction_id=params.transaction_id
        ).first()
        if existing is None:
            return None
        if existing.account_id == account.id and existing.amount_paise == params.amount_paise:
            return existing
        raise DuplicateTransaction(
            f"Transaction {params.transaction_id} is already recorded for another payment",
            details={
                "transaction_id": params.transaction_id,
                "installment_id": str(existing.id),
            },
        )

    @classmethod
    def _contention_error(
        cls, kind: LedgerKind, payer_id: uuid.UUID, exc: OperationalError
    ) -> ConcurrentConflict:
        cls.get_logger().warning(
            "Ledger write gave up waiting for the database",
            extra={"kind": kind.value, "payer_id": str(payer_id), "error": str(exc)},
        )
        return ConcurrentConflict(
            "The account is busy; retry the operation",
            details={"kind": kind.value, "payer_id": str(payer_id)},
        )


engine = LedgerEngine()
