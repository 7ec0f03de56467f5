"""
Installment log: the append-only payment history of an account.

The log is the source of truth for how much has been paid;
``Account.paid_paise`` is a projection of it that the engine keeps in step
inside the same transaction as every append.

Usage:
    from ledger.services.installment_log import installment_log

    page = installment_log.list_for(account, limit=20)
    older = installment_log.list_for(account, limit=20, before=page.next_cursor)
"""

from __future__ import annotations

import uuid

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Q, Sum
from django.db.models.functions import Coalesce

from core.services import BaseService
from ledger.exceptions import DuplicateTransaction
from ledger.models import Account, Installment
from ledger.types import InstallmentPage


class InstallmentLog(BaseService):
    """Append, sum and page through an account's installments."""

    @classmethod
    def append(
        cls,
        account: Account,
        amount_paise: int,
        method: str = "",
        transaction_id: str | None = None,
        recorded_by: str | None = None,
    ) -> Installment:
        """
        Record one installment. Never touches existing rows.

        Must run inside the caller's transaction so that the paired
        ``paid_paise`` update commits or rolls back with it.

        Raises:
            DuplicateTransaction: If ``transaction_id`` is already recorded
        """
        try:
            with transaction.atomic():
                installment = Installment.objects.create(
                    account=account,
                    amount_paise=amount_paise,
                    method=method,
                    transaction_id=transaction_id,
                    recorded_by=recorded_by,
                )
        except IntegrityError as exc:
            if transaction_id and Installment.objects.filter(
                transaction_id=transaction_id
            ).exists():
                raise DuplicateTransaction(
                    f"Transaction {transaction_id} is already recorded",
                    details={"transaction_id": transaction_id},
                ) from exc
            raise

        cls.get_logger().debug(
            "Installment appended",
            extra={
                "installment_id": str(installment.id),
                "account_id": str(account.id),
                "amount_paise": amount_paise,
            },
        )
        return installment

    @staticmethod
    def sum_for(account: Account) -> int:
        return Installment.objects.filter(account=account).aggregate(
            total=Coalesce(Sum("amount_paise"), 0)
        )["total"]

    @classmethod
    def is_consistent(cls, account: Account) -> bool:
        return account.paid_paise == cls.sum_for(account)

    @staticmethod
    def list_for(
        account: Account,
        limit: int | None = None,
        before: uuid.UUID | None = None,
    ) -> InstallmentPage:
        """
        Installments newest first, one page at a time.

        Args:
            limit: Page size (defaults to LEDGER_INSTALLMENT_PAGE_SIZE,
                capped at LEDGER_INSTALLMENT_MAX_PAGE_SIZE)
            before: Id of the last installment already seen. Keyset
                pagination, so appends made while paging do not shift or
                repeat entries. An id from another account yields an
                empty page.
        """
        limit = min(
            limit or settings.LEDGER_INSTALLMENT_PAGE_SIZE,
            settings.LEDGER_INSTALLMENT_MAX_PAGE_SIZE,
        )
        queryset = Installment.objects.filter(account=account).order_by(
            "-paid_on", "-id"
        )

        if before is not None:
            anchor = (
                Installment.objects.filter(account=account, pk=before)
                .values("paid_on", "id")
                .first()
            )
            if anchor is None:
                return InstallmentPage(results=[])
            queryset = queryset.filter(
                Q(paid_on__lt=anchor["paid_on"])
                | Q(paid_on=anchor["paid_on"], id__lt=anchor["id"])
            )

        rows = list(queryset[: limit + 1])
        has_more = len(rows) > limit
        results = rows[:limit]
        return InstallmentPage(
            results=results,
            next_cursor=results[-1].id if has_more else None,
        )


installment_log = InstallmentLog()
