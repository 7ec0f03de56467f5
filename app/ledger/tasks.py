"""
Celery tasks for the ledger.

This module provides:
- audit_ledger_integrity: Periodic check that every account's cached
  ``paid_paise`` equals the sum of its installments and never exceeds
  its total. Scheduled hourly via celery-beat (migration 0002).

The audit only reports; it never repairs. A divergent account means a
write bypassed the ledger engine and needs a human to look at it.

Usage:
    from ledger.tasks import audit_ledger_integrity

    audit_ledger_integrity.delay()
    audit_ledger_integrity.delay(kind="salary")
"""

from __future__ import annotations

import logging

from celery import shared_task
from django.db.models import F, Q, Sum
from django.db.models.functions import Coalesce

from ledger.models import Account

logger = logging.getLogger(__name__)


@shared_task
def audit_ledger_integrity(kind: str | None = None) -> dict:
    """
    Compare every account against its installment log.

    Args:
        kind: Restrict the audit to one ledger ("fee" or "salary")

    Returns:
        Dict with the number of accounts checked and the ids of divergent
        accounts
    """
    accounts = Account.objects.all()
    if kind:
        accounts = accounts.for_kind(kind)

    checked = accounts.count()
    divergent_rows = (
        accounts.annotate(
            installment_total=Coalesce(Sum("installments__amount_paise"), 0)
        )
        .filter(
            ~Q(paid_paise=F("installment_total")) | Q(paid_paise__gt=F("total_paise"))
        )
        .values("id", "kind", "payer_id", "total_paise", "paid_paise", "installment_total")
        .order_by("id")
    )

    divergent = []
    for row in divergent_rows.iterator():
        entry = {
            "account_id": str(row["id"]),
            "kind": row["kind"],
            "payer_id": str(row["payer_id"]),
            "total_paise": row["total_paise"],
            "paid_paise": row["paid_paise"],
            "installment_total_paise": row["installment_total"],
        }
        logger.error("Ledger account diverges from its installments", extra=entry)
        divergent.append(entry)

    if divergent:
        logger.error(
            f"Ledger audit found {len(divergent)} divergent accounts",
            extra={"checked": checked, "divergent": len(divergent), "kind": kind},
        )
    else:
        logger.info(
            f"Ledger audit passed for {checked} accounts",
            extra={"checked": checked, "kind": kind},
        )

    return {
        "status": "divergent" if divergent else "ok",
        "checked": checked,
        "divergent": [entry["account_id"] for entry in divergent],
    }
