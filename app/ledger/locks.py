"""
Concurrency control for ledger rows.

Two complementary mechanisms, used together by the engine:

1. **Row lock + version check** (check_version)
   - SELECT ... FOR UPDATE on the row, then compare ``version``
   - Serializes writers of the same account; unrelated accounts never wait
   - Also how a client's "I last saw version N" is enforced

2. **Guarded update** (compare_and_swap)
   - UPDATE ... WHERE pk = ? AND version = ? [AND extra guard]
   - Re-checks the invariant inside the write itself, so a missing row
     lock (SQLite ignores FOR UPDATE) or a buggy caller cannot break it
   - Zero rows updated means another writer won: ConcurrentConflict

Usage:
    with transaction.atomic():
        account = check_version(Account, account_id, expected_version=3)
        compare_and_swap(
            Account, account.pk, account.version,
            guard=Q(paid_paise__lte=F("total_paise") - amount),
            paid_paise=F("paid_paise") + amount,
        )

Note:
    Must be called within a transaction; the row lock is held until the
    transaction commits or rolls back.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeVar

from django.db import transaction
from django.db.models import F, Q
from django.utils import timezone

from core.exceptions import NotFoundError
from ledger.exceptions import ConcurrentConflict

if TYPE_CHECKING:
    from typing import Any

    from django.db.models import Model

T = TypeVar("T", bound="Model")


def check_version(
    model_class: type[T],
    pk: Any,
    expected_version: int,
) -> T:
    """
    Lock a record and verify it is still at ``expected_version``.

    Returns:
        The locked model instance

    Raises:
        ConcurrentConflict: If the version moved on (concurrent modification)
        NotFoundError: If the record doesn't exist
    """
    with transaction.atomic():
        instance = (
            model_class.objects.select_for_update()
            .filter(pk=pk, version=expected_version)
            .first()
        )

        if instance is None:
            current = model_class.objects.filter(pk=pk).values_list(
                "version", flat=True
            ).first()
            model_name = model_class.__name__
            if current is None:
                raise NotFoundError(
                    f"{model_name} {pk} not found",
                    error_code=f"{model_name.upper()}_NOT_FOUND",
                    details={"pk": str(pk)},
                )
            raise ConcurrentConflict(
                f"{model_name} {pk} has been modified "
                f"(expected version {expected_version}, current {current})",
                details={
                    "pk": str(pk),
                    "expected_version": expected_version,
                    "current_version": current,
                },
            )

        return instance


def compare_and_swap(
    model_class: type[Model],
    pk: Any,
    expected_version: int,
    guard: Q | None = None,
    **changes: Any,
) -> None:
    """
    Apply ``changes`` only if the row is still at ``expected_version`` and
    satisfies ``guard``; bump the version in the same statement.

    Raises:
        ConcurrentConflict: If no row matched
    """
    queryset = model_class.objects.filter(pk=pk, version=expected_version)
    if guard is not None:
        queryset = queryset.filter(guard)

    updated = queryset.update(
        version=F("version") + 1,
        updated_at=timezone.now(),
        **changes,
    )
    if updated != 1:
        raise ConcurrentConflict(
            f"{model_class.__name__} {pk} changed while it was being updated",
            details={"pk": str(pk), "expected_version": expected_version},
        )


__all__ = [
    "check_version",
    "compare_and_swap",
]
