"""
Payer directory: resolves a payer id to a person the ledger may bill or pay.

The ledger stores payer ids only. Whether an id still belongs to an active
student (fee ledger) or staff member (salary ledger), and what name to show
for it, is answered here. A payer that no longer resolves leaves its
account in place; listings then show "Deleted Student" / "Deleted Staff".

Usage:
    from ledger.directory import payer_directory

    payer = payer_directory.resolve(LedgerKind.FEE, student_id)
    if payer is None:
        raise PayerNotFound(...)
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from django.contrib.auth import get_user_model

from authentication.models import UserRole
from ledger.models import LedgerKind

PAYER_ROLES = {
    LedgerKind.FEE: (UserRole.STUDENT,),
    LedgerKind.SALARY: (UserRole.TEACHER, UserRole.STAFF),
}

DELETED_PAYER_NAMES = {
    LedgerKind.FEE: "Deleted Student",
    LedgerKind.SALARY: "Deleted Staff",
}


@dataclass(frozen=True)
class Payer:
    id: uuid.UUID
    name: str
    email: str
    role: str


def display_name(kind: str, payer: Payer | None) -> str:
    if payer is None:
        return DELETED_PAYER_NAMES[LedgerKind(kind)]
    return payer.name or payer.email


@runtime_checkable
class PayerDirectory(Protocol):
    """Anything that can answer "who is this payer on this ledger"."""

    def resolve(self, kind: str, payer_id: uuid.UUID) -> Payer | None: ...

    def resolve_many(
        self, kind: str, payer_ids: Iterable[uuid.UUID]
    ) -> dict[uuid.UUID, Payer]: ...


class UserPayerDirectory:
    """Resolves payers against AUTH_USER_MODEL by role and active flag."""

    def _queryset(self, kind: str):
        return get_user_model().objects.filter(
            is_active=True,
            role__in=PAYER_ROLES[LedgerKind(kind)],
        )

    @staticmethod
    def _to_payer(user) -> Payer:
        return Payer(id=user.id, name=user.name, email=user.email, role=user.role)

    def resolve(self, kind: str, payer_id: uuid.UUID) -> Payer | None:
        user = self._queryset(kind).filter(pk=payer_id).first()
        return self._to_payer(user) if user else None

    def resolve_many(
        self, kind: str, payer_ids: Iterable[uuid.UUID]
    ) -> dict[uuid.UUID, Payer]:
        users = self._queryset(kind).filter(pk__in=list(payer_ids))
        return {user.id: self._to_payer(user) for user in users}


payer_directory = UserPayerDirectory()
