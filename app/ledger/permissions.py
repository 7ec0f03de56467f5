"""
Permission classes for the ledger API.

Role matrix (superusers pass every check):

    Ledger   Manage (set dues, record payments)   View any account
    fee      admin                                 admin, hod, teacher
    salary   hod                                   hod, admin

Every payer may view their own account and installments.

Views receive the ledger kind as ``view.kwargs["kind"]`` (set by the URL
include in ledger.urls), so one view class serves both ledgers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rest_framework import permissions

from authentication.models import UserRole
from ledger.models import LedgerKind

if TYPE_CHECKING:
    from rest_framework.request import Request
    from rest_framework.views import APIView


LEDGER_MANAGERS = {
    LedgerKind.FEE: (UserRole.ADMIN,),
    LedgerKind.SALARY: (UserRole.HOD,),
}

LEDGER_VIEWERS = {
    LedgerKind.FEE: (UserRole.ADMIN, UserRole.HOD, UserRole.TEACHER),
    LedgerKind.SALARY: (UserRole.HOD, UserRole.ADMIN),
}


def can_manage(user, kind: str) -> bool:
    return bool(
        user
        and user.is_authenticated
        and (user.is_superuser or user.role in LEDGER_MANAGERS[LedgerKind(kind)])
    )


def can_view_all(user, kind: str) -> bool:
    return bool(
        user
        and user.is_authenticated
        and (user.is_superuser or user.role in LEDGER_VIEWERS[LedgerKind(kind)])
    )


class IsLedgerManager(permissions.BasePermission):
    """Allows ledger mutations to the roles that own that ledger."""

    message = "You do not manage this ledger."

    def has_permission(self, request: Request, view: APIView) -> bool:
        return can_manage(request.user, view.kwargs["kind"])


class IsLedgerViewer(permissions.BasePermission):
    """Allows listing every account on a ledger."""

    message = "You cannot view accounts on this ledger."

    def has_permission(self, request: Request, view: APIView) -> bool:
        return can_view_all(request.user, view.kwargs["kind"])


class IsPayerOrLedgerViewer(permissions.BasePermission):
    """
    Allows reading one payer's account to that payer and to ledger viewers.

    The payer is taken from ``view.kwargs["payer_id"]``.
    """

    message = "You can only view your own account."

    def has_permission(self, request: Request, view: APIView) -> bool:
        user = request.user
        if not (user and user.is_authenticated):
            return False
        if str(view.kwargs.get("payer_id")) == str(user.id):
            return True
        return can_view_all(user, view.kwargs["kind"])
