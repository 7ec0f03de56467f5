"""
Ledger API views.

One set of views serves both ledgers; the URL include passes the ledger
kind as ``kind`` (see ledger.urls).

Endpoints (relative to /api/v1/fees/ or /api/v1/salaries/):
    POST set-due/                    - SetDue for one payer
    POST record-payment/             - RecordPayment for one payer
    POST bulk-set-due/               - SetDue for many payers
    POST bulk-record-payment/        - RecordPayment for many payers
    GET  accounts/                   - All accounts (?status=overdue)
    GET  accounts/me/                - The caller's own account
    GET  accounts/{payer_id}/        - One account
    GET  installments/{payer_id}/    - Installment history (?limit=&before=)

Error responses use the application error envelope
``{"error", "error_code", "details"}`` with the status of the error family:
400 validation, 404 not found, 409 conflict.
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import BaseApplicationError, ValidationError
from ledger.directory import payer_directory
from ledger.exceptions import InvalidAmount
from ledger.models import AccountStatus
from ledger.permissions import IsLedgerManager, IsLedgerViewer, IsPayerOrLedgerViewer
from ledger.serializers import (
    AMOUNT_FIELDS,
    AccountSerializer,
    BulkRecordPaymentSerializer,
    BulkResultSerializer,
    BulkSetDueSerializer,
    InstallmentQuerySerializer,
    InstallmentSerializer,
    PaymentReceiptSerializer,
    RecordPaymentSerializer,
    SetDueSerializer,
)
from ledger.services.bulk_coordinator import BulkOperationCoordinator
from ledger.services.engine import LedgerEngine
from ledger.services.installment_log import InstallmentLog


class LedgerAPIView(APIView):
    """
    Base view: renders application errors with their own status code and
    turns serializer errors into INVALID_AMOUNT / VALIDATION_ERROR.
    """

    permission_classes = [IsAuthenticated]

    def handle_exception(self, exc):
        if isinstance(exc, BaseApplicationError):
            return Response(exc.to_dict(), status=exc.http_status)
        return super().handle_exception(exc)

    @staticmethod
    def validated(serializer):
        if serializer.is_valid():
            return serializer
        errors = serializer.errors
        if AMOUNT_FIELDS & set(errors):
            raise InvalidAmount("Invalid amount or due date", details=errors)
        raise ValidationError("Invalid request", details=errors)

    def recorded_by(self) -> str:
        return str(self.request.user.pk)


# =============================================================================
# Mutations
# =============================================================================


class SetDueView(LedgerAPIView):
    permission_classes = [IsAuthenticated, IsLedgerManager]

    @extend_schema(
        summary="Set or replace a payer's due",
        description=(
            "Creates the account on first use. Later calls replace total, due "
            "date and adjustments; amounts already paid are kept."
        ),
        tags=["Ledger"],
        request=SetDueSerializer,
        responses={200: AccountSerializer},
    )
    def post(self, request, kind):
        serializer = self.validated(SetDueSerializer(data=request.data))
        account = LedgerEngine.set_due(
            kind, serializer.validated_data["payer_id"], serializer.to_params()
        )
        return Response(AccountSerializer(account).data)


class RecordPaymentView(LedgerAPIView):
    permission_classes = [IsAuthenticated, IsLedgerManager]

    @extend_schema(
        summary="Record a payment",
        description=(
            "Appends an installment. Resubmitting the same transaction_id and "
            "amount returns the original installment with replayed=true."
        ),
        tags=["Ledger"],
        request=RecordPaymentSerializer,
        responses={200: PaymentReceiptSerializer, 201: PaymentReceiptSerializer},
    )
    def post(self, request, kind):
        serializer = self.validated(RecordPaymentSerializer(data=request.data))
        receipt = LedgerEngine.record_payment(
            kind,
            serializer.validated_data["payer_id"],
            serializer.to_params(recorded_by=self.recorded_by()),
        )
        return Response(
            PaymentReceiptSerializer(receipt).data,
            status=status.HTTP_200_OK if receipt.replayed else status.HTTP_201_CREATED,
        )


class BulkSetDueView(LedgerAPIView):
    permission_classes = [IsAuthenticated, IsLedgerManager]

    @extend_schema(
        summary="Set the same due for many payers",
        description="Each payer succeeds or fails on its own; see outcomes.",
        tags=["Ledger - Bulk"],
        request=BulkSetDueSerializer,
        responses={200: BulkResultSerializer},
    )
    def post(self, request, kind):
        serializer = self.validated(BulkSetDueSerializer(data=request.data))
        result = BulkOperationCoordinator().bulk_set_due(
            kind, serializer.validated_data["payer_ids"], serializer.to_params()
        )
        return Response(BulkResultSerializer(result).data)


class BulkRecordPaymentView(LedgerAPIView):
    permission_classes = [IsAuthenticated, IsLedgerManager]

    @extend_schema(
        summary="Record the same payment for many payers",
        description=(
            "Each payer succeeds or fails on its own; see outcomes. A "
            "transaction_id is suffixed with each payer id."
        ),
        tags=["Ledger - Bulk"],
        request=BulkRecordPaymentSerializer,
        responses={200: BulkResultSerializer},
    )
    def post(self, request, kind):
        serializer = self.validated(BulkRecordPaymentSerializer(data=request.data))
        result = BulkOperationCoordinator().bulk_record_payment(
            kind,
            serializer.validated_data["payer_ids"],
            serializer.to_params(recorded_by=self.recorded_by()),
        )
        return Response(BulkResultSerializer(result).data)


# =============================================================================
# Reads
# =============================================================================


class AccountListView(LedgerAPIView):
    permission_classes = [IsAuthenticated, IsLedgerViewer]

    @extend_schema(
        summary="List accounts on a ledger",
        tags=["Ledger"],
        parameters=[
            OpenApiParameter(
                name="status",
                description="Filter by derived status",
                required=False,
                type=str,
                enum=AccountStatus.values,
            ),
        ],
        responses={200: AccountSerializer(many=True)},
    )
    def get(self, request, kind):
        status_filter = request.query_params.get("status")
        if status_filter and status_filter not in AccountStatus.values:
            raise ValidationError(
                f"Unknown status {status_filter!r}",
                details={"status": AccountStatus.values},
            )

        queryset = LedgerEngine.list_accounts(kind, status=status_filter)
        paginator = PageNumberPagination()
        page = paginator.paginate_queryset(queryset, request, view=self)
        payers = payer_directory.resolve_many(kind, [a.payer_id for a in page])
        serializer = AccountSerializer(page, many=True, context={"payers": payers})
        return paginator.get_paginated_response(serializer.data)


class MyAccountView(LedgerAPIView):
    @extend_schema(
        summary="Get my account",
        tags=["Ledger"],
        responses={200: AccountSerializer},
    )
    def get(self, request, kind):
        account = LedgerEngine.get_account(kind, request.user.pk)
        return Response(AccountSerializer(account).data)


class AccountDetailView(LedgerAPIView):
    permission_classes = [IsAuthenticated, IsPayerOrLedgerViewer]

    @extend_schema(
        summary="Get a payer's account",
        tags=["Ledger"],
        responses={200: AccountSerializer},
    )
    def get(self, request, kind, payer_id):
        account = LedgerEngine.get_account(kind, payer_id)
        return Response(AccountSerializer(account).data)


class InstallmentListView(LedgerAPIView):
    permission_classes = [IsAuthenticated, IsPayerOrLedgerViewer]

    @extend_schema(
        summary="List a payer's installments",
        description=(
            "Newest first. Pass next_cursor back as ?before= to fetch the "
            "following page."
        ),
        tags=["Ledger"],
        parameters=[InstallmentQuerySerializer],
        responses={200: InstallmentSerializer(many=True)},
    )
    def get(self, request, kind, payer_id):
        query = self.validated(InstallmentQuerySerializer(data=request.query_params))
        account = LedgerEngine.get_account(kind, payer_id)
        page = InstallmentLog.list_for(
            account,
            limit=query.validated_data.get("limit"),
            before=query.validated_data.get("before"),
        )
        return Response(
            {
                "results": InstallmentSerializer(page.results, many=True).data,
                "next_cursor": str(page.next_cursor) if page.next_cursor else None,
            }
        )
