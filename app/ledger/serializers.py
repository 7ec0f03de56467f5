"""
Serializers for the ledger API.

Request serializers parse and type-check bodies, then hand the engine a
command dataclass via ``to_params()``; amount and date rules are enforced
again by the dataclasses themselves. Response serializers add the derived
fields (status, remaining, percent paid, payer name) at read time.

Related files:
    - views.py: Views that use these serializers
    - types.py: Command and result dataclasses
"""

from __future__ import annotations

from django.utils import timezone
from rest_framework import serializers

from ledger.directory import display_name, payer_directory
from ledger.models import Account, Installment
from ledger.types import (
    MAX_AMOUNT_PAISE,
    BulkResult,
    PaymentReceipt,
    RecordPaymentParams,
    SetDueParams,
)

# Field errors on these keys are reported as INVALID_AMOUNT
AMOUNT_FIELDS = frozenset(
    {"total_paise", "amount_paise", "due_date", "late_fee_paise", "scholarship_paise"}
)


# =============================================================================
# Response Serializers
# =============================================================================


class InstallmentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Installment
        fields = [
            "id",
            "amount_paise",
            "paid_on",
            "method",
            "transaction_id",
            "recorded_by",
        ]
        read_only_fields = fields


class AccountSerializer(serializers.ModelSerializer):
    """
    Account with read-time derived fields.

    Context:
        payers: Optional {payer_id: Payer} map from resolve_many(), used by
            list views to avoid one directory lookup per row
    """

    status = serializers.SerializerMethodField()
    payer_name = serializers.SerializerMethodField()
    remaining_paise = serializers.IntegerField(read_only=True)
    effective_payable_paise = serializers.IntegerField(read_only=True)
    percent_paid = serializers.DecimalField(
        max_digits=5, decimal_places=2, read_only=True
    )

    class Meta:
        model = Account
        fields = [
            "id",
            "kind",
            "payer_id",
            "payer_name",
            "total_paise",
            "paid_paise",
            "remaining_paise",
            "late_fee_paise",
            "scholarship_paise",
            "effective_payable_paise",
            "percent_paid",
            "currency",
            "due_date",
            "status",
            "version",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_status(self, obj: Account) -> str:
        annotated = getattr(obj, "status_value", None)
        if annotated:
            return annotated
        return obj.status_on(timezone.localdate())

    def get_payer_name(self, obj: Account) -> str:
        payers = self.context.get("payers")
        if payers is not None:
            payer = payers.get(obj.payer_id)
        else:
            payer = payer_directory.resolve(obj.kind, obj.payer_id)
        return display_name(obj.kind, payer)


class PaymentReceiptSerializer(serializers.Serializer):
    account = AccountSerializer(read_only=True)
    installment = InstallmentSerializer(read_only=True)
    replayed = serializers.BooleanField(read_only=True)


class BulkResultSerializer(serializers.BaseSerializer):
    """
    Renders a BulkResult:

        {"summary": "succeeded for 2 of 3", "total": 3, "succeeded": 2,
         "failed": 1, "skipped": 0, "cancelled": false,
         "outcomes": [{"payer_id": ..., "status": "succeeded", "attempts": 1,
                       "account": {...}}, ...]}
    """

    def to_representation(self, result: BulkResult) -> dict:
        return {
            "summary": result.summary,
            "total": result.total,
            "succeeded": result.succeeded,
            "failed": result.failed,
            "skipped": result.skipped,
            "cancelled": result.cancelled,
            "outcomes": [self._outcome(outcome) for outcome in result.outcomes],
        }

    def _outcome(self, outcome) -> dict:
        entry = {
            "payer_id": str(outcome.payer_id),
            "status": outcome.status.value,
            "attempts": outcome.attempts,
        }
        if outcome.succeeded:
            data = outcome.data
            if isinstance(data, PaymentReceipt):
                entry.update(PaymentReceiptSerializer(data, context=self.context).data)
            else:
                entry["account"] = AccountSerializer(data, context=self.context).data
            return entry

        entry["error"] = outcome.error
        entry["error_code"] = outcome.error_code
        if outcome.details:
            entry["details"] = outcome.details
        return entry


# =============================================================================
# Request Serializers
# =============================================================================


class DueFieldsSerializer(serializers.Serializer):
    total_paise = serializers.IntegerField(min_value=1, max_value=MAX_AMOUNT_PAISE)
    due_date = serializers.DateField()
    late_fee_paise = serializers.IntegerField(
        min_value=0, max_value=MAX_AMOUNT_PAISE, required=False, default=0
    )
    scholarship_paise = serializers.IntegerField(
        min_value=0, max_value=MAX_AMOUNT_PAISE, required=False, default=0
    )

    def to_params(self) -> SetDueParams:
        data = self.validated_data
        return SetDueParams(
            total_paise=data["total_paise"],
            due_date=data["due_date"],
            late_fee_paise=data["late_fee_paise"],
            scholarship_paise=data["scholarship_paise"],
        )


class SetDueSerializer(DueFieldsSerializer):
    payer_id = serializers.UUIDField()


class BulkSetDueSerializer(DueFieldsSerializer):
    payer_ids = serializers.ListField(
        child=serializers.UUIDField(), allow_empty=False
    )


class PaymentFieldsSerializer(serializers.Serializer):
    amount_paise = serializers.IntegerField(min_value=1, max_value=MAX_AMOUNT_PAISE)
    method = serializers.CharField(
        max_length=50, required=False, allow_blank=True, default=""
    )
    transaction_id = serializers.CharField(
        max_length=200, required=False, allow_blank=True, allow_null=True, default=None
    )

    def to_params(self, recorded_by: str | None = None) -> RecordPaymentParams:
        data = self.validated_data
        return RecordPaymentParams(
            amount_paise=data["amount_paise"],
            method=data["method"],
            transaction_id=data["transaction_id"],
            expected_version=data.get("expected_version"),
            recorded_by=recorded_by,
        )


class RecordPaymentSerializer(PaymentFieldsSerializer):
    payer_id = serializers.UUIDField()
    expected_version = serializers.IntegerField(
        min_value=1, required=False, allow_null=True, default=None
    )


class BulkRecordPaymentSerializer(PaymentFieldsSerializer):
    payer_ids = serializers.ListField(
        child=serializers.UUIDField(), allow_empty=False
    )


class InstallmentQuerySerializer(serializers.Serializer):
    limit = serializers.IntegerField(min_value=1, required=False)
    before = serializers.UUIDField(required=False)
