"""
Tests for the ledger API endpoints.

Both ledgers are served by the same views under /api/v1/fees/ and
/api/v1/salaries/; role checks differ per ledger.
"""

import uuid

import pytest
from django.urls import reverse
from rest_framework import status

from authentication.tests.factories import StudentFactory
from ledger.models import Account, Installment, LedgerKind
from ledger.services.engine import LedgerEngine
from ledger.types import RecordPaymentParams, SetDueParams

FEE = LedgerKind.FEE
SALARY = LedgerKind.SALARY


def set_due_payload(payer_id, due_date, total=10_000_00, **extra):
    return {
        "payer_id": str(payer_id),
        "total_paise": total,
        "due_date": due_date.isoformat(),
        **extra,
    }


# =============================================================================
# SetDue
# =============================================================================


class TestSetDueView:
    def test_admin_sets_fee_due(self, client_for, college_admin, student, due_date):
        response = client_for(college_admin).post(
            reverse("fees:set-due"),
            set_due_payload(student.id, due_date, scholarship_paise=1_000_00),
            format="json",
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["payer_id"] == str(student.id)
        assert response.data["payer_name"] == student.name
        assert response.data["kind"] == "fee"
        assert response.data["status"] == "unpaid"
        assert response.data["remaining_paise"] == 10_000_00
        assert response.data["effective_payable_paise"] == 9_000_00
        assert response.data["percent_paid"] == "0.00"
        assert response.data["version"] == 1

    def test_hod_sets_salary_due(self, client_for, hod, teacher, due_date):
        response = client_for(hod).post(
            reverse("salaries:set-due"),
            set_due_payload(teacher.id, due_date, total=60_000_00),
            format="json",
        )

        assert response.status_code == status.HTTP_200_OK
        assert Account.objects.get(kind=SALARY).payer_id == teacher.id

    @pytest.mark.parametrize(
        "ledger, role_fixture",
        [
            ("fees", "hod"),
            ("fees", "student"),
            ("fees", "teacher"),
            ("salaries", "college_admin"),
            ("salaries", "teacher"),
        ],
    )
    def test_other_roles_cannot_set_dues(
        self, request, client_for, ledger, role_fixture, student, due_date
    ):
        user = request.getfixturevalue(role_fixture)

        response = client_for(user).post(
            reverse(f"{ledger}:set-due"),
            set_due_payload(student.id, due_date),
            format="json",
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert not Account.objects.exists()

    def test_requires_authentication(self, api_client, student, due_date):
        response = api_client.post(
            reverse("fees:set-due"), set_due_payload(student.id, due_date), format="json"
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    @pytest.mark.parametrize(
        "override",
        [
            {"total_paise": 0},
            {"total_paise": -500},
            {"total_paise": "ten"},
            {"due_date": "31-07-2026"},
            {"late_fee_paise": -1},
        ],
    )
    def test_invalid_amount_or_date(
        self, client_for, college_admin, student, due_date, override
    ):
        payload = {**set_due_payload(student.id, due_date), **override}

        response = client_for(college_admin).post(
            reverse("fees:set-due"), payload, format="json"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "INVALID_AMOUNT"

    @pytest.mark.parametrize("field", ["total_paise", "late_fee_paise", "scholarship_paise"])
    def test_amount_beyond_storable_range(
        self, client_for, college_admin, student, due_date, field
    ):
        payload = {**set_due_payload(student.id, due_date), field: 10**19}

        response = client_for(college_admin).post(
            reverse("fees:set-due"), payload, format="json"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "INVALID_AMOUNT"
        assert field in response.data["details"]
        assert not Account.objects.exists()

    def test_missing_payer_is_a_validation_error(
        self, client_for, college_admin, due_date
    ):
        response = client_for(college_admin).post(
            reverse("fees:set-due"),
            {"total_paise": 100, "due_date": due_date.isoformat()},
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "VALIDATION_ERROR"
        assert "payer_id" in response.data["details"]

    def test_unknown_payer(self, client_for, college_admin, due_date):
        response = client_for(college_admin).post(
            reverse("fees:set-due"), set_due_payload(uuid.uuid4(), due_date), format="json"
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data["error_code"] == "PAYER_NOT_FOUND"

    def test_replacement_below_paid(self, client_for, college_admin, student, fee_account):
        LedgerEngine.record_payment(FEE, student.id, RecordPaymentParams(5_000_00))

        response = client_for(college_admin).post(
            reverse("fees:set-due"),
            set_due_payload(student.id, fee_account.due_date, total=4_000_00),
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "INVALID_AMOUNT"


# =============================================================================
# RecordPayment
# =============================================================================


class TestRecordPaymentView:
    def post(self, client, payer_id, **payload):
        return client.post(
            reverse("fees:record-payment"),
            {"payer_id": str(payer_id), **payload},
            format="json",
        )

    def test_records_payment(self, client_for, college_admin, student, fee_account):
        response = self.post(
            client_for(college_admin),
            student.id,
            amount_paise=4_000_00,
            method="upi",
            transaction_id="UTR-100",
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["replayed"] is False
        assert response.data["account"]["paid_paise"] == 4_000_00
        assert response.data["account"]["status"] == "partial"
        assert response.data["account"]["percent_paid"] == "40.00"
        assert response.data["installment"]["amount_paise"] == 4_000_00
        assert response.data["installment"]["recorded_by"] == str(college_admin.id)

    def test_replay_returns_200(self, client_for, college_admin, student, fee_account):
        client = client_for(college_admin)
        first = self.post(client, student.id, amount_paise=1_000_00, transaction_id="UTR-5")

        second = self.post(client, student.id, amount_paise=1_000_00, transaction_id="UTR-5")

        assert second.status_code == status.HTTP_200_OK
        assert second.data["replayed"] is True
        assert second.data["installment"]["id"] == first.data["installment"]["id"]
        assert Installment.objects.count() == 1

    def test_overpayment(self, client_for, college_admin, student, fee_account):
        response = self.post(client_for(college_admin), student.id, amount_paise=10_000_01)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "OVERPAYMENT"
        assert response.data["details"]["remaining_paise"] == 10_000_00
        assert not Installment.objects.exists()

    def test_zero_amount(self, client_for, college_admin, student, fee_account):
        response = self.post(client_for(college_admin), student.id, amount_paise=0)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "INVALID_AMOUNT"

    def test_amount_beyond_storable_range(
        self, client_for, college_admin, student, fee_account
    ):
        response = self.post(client_for(college_admin), student.id, amount_paise=10**19)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "INVALID_AMOUNT"
        assert not Installment.objects.exists()

    def test_account_not_found(self, client_for, college_admin, student):
        response = self.post(client_for(college_admin), student.id, amount_paise=100)

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data["error_code"] == "ACCOUNT_NOT_FOUND"

    def test_duplicate_transaction(self, client_for, college_admin, student, fee_account):
        client = client_for(college_admin)
        self.post(client, student.id, amount_paise=1_000_00, transaction_id="UTR-6")

        response = self.post(client, student.id, amount_paise=2_000_00, transaction_id="UTR-6")

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data["error_code"] == "DUPLICATE_TRANSACTION"

    def test_stale_expected_version(self, client_for, college_admin, student, fee_account):
        client = client_for(college_admin)
        self.post(client, student.id, amount_paise=1_000_00)

        response = self.post(
            client, student.id, amount_paise=1_000_00, expected_version=fee_account.version
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data["error_code"] == "CONCURRENT_CONFLICT"

    def test_student_cannot_record_own_payment(self, client_for, student, fee_account):
        response = self.post(client_for(student), student.id, amount_paise=100)

        assert response.status_code == status.HTTP_403_FORBIDDEN


# =============================================================================
# Bulk
# =============================================================================


class TestBulkViews:
    def test_bulk_set_due_reports_each_payer(self, client_for, college_admin, due_date):
        students = StudentFactory.create_batch(3)
        stranger = uuid.uuid4()

        response = client_for(college_admin).post(
            reverse("fees:bulk-set-due"),
            {
                "payer_ids": [str(s.id) for s in students] + [str(stranger)],
                "total_paise": 5_000_00,
                "due_date": due_date.isoformat(),
            },
            format="json",
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["summary"] == "succeeded for 3 of 4"
        assert response.data["failed"] == 1
        outcomes = response.data["outcomes"]
        assert outcomes[0]["status"] == "succeeded"
        assert outcomes[0]["account"]["status"] == "unpaid"
        assert outcomes[3] == {
            "payer_id": str(stranger),
            "status": "failed",
            "attempts": 1,
            "error": outcomes[3]["error"],
            "error_code": "PAYER_NOT_FOUND",
            "details": {"kind": "fee", "payer_id": str(stranger)},
        }

    def test_bulk_record_payment(self, client_for, hod, teacher, staff_member, due_date):
        for person in (teacher, staff_member):
            LedgerEngine.set_due(SALARY, person.id, SetDueParams(50_000_00, due_date))

        response = client_for(hod).post(
            reverse("salaries:bulk-record-payment"),
            {
                "payer_ids": [str(teacher.id), str(staff_member.id)],
                "amount_paise": 50_000_00,
                "method": "neft",
                "transaction_id": "PAYROLL-2026-10",
            },
            format="json",
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["summary"] == "succeeded for 2 of 2"
        first = response.data["outcomes"][0]
        assert first["account"]["status"] == "paid"
        assert first["installment"]["transaction_id"] == f"PAYROLL-2026-10:{teacher.id}"
        assert first["replayed"] is False

    def test_bulk_rejects_amount_beyond_storable_range(
        self, client_for, college_admin, due_date
    ):
        students = StudentFactory.create_batch(2)

        response = client_for(college_admin).post(
            reverse("fees:bulk-set-due"),
            {
                "payer_ids": [str(s.id) for s in students],
                "total_paise": 10**19,
                "due_date": due_date.isoformat(),
            },
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "INVALID_AMOUNT"
        assert not Account.objects.exists()

    def test_empty_payer_ids(self, client_for, college_admin, due_date):
        response = client_for(college_admin).post(
            reverse("fees:bulk-set-due"),
            {"payer_ids": [], "total_paise": 100, "due_date": due_date.isoformat()},
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "VALIDATION_ERROR"

    def test_too_many_payers(self, client_for, college_admin, due_date, settings):
        settings.LEDGER_BULK_MAX_TARGETS = 2

        response = client_for(college_admin).post(
            reverse("fees:bulk-set-due"),
            {
                "payer_ids": [str(uuid.uuid4()) for _ in range(3)],
                "total_paise": 100,
                "due_date": due_date.isoformat(),
            },
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["details"]["max_targets"] == 2

    def test_requires_manager(self, client_for, teacher, due_date):
        response = client_for(teacher).post(
            reverse("fees:bulk-set-due"),
            {"payer_ids": [str(uuid.uuid4())], "total_paise": 100, "due_date": due_date.isoformat()},
            format="json",
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN


# =============================================================================
# Reads
# =============================================================================


class TestAccountListView:
    def test_lists_fee_accounts(self, client_for, college_admin, fee_account, salary_account):
        response = client_for(college_admin).get(reverse("fees:account-list"))

        assert response.status_code == status.HTTP_200_OK
        assert response.data["count"] == 1
        assert response.data["results"][0]["id"] == str(fee_account.id)

    def test_filters_by_status(self, client_for, college_admin, student, other_student, due_date):
        LedgerEngine.set_due(FEE, student.id, SetDueParams(1_000, due_date))
        LedgerEngine.set_due(FEE, other_student.id, SetDueParams(1_000, due_date))
        LedgerEngine.record_payment(FEE, student.id, RecordPaymentParams(1_000))

        response = client_for(college_admin).get(
            reverse("fees:account-list"), {"status": "paid"}
        )

        assert [a["payer_id"] for a in response.data["results"]] == [str(student.id)]
        assert response.data["results"][0]["status"] == "paid"

    def test_unknown_status(self, client_for, college_admin):
        response = client_for(college_admin).get(
            reverse("fees:account-list"), {"status": "settled"}
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_departed_payer_shown_as_deleted(self, client_for, college_admin, student, fee_account):
        student.is_active = False
        student.save()

        response = client_for(college_admin).get(reverse("fees:account-list"))

        assert response.data["results"][0]["payer_name"] == "Deleted Student"

    @pytest.mark.parametrize(
        "ledger, role_fixture, expected",
        [
            ("fees", "teacher", status.HTTP_200_OK),
            ("fees", "hod", status.HTTP_200_OK),
            ("fees", "student", status.HTTP_403_FORBIDDEN),
            ("salaries", "hod", status.HTTP_200_OK),
            ("salaries", "college_admin", status.HTTP_200_OK),
            ("salaries", "teacher", status.HTTP_403_FORBIDDEN),
            ("salaries", "staff_member", status.HTTP_403_FORBIDDEN),
        ],
    )
    def test_role_access(self, request, client_for, ledger, role_fixture, expected):
        user = request.getfixturevalue(role_fixture)

        response = client_for(user).get(reverse(f"{ledger}:account-list"))

        assert response.status_code == expected


class TestAccountDetailViews:
    def test_my_account(self, client_for, student, fee_account):
        response = client_for(student).get(reverse("fees:account-me"))

        assert response.status_code == status.HTTP_200_OK
        assert response.data["id"] == str(fee_account.id)

    def test_my_account_missing(self, client_for, student):
        response = client_for(student).get(reverse("fees:account-me"))

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data["error_code"] == "ACCOUNT_NOT_FOUND"

    def test_payer_reads_own_account(self, client_for, student, fee_account):
        response = client_for(student).get(
            reverse("fees:account-detail", kwargs={"payer_id": student.id})
        )

        assert response.status_code == status.HTTP_200_OK

    def test_payer_cannot_read_someone_else(self, client_for, student, other_student, fee_account):
        response = client_for(other_student).get(
            reverse("fees:account-detail", kwargs={"payer_id": student.id})
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_teacher_reads_student_account(self, client_for, teacher, student, fee_account):
        response = client_for(teacher).get(
            reverse("fees:account-detail", kwargs={"payer_id": student.id})
        )

        assert response.status_code == status.HTTP_200_OK


class TestInstallmentListView:
    @pytest.fixture
    def paid_thrice(self, student, fee_account):
        return [
            LedgerEngine.record_payment(FEE, student.id, RecordPaymentParams(1_000_00)).installment
            for _ in range(3)
        ]

    def test_pages_with_cursor(self, client_for, student, paid_thrice):
        client = client_for(student)
        url = reverse("fees:installment-list", kwargs={"payer_id": student.id})

        first = client.get(url, {"limit": 2})
        second = client.get(url, {"limit": 2, "before": first.data["next_cursor"]})

        assert first.status_code == status.HTTP_200_OK
        assert len(first.data["results"]) == 2
        assert first.data["next_cursor"] is not None
        assert len(second.data["results"]) == 1
        assert second.data["next_cursor"] is None
        seen = {i["id"] for i in first.data["results"] + second.data["results"]}
        assert seen == {str(i.id) for i in paid_thrice}

    def test_invalid_limit(self, client_for, student, fee_account):
        response = client_for(student).get(
            reverse("fees:installment-list", kwargs={"payer_id": student.id}),
            {"limit": 0},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "VALIDATION_ERROR"

    def test_other_student_forbidden(self, client_for, student, other_student, fee_account):
        response = client_for(other_student).get(
            reverse("fees:installment-list", kwargs={"payer_id": student.id})
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
