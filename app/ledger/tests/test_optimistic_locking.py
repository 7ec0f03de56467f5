"""
Tests for optimistic locking utilities.

Tests check_version and compare_and_swap against Account rows.
"""

import uuid

import pytest
from django.db import transaction
from django.db.models import F, Q

from core.exceptions import NotFoundError
from ledger.exceptions import ConcurrentConflict
from ledger.locks import check_version, compare_and_swap
from ledger.models import Account
from ledger.tests.factories import AccountFactory


@pytest.fixture
def account(db):
    return AccountFactory(total_paise=10_000, paid_paise=2_000)


class TestCheckVersion:
    def test_returns_instance_when_version_matches(self, account):
        with transaction.atomic():
            result = check_version(Account, account.pk, expected_version=1)

        assert result.pk == account.pk
        assert result.version == 1

    def test_raises_conflict_when_version_mismatch(self, account):
        with pytest.raises(ConcurrentConflict) as exc_info:
            check_version(Account, account.pk, expected_version=999)

        assert "has been modified" in str(exc_info.value)
        assert exc_info.value.details == {
            "pk": str(account.pk),
            "expected_version": 999,
            "current_version": 1,
        }

    def test_raises_not_found_when_record_missing(self, db):
        fake_pk = uuid.uuid4()

        with pytest.raises(NotFoundError) as exc_info:
            check_version(Account, fake_pk, expected_version=1)

        assert exc_info.value.error_code == "ACCOUNT_NOT_FOUND"
        assert exc_info.value.details["pk"] == str(fake_pk)


class TestCompareAndSwap:
    def test_applies_changes_and_bumps_version(self, account):
        compare_and_swap(Account, account.pk, 1, paid_paise=F("paid_paise") + 500)

        account.refresh_from_db()
        assert account.paid_paise == 2_500
        assert account.version == 2

    def test_sets_updated_at(self, account):
        before = account.updated_at

        compare_and_swap(Account, account.pk, 1, late_fee_paise=100)

        account.refresh_from_db()
        assert account.updated_at >= before

    def test_stale_version_writes_nothing(self, account):
        with pytest.raises(ConcurrentConflict):
            compare_and_swap(Account, account.pk, 2, paid_paise=9_000)

        account.refresh_from_db()
        assert account.paid_paise == 2_000
        assert account.version == 1

    def test_guard_refuses_invariant_breaking_write(self, account):
        amount = 8_001

        with pytest.raises(ConcurrentConflict):
            compare_and_swap(
                Account,
                account.pk,
                1,
                guard=Q(paid_paise__lte=F("total_paise") - amount),
                paid_paise=F("paid_paise") + amount,
            )

        account.refresh_from_db()
        assert account.paid_paise == 2_000

    def test_second_writer_with_same_version_loses(self, account):
        compare_and_swap(Account, account.pk, 1, paid_paise=F("paid_paise") + 100)

        with pytest.raises(ConcurrentConflict):
            compare_and_swap(Account, account.pk, 1, paid_paise=F("paid_paise") + 100)

        account.refresh_from_db()
        assert account.paid_paise == 2_100
