"""
Pytest fixtures for ledger tests.

Sections:
    - People: one user per role
    - Accounts: accounts created through the engine
    - Clients: API clients authenticated as a given user
"""

from datetime import timedelta

import pytest
from django.utils import timezone
from rest_framework.test import APIClient

from authentication.tests.factories import (
    AdminFactory,
    HodFactory,
    StaffFactory,
    StudentFactory,
    TeacherFactory,
)
from ledger.models import LedgerKind
from ledger.services.engine import LedgerEngine
from ledger.types import SetDueParams


# ==========================================================================
# People
# ==========================================================================


@pytest.fixture
def student(db):
    return StudentFactory()


@pytest.fixture
def other_student(db):
    return StudentFactory()


@pytest.fixture
def teacher(db):
    return TeacherFactory()


@pytest.fixture
def staff_member(db):
    return StaffFactory()


@pytest.fixture
def hod(db):
    return HodFactory()


@pytest.fixture
def college_admin(db):
    return AdminFactory()


# ==========================================================================
# Accounts
# ==========================================================================


@pytest.fixture
def due_date():
    """A due date comfortably in the future."""
    return timezone.localdate() + timedelta(days=30)


@pytest.fixture
def fee_account(student, due_date):
    """Unpaid fee account of 10,000.00 for ``student``."""
    return LedgerEngine.set_due(
        LedgerKind.FEE, student.id, SetDueParams(10_000_00, due_date)
    )


@pytest.fixture
def salary_account(teacher, due_date):
    """Unpaid salary account of 60,000.00 for ``teacher``."""
    return LedgerEngine.set_due(
        LedgerKind.SALARY, teacher.id, SetDueParams(60_000_00, due_date)
    )


# ==========================================================================
# Clients
# ==========================================================================


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def client_for():
    """
    Build an API client authenticated as ``user``.

    Example:
        response = client_for(college_admin).post(url, payload, format="json")
    """

    def build(user):
        client = APIClient()
        client.force_authenticate(user=user)
        return client

    return build
