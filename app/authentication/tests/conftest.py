"""
Test configuration and fixtures for authentication tests.

Usage:
    def test_example(user, authenticated_client):
        response = authenticated_client.get("/api/v1/auth/me/")
        assert response.status_code == 200
"""

import pytest
from rest_framework.test import APIClient

from authentication.models import User
from authentication.tests.factories import StudentFactory


@pytest.fixture
def user(db):
    """A student with a roll number."""
    return StudentFactory()


@pytest.fixture
def superuser(db):
    return User.objects.create_superuser(
        email="root@college.example", password="AdminPass123!"
    )


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def authenticated_client(api_client, user):
    """API client authenticated as the default student."""
    api_client.force_authenticate(user=user)
    return api_client
