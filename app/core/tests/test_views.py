"""
Tests for infrastructure views.
"""

from django.urls import reverse
from rest_framework import status


class TestHealthCheck:
    def test_healthy(self, client, db):
        response = client.get(reverse("health_check"))

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {
            "status": "healthy",
            "database": "connected",
            "cache": "connected",
        }

    def test_open_to_anonymous_clients(self, client, db):
        assert client.get(reverse("health_check")).status_code == status.HTTP_200_OK
