"""
Tests for authentication app.

This package contains test modules for:
- test_managers.py: UserManager create_user/create_superuser
- test_models.py: User identity, names and roles
- test_views.py: JWT token and current-user endpoints

Usage:
    pytest authentication/tests/
"""
