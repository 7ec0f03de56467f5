"""
Authentication application.

This app provides the college user model and JWT authentication.

Key components:
    - User model: Email-based user with a college role (student, teacher,
      staff, hod, admin)
    - JWT endpoints: token obtain/refresh (djangorestframework-simplejwt)
    - CurrentUserView: Who am I, with role and institutional ids

Usage:
    from authentication.models import User, UserRole
"""
