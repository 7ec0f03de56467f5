"""
Authentication models.

This module defines the college user model:
- User: email-based login, one role per user, optional college identifiers

The ledger references users only by ``id`` (see ledger.directory); a deleted
user leaves ledger accounts in place.

Related files:
    - managers.py: Custom user manager for email-based creation
"""

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models

from authentication.managers import UserManager
from core.model_mixins import UUIDPrimaryKeyMixin


class UserRole(models.TextChoices):
    """College roles. Staff roles draw salaries, students pay fees."""

    STUDENT = "student", "Student"
    TEACHER = "teacher", "Teacher"
    STAFF = "staff", "Staff"
    HOD = "hod", "Head of Department"
    ADMIN = "admin", "Administrator"


class User(UUIDPrimaryKeyMixin, AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as the primary identifier.

    Fields:
        email: Primary identifier, unique, used for login
        name: Display name shown on ledgers and receipts
        role: College role (drives ledger permissions)
        student_id / teacher_id: Institutional roll or staff numbers
        department_code: Department the user belongs to
    """

    email = models.EmailField(
        unique=True,
        db_index=True,
        max_length=254,
        help_text="User's email address (primary identifier)",
    )
    name = models.CharField(max_length=150, blank=True, default="")
    role = models.CharField(
        max_length=20,
        choices=UserRole.choices,
        default=UserRole.STUDENT,
        db_index=True,
    )
    student_id = models.CharField(
        max_length=50,
        unique=True,
        null=True,
        blank=True,
        help_text="Institutional roll number (students only)",
    )
    teacher_id = models.CharField(
        max_length=50,
        unique=True,
        null=True,
        blank=True,
        help_text="Institutional staff number (teaching staff only)",
    )
    department_code = models.CharField(max_length=20, blank=True, default="")

    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site.",
    )

    date_joined = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["-date_joined"]

    def __str__(self):
        return self.email

    def get_full_name(self):
        return self.name or self.email

    def get_short_name(self):
        return self.name.split(" ")[0] if self.name else self.email.split("@")[0]

    def has_role(self, *roles) -> bool:
        return self.role in roles
