"""
Django admin configuration for the college user model.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from authentication.models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Admin for User, customized for email login and college roles."""

    list_display = (
        "email",
        "name",
        "role",
        "department_code",
        "is_active",
        "date_joined",
    )
    list_filter = ("role", "is_active", "is_staff", "department_code")
    search_fields = ("email", "name", "student_id", "teacher_id")
    ordering = ("-date_joined",)
    readonly_fields = ("date_joined", "last_login")

    fieldsets = (
        (None, {"fields": ("email", "password")}),
        (
            "College",
            {"fields": ("name", "role", "student_id", "teacher_id", "department_code")},
        ),
        (
            "Status",
            {"fields": ("is_active", "is_staff", "is_superuser")},
        ),
        (
            "Permissions",
            {"fields": ("groups", "user_permissions")},
        ),
        (
            "Important dates",
            {"fields": ("date_joined", "last_login")},
        ),
    )

    add_fieldsets = (
        (
            None,
            {
                "classes": ("wide",),
                "fields": ("email", "name", "role", "password1", "password2"),
            },
        ),
    )
