"""
Serializers for the college user model.

Related files:
    - views.py: CurrentUserView
"""

from rest_framework import serializers

from authentication.models import User


class UserSerializer(serializers.ModelSerializer):
    """Read-only representation of the current user."""

    class Meta:
        model = User
        fields = [
            "id",
            "email",
            "name",
            "role",
            "student_id",
            "teacher_id",
            "department_code",
            "date_joined",
        ]
        read_only_fields = fields
