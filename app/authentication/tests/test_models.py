"""
Tests for the User model.
"""

import uuid

from authentication.models import UserRole
from authentication.tests.factories import StudentFactory, TeacherFactory, UserFactory


class TestUser:
    def test_primary_key_is_uuid(self, db):
        user = UserFactory()

        assert isinstance(user.pk, uuid.UUID)

    def test_str_is_email(self, db):
        user = UserFactory(email="meera@college.example")

        assert str(user) == "meera@college.example"

    def test_full_name_falls_back_to_email(self, db):
        user = UserFactory(name="", email="anon@college.example")

        assert user.get_full_name() == "anon@college.example"
        assert user.get_short_name() == "anon"

    def test_short_name_is_first_word_of_name(self, db):
        user = UserFactory(name="Ravi Kumar")

        assert user.get_short_name() == "Ravi"

    def test_has_role(self, db):
        teacher = TeacherFactory()

        assert teacher.has_role(UserRole.TEACHER, UserRole.STAFF) is True
        assert teacher.has_role(UserRole.STUDENT) is False

    def test_student_factory_assigns_roll_number(self, db):
        student = StudentFactory()

        assert student.student_id.startswith("STU")
        assert student.teacher_id is None
