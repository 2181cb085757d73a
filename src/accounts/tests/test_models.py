"""Tests for the CustomUser model."""

import pytest

from django.db import IntegrityError, transaction

from accounts.models import CustomUser
from assets.factories import UserFactory


class TestDisplayName:
    def test_prefers_display_name(self, db):
        user = UserFactory(display_name="Sam Field", first_name="Samuel")
        assert user.get_display_name() == "Sam Field"
        assert str(user) == "Sam Field"

    def test_falls_back_to_full_name(self, db):
        user = UserFactory(
            display_name="", first_name="Alex", last_name="Kerr"
        )
        assert user.get_display_name() == "Alex Kerr"

    def test_falls_back_to_username(self, db):
        user = UserFactory(username="jdoe", display_name="")
        assert user.get_display_name() == "jdoe"


class TestRole:
    def test_default_role_is_user(self, db):
        user = CustomUser.objects.create_user(username="plain", password="x")
        assert user.role == CustomUser.ROLE_USER
        assert not user.is_admin_role

    def test_admin_role(self, admin_user):
        assert admin_user.is_admin_role

    def test_superuser_counts_as_admin(self, superuser):
        assert superuser.role == CustomUser.ROLE_USER
        assert superuser.is_admin_role


class TestEmployeeId:
    def test_unique(self, db):
        UserFactory(employee_id="E-100")
        with pytest.raises(IntegrityError):
            with transaction.atomic():
                UserFactory(employee_id="E-100")

    def test_blank_ids_allowed_for_many_users(self, db):
        UserFactory(employee_id=None)
        UserFactory(employee_id=None)
        assert CustomUser.objects.filter(employee_id__isnull=True).count() == 2
