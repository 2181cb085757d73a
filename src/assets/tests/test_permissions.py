"""Tests for role-based gating."""

from django.contrib.auth.models import AnonymousUser

from assets.factories import UserFactory
from assets.services.permissions import (
    can_archive_assets,
    can_assign_assets,
    can_import_assets,
    can_transition_asset,
    is_admin,
)


class TestIsAdmin:
    def test_admin_role(self, admin_user):
        assert is_admin(admin_user)

    def test_superuser(self, superuser):
        assert is_admin(superuser)

    def test_user_role(self, user):
        assert not is_admin(user)

    def test_inactive_admin(self, db):
        assert not is_admin(UserFactory(role="ADMIN", is_active=False))

    def test_anonymous(self):
        assert not is_admin(AnonymousUser())


class TestCapabilities:
    def test_user_can_assign_not_import(self, user):
        assert can_assign_assets(user)
        assert not can_import_assets(user)
        assert not can_archive_assets(user)

    def test_admin_can_do_everything(self, admin_user):
        assert can_assign_assets(admin_user)
        assert can_import_assets(admin_user)
        assert can_archive_assets(admin_user)

    def test_anonymous_cannot_assign(self):
        assert not can_assign_assets(AnonymousUser())

    def test_release_from_holding_needs_admin(
        self, user, admin_user, holding_asset
    ):
        assert not can_transition_asset(user, holding_asset)
        assert can_transition_asset(admin_user, holding_asset)

    def test_other_transitions_open_to_users(self, user, asset):
        assert can_transition_asset(user, asset)
