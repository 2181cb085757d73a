"""Role-based gating for lifecycle operations.

Only the user's ``role`` and ``is_active`` flag are consulted.
"""

from django.contrib.auth import get_user_model

from ..models import Asset

User = get_user_model()


def is_admin(user: User) -> bool:
    """Superusers and ADMIN-role users."""
    if not user.is_authenticated or not user.is_active:
        return False
    return user.is_superuser or user.role == User.ROLE_ADMIN


def can_assign_assets(user: User) -> bool:
    """Both ADMIN and USER roles may assign and unassign."""
    return user.is_authenticated and user.is_active


def can_import_assets(user: User) -> bool:
    return is_admin(user)


def can_archive_assets(user: User) -> bool:
    return is_admin(user)


def can_transition_asset(user: User, asset: Asset) -> bool:
    """Releasing an imported unit from HOLDING is an ADMIN action."""
    if asset.state == Asset.HOLDING:
        return is_admin(user)
    return can_assign_assets(user)
