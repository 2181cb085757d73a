"""Read-only lookups against the user and location directories."""

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError

from ..exceptions import UserNotFound
from ..models import Location

User = get_user_model()


def get_assignee(user_id) -> User:
    """Return the active user an asset can be bound to.

    Raises UserNotFound for unknown, malformed or inactive ids.
    """
    if user_id in (None, ""):
        raise UserNotFound(user_id)
    try:
        return User.objects.get(pk=user_id, is_active=True)
    except (User.DoesNotExist, ValueError, TypeError, ValidationError):
        raise UserNotFound(user_id) from None


def find_location(name: str) -> Location | None:
    """Return the active location called name (case-insensitive)."""
    if not name:
        return None
    return Location.objects.filter(name__iexact=name, is_active=True).first()
