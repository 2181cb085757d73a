"""Custom user model for ITAM."""

from django.contrib.auth.models import AbstractUser
from django.db import models


class CustomUser(AbstractUser):
    """Employee record that assets can be assigned to.

    Users are maintained by the directory owner; the lifecycle services
    only read ``role`` and ``is_active``.
    """

    ROLE_ADMIN = "ADMIN"
    ROLE_USER = "USER"
    ROLE_CHOICES = [
        (ROLE_ADMIN, "Admin"),
        (ROLE_USER, "User"),
    ]

    display_name = models.CharField(
        max_length=255,
        blank=True,
        help_text="Human-readable name shown on assignment records",
    )
    role = models.CharField(
        max_length=10, choices=ROLE_CHOICES, default=ROLE_USER
    )
    employee_id = models.CharField(
        max_length=50,
        unique=True,
        null=True,
        blank=True,
        help_text="HR employee number",
    )
    department = models.CharField(max_length=255, blank=True)

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"

    @property
    def is_admin_role(self):
        return self.is_superuser or self.role == self.ROLE_ADMIN

    def get_display_name(self):
        """Return display_name if set, otherwise full name or username."""
        if self.display_name:
            return self.display_name
        full = self.get_full_name()
        return full if full else self.username

    def __str__(self):
        return self.get_display_name()
