"""Admin configuration for accounts app."""

from unfold.admin import ModelAdmin
from unfold.decorators import display

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .models import CustomUser


@admin.register(CustomUser)
class CustomUserAdmin(UserAdmin, ModelAdmin):
    model = CustomUser
    list_display = [
        "username",
        "display_name",
        "employee_id",
        "department",
        "display_role",
        "is_active",
    ]
    list_filter = ["role", "is_active", "department"]
    search_fields = [
        "username",
        "email",
        "display_name",
        "employee_id",
        "first_name",
        "last_name",
    ]
    fieldsets = UserAdmin.fieldsets + (
        (
            "Directory",
            {"fields": ("display_name", "role", "employee_id", "department")},
        ),
    )

    @display(
        description="Role",
        label={"ADMIN": "warning", "USER": "info"},
    )
    def display_role(self, obj):
        return obj.role
