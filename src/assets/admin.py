"""Admin configuration for assets app using django-unfold."""

import logging

from unfold.admin import ModelAdmin, TabularInline
from unfold.contrib.filters.admin import (
    ChoicesDropdownFilter,
    RelatedDropdownFilter,
)
from unfold.decorators import action, display
from unfold.enums import ActionVariant

from django.contrib import admin, messages
from django.db import transaction

from .exceptions import LifecycleError
from .models import Asset, AssignmentEvent, Location
from .services.assignment import unassign
from .services.records import record_created
from .services.state import archive_asset, release_from_holding

logger = logging.getLogger(__name__)

STATE_LABELS = {
    Asset.HOLDING: "default",
    Asset.AVAILABLE: "success",
    Asset.BUILDING: "warning",
    Asset.READY_TO_GO: "info",
    Asset.SIGNED_OUT: "danger",
    Asset.ISSUED: "danger",
}

# Changed only through the lifecycle services
LIFECYCLE_FIELDS = [
    "state",
    "assigned_user",
    "is_archived",
    "archived_at",
    "archived_by",
    "archive_reason",
    "version",
    "import_data",
    "created_by",
    "updated_by",
    "created_at",
    "updated_at",
]


def _correctable(obj):
    """Imported units can have their number and type fixed until release."""
    return obj.state == Asset.HOLDING and not obj.is_archived


@admin.register(Location)
class LocationAdmin(ModelAdmin):
    list_display = ["name", "display_active", "display_asset_count"]
    list_filter = ["is_active"]
    search_fields = ["name", "description"]

    @display(description="Active", boolean=True)
    def display_active(self, obj):
        return obj.is_active

    @display(description="Assets")
    def display_asset_count(self, obj):
        return obj.assets.filter(is_archived=False).count()


class AssignmentEventInline(TabularInline):
    model = AssignmentEvent
    extra = 0
    can_delete = False
    fields = [
        "timestamp",
        "action",
        "previous_state",
        "new_state",
        "actor",
        "user_bound",
        "user_unbound",
        "reason",
    ]
    readonly_fields = fields
    ordering = ["-timestamp"]

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(Asset)
class AssetAdmin(ModelAdmin):
    list_display = [
        "display_header",
        "display_state",
        "type",
        "location",
        "display_assigned",
        "display_archived",
        "updated_at",
    ]
    list_filter = [
        ("state", ChoicesDropdownFilter),
        ("type", ChoicesDropdownFilter),
        ("location", RelatedDropdownFilter),
        "is_archived",
    ]
    list_filter_submit = True
    search_fields = [
        "asset_number",
        "serial_number",
        "description",
        "assigned_user__username",
        "assigned_user__display_name",
    ]
    readonly_fields = LIFECYCLE_FIELDS
    inlines = [AssignmentEventInline]

    fieldsets = (
        (
            None,
            {
                "fields": (
                    "asset_number",
                    "type",
                    "serial_number",
                    "description",
                    "location",
                )
            },
        ),
        (
            "Details",
            {
                "fields": (
                    "purchase_price",
                    "supplier",
                    "notes",
                    "import_data",
                ),
                "classes": ["tab"],
            },
        ),
        (
            "Lifecycle",
            {
                "fields": (
                    "state",
                    "assigned_user",
                    "version",
                    "is_archived",
                    "archived_at",
                    "archived_by",
                    "archive_reason",
                ),
                "classes": ["tab"],
            },
        ),
        (
            "Tracking",
            {
                "fields": (
                    "created_by",
                    "created_at",
                    "updated_by",
                    "updated_at",
                ),
                "classes": ["tab"],
            },
        ),
    )

    actions = ["release_selected", "unassign_selected", "archive_selected"]

    def get_readonly_fields(self, request, obj=None):
        if obj is None or _correctable(obj):
            return self.readonly_fields
        return [*self.readonly_fields, "asset_number", "type"]

    def has_delete_permission(self, request, obj=None):
        # Retired assets are archived, never deleted
        return False

    def save_model(self, request, obj, form, change):
        if not change:
            obj.created_by = request.user
            obj.updated_by = request.user
            with transaction.atomic():
                obj.save()
                record_created(obj, request.user, reason="Created in admin")
            return
        # Lifecycle columns are left alone so a concurrent transition is
        # never overwritten by a stale form
        obj.updated_by = request.user
        corrections = []
        if _correctable(obj):
            corrections = [
                f for f in ("asset_number", "type") if f in form.changed_data
            ]
        obj.save(
            update_fields=[
                *corrections,
                "serial_number",
                "description",
                "location",
                "purchase_price",
                "supplier",
                "notes",
                "updated_by",
                "updated_at",
            ]
        )
        if corrections:
            logger.info(
                "Holding asset %s corrected in admin by %s: %s",
                obj.asset_number,
                request.user,
                ", ".join(corrections),
            )

    # --- Display methods ---

    @display(description="Asset", header=True, ordering="asset_number")
    def display_header(self, obj):
        return obj.asset_number, obj.serial_number

    @display(description="State", label=STATE_LABELS)
    def display_state(self, obj):
        return obj.state

    @display(description="Assigned To", empty_value="-")
    def display_assigned(self, obj):
        if obj.assigned_user:
            return obj.assigned_user.get_display_name()
        return None

    @display(description="Archived", boolean=True)
    def display_archived(self, obj):
        return obj.is_archived

    # --- Actions ---

    def _apply(self, request, queryset, operation, verb):
        done = 0
        failures = []
        for asset in queryset:
            try:
                operation(asset.pk, request.user)
            except LifecycleError as exc:
                failures.append(f"{asset.asset_number}: {exc.message}")
                continue
            done += 1
        if done:
            messages.success(request, f"{done} asset(s) {verb}.")
        if failures:
            messages.warning(
                request,
                f"{len(failures)} asset(s) skipped: " + "; ".join(failures),
            )

    @action(
        description="Release from holding",
        icon="check_circle",
        variant=ActionVariant.PRIMARY,
    )
    def release_selected(self, request, queryset):
        self._apply(request, queryset, release_from_holding, "released")

    @action(description="Unassign (return to stock)")
    def unassign_selected(self, request, queryset):
        self._apply(request, queryset, unassign, "returned to stock")

    @action(description="Archive")
    def archive_selected(self, request, queryset):
        self._apply(request, queryset, archive_asset, "archived")


@admin.register(AssignmentEvent)
class AssignmentEventAdmin(ModelAdmin):
    list_display = [
        "asset",
        "display_action",
        "previous_state",
        "new_state",
        "actor",
        "user_bound",
        "user_unbound",
        "timestamp",
    ]
    list_filter = [
        ("action", ChoicesDropdownFilter),
        ("new_state", ChoicesDropdownFilter),
    ]
    search_fields = ["asset__asset_number", "asset__serial_number", "reason"]
    date_hierarchy = "timestamp"
    readonly_fields = [
        "asset",
        "action",
        "previous_state",
        "new_state",
        "actor",
        "user_bound",
        "user_unbound",
        "reason",
        "details",
        "timestamp",
    ]

    @display(
        description="Action",
        label={
            "created": "info",
            "transition": "default",
            "assign": "warning",
            "unassign": "success",
            "archive": "danger",
        },
    )
    def display_action(self, obj):
        return obj.action

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
