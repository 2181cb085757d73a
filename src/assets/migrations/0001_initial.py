import uuid

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

ASSET_TYPES = [
    ("MOBILE_PHONE", "Mobile Phone"),
    ("TABLET", "Tablet"),
    ("DESKTOP", "Desktop"),
    ("LAPTOP", "Laptop"),
    ("MONITOR", "Monitor"),
]

ASSET_STATES = [
    ("HOLDING", "Holding (Imported)"),
    ("AVAILABLE", "Available Stock"),
    ("BUILDING", "Building"),
    ("READY_TO_GO", "Ready To Go"),
    ("SIGNED_OUT", "Signed Out"),
    ("ISSUED", "Issued"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Location",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("name", models.CharField(max_length=255, unique=True)),
                ("description", models.TextField(blank=True)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="AssetSequence",
            fields=[
                (
                    "asset_type",
                    models.CharField(
                        choices=ASSET_TYPES,
                        max_length=20,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "next_sequence",
                    models.PositiveIntegerField(default=1),
                ),
            ],
        ),
        migrations.CreateModel(
            name="Asset",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "asset_number",
                    models.CharField(blank=True, max_length=10, unique=True),
                ),
                (
                    "type",
                    models.CharField(choices=ASSET_TYPES, max_length=20),
                ),
                (
                    "state",
                    models.CharField(
                        choices=ASSET_STATES,
                        default="AVAILABLE",
                        max_length=20,
                    ),
                ),
                (
                    "serial_number",
                    models.CharField(max_length=255, unique=True),
                ),
                ("description", models.TextField()),
                (
                    "purchase_price",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        max_digits=10,
                        null=True,
                        validators=[
                            django.core.validators.MinValueValidator(0)
                        ],
                    ),
                ),
                ("supplier", models.CharField(blank=True, max_length=255)),
                ("notes", models.TextField(blank=True)),
                (
                    "import_data",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Original spreadsheet row for imported assets",
                    ),
                ),
                ("is_archived", models.BooleanField(default=False)),
                (
                    "archived_at",
                    models.DateTimeField(blank=True, null=True),
                ),
                ("archive_reason", models.TextField(blank=True)),
                (
                    "version",
                    models.PositiveIntegerField(
                        default=0,
                        help_text=(
                            "Bumped on every lifecycle write; used for "
                            "compare-and-swap"
                        ),
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "assigned_user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="assigned_assets",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "location",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="assets",
                        to="assets.location",
                    ),
                ),
                (
                    "archived_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="archived_assets",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="created_assets",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "updated_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="updated_assets",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["type", "asset_number"],
                "indexes": [
                    models.Index(fields=["state"], name="idx_asset_state"),
                    models.Index(fields=["type"], name="idx_asset_type"),
                    models.Index(
                        fields=["is_archived"], name="idx_asset_is_archived"
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(
                                ("assigned_user__isnull", False),
                                ("state__in", ["SIGNED_OUT", "ISSUED"]),
                            ),
                            models.Q(
                                ("assigned_user__isnull", True),
                                (
                                    "state__in",
                                    [
                                        "HOLDING",
                                        "AVAILABLE",
                                        "BUILDING",
                                        "READY_TO_GO",
                                    ],
                                ),
                            ),
                            _connector="OR",
                        ),
                        name="asset_assignee_matches_state",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="AssignmentEvent",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "action",
                    models.CharField(
                        choices=[
                            ("created", "Created"),
                            ("transition", "Transition"),
                            ("assign", "Assign"),
                            ("unassign", "Unassign"),
                            ("archive", "Archive"),
                        ],
                        max_length=20,
                    ),
                ),
                (
                    "previous_state",
                    models.CharField(
                        blank=True,
                        choices=ASSET_STATES,
                        max_length=20,
                        null=True,
                    ),
                ),
                (
                    "new_state",
                    models.CharField(choices=ASSET_STATES, max_length=20),
                ),
                ("reason", models.TextField(blank=True)),
                ("details", models.JSONField(blank=True, default=dict)),
                (
                    "timestamp",
                    models.DateTimeField(default=django.utils.timezone.now),
                ),
                (
                    "asset",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="events",
                        to="assets.asset",
                    ),
                ),
                (
                    "actor",
                    models.ForeignKey(
                        blank=True,
                        help_text="The operator who performed the change",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="performed_events",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "user_bound",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="bound_events",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "user_unbound",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="unbound_events",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-timestamp", "-id"],
                "indexes": [
                    models.Index(
                        fields=["timestamp"], name="idx_event_timestamp"
                    ),
                    models.Index(fields=["action"], name="idx_event_action"),
                ],
            },
        ),
    ]
