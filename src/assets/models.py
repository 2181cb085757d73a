"""Models for IT asset lifecycle tracking."""

import re
import uuid

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import IntegrityError, models, transaction
from django.db.models import F, Q
from django.utils import timezone

from .exceptions import (
    AssigneeNotCleared,
    InvalidAssetNumber,
    MissingAssignee,
)

ASSET_NUMBER_PATTERN = re.compile(r"^(?P<prefix>\d{2})-(?P<sequence>\d{5})$")


class LocationManager(models.Manager):
    def intake(self):
        """Return the location imported assets land in, creating it once."""
        location, _ = self.get_or_create(
            name=settings.INTAKE_LOCATION_NAME,
            defaults={"description": "Default location for imported assets"},
        )
        return location


class Location(models.Model):
    """Physical place where assets are kept or deployed."""

    name = models.CharField(max_length=255, unique=True)
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = LocationManager()

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


class Asset(models.Model):
    """One physical IT asset and its place in the lifecycle."""

    MOBILE_PHONE = "MOBILE_PHONE"
    TABLET = "TABLET"
    DESKTOP = "DESKTOP"
    LAPTOP = "LAPTOP"
    MONITOR = "MONITOR"

    TYPE_CHOICES = [
        (MOBILE_PHONE, "Mobile Phone"),
        (TABLET, "Tablet"),
        (DESKTOP, "Desktop"),
        (LAPTOP, "Laptop"),
        (MONITOR, "Monitor"),
    ]

    # Asset numbers are "<prefix>-NNNNN"
    TYPE_PREFIXES = {
        MOBILE_PHONE: "01",
        TABLET: "02",
        DESKTOP: "03",
        LAPTOP: "04",
        MONITOR: "05",
    }

    HOLDING = "HOLDING"
    AVAILABLE = "AVAILABLE"
    BUILDING = "BUILDING"
    READY_TO_GO = "READY_TO_GO"
    SIGNED_OUT = "SIGNED_OUT"
    ISSUED = "ISSUED"

    STATE_CHOICES = [
        (HOLDING, "Holding (Imported)"),
        (AVAILABLE, "Available Stock"),
        (BUILDING, "Building"),
        (READY_TO_GO, "Ready To Go"),
        (SIGNED_OUT, "Signed Out"),
        (ISSUED, "Issued"),
    ]

    # Valid state transitions: from_state -> [to_states]
    VALID_TRANSITIONS = {
        HOLDING: [AVAILABLE],
        AVAILABLE: [BUILDING, SIGNED_OUT],
        BUILDING: [READY_TO_GO, AVAILABLE],
        READY_TO_GO: [ISSUED, AVAILABLE],
        SIGNED_OUT: [AVAILABLE],
        ISSUED: [AVAILABLE],
    }

    # States that carry a non-null assigned_user, and only those
    ASSIGNED_STATES = (SIGNED_OUT, ISSUED)
    UNASSIGNED_STATES = (HOLDING, AVAILABLE, BUILDING, READY_TO_GO)

    # Source state -> the assignment-bearing state an assign() moves to
    ASSIGNMENT_TARGETS = {
        AVAILABLE: SIGNED_OUT,
        READY_TO_GO: ISSUED,
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    asset_number = models.CharField(max_length=10, unique=True, blank=True)
    type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    state = models.CharField(
        max_length=20, choices=STATE_CHOICES, default=AVAILABLE
    )
    assigned_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="assigned_assets",
    )
    location = models.ForeignKey(
        Location,
        on_delete=models.PROTECT,
        related_name="assets",
    )
    serial_number = models.CharField(max_length=255, unique=True)
    description = models.TextField()
    purchase_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(0)],
    )
    supplier = models.CharField(max_length=255, blank=True)
    notes = models.TextField(blank=True)
    import_data = models.JSONField(
        default=dict,
        blank=True,
        help_text="Original spreadsheet row for imported assets",
    )
    is_archived = models.BooleanField(default=False)
    archived_at = models.DateTimeField(null=True, blank=True)
    archived_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="archived_assets",
    )
    archive_reason = models.TextField(blank=True)
    version = models.PositiveIntegerField(
        default=0,
        help_text="Bumped on every lifecycle write; used for compare-and-swap",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="created_assets",
    )
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="updated_assets",
    )

    class Meta:
        ordering = ["type", "asset_number"]
        indexes = [
            models.Index(fields=["state"], name="idx_asset_state"),
            models.Index(fields=["type"], name="idx_asset_type"),
            models.Index(fields=["is_archived"], name="idx_asset_is_archived"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(
                        state__in=["SIGNED_OUT", "ISSUED"],
                        assigned_user__isnull=False,
                    )
                    | Q(
                        state__in=[
                            "HOLDING",
                            "AVAILABLE",
                            "BUILDING",
                            "READY_TO_GO",
                        ],
                        assigned_user__isnull=True,
                    )
                ),
                name="asset_assignee_matches_state",
            ),
        ]

    def __str__(self):
        return f"{self.asset_number} ({self.get_type_display()})"

    def save(self, *args, **kwargs):
        if self.asset_number:
            super().save(*args, **kwargs)
            return
        max_attempts = 5
        for attempt in range(max_attempts):
            self.asset_number = self._generate_asset_number()
            try:
                with transaction.atomic():
                    super().save(*args, **kwargs)
                break
            except IntegrityError:
                taken = Asset.objects.filter(
                    asset_number=self.asset_number
                ).exists()
                if not taken or attempt >= max_attempts - 1:
                    self.asset_number = ""
                    raise
                # Asset number collision, take the next one

    def clean(self):
        super().clean()
        if self.state in self.ASSIGNED_STATES and not self.assigned_user_id:
            raise MissingAssignee(self.state)
        if self.state not in self.ASSIGNED_STATES and self.assigned_user_id:
            raise AssigneeNotCleared(self.state)
        if self.asset_number and self.type:
            validate_asset_number(self.asset_number, self.type)

    @property
    def is_assigned(self):
        return self.state in self.ASSIGNED_STATES

    @property
    def allowed_transitions(self):
        if self.is_archived:
            return []
        return list(self.VALID_TRANSITIONS.get(self.state, []))

    def can_transition_to(self, new_state):
        """Check if the state transition is in the legal table."""
        return new_state in self.VALID_TRANSITIONS.get(self.state, [])

    def _generate_asset_number(self):
        """Take the next free number from this type's sequence.

        Numbers already supplied by an operator are skipped.
        """
        prefix = self.TYPE_PREFIXES[self.type]
        for _ in range(100):
            value = AssetSequence.take_next(self.type)
            candidate = f"{prefix}-{value % 100000:05d}"
            if not Asset.objects.filter(asset_number=candidate).exists():
                return candidate
        raise ValidationError(
            f"Could not generate a unique asset number for {self.type}."
        )


def validate_asset_number(value, asset_type):
    """Raise InvalidAssetNumber unless value is "<type prefix>-NNNNN"."""
    match = ASSET_NUMBER_PATTERN.match(value or "")
    if not match:
        raise InvalidAssetNumber(value, "expected the format PP-NNNNN")
    expected = Asset.TYPE_PREFIXES.get(asset_type)
    if expected and match.group("prefix") != expected:
        raise InvalidAssetNumber(
            value, f"{asset_type} numbers start with '{expected}-'"
        )


class AssetSequence(models.Model):
    """Per-type counter behind generated asset numbers."""

    asset_type = models.CharField(
        max_length=20, primary_key=True, choices=Asset.TYPE_CHOICES
    )
    next_sequence = models.PositiveIntegerField(default=1)

    def __str__(self):
        return f"{self.asset_type}: {self.next_sequence}"

    @classmethod
    def take_next(cls, asset_type):
        """Return the current value for asset_type and advance it."""
        with transaction.atomic():
            seq, _ = cls.objects.select_for_update().get_or_create(
                asset_type=asset_type
            )
            value = seq.next_sequence
            cls.objects.filter(pk=asset_type).update(
                next_sequence=F("next_sequence") + 1
            )
        return value


class AssignmentEvent(models.Model):
    """Immutable audit record of every lifecycle change to an asset."""

    ACTION_CHOICES = [
        ("created", "Created"),
        ("transition", "Transition"),
        ("assign", "Assign"),
        ("unassign", "Unassign"),
        ("archive", "Archive"),
    ]

    asset = models.ForeignKey(
        Asset, on_delete=models.PROTECT, related_name="events"
    )
    action = models.CharField(max_length=20, choices=ACTION_CHOICES)
    previous_state = models.CharField(
        max_length=20, choices=Asset.STATE_CHOICES, null=True, blank=True
    )
    new_state = models.CharField(max_length=20, choices=Asset.STATE_CHOICES)
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="performed_events",
        help_text="The operator who performed the change",
    )
    user_bound = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="bound_events",
    )
    user_unbound = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="unbound_events",
    )
    reason = models.TextField(blank=True)
    details = models.JSONField(default=dict, blank=True)
    timestamp = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["-timestamp", "-id"]
        indexes = [
            models.Index(fields=["timestamp"], name="idx_event_timestamp"),
            models.Index(fields=["action"], name="idx_event_action"),
        ]

    def __str__(self):
        return (
            f"{self.asset.asset_number}: {self.previous_state or '-'} -> "
            f"{self.new_state} by {self.actor}"
        )

    def save(self, *args, **kwargs):
        if self.pk is not None:
            raise ValidationError(
                "Assignment events are immutable and cannot be modified."
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError(
            "Assignment events are immutable and cannot be deleted."
        )
