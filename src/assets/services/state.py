"""Asset state machine and the single write path for lifecycle changes.

Every mutation of an asset's state, assignee or archive flag goes through
``run_serialized``: the row is locked, the change is validated against
the locked copy, and the write is a compare-and-swap on ``version`` so a
writer that slipped past the lock (or a backend without row locks) can
never overwrite a newer row. The state write and its AssignmentEvent are
committed together or not at all.
"""

import logging

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import IntegrityError
from django.db import transaction as db_transaction
from django.db.models import F
from django.utils import timezone

from ..exceptions import (
    AssetArchived,
    AssetNotFound,
    AssigneeNotCleared,
    ConcurrentUpdate,
    DuplicateAssetNumber,
    InvalidTransition,
    MissingAssignee,
    UnknownAssetType,
    UnknownState,
)
from ..models import Asset, AssignmentEvent, validate_asset_number
from .directory import get_assignee

logger = logging.getLogger(__name__)

STATE_VALUES = dict(Asset.STATE_CHOICES)


def normalize_state(value) -> str:
    """Return the canonical state name for value.

    Accepts any case and "-" or " " in place of "_".
    """
    candidate = (
        str(value or "").strip().upper().replace("-", "_").replace(" ", "_")
    )
    if candidate not in STATE_VALUES:
        raise UnknownState(value)
    return candidate


def get_asset(asset_id) -> Asset:
    """Fetch an asset without locking it."""
    try:
        return Asset.objects.select_related(
            "assigned_user", "location"
        ).get(pk=asset_id)
    except (Asset.DoesNotExist, ValueError, ValidationError):
        raise AssetNotFound(asset_id) from None


def lock_asset(asset_id) -> Asset:
    """Fetch an asset holding its row lock. Call inside a transaction."""
    try:
        return Asset.objects.select_for_update().get(pk=asset_id)
    except (Asset.DoesNotExist, ValueError, ValidationError):
        raise AssetNotFound(asset_id) from None


def validate_transition(asset: Asset, new_state: str, assignee=None) -> None:
    """Raise if asset may not move to new_state.

    ``assignee`` is whatever identifies the user to bind (object or id);
    it is required for assignment-bearing targets and forbidden otherwise.
    """
    if asset.is_archived:
        raise AssetArchived(asset)

    if not asset.can_transition_to(new_state):
        raise InvalidTransition(
            asset.state, new_state, asset.allowed_transitions
        )

    if new_state in Asset.ASSIGNED_STATES and assignee is None:
        raise MissingAssignee(new_state)

    if new_state not in Asset.ASSIGNED_STATES and assignee is not None:
        raise AssigneeNotCleared(new_state)


def _action_for(asset: Asset, new_state: str) -> str:
    if new_state in Asset.ASSIGNED_STATES:
        return "assign"
    if asset.state in Asset.ASSIGNED_STATES:
        return "unassign"
    return "transition"


def apply_transition(
    asset: Asset,
    new_state: str,
    *,
    actor,
    user=None,
    reason: str = "",
    details: dict | None = None,
    changes: dict | None = None,
) -> Asset | None:
    """Write new_state (and its assignee) if asset is still at its version.

    ``asset`` must be the copy the caller validated. Leaving a non-assigned
    state clears ``assigned_user``. Returns the refreshed asset, or None
    when another writer changed the row first. Must run inside a
    transaction so the event and the state land together.

    ``changes`` holds further column values written in the same update.
    """
    now = timezone.now()
    previous_user = asset.assigned_user
    user = user if new_state in Asset.ASSIGNED_STATES else None

    updated = Asset.objects.filter(pk=asset.pk, version=asset.version).update(
        state=new_state,
        assigned_user=user,
        updated_at=now,
        updated_by=actor,
        version=F("version") + 1,
        **(changes or {}),
    )
    if not updated:
        return None

    AssignmentEvent.objects.create(
        asset_id=asset.pk,
        action=_action_for(asset, new_state),
        previous_state=asset.state,
        new_state=new_state,
        actor=actor,
        user_bound=user,
        user_unbound=previous_user,
        reason=reason,
        details=details or {},
        timestamp=now,
    )
    asset.refresh_from_db()
    return asset


def run_serialized(asset_id, step):
    """Run step(locked_asset) under the asset's row lock.

    ``step`` validates and returns ``apply_transition``'s result. A lost
    compare-and-swap (None) is retried against a freshly locked row up to
    ASSET_TRANSITION_RETRIES times; named failures raised by ``step``
    propagate immediately with nothing written.
    """
    retries = settings.ASSET_TRANSITION_RETRIES
    for attempt in range(1, retries + 1):
        with db_transaction.atomic():
            asset = lock_asset(asset_id)
            result = step(asset)
        if result is not None:
            return result
        logger.warning(
            "Asset %s changed concurrently (attempt %d/%d)",
            asset_id,
            attempt,
            retries,
        )
    raise ConcurrentUpdate(asset_id)


def transition_state(
    asset_id,
    new_state,
    actor,
    user_id=None,
    reason: str = "",
) -> Asset:
    """Validate and perform a state transition.

    Moving into ISSUED or SIGNED_OUT needs ``user_id``; moving anywhere
    else clears the current assignee. Returns the updated asset.
    """
    new_state = normalize_state(new_state)

    def step(asset):
        validate_transition(asset, new_state, user_id)
        user = get_assignee(user_id) if user_id is not None else None
        return apply_transition(
            asset, new_state, actor=actor, user=user, reason=reason
        )

    asset = run_serialized(asset_id, step)
    logger.info(
        "Asset %s moved to %s by %s",
        asset.asset_number,
        new_state,
        actor,
    )
    return asset


def _holding_corrections(asset: Asset, asset_number, asset_type) -> dict:
    """Column changes for the number and type confirmed at release.

    A type change without a new number takes the next number for the new
    type.
    """
    new_type = asset_type or asset.type
    if new_type not in Asset.TYPE_PREFIXES:
        raise UnknownAssetType(asset_type)
    new_number = str(asset_number or "").strip()
    if not new_number:
        if new_type == asset.type:
            new_number = asset.asset_number
        else:
            new_number = Asset(type=new_type)._generate_asset_number()
    validate_asset_number(new_number, new_type)
    if (
        Asset.objects.filter(asset_number=new_number)
        .exclude(pk=asset.pk)
        .exists()
    ):
        raise DuplicateAssetNumber(new_number)

    changes = {}
    if new_type != asset.type:
        changes["type"] = new_type
    if new_number != asset.asset_number:
        changes["asset_number"] = new_number
    return changes


def release_from_holding(
    asset_id,
    actor,
    reason: str = "",
    *,
    asset_number: str = "",
    asset_type: str | None = None,
) -> Asset:
    """Release an imported unit from HOLDING into AVAILABLE stock.

    The operator may confirm a corrected ``asset_type`` and assign the
    tagged ``asset_number`` in the same step; both are checked against
    the type prefixes and existing numbers, and the old values are kept
    in the event details.
    """

    def step(asset):
        if asset.is_archived:
            raise AssetArchived(asset)
        if asset.state != Asset.HOLDING:
            raise InvalidTransition(
                asset.state,
                Asset.AVAILABLE,
                message=(
                    f"Only assets in HOLDING can be released; "
                    f"{asset.asset_number} is '{asset.state}'."
                ),
            )
        changes = _holding_corrections(asset, asset_number, asset_type)
        details = {
            field: {"from": getattr(asset, field), "to": value}
            for field, value in changes.items()
        }
        try:
            with db_transaction.atomic():
                return apply_transition(
                    asset,
                    Asset.AVAILABLE,
                    actor=actor,
                    reason=reason or "Released from holding",
                    details=details,
                    changes=changes,
                )
        except IntegrityError:
            raise DuplicateAssetNumber(
                changes.get("asset_number", asset.asset_number)
            ) from None

    asset = run_serialized(asset_id, step)
    logger.info("Asset %s released from holding by %s", asset.asset_number, actor)
    return asset


def archive_asset(asset_id, actor, reason: str = "") -> Asset:
    """Archive (soft delete) an asset.

    Assigned assets must be unassigned first. Archived assets accept no
    further lifecycle changes.
    """

    def step(asset):
        if asset.is_archived:
            raise AssetArchived(asset)
        if asset.is_assigned:
            raise AssigneeNotCleared(
                asset.state,
                message=(
                    f"Asset {asset.asset_number} is assigned; unassign it "
                    f"before archiving."
                ),
            )
        now = timezone.now()
        updated = Asset.objects.filter(
            pk=asset.pk, version=asset.version
        ).update(
            is_archived=True,
            archived_at=now,
            archived_by=actor,
            archive_reason=reason,
            updated_at=now,
            updated_by=actor,
            version=F("version") + 1,
        )
        if not updated:
            return None
        AssignmentEvent.objects.create(
            asset_id=asset.pk,
            action="archive",
            previous_state=asset.state,
            new_state=asset.state,
            actor=actor,
            reason=reason,
            timestamp=now,
        )
        asset.refresh_from_db()
        return asset

    asset = run_serialized(asset_id, step)
    logger.info("Asset %s archived by %s", asset.asset_number, actor)
    return asset
