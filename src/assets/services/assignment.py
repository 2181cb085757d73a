"""Binding assets to users.

``assign`` separates "was never available" from "someone else just took
it": availability is first judged on an unlocked read, and if the locked
row no longer matches that read the caller lost a race.
"""

import logging

from django.db import transaction as db_transaction

from ..exceptions import (
    AlreadyAssigned,
    AssetArchived,
    AssetNotAvailable,
    NotAssigned,
)
from ..models import Asset
from .directory import get_assignee
from .state import apply_transition, get_asset, lock_asset, run_serialized

logger = logging.getLogger(__name__)


def _load_asset(asset_id) -> Asset:
    return get_asset(asset_id)


def _check_assignable(asset: Asset) -> None:
    if asset.is_archived:
        raise AssetArchived(asset)
    if asset.state not in Asset.ASSIGNMENT_TARGETS:
        raise AssetNotAvailable(asset)


def _check_still_assignable(current: Asset) -> None:
    """Classify a row that changed after it was observed as assignable."""
    if current.is_archived:
        raise AssetArchived(current)
    if current.assigned_user_id is not None:
        raise AlreadyAssigned(current)
    if current.state not in Asset.ASSIGNMENT_TARGETS:
        raise AssetNotAvailable(current)


def assign(asset_id, user_id, actor, reason: str = "") -> Asset:
    """Assign an AVAILABLE or READY_TO_GO asset to a user.

    AVAILABLE assets become SIGNED_OUT, READY_TO_GO assets become ISSUED.
    Returns the updated asset.

    Raises AssetNotAvailable / AssetArchived when the asset was not
    assignable to begin with, UserNotFound for an unknown or inactive
    user, and AlreadyAssigned when a concurrent request bound it first.
    """
    observed = _load_asset(asset_id)
    _check_assignable(observed)
    user = get_assignee(user_id)

    with db_transaction.atomic():
        current = lock_asset(asset_id)
        if current.version != observed.version:
            _check_still_assignable(current)
        target = Asset.ASSIGNMENT_TARGETS[current.state]
        updated = apply_transition(
            current,
            target,
            actor=actor,
            user=user,
            reason=reason or f"Assigned to {user.get_display_name()}",
        )
    if updated is None:
        # Another writer got between the lock and the compare-and-swap
        latest = _load_asset(asset_id)
        _check_still_assignable(latest)
        raise AlreadyAssigned(latest)

    logger.info(
        "Asset %s assigned to %s (%s) by %s",
        updated.asset_number,
        user.get_display_name(),
        updated.state,
        actor,
    )
    return updated


def unassign(asset_id, actor, reason: str = "") -> Asset:
    """Return an ISSUED or SIGNED_OUT asset to AVAILABLE stock.

    Clears the assignee. Raises NotAssigned if nobody holds the asset.
    """

    def step(asset):
        if asset.is_archived:
            raise AssetArchived(asset)
        if not asset.is_assigned:
            raise NotAssigned(asset)
        return apply_transition(
            asset,
            Asset.AVAILABLE,
            actor=actor,
            reason=reason or f"Returned by {asset.assigned_user}",
        )

    asset = run_serialized(asset_id, step)
    logger.info("Asset %s unassigned by %s", asset.asset_number, actor)
    return asset
