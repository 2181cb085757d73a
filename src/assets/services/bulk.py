"""Bulk assignment session and the availability queries behind it."""

import logging
from itertools import groupby

from ..exceptions import LifecycleError
from ..models import Asset
from .assignment import assign

logger = logging.getLogger(__name__)


def list_available(asset_type: str | None = None):
    """Assets an assign() could currently take, ordered by type and number."""
    queryset = Asset.objects.filter(
        is_archived=False,
        state__in=list(Asset.ASSIGNMENT_TARGETS),
        assigned_user__isnull=True,
    ).select_related("location")
    if asset_type:
        queryset = queryset.filter(type=asset_type)
    return queryset.order_by("type", "asset_number")


def list_holding():
    """Imported assets still waiting to be released."""
    return (
        Asset.objects.filter(is_archived=False, state=Asset.HOLDING)
        .select_related("location")
        .order_by("type", "asset_number")
    )


def group_by_type(assets) -> dict:
    """Group assets into {type: [asset, ...]}, keeping each group's order."""
    ordered = sorted(assets, key=lambda asset: asset.type)
    return {
        asset_type: list(members)
        for asset_type, members in groupby(ordered, key=lambda asset: asset.type)
    }


def bulk_assign(asset_ids: list, user_id, actor) -> dict:
    """Assign each asset to one user, in the order given.

    There is no cross-asset atomicity: every asset is an independent
    assign() and a failure never stops the rest of the batch. Returns::

        {"succeeded": [Asset, ...],
         "failed": [{"asset_id", "reason", "message"}, ...],
         "available": <fresh list_available() queryset>}

    Re-submitting the same ids after a partial failure only assigns the
    ones still available; the others fail with asset_not_available.
    """
    succeeded = []
    failed = []

    for asset_id in asset_ids:
        try:
            asset = assign(asset_id, user_id, actor)
        except LifecycleError as exc:
            failed.append(
                {
                    "asset_id": str(asset_id),
                    "reason": exc.code,
                    "message": exc.message,
                }
            )
            continue
        succeeded.append(asset)

    logger.info(
        "Bulk assign to user %s by %s: %d succeeded, %d failed",
        user_id,
        actor,
        len(succeeded),
        len(failed),
    )
    return {
        "succeeded": succeeded,
        "failed": failed,
        "available": list_available(),
    }
