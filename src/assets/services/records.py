"""Asset record creation and history."""

import logging
import re
from decimal import Decimal, InvalidOperation

from django.db import IntegrityError
from django.db import transaction as db_transaction
from django.db.models import QuerySet

from ..exceptions import (
    DuplicateAssetNumber,
    DuplicateSerialNumber,
    InvalidFieldValue,
    MissingRequiredField,
    UnknownAssetType,
)
from ..models import Asset, AssignmentEvent, Location, validate_asset_number
from .state import get_asset

logger = logging.getLogger(__name__)

# Normalised spellings (lowercase, alphanumerics only) -> asset type
TYPE_ALIASES = {
    "mobilephone": Asset.MOBILE_PHONE,
    "mobile": Asset.MOBILE_PHONE,
    "phone": Asset.MOBILE_PHONE,
    "smartphone": Asset.MOBILE_PHONE,
    "tablet": Asset.TABLET,
    "ipad": Asset.TABLET,
    "desktop": Asset.DESKTOP,
    "pc": Asset.DESKTOP,
    "workstation": Asset.DESKTOP,
    "laptop": Asset.LAPTOP,
    "notebook": Asset.LAPTOP,
    "monitor": Asset.MONITOR,
    "display": Asset.MONITOR,
    "screen": Asset.MONITOR,
}


# purchase_price is DecimalField(max_digits=10, decimal_places=2)
MAX_PRICE = Decimal("100000000")


def _squash(value) -> str:
    return re.sub(r"[^a-z0-9]", "", str(value).lower())


def normalize_asset_type(value) -> str:
    """Map a type name or common alias onto an Asset type."""
    if value in (None, ""):
        raise MissingRequiredField("type")
    asset_type = TYPE_ALIASES.get(_squash(value))
    if asset_type is None:
        raise UnknownAssetType(value)
    return asset_type


def parse_price(value) -> Decimal | None:
    """Parse a purchase price such as "1,299.00" or "£450"."""
    if value in (None, ""):
        return None
    text = re.sub(r"[,\s£$€]", "", str(value))
    try:
        price = Decimal(text).quantize(Decimal("0.01"))
    except InvalidOperation:
        raise InvalidFieldValue("purchase_price", value) from None
    if not price.is_finite() or price < 0 or price >= MAX_PRICE:
        raise InvalidFieldValue("purchase_price", value)
    return price


def _raise_duplicate(asset_number: str, serial_number: str) -> None:
    if asset_number and Asset.objects.filter(asset_number=asset_number).exists():
        raise DuplicateAssetNumber(asset_number)
    if Asset.objects.filter(serial_number=serial_number).exists():
        raise DuplicateSerialNumber(serial_number)


def record_created(asset: Asset, actor, reason: str = "") -> AssignmentEvent:
    """Append the creation event for a newly saved asset."""
    return AssignmentEvent.objects.create(
        asset=asset,
        action="created",
        previous_state=None,
        new_state=asset.state,
        actor=actor,
        reason=reason,
        details={
            "asset_number": asset.asset_number,
            "serial_number": asset.serial_number,
            "type": asset.type,
        },
    )


def create_asset(
    *,
    asset_type,
    serial_number,
    description,
    actor=None,
    asset_number: str = "",
    location: Location | None = None,
    purchase_price=None,
    supplier: str = "",
    notes: str = "",
    state: str = Asset.AVAILABLE,
    import_data: dict | None = None,
    reason: str = "",
) -> Asset:
    """Create an asset and its creation event.

    Manual entries start in AVAILABLE; bulk intake passes HOLDING. A
    missing asset number is generated from the type's sequence.
    """
    asset_type = normalize_asset_type(asset_type)
    serial_number = str(serial_number or "").strip()
    description = str(description or "").strip()
    asset_number = str(asset_number or "").strip()
    supplier = str(supplier or "").strip()
    notes = str(notes or "").strip()
    if not serial_number:
        raise MissingRequiredField("serial_number")
    if not description:
        raise MissingRequiredField("description")
    if asset_number:
        validate_asset_number(asset_number, asset_type)
    price = parse_price(purchase_price)
    _raise_duplicate(asset_number, serial_number)

    asset = Asset(
        asset_number=asset_number,
        type=asset_type,
        state=state,
        serial_number=serial_number,
        description=description,
        purchase_price=price,
        location=location or Location.objects.intake(),
        supplier=supplier,
        notes=notes,
        import_data=import_data or {},
        created_by=actor,
        updated_by=actor,
    )
    try:
        with db_transaction.atomic():
            asset.save()
            record_created(asset, actor, reason)
    except IntegrityError:
        # Lost a uniqueness race with a concurrent insert
        _raise_duplicate(asset_number, serial_number)
        raise
    logger.info(
        "Created asset %s (%s) in %s", asset.asset_number, asset_type, state
    )
    return asset


def asset_history(asset_id) -> QuerySet:
    """Return the asset's events, newest first."""
    asset = get_asset(asset_id)
    return asset.events.select_related("actor", "user_bound", "user_unbound")
