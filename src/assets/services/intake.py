"""Bulk import intake: turn parsed spreadsheet rows into HOLDING assets.

Every row is validated on its own. A bad row is reported and the batch
carries on; nothing an import claims about state or ownership is trusted,
so every created asset starts in HOLDING with no assignee.
"""

import datetime
import logging
import re
from dataclasses import dataclass, field
from decimal import Decimal

from ..exceptions import LifecycleError, MissingRequiredField
from ..models import Asset, Location
from .directory import find_location
from .records import create_asset

logger = logging.getLogger(__name__)

# Normalised column header -> RowRecord field
COLUMN_ALIASES = {
    "type": "type",
    "assettype": "type",
    "devicetype": "type",
    "serial": "serial_number",
    "serialnumber": "serial_number",
    "serialno": "serial_number",
    "sn": "serial_number",
    "description": "description",
    "name": "description",
    "model": "description",
    "assetnumber": "asset_number",
    "assetno": "asset_number",
    "assettag": "asset_number",
    "location": "location",
    "purchaseprice": "purchase_price",
    "price": "purchase_price",
    "cost": "purchase_price",
    "supplier": "supplier",
    "vendor": "supplier",
    "notes": "notes",
    "state": "declared_state",
    "status": "declared_state",
    "assignedto": "declared_assignee",
    "assigneduser": "declared_assignee",
    "user": "declared_assignee",
}

REQUIRED_FIELDS = ("type", "serial_number", "description")


def normalize_column(name) -> str:
    return re.sub(r"[^a-z0-9]", "", str(name or "").lower())


def _json_safe(value):
    if isinstance(value, (datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)


def _text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        # Spreadsheet cells hold serials like 12345 as 12345.0
        value = int(value)
    return str(value).strip()


@dataclass(frozen=True)
class RowRecord:
    """One validated import row. Unknown columns are kept only in ``raw``."""

    type: str
    serial_number: str
    description: str
    asset_number: str = ""
    location: str = ""
    purchase_price: str = ""
    supplier: str = ""
    notes: str = ""
    declared_state: str = ""
    declared_assignee: str = ""
    raw: dict = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, mapping: dict) -> "RowRecord":
        """Build a record from a header -> value mapping.

        Raises MissingRequiredField naming the first absent required field.
        """
        values = {}
        for key, value in mapping.items():
            target = COLUMN_ALIASES.get(normalize_column(key))
            if target and not values.get(target):
                values[target] = _text(value)
        for name in REQUIRED_FIELDS:
            if not values.get(name):
                raise MissingRequiredField(name)
        raw = {
            str(key): _json_safe(value)
            for key, value in mapping.items()
            if key is not None
        }
        return cls(raw=raw, **values)

    @property
    def is_declared_holding(self) -> bool:
        return self.declared_state.strip().lower() == "holding"


def _resolve_location(name: str) -> Location:
    if name:
        location = find_location(name)
        if location is not None:
            return location
    return Location.objects.intake()


def intake_rows(rows, actor=None) -> dict:
    """Create one HOLDING asset per valid row.

    ``rows`` is an iterable of mappings (or RowRecords). Returns
    ``{"created": [Asset, ...], "rejected": [{"row", "reason", "field",
    "message"}, ...]}`` with rows numbered from 1 in the order given.
    """
    created = []
    rejected = []
    intake_location = None

    for number, row in enumerate(rows, start=1):
        try:
            record = (
                row if isinstance(row, RowRecord) else RowRecord.from_mapping(row)
            )
            if record.declared_state and not record.is_declared_holding:
                logger.info(
                    "Row %d declared state %r; importing as HOLDING",
                    number,
                    record.declared_state,
                )
            if record.declared_assignee:
                logger.info(
                    "Row %d names assignee %r; left unassigned",
                    number,
                    record.declared_assignee,
                )
            if record.location:
                location = _resolve_location(record.location)
            else:
                if intake_location is None:
                    intake_location = Location.objects.intake()
                location = intake_location
            asset = create_asset(
                asset_type=record.type,
                serial_number=record.serial_number,
                description=record.description,
                asset_number=record.asset_number,
                location=location,
                purchase_price=record.purchase_price,
                supplier=record.supplier,
                notes=record.notes,
                state=Asset.HOLDING,
                import_data=record.raw,
                actor=actor,
                reason=f"Imported (row {number})",
            )
        except LifecycleError as exc:
            logger.info("Row %d rejected: %s", number, exc.message)
            rejected.append(
                {
                    "row": number,
                    "reason": exc.code,
                    "field": getattr(exc, "field", None),
                    "message": exc.message,
                }
            )
            continue
        created.append(asset)

    logger.info(
        "Intake finished: %d created, %d rejected",
        len(created),
        len(rejected),
    )
    return {"created": created, "rejected": rejected}
