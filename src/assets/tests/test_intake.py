"""Tests for bulk import intake and manual asset creation."""

from decimal import Decimal

import pytest

from assets.exceptions import (
    DuplicateAssetNumber,
    DuplicateSerialNumber,
    InvalidAssetNumber,
    InvalidFieldValue,
    MissingRequiredField,
    UnknownAssetType,
)
from assets.factories import AssetFactory, LocationFactory
from assets.models import Asset, AssignmentEvent, Location
from assets.services.intake import RowRecord, intake_rows
from assets.services.records import (
    asset_history,
    create_asset,
    normalize_asset_type,
    parse_price,
)


def _row(n, **overrides):
    row = {
        "Type": "Laptop",
        "Serial Number": f"INTAKE-{n}",
        "Description": f"Latitude 5440 #{n}",
    }
    row.update(overrides)
    return row


class TestNormalizeAssetType:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("LAPTOP", Asset.LAPTOP),
            ("laptop", Asset.LAPTOP),
            ("Mobile Phone", Asset.MOBILE_PHONE),
            ("mobile_phone", Asset.MOBILE_PHONE),
            ("phone", Asset.MOBILE_PHONE),
            ("iPad", Asset.TABLET),
            ("PC", Asset.DESKTOP),
            ("Display", Asset.MONITOR),
        ],
    )
    def test_aliases(self, value, expected):
        assert normalize_asset_type(value) == expected

    def test_unknown(self):
        with pytest.raises(UnknownAssetType):
            normalize_asset_type("Printer")

    def test_missing(self):
        with pytest.raises(MissingRequiredField) as excinfo:
            normalize_asset_type("")
        assert excinfo.value.field == "type"


class TestParsePrice:
    def test_plain(self):
        assert parse_price("450") == Decimal("450.00")

    def test_currency_and_thousands(self):
        assert parse_price("£1,299.5") == Decimal("1299.50")

    def test_blank(self):
        assert parse_price("") is None
        assert parse_price(None) is None

    def test_garbage(self):
        with pytest.raises(InvalidFieldValue):
            parse_price("about a grand")

    def test_negative(self):
        with pytest.raises(InvalidFieldValue):
            parse_price("-5")

    @pytest.mark.parametrize(
        "value", ["NaN", "nan", "sNaN", "Infinity", "-Infinity"]
    )
    def test_non_finite(self, value):
        with pytest.raises(InvalidFieldValue) as excinfo:
            parse_price(value)
        assert excinfo.value.field == "purchase_price"

    @pytest.mark.parametrize("value", ["123456789012", "100000000", "1e30"])
    def test_beyond_column_precision(self, value):
        with pytest.raises(InvalidFieldValue):
            parse_price(value)

    def test_largest_storable(self):
        assert parse_price("99,999,999.99") == Decimal("99999999.99")


class TestRowRecord:
    def test_loose_column_names(self):
        record = RowRecord.from_mapping(
            {
                "asset type": "Tablet",
                "serialNumber": "ABC123",
                "Description": "Galaxy Tab",
                "Purchase Price": "300",
                "Assigned To": "jsmith",
                "Colour": "Grey",
            }
        )
        assert record.type == "Tablet"
        assert record.serial_number == "ABC123"
        assert record.purchase_price == "300"
        assert record.declared_assignee == "jsmith"
        assert record.raw["Colour"] == "Grey"

    def test_missing_required_field(self):
        with pytest.raises(MissingRequiredField) as excinfo:
            RowRecord.from_mapping({"Type": "Laptop", "Description": "X"})
        assert excinfo.value.field == "serial_number"

    def test_whitespace_counts_as_missing(self):
        with pytest.raises(MissingRequiredField):
            RowRecord.from_mapping(
                {"Type": "Laptop", "Serial": "  ", "Description": "X"}
            )

    def test_numeric_serial_from_spreadsheet(self):
        record = RowRecord.from_mapping(
            {"Type": "Laptop", "Serial": 12345.0, "Description": "X"}
        )
        assert record.serial_number == "12345"

    def test_declared_holding(self):
        record = RowRecord.from_mapping(_row(1, Status="holding"))
        assert record.is_declared_holding


class TestIntakeRows:
    def test_partial_failure(self, db):
        rows = [_row(n) for n in range(1, 6)]
        del rows[2]["Serial Number"]

        report = intake_rows(rows)

        assert len(report["created"]) == 4
        assert all(a.state == Asset.HOLDING for a in report["created"])
        assert report["rejected"] == [
            {
                "row": 3,
                "reason": "missing_required_field",
                "field": "serial_number",
                "message": "Required field 'serial_number' is missing.",
            }
        ]

    def test_declared_state_is_ignored(self, db):
        report = intake_rows([_row(1, State="Active")])

        asset = report["created"][0]
        assert asset.state == Asset.HOLDING
        assert asset.import_data["State"] == "Active"

    @pytest.mark.parametrize("declared", ["ISSUED", "Available", "holding"])
    def test_always_holding(self, db, declared):
        report = intake_rows([_row(1, Status=declared)])
        assert report["created"][0].state == Asset.HOLDING

    def test_never_assigns(self, db, second_user):
        report = intake_rows(
            [_row(1, **{"Assigned To": second_user.username})]
        )

        asset = report["created"][0]
        assert asset.assigned_user is None
        assert asset.import_data["Assigned To"] == second_user.username

    def test_unknown_type(self, db):
        report = intake_rows([_row(1, Type="Printer")])

        assert report["created"] == []
        assert report["rejected"][0]["reason"] == "unknown_asset_type"
        assert report["rejected"][0]["field"] == "type"

    def test_duplicate_asset_number(self, db, location):
        AssetFactory(asset_number="04-00077", type=Asset.LAPTOP)

        report = intake_rows([_row(1, **{"Asset Number": "04-00077"})])

        assert report["rejected"][0]["reason"] == "duplicate_asset_number"

    def test_duplicate_serial_within_batch(self, db):
        report = intake_rows([_row(1), _row(1), _row(2)])

        assert len(report["created"]) == 2
        assert report["rejected"] == [
            {
                "row": 2,
                "reason": "duplicate_serial_number",
                "field": "serial_number",
                "message": "Serial number 'INTAKE-1' is already in use.",
            }
        ]

    def test_bad_price_and_asset_number(self, db):
        report = intake_rows(
            [
                _row(1, Price="lots"),
                _row(2, **{"Asset Number": "01-00001"}),
                _row(3, **{"Asset Number": "4-1"}),
            ]
        )

        assert [r["reason"] for r in report["rejected"]] == [
            "invalid_value",
            "invalid_asset_number",
            "invalid_asset_number",
        ]

    @pytest.mark.parametrize("price", ["NaN", "sNaN", "123456789012"])
    def test_bad_price_mid_batch(self, db, price):
        report = intake_rows(
            [_row(1, Price="10"), _row(2, Price=price), _row(3, Price="20")]
        )

        assert [a.serial_number for a in report["created"]] == [
            "INTAKE-1",
            "INTAKE-3",
        ]
        assert len(report["rejected"]) == 1
        rejection = report["rejected"][0]
        assert rejection["row"] == 2
        assert rejection["reason"] == "invalid_value"
        assert rejection["field"] == "purchase_price"
        assert not Asset.objects.filter(serial_number="INTAKE-2").exists()

    def test_row_numbers_follow_input_order(self, db):
        rows = [_row(1, Type=""), _row(2), _row(3, Type="Fax")]

        report = intake_rows(rows)

        assert [r["row"] for r in report["rejected"]] == [1, 3]

    def test_lands_in_intake_location(self, db, settings):
        settings.INTAKE_LOCATION_NAME = "Goods In"

        report = intake_rows([_row(1)])

        assert report["created"][0].location.name == "Goods In"
        assert Location.objects.filter(name="Goods In").count() == 1

    def test_known_location_is_used(self, db):
        LocationFactory(name="Branch Office")

        report = intake_rows([_row(1, Location="branch office")])

        assert report["created"][0].location.name == "Branch Office"

    def test_unknown_location_falls_back(self, db, settings):
        report = intake_rows([_row(1, Location="Moon Base")])

        location = report["created"][0].location
        assert location.name == settings.INTAKE_LOCATION_NAME

    def test_created_event_and_actor(self, db, admin_user):
        report = intake_rows([_row(1)], actor=admin_user)

        asset = report["created"][0]
        assert asset.created_by == admin_user
        event = asset.events.get()
        assert event.action == "created"
        assert event.previous_state is None
        assert event.new_state == Asset.HOLDING
        assert event.reason == "Imported (row 1)"

    def test_generated_asset_numbers(self, db):
        report = intake_rows(
            [_row(1), _row(2, Type="Mobile Phone"), _row(3)]
        )

        numbers = [a.asset_number for a in report["created"]]
        assert numbers[0].startswith("04-")
        assert numbers[1].startswith("01-")
        assert numbers[0] != numbers[2]

    def test_empty_batch(self, db):
        assert intake_rows([]) == {"created": [], "rejected": []}


class TestCreateAsset:
    def test_manual_entry_is_available(self, db, user, location):
        asset = create_asset(
            asset_type="laptop",
            serial_number="MAN-1",
            description="ThinkPad X1",
            location=location,
            purchase_price="1,450.00",
            actor=user,
        )

        assert asset.state == Asset.AVAILABLE
        assert asset.purchase_price == Decimal("1450.00")
        assert asset.asset_number.startswith("04-")
        assert AssignmentEvent.objects.filter(
            asset=asset, action="created"
        ).exists()

    def test_null_optionals(self, db):
        asset = create_asset(
            asset_type="laptop",
            serial_number="MAN-2",
            description="ThinkPad T14",
            supplier=None,
            notes=None,
            purchase_price=None,
        )

        asset.refresh_from_db()
        assert asset.supplier == ""
        assert asset.notes == ""
        assert asset.purchase_price is None

    def test_operator_number(self, db):
        asset = create_asset(
            asset_type=Asset.MONITOR,
            serial_number="MON-9",
            description="U2723QE",
            asset_number="05-00123",
        )
        assert asset.asset_number == "05-00123"

    def test_wrong_prefix(self, db):
        with pytest.raises(InvalidAssetNumber, match="start with '05-'"):
            create_asset(
                asset_type=Asset.MONITOR,
                serial_number="MON-9",
                description="U2723QE",
                asset_number="04-00123",
            )

    def test_duplicate_serial(self, db, asset):
        with pytest.raises(DuplicateSerialNumber):
            create_asset(
                asset_type=Asset.LAPTOP,
                serial_number=asset.serial_number,
                description="Copy",
            )

    def test_duplicate_number(self, db, asset):
        with pytest.raises(DuplicateAssetNumber):
            create_asset(
                asset_type=Asset.LAPTOP,
                serial_number="NEW-1",
                description="Copy",
                asset_number=asset.asset_number,
            )

    def test_generation_skips_taken_numbers(self, db):
        create_asset(
            asset_type=Asset.TABLET,
            serial_number="TAB-A",
            description="Tab",
            asset_number="02-00001",
        )
        asset = create_asset(
            asset_type=Asset.TABLET,
            serial_number="TAB-B",
            description="Tab",
        )
        assert asset.asset_number == "02-00002"


class TestAssetHistory:
    def test_newest_first(self, db, user, second_user):
        asset = create_asset(
            asset_type=Asset.LAPTOP,
            serial_number="HIST-1",
            description="History laptop",
            actor=user,
        )
        from assets.services.assignment import assign, unassign

        assign(asset.pk, second_user.pk, user)
        unassign(asset.pk, user)

        actions = [event.action for event in asset_history(asset.pk)]
        assert actions == ["unassign", "assign", "created"]
