"""Tests for spreadsheet row parsing."""

import io

import openpyxl
import pytest

from django.core.exceptions import ValidationError

from assets.services.rows import detect_format, parse_rows


def _xlsx(rows):
    wb = openpyxl.Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


class TestDetectFormat:
    def test_csv(self):
        assert detect_format("stock.CSV") == "csv"

    def test_xlsx(self):
        assert detect_format("April intake.xlsx") == "xlsx"

    @pytest.mark.parametrize("name", ["stock.xls", "stock", "", None])
    def test_unsupported(self, name):
        with pytest.raises(ValidationError) as excinfo:
            detect_format(name)
        assert excinfo.value.code == "unsupported_format"


class TestParseCsv:
    def test_rows_keyed_by_header(self):
        data = (
            "Type,Serial Number,Description\n"
            "Laptop,SN1,Latitude\n"
            "Monitor,SN2,P2422H\n"
        ).encode()

        rows = parse_rows(data, "csv")

        assert rows == [
            {"Type": "Laptop", "Serial Number": "SN1", "Description": "Latitude"},
            {"Type": "Monitor", "Serial Number": "SN2", "Description": "P2422H"},
        ]

    def test_byte_order_mark_is_stripped(self):
        data = "\ufeffType,Serial\nLaptop,SN1\n".encode("utf-8")
        rows = parse_rows(data, "csv")
        assert list(rows[0]) == ["Type", "Serial"]

    def test_blank_lines_skipped(self):
        data = b"Type,Serial\nLaptop,SN1\n,\nTablet,SN2\n"
        assert len(parse_rows(data, "csv")) == 2

    def test_non_utf8(self):
        with pytest.raises(ValidationError):
            parse_rows(b"Type\n\xff\xfe\xfa", "csv")


class TestParseXlsx:
    def test_rows_keyed_by_header(self):
        data = _xlsx(
            [
                ["Type", "Serial Number", "Description", "Price"],
                ["Tablet", "T-1", "iPad Air", 549.0],
                [None, None, None, None],
                ["Phone", 880012, "Pixel 8", None],
            ]
        )

        rows = parse_rows(data, "xlsx")

        assert len(rows) == 2
        assert rows[0]["Serial Number"] == "T-1"
        assert rows[0]["Price"] == 549
        assert rows[1]["Serial Number"] == 880012

    def test_headerless_columns_dropped(self):
        data = _xlsx([["Type", None], ["Laptop", "stray"]])
        assert parse_rows(data, "xlsx") == [{"Type": "Laptop"}]

    def test_empty_workbook(self):
        wb = openpyxl.Workbook()
        buffer = io.BytesIO()
        wb.save(buffer)
        assert parse_rows(buffer.getvalue(), "xlsx") == []

    def test_corrupt_file(self):
        with pytest.raises(ValidationError, match="not a readable"):
            parse_rows(b"definitely not a zip", "xlsx")


def test_unknown_format():
    with pytest.raises(ValidationError):
        parse_rows(b"", "ods")
