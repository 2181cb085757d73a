"""Parse uploaded CSV/XLSX spreadsheets into header -> value row mappings."""

import csv
import io
import logging
import zipfile

import openpyxl
from django.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = ("csv", "xlsx")


def detect_format(filename: str) -> str:
    """Return "csv" or "xlsx" from a file name's extension."""
    extension = str(filename or "").rsplit(".", 1)[-1].lower()
    if extension not in SUPPORTED_FORMATS:
        raise ValidationError(
            f"Unsupported file type '{filename}'. Upload a .csv or .xlsx file.",
            code="unsupported_format",
        )
    return extension


def _is_blank(row: dict) -> bool:
    return all(value in (None, "") for value in row.values())


def _parse_csv(data: bytes) -> list[dict]:
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise ValidationError(
            "CSV files must be UTF-8 encoded.", code="unsupported_format"
        ) from None
    reader = csv.DictReader(io.StringIO(text))
    return [
        {key: value for key, value in row.items() if key is not None}
        for row in reader
    ]


def _parse_xlsx(data: bytes) -> list[dict]:
    try:
        wb = openpyxl.load_workbook(
            io.BytesIO(data), read_only=True, data_only=True
        )
    except (zipfile.BadZipFile, KeyError, OSError) as exc:
        logger.warning("Could not open uploaded workbook: %s", exc)
        raise ValidationError(
            "The uploaded file is not a readable .xlsx workbook.",
            code="unsupported_format",
        ) from None
    try:
        ws = wb.active
        lines = ws.iter_rows(values_only=True)
        header = next(lines, None)
        if header is None:
            return []
        columns = [
            str(cell).strip() if cell is not None else None for cell in header
        ]
        rows = []
        for line in lines:
            rows.append(
                {
                    column: value
                    for column, value in zip(columns, line)
                    if column
                }
            )
        return rows
    finally:
        wb.close()


def parse_rows(data: bytes, fmt: str) -> list[dict]:
    """Parse file bytes into a list of row mappings, skipping blank rows."""
    if fmt == "csv":
        rows = _parse_csv(data)
    elif fmt == "xlsx":
        rows = _parse_xlsx(data)
    else:
        raise ValidationError(
            f"Unsupported format '{fmt}'.", code="unsupported_format"
        )
    return [row for row in rows if not _is_blank(row)]
