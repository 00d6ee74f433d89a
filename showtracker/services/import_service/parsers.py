"""File parsing functions for CSV and XLSX imports.

Both formats normalize to the same shape: a list of rows, each a list of
trimmed string cells, header row first.
"""

import csv
import io
import logging
from datetime import date, datetime
from typing import Any

from openpyxl import load_workbook

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {"csv", "txt", "xlsx"}


def _is_blank(row: list[str]) -> bool:
    return not any(cell for cell in row)


def parse_delimited_text(text: str) -> list[list[str]]:
    """Parse comma-separated text into rows of trimmed string cells.

    Handles quoted fields with embedded commas and newlines, doubled quotes
    inside quoted fields, and CRLF / LF / CR line endings. Rows whose cells
    are all blank are dropped. Malformed input never raises: parsing stops at
    the first unrecoverable error and the rows read so far are returned.

    Args:
        text: Decoded file content.

    Returns:
        List of rows in file order.
    """
    rows: list[list[str]] = []
    # newline="" keeps line endings intact so the csv module sees them
    reader = csv.reader(io.StringIO(text, newline=""), strict=False)
    try:
        for raw_row in reader:
            row = [cell.strip() for cell in raw_row]
            if not _is_blank(row):
                rows.append(row)
    except csv.Error as e:
        logger.warning("Stopped parsing delimited text at line %d: %s", reader.line_num, e)
    return rows


def decode_text(file_content: bytes) -> str:
    """Decode uploaded text, trying UTF-8 (with or without BOM) then Latin-1."""
    try:
        return file_content.decode("utf-8-sig")
    except UnicodeDecodeError:
        return file_content.decode("latin-1")


def parse_csv(file_content: bytes) -> list[list[str]]:
    """Parse CSV file content into rows (header row first)."""
    return parse_delimited_text(decode_text(file_content))


def _cell_to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def parse_xlsx(file_content: bytes) -> list[list[str]]:
    """Parse XLSX file content into rows (first sheet only, header row first).

    Uses openpyxl read_only mode and iterates rows lazily. Date cells become
    ISO dates; whole-number floats lose their trailing ``.0`` so spreadsheet
    serial dates survive as plain integers.

    Raises:
        ValueError: If the workbook has no worksheets or cannot be read.
    """
    try:
        wb = load_workbook(filename=io.BytesIO(file_content), read_only=True, data_only=True)
    except Exception as e:
        raise ValueError(f"Could not read XLSX file: {e}") from e

    try:
        ws = wb.active
        if ws is None:
            raise ValueError("XLSX file has no worksheets")

        rows: list[list[str]] = []
        for values in ws.iter_rows(values_only=True):
            row = [_cell_to_text(value) for value in values]
            if not _is_blank(row):
                rows.append(row)
        return rows
    finally:
        wb.close()


def get_file_extension(filename: str | None) -> str:
    """Extract the lowercase file extension from a filename."""
    if not filename or "." not in filename:
        return ""
    return filename.rsplit(".", 1)[-1].lower()


def parse_file(file_content: bytes, filename: str | None) -> list[list[str]]:
    """Parse an uploaded spreadsheet by extension.

    Raises:
        ValueError: For unsupported extensions or unreadable workbooks.
    """
    ext = get_file_extension(filename)
    if ext not in ALLOWED_EXTENSIONS:
        raise ValueError(f"Unsupported file type '.{ext}'. Allowed: CSV, XLSX")
    if ext == "xlsx":
        return parse_xlsx(file_content)
    return parse_csv(file_content)
