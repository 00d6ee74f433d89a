"""Date normalization for imported show dates.

Every date the import pipeline accepts ends up as a canonical ``YYYY-MM-DD``
string. ``normalize_date`` returns None for anything it cannot read; that is
the "Invalid date" signal, not an exception.
"""

import re
from datetime import date, datetime, timedelta, timezone

from dateutil import parser as date_parser

# Days between the spreadsheet epoch (1899-12-30) and the Unix epoch
SPREADSHEET_EPOCH_OFFSET_DAYS = 25569
MS_PER_DAY = 86_400_000
SERIAL_MIN = 1000
SERIAL_MAX = 100000

# Two-digit years below this pivot are 20xx, the rest 19xx
TWO_DIGIT_YEAR_PIVOT = 50

_SERIAL_RE = re.compile(r"^\d+(\.\d+)?$")
_ISO_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
_US_RE = re.compile(r"^(\d{1,2})([/.-])(\d{1,2})\2(\d{2}|\d{4})$")

_UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _format(year: int, month: int, day: int) -> str | None:
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def from_spreadsheet_serial(serial: float) -> str:
    """Convert a spreadsheet serial day number to a canonical date (UTC)."""
    ms = (serial - SPREADSHEET_EPOCH_OFFSET_DAYS) * MS_PER_DAY
    return (_UNIX_EPOCH + timedelta(milliseconds=ms)).date().isoformat()


def _parse_serial(value: str) -> str | None:
    if not _SERIAL_RE.match(value):
        return None
    serial = float(value)
    if not SERIAL_MIN <= serial < SERIAL_MAX:
        return None
    return from_spreadsheet_serial(serial)


def _parse_iso(value: str) -> str | None:
    match = _ISO_RE.match(value)
    if not match:
        return None
    year, month, day = (int(part) for part in match.groups())
    return _format(year, month, day)


def _parse_us(value: str) -> str | None:
    match = _US_RE.match(value)
    if not match:
        return None
    month, day, year_text = int(match.group(1)), int(match.group(3)), match.group(4)
    if not (1 <= month <= 12 and 1 <= day <= 31):
        return None
    year = int(year_text)
    if len(year_text) == 2:
        year += 2000 if year < TWO_DIGIT_YEAR_PIVOT else 1900
    return _format(year, month, day)


def _parse_free_text(value: str) -> str | None:
    # A bare number that was not a serial is not a date
    if _SERIAL_RE.match(value):
        return None
    try:
        parsed = date_parser.parse(value, default=datetime(1900, 1, 1))
    except (ValueError, OverflowError):
        return None
    if parsed.year <= 1900:
        return None
    return parsed.date().isoformat()


def normalize_date(raw: str | None) -> str | None:
    """Normalize a date string to ``YYYY-MM-DD``.

    Strategies, in order:
    1. Spreadsheet serial number between 1,000 and 100,000.
    2. ``YYYY-M-D`` / ``YYYY-MM-DD``.
    3. ``M/D/YY(YY)``, ``M-D-YY(YY)`` or ``M.D.YY(YY)``.
    4. Free-text parsing ("July 15, 2023", "15 Jul 2023"), year must be after 1900.

    Args:
        raw: Date text as found in the source.

    Returns:
        Canonical date string, or None if no strategy can read it.
    """
    if raw is None:
        return None
    value = str(raw).strip()
    if not value:
        return None

    for strategy in (_parse_serial, _parse_iso, _parse_us, _parse_free_text):
        result = strategy(value)
        if result is not None:
            return result
    return None


def setlistfm_to_canonical(event_date: str | None) -> str | None:
    """Convert a setlist.fm ``DD-MM-YYYY`` event date to ``YYYY-MM-DD``."""
    if not event_date or not isinstance(event_date, str):
        return None
    parts = event_date.strip().split("-")
    if len(parts) != 3 or not all(part.isdigit() for part in parts):
        return None
    day, month, year = (int(part) for part in parts)
    return _format(year, month, day)
