"""Candidate record validation and duplicate detection."""

from collections.abc import Iterable

from showtracker.models.import_batch import CandidateRecord
from showtracker.models.show import Show

from .constants import (
    ERROR_INVALID_DATE,
    ERROR_INVALID_RATING,
    ERROR_MISSING_ARTIST,
    ERROR_MISSING_DATE,
    ERROR_MISSING_VENUE,
    RATING_MAX,
    RATING_MIN,
    SHOW_FIELDS,
)
from .dates import normalize_date


def parse_rating(value: str) -> int | None:
    """Parse a rating cell to an integer in [1, 10].

    Whole-number floats ("8.0", as spreadsheets export them) are accepted;
    anything else returns None.
    """
    if not value:
        return None
    try:
        number = float(value.strip())
    except (ValueError, OverflowError):
        return None
    if not number.is_integer():
        return None
    rating = int(number)
    if RATING_MIN <= rating <= RATING_MAX:
        return rating
    return None


def duplicate_key(artist: str, venue: str, show_date: str) -> tuple[str, str, str]:
    """Match key for duplicate detection: case-insensitive artist and venue, exact date."""
    return (artist.strip().casefold(), venue.strip().casefold(), show_date)


def is_duplicate(candidate: CandidateRecord, existing: Iterable[Show]) -> bool:
    """Check whether a candidate matches a show already in the collection.

    Venue name variants ("MSG" vs "Madison Square Garden") are not matched.
    """
    if candidate.normalized_date is None:
        return False
    key = duplicate_key(candidate.artist, candidate.venue, candidate.normalized_date)
    return any(duplicate_key(show.artist, show.venue, show.date) == key for show in existing)


def validate_candidate(candidate: CandidateRecord, existing: Iterable[Show]) -> CandidateRecord:
    """Normalize, validate and duplicate-check a candidate in place.

    Error codes are recomputed from scratch, so the function can be re-run
    after the user edits a row.

    Returns:
        The same candidate, for chaining.
    """
    errors: list[str] = []

    if not candidate.artist.strip():
        errors.append(ERROR_MISSING_ARTIST)
    if not candidate.venue.strip():
        errors.append(ERROR_MISSING_VENUE)

    candidate.normalized_date = normalize_date(candidate.date)
    if not candidate.date.strip():
        errors.append(ERROR_MISSING_DATE)
    elif candidate.normalized_date is None:
        errors.append(ERROR_INVALID_DATE)

    candidate.rating_value = None
    if candidate.rating.strip():
        candidate.rating_value = parse_rating(candidate.rating)
        if candidate.rating_value is None:
            errors.append(ERROR_INVALID_RATING)

    candidate.errors = errors
    candidate.duplicate = is_duplicate(candidate, existing)
    return candidate


def build_candidate(
    row_index: int,
    values: dict[str, str],
    existing: Iterable[Show],
) -> CandidateRecord:
    """Create and validate a candidate from mapped field values.

    Args:
        row_index: Zero-based position of the row among the data rows.
        values: Field name -> raw cell text. Missing fields count as blank.
        existing: Shows already in the collection.
    """
    fields = {field: (values.get(field) or "").strip() for field in SHOW_FIELDS}
    return validate_candidate(CandidateRecord(row_index=row_index, **fields), existing)


def candidate_to_show(candidate: CandidateRecord) -> Show:
    """Build the Show a ready candidate will be stored as."""
    if not candidate.is_ready or candidate.normalized_date is None:
        raise ValueError(f"Row {candidate.row_index + 1} is not ready to import")
    return Show(
        artist=candidate.artist,
        venue=candidate.venue,
        date=candidate.normalized_date,
        city=candidate.city,
        country=candidate.country,
        tour=candidate.tour or None,
        rating=candidate.rating_value,
        comment=candidate.comment,
        is_manual=True,
    )
