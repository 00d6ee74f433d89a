"""Constants for show history imports."""

import re

# Maximum rows per import batch
MAX_ROWS = 5000

# Semantic fields an import column can be mapped to, in mapping priority order
SHOW_FIELDS = ["artist", "venue", "date", "city", "country", "rating", "comment", "tour"]

REQUIRED_FIELDS = ("artist", "venue", "date")

# Header patterns per field: case-insensitive, anchored to the whole header
FIELD_PATTERNS: dict[str, re.Pattern[str]] = {
    "artist": re.compile(r"^(artist|band|performer|act|group|musicians?)$", re.IGNORECASE),
    "venue": re.compile(
        r"^(venue|location|place|where|hall|theater|theatre|arena|club)$", re.IGNORECASE
    ),
    "date": re.compile(r"^(date|show ?date|event ?date|when|day)$", re.IGNORECASE),
    "city": re.compile(r"^(city|town|metro)$", re.IGNORECASE),
    "country": re.compile(r"^(country|nation)$", re.IGNORECASE),
    "rating": re.compile(r"^(rating|score|stars|rank)$", re.IGNORECASE),
    "comment": re.compile(r"^(comments?|notes|review|thoughts|memo)$", re.IGNORECASE),
    "tour": re.compile(r"^(tour|tour ?name|event|event ?name)$", re.IGNORECASE),
}

# Human-readable descriptions for each field (used in the AI mapping prompt)
FIELD_DESCRIPTIONS: dict[str, str] = {
    "artist": "The performing artist or band (REQUIRED)",
    "venue": "The venue name (REQUIRED)",
    "date": "The show date in any format (REQUIRED)",
    "city": "The city where the venue is",
    "country": "The country where the venue is",
    "rating": "The user's rating of the show, 1-10",
    "comment": "Free-text notes, review or comments about the show",
    "tour": "The tour or event name",
}

# Validation error codes attached to candidate records
ERROR_MISSING_ARTIST = "missing_artist"
ERROR_MISSING_VENUE = "missing_venue"
ERROR_MISSING_DATE = "missing_date"
ERROR_INVALID_DATE = "invalid_date"
ERROR_INVALID_RATING = "invalid_rating"

ERROR_MESSAGES: dict[str, str] = {
    ERROR_MISSING_ARTIST: "Missing artist",
    ERROR_MISSING_VENUE: "Missing venue",
    ERROR_MISSING_DATE: "Missing date",
    ERROR_INVALID_DATE: "Invalid date",
    ERROR_INVALID_RATING: "Rating must be a whole number from 1 to 10",
}

RATING_MIN = 1
RATING_MAX = 10
