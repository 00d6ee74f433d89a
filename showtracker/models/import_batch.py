"""Import batch lifecycle states, transitions and transient records."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class ImportStatus(str, Enum):
    """Status of an import batch."""

    IDLE = "idle"
    PARSING = "parsing"
    MAPPING = "mapping"
    PREVIEWING = "previewing"
    COMMITTING = "committing"
    ENRICHING = "enriching"
    COMPLETE = "complete"


# Allowed forward moves. Any state may additionally return to IDLE (reset).
TRANSITIONS: dict[ImportStatus, frozenset[ImportStatus]] = {
    ImportStatus.IDLE: frozenset({ImportStatus.PARSING, ImportStatus.PREVIEWING}),
    ImportStatus.PARSING: frozenset({ImportStatus.MAPPING}),
    ImportStatus.MAPPING: frozenset({ImportStatus.PREVIEWING}),
    ImportStatus.PREVIEWING: frozenset({ImportStatus.MAPPING, ImportStatus.COMMITTING}),
    ImportStatus.COMMITTING: frozenset({ImportStatus.ENRICHING, ImportStatus.COMPLETE}),
    ImportStatus.ENRICHING: frozenset({ImportStatus.COMPLETE}),
    ImportStatus.COMPLETE: frozenset(),
}


class InvalidTransitionError(RuntimeError):
    """Raised when an import batch is asked to move to a state it cannot reach."""

    def __init__(self, current: ImportStatus, target: ImportStatus):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move import from '{current.value}' to '{target.value}'")


def can_transition(current: ImportStatus, target: ImportStatus) -> bool:
    """Check whether ``current -> target`` is a legal move."""
    if target is ImportStatus.IDLE:
        return True
    return target in TRANSITIONS[current]


@dataclass
class CandidateRecord:
    """A reconciled, not-yet-persisted import row."""

    row_index: int
    artist: str = ""
    venue: str = ""
    date: str = ""
    city: str = ""
    country: str = ""
    rating: str = ""
    comment: str = ""
    tour: str = ""
    normalized_date: Optional[str] = None
    rating_value: Optional[int] = None
    errors: list[str] = field(default_factory=list)
    duplicate: bool = False
    skip: bool = False

    @property
    def is_ready(self) -> bool:
        return not self.errors

    @property
    def will_commit(self) -> bool:
        return self.is_ready and not self.skip


@dataclass
class PreviewSummary:
    """Row counts shown before the user confirms an import."""

    total: int = 0
    ready: int = 0
    invalid: int = 0
    skipped: int = 0  # rows that will not be committed, invalid or user-skipped
    duplicates: int = 0


@dataclass
class ImportProgress:
    """Observable counters for a running commit."""

    phase: ImportStatus = ImportStatus.IDLE
    current: int = 0
    total: int = 0
    imported: int = 0
    failed: int = 0
    setlists_found: int = 0


@dataclass
class ImportResult:
    """Final counts of a processed import batch."""

    imported: int = 0
    failed: int = 0
    skipped: int = 0
    setlists_found: int = 0
    cancelled: bool = False
