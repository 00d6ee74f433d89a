"""Import orchestration: parse, map, preview, then commit in two phases.

Phase 1 creates one show per ready candidate, in input order, through the
show store. Phase 2 looks up each committed show's setlist and updates the
show when one is found. Row-level failures are counted and logged, never
raised; only fatal input problems and misuse of the state machine raise.
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, Optional, Union

from showtracker.models.import_batch import (
    CandidateRecord,
    ImportProgress,
    ImportResult,
    ImportStatus,
    InvalidTransitionError,
    PreviewSummary,
    can_transition,
)
from showtracker.models.show import Show
from showtracker.services.retry import SleepFunc
from showtracker.services.show_store import ShowStore

from .constants import MAX_ROWS, SHOW_FIELDS
from .errors import ImportFatalError, MissingRequiredMappingError
from .mapping import (
    FieldMapping,
    apply_mapping_overrides,
    identity_mapping,
    mapped_values,
    missing_required_fields,
    suggest_field_mapping,
    suggest_field_mapping_ai,
)
from .parsers import parse_file
from .validation import build_candidate, candidate_to_show, validate_candidate

if TYPE_CHECKING:
    from showtracker.services.setlist_matcher import SetlistMatcher

logger = logging.getLogger(__name__)

DEFAULT_WRITE_DELAY_SECONDS = 0.1

ProgressCallback = Callable[[ImportProgress], Union[None, Awaitable[None]]]


class CancellationToken:
    """Cooperative cancellation flag, checked between rows."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class ImportOrchestrator:
    """One import session for one user's show collection.

    Args:
        store: Where committed shows go.
        matcher: Setlist matcher for enrichment; None skips phase 2.
        write_delay: Seconds between successive create calls.
        sleep: Awaitable sleep, replaceable in tests.
        max_rows: Data rows beyond this are dropped with a warning.
    """

    def __init__(
        self,
        store: ShowStore,
        matcher: Optional["SetlistMatcher"] = None,
        *,
        write_delay: float = DEFAULT_WRITE_DELAY_SECONDS,
        sleep: SleepFunc = asyncio.sleep,
        max_rows: int = MAX_ROWS,
    ):
        self.store = store
        self.matcher = matcher
        self.write_delay = write_delay
        self.sleep = sleep
        self.max_rows = max_rows
        self._status = ImportStatus.IDLE
        self._clear()

    def _clear(self) -> None:
        self.filename: Optional[str] = None
        self.source: Optional[str] = None
        self.headers: list[str] = []
        self.rows: list[list[str]] = []
        self.truncated = False
        self.mapping: FieldMapping = {}
        self.candidates: list[CandidateRecord] = []
        self.progress = ImportProgress()
        self.result: Optional[ImportResult] = None
        self._existing: list[Show] = []

    @property
    def status(self) -> ImportStatus:
        return self._status

    def _transition(self, target: ImportStatus) -> None:
        if not can_transition(self._status, target):
            raise InvalidTransitionError(self._status, target)
        logger.debug("Import %s -> %s", self._status.value, target.value)
        self._status = target
        self.progress.phase = target

    def _require(self, *allowed: ImportStatus, target: ImportStatus) -> None:
        if self._status not in allowed:
            raise InvalidTransitionError(self._status, target)

    def reset(self) -> None:
        """Discard everything and return to idle."""
        self._transition(ImportStatus.IDLE)
        self._clear()

    def _fail(self, message: str) -> ImportFatalError:
        logger.info("Import rejected: %s", message)
        self.reset()
        return ImportFatalError(message)

    # -- Input ---------------------------------------------------------------

    def load_file(self, content: bytes, filename: str | None) -> FieldMapping:
        """Parse an uploaded CSV or XLSX file and suggest a column mapping.

        Raises:
            ImportFatalError: Empty file, no data rows or unreadable file.
                The session is back in ``idle`` afterwards.

        Returns:
            The suggested mapping.
        """
        self._transition(ImportStatus.PARSING)
        self.filename = filename
        self.source = "file"

        if not content or not content.strip():
            raise self._fail("File is empty")
        try:
            rows = parse_file(content, filename)
        except ValueError as e:
            raise self._fail(str(e)) from e
        if not rows:
            raise self._fail("File is empty")

        headers, data_rows = rows[0], rows[1:]
        if not data_rows:
            raise self._fail("No data rows")
        if len(data_rows) > self.max_rows:
            logger.warning(
                "Import of %s truncated from %d to %d rows", filename, len(data_rows), self.max_rows
            )
            data_rows = data_rows[: self.max_rows]
            self.truncated = True

        self.headers = headers
        self.rows = data_rows
        self.mapping = suggest_field_mapping(headers)
        logger.info("Parsed %s: %d columns, %d data rows", filename, len(headers), len(data_rows))

        self._transition(ImportStatus.MAPPING)
        return self.mapping

    async def suggest_mapping_with_ai(self) -> FieldMapping:
        """Replace the pattern-based mapping with Claude's, when available."""
        self._require(ImportStatus.MAPPING, target=ImportStatus.MAPPING)
        suggestion = await suggest_field_mapping_ai(self.headers, self.rows[:5])
        if suggestion is not None:
            self.mapping = suggestion
        return self.mapping

    async def load_records(
        self,
        records: list[dict[str, Any]],
        source: str = "records",
    ) -> list[CandidateRecord]:
        """Start a session from already-structured records (screenshot, search).

        Fields are taken 1:1 by name; the session goes straight to preview.

        Raises:
            ImportFatalError: If there are no records.
        """
        self._require(ImportStatus.IDLE, target=ImportStatus.PREVIEWING)
        if not records:
            raise ImportFatalError("No data rows")

        self.source = source
        self.headers = list(SHOW_FIELDS)
        self.rows = [
            [str(record.get(field) or "").strip() for field in SHOW_FIELDS]
            for record in records[: self.max_rows]
        ]
        self.truncated = len(records) > self.max_rows
        self.mapping = identity_mapping()
        await self._build_candidates()

        self._transition(ImportStatus.PREVIEWING)
        return self.candidates

    # -- Mapping and preview -------------------------------------------------

    def set_mapping(self, overrides: dict[str, Optional[int]]) -> FieldMapping:
        """Apply user mapping overrides, leaving the preview if one was built.

        Raises:
            ValueError: Unknown field or column out of range.
        """
        if self._status is ImportStatus.PREVIEWING:
            self._transition(ImportStatus.MAPPING)
            self.candidates = []
        self._require(ImportStatus.MAPPING, target=ImportStatus.MAPPING)
        self.mapping = apply_mapping_overrides(self.mapping, overrides, len(self.headers))
        return self.mapping

    async def _build_candidates(self) -> None:
        self._existing = await self.store.list()
        self.candidates = [
            build_candidate(index, mapped_values(row, self.mapping), self._existing)
            for index, row in enumerate(self.rows)
        ]

    async def build_preview(self) -> list[CandidateRecord]:
        """Validate every row against the current mapping and the collection.

        Raises:
            MissingRequiredMappingError: If artist, venue or date is unmapped.
        """
        self._require(ImportStatus.MAPPING, target=ImportStatus.PREVIEWING)
        missing = missing_required_fields(self.mapping)
        if missing:
            raise MissingRequiredMappingError(missing)

        await self._build_candidates()
        self._transition(ImportStatus.PREVIEWING)

        summary = self.preview_summary()
        logger.info(
            "Preview built: %d ready, %d invalid, %d possible duplicates",
            summary.ready,
            summary.invalid,
            summary.duplicates,
        )
        return self.candidates

    def _candidate(self, row_index: int) -> CandidateRecord:
        self._require(ImportStatus.PREVIEWING, target=ImportStatus.PREVIEWING)
        if not 0 <= row_index < len(self.candidates):
            raise IndexError(f"Row {row_index} does not exist")
        return self.candidates[row_index]

    def set_skip(self, row_index: int, skip: bool = True) -> CandidateRecord:
        """Include or exclude a row from the commit."""
        candidate = self._candidate(row_index)
        candidate.skip = skip
        return candidate

    def edit_candidate(self, row_index: int, values: dict[str, str]) -> CandidateRecord:
        """Correct a row's raw values and re-validate it.

        Raises:
            ValueError: On unknown field names.
        """
        candidate = self._candidate(row_index)
        unknown = set(values) - set(SHOW_FIELDS)
        if unknown:
            raise ValueError(f"Unknown fields: {sorted(unknown)}")
        for field, value in values.items():
            setattr(candidate, field, (value or "").strip())
        return validate_candidate(candidate, self._existing)

    def preview_summary(self) -> PreviewSummary:
        ready = sum(1 for c in self.candidates if c.will_commit)
        return PreviewSummary(
            total=len(self.candidates),
            ready=ready,
            invalid=sum(1 for c in self.candidates if not c.is_ready),
            skipped=len(self.candidates) - ready,
            duplicates=sum(1 for c in self.candidates if c.duplicate),
        )

    # -- Commit --------------------------------------------------------------

    async def _report(self, on_progress: Optional[ProgressCallback]) -> None:
        if on_progress is None:
            return
        outcome = on_progress(self.progress)
        if inspect.isawaitable(outcome):
            await outcome

    async def commit(
        self,
        cancel_token: Optional[CancellationToken] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ImportResult:
        """Persist the ready rows, then enrich them with setlists.

        Args:
            cancel_token: Checked before each row in both phases.
            on_progress: Called (sync or async) after every step.

        Returns:
            Counts of imported, failed and skipped rows and setlists found.
        """
        self._transition(ImportStatus.COMMITTING)
        token = cancel_token or CancellationToken()

        ready = [candidate for candidate in self.candidates if candidate.will_commit]
        result = ImportResult(skipped=len(self.candidates) - len(ready))
        self.result = result
        self.progress = ImportProgress(phase=ImportStatus.COMMITTING, total=len(ready))

        committed: list[tuple[str, Show]] = []
        for position, candidate in enumerate(ready):
            if token.cancelled:
                result.cancelled = True
                result.skipped += len(ready) - position
                logger.info("Import cancelled after %d of %d rows", position, len(ready))
                break
            if position:
                await self.sleep(self.write_delay)

            try:
                show = candidate_to_show(candidate)
                show_id = await self.store.create(show)
            except Exception as e:
                result.failed += 1
                logger.warning("Import error on row %d: %s", candidate.row_index + 1, e)
            else:
                result.imported += 1
                committed.append((show_id, show))

            self.progress.current = position + 1
            self.progress.imported = result.imported
            self.progress.failed = result.failed
            await self._report(on_progress)

        logger.info(
            "Committed import: %d imported, %d failed, %d skipped",
            result.imported,
            result.failed,
            result.skipped,
        )

        if self._should_enrich(committed, result):
            await self._enrich(committed, result, token, on_progress)

        self._transition(ImportStatus.COMPLETE)
        await self._report(on_progress)
        return result

    def _should_enrich(self, committed: list[tuple[str, Show]], result: ImportResult) -> bool:
        if result.cancelled or not committed:
            return False
        if self.matcher is None:
            logger.debug("No setlist matcher, skipping enrichment")
            return False
        if not self.store.supports_updates:
            logger.debug("Show store does not support updates, skipping enrichment")
            return False
        return True

    async def _enrich(
        self,
        committed: list[tuple[str, Show]],
        result: ImportResult,
        token: CancellationToken,
        on_progress: Optional[ProgressCallback],
    ) -> None:
        assert self.matcher is not None
        self._transition(ImportStatus.ENRICHING)
        self.progress.current = 0
        self.progress.total = len(committed)

        for position, (show_id, show) in enumerate(committed):
            if token.cancelled:
                result.cancelled = True
                logger.info("Setlist enrichment cancelled after %d shows", position)
                break

            try:
                match = await self.matcher.find_setlist(show.artist, show.date)
                if match is not None:
                    await self.store.update(
                        show_id,
                        {
                            "setlist": match.songs,
                            "setlistfm_id": match.setlistfm_id,
                            "tour": match.tour or show.tour,
                            "is_manual": False,
                        },
                    )
                    result.setlists_found += 1
            except Exception as e:
                logger.warning("Setlist enrichment failed for show %s: %s", show_id, e)

            self.progress.current = position + 1
            self.progress.setlists_found = result.setlists_found
            await self._report(on_progress)

        logger.info("Setlists found for %d of %d shows", result.setlists_found, len(committed))
