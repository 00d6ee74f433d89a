"""Import a concert history spreadsheet from the command line.

Usage:
    showtracker-import FILE [--map FIELD=COLUMN ...] [--skip-duplicates]
                            [--no-setlists] [--dry-run] [--verbose]
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

from showtracker.config import settings
from showtracker.config.log_setup import configure_logging
from showtracker.database import close_db, init_db
from showtracker.models.import_batch import CandidateRecord, ImportProgress, ImportStatus
from showtracker.services.import_service import (
    SHOW_FIELDS,
    ImportFatalError,
    ImportOrchestrator,
    MissingRequiredMappingError,
)
from showtracker.services.import_service.constants import ERROR_MESSAGES
from showtracker.services.setlist_matcher import SetlistMatcher
from showtracker.services.setlistfm import SetlistFmClient
from showtracker.services.show_store import BeanieShowStore, ShowStore

logger = logging.getLogger(__name__)


def parse_overrides(values: list[str]) -> dict[str, Optional[int]]:
    """Parse ``FIELD=COLUMN`` arguments; a column of ``-`` unmaps the field.

    Columns are 1-based on the command line.

    Raises:
        ValueError: On malformed arguments or unknown fields.
    """
    overrides: dict[str, Optional[int]] = {}
    for value in values:
        field, sep, column = value.partition("=")
        field = field.strip().lower()
        if not sep or field not in SHOW_FIELDS:
            raise ValueError(f"Invalid mapping '{value}'. Use FIELD=COLUMN, e.g. date=3")
        column = column.strip()
        if column == "-":
            overrides[field] = None
        elif column.isdigit() and int(column) >= 1:
            overrides[field] = int(column) - 1
        else:
            raise ValueError(f"Invalid column '{column}' for '{field}'")
    return overrides


def describe_candidate(candidate: CandidateRecord) -> str:
    label = f"Row {candidate.row_index + 1}: {candidate.artist or '?'} @ {candidate.venue or '?'}"
    label += f" ({candidate.normalized_date or candidate.date or '?'})"
    if candidate.errors:
        messages = ", ".join(ERROR_MESSAGES.get(code, code) for code in candidate.errors)
        return f"{label}  INVALID: {messages}"
    if candidate.skip:
        return f"{label}  SKIPPED"
    if candidate.duplicate:
        return f"{label}  POSSIBLE DUPLICATE"
    return f"{label}  ready"


def print_progress(progress: ImportProgress) -> None:
    if progress.phase is ImportStatus.COMPLETE or not progress.total:
        return
    print(f"  {progress.phase.value}: {progress.current}/{progress.total}", flush=True)


def build_matcher(enabled: bool) -> Optional[SetlistMatcher]:
    if not enabled:
        return None
    if not settings.setlistfm_api_key:
        print("No setlist.fm API key configured; skipping setlist lookup.")
        return None
    return SetlistMatcher(
        SetlistFmClient(),
        max_pages=settings.setlist_max_pages,
        page_size=settings.setlist_page_size,
    )


async def run_import(
    path: Path,
    store: ShowStore,
    overrides: dict[str, Optional[int]],
    skip_duplicates: bool = False,
    fetch_setlists: bool = True,
    dry_run: bool = False,
) -> int:
    """Run one import end to end. Returns the process exit code."""
    orchestrator = ImportOrchestrator(
        store,
        write_delay=settings.import_write_delay_seconds,
        max_rows=settings.import_max_rows,
    )

    try:
        mapping = orchestrator.load_file(path.read_bytes(), path.name)
    except ImportFatalError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if overrides:
        try:
            mapping = orchestrator.set_mapping(overrides)
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

    print(f"Columns: {', '.join(orchestrator.headers)}")
    for field in SHOW_FIELDS:
        column = mapping.get(field)
        target = orchestrator.headers[column] if column is not None else "(unmapped)"
        print(f"  {field:<8} <- {target}")

    try:
        candidates = await orchestrator.build_preview()
    except MissingRequiredMappingError as e:
        print(f"Error: {e}. Use --map FIELD=COLUMN.", file=sys.stderr)
        return 2

    if skip_duplicates:
        for candidate in candidates:
            if candidate.duplicate:
                orchestrator.set_skip(candidate.row_index)

    print()
    for candidate in candidates:
        print(describe_candidate(candidate))

    summary = orchestrator.preview_summary()
    print(
        f"\n{summary.total} rows: {summary.ready} ready, {summary.invalid} invalid, "
        f"{summary.duplicates} possible duplicates"
    )
    if dry_run:
        print("Dry run, nothing imported.")
        return 0
    if not summary.ready:
        print("Nothing to import.")
        return 0

    orchestrator.matcher = build_matcher(fetch_setlists)
    try:
        result = await orchestrator.commit(on_progress=print_progress)
    finally:
        if orchestrator.matcher is not None:
            await orchestrator.matcher.aclose()

    print(
        f"\nImported {result.imported}, failed {result.failed}, skipped {result.skipped}, "
        f"setlists found {result.setlists_found}"
    )
    return 0 if not result.failed else 3


async def _main(args: argparse.Namespace, overrides: dict[str, Optional[int]]) -> int:
    await init_db()
    try:
        return await run_import(
            args.file,
            BeanieShowStore(),
            overrides,
            skip_duplicates=args.skip_duplicates,
            fetch_setlists=not args.no_setlists,
            dry_run=args.dry_run,
        )
    finally:
        await close_db()


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Import a concert history spreadsheet (CSV or XLSX) into ShowTracker",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s shows.csv                      Import, then look up setlists
  %(prog)s shows.xlsx --dry-run           Show the preview only
  %(prog)s shows.csv --map date=3         Take dates from the third column
  %(prog)s shows.csv --no-setlists        Skip setlist.fm matching
        """,
    )
    parser.add_argument("file", type=Path, help="CSV or XLSX file to import")
    parser.add_argument(
        "--map", "-m",
        action="append",
        default=[],
        metavar="FIELD=COLUMN",
        help="Override a column mapping (1-based column, '-' to unmap)",
    )
    parser.add_argument(
        "--skip-duplicates",
        action="store_true",
        help="Leave out rows that look like shows already in the collection",
    )
    parser.add_argument(
        "--no-setlists",
        action="store_true",
        help="Do not look up setlists on setlist.fm",
    )
    parser.add_argument(
        "--dry-run", "-n",
        action="store_true",
        help="Build the preview but do not import anything",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    args = parser.parse_args()
    configure_logging(logging.DEBUG if args.verbose else logging.WARNING)

    if not args.file.is_file():
        print(f"Error: {args.file} not found", file=sys.stderr)
        return 1
    try:
        overrides = parse_overrides(args.map)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        return asyncio.run(_main(args, overrides))
    except KeyboardInterrupt:
        print("\nInterrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
