"""Import endpoints: spreadsheet and screenshot import with preview and commit."""

import asyncio
import logging
from dataclasses import asdict
from typing import Annotated, Any, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, Response, UploadFile, status
from slowapi import Limiter
from slowapi.util import get_remote_address

from showtracker.config import settings
from showtracker.models.import_batch import CandidateRecord, ImportResult, ImportStatus, InvalidTransitionError
from showtracker.schemas.import_schemas import (
    CandidateResponse,
    ColumnMappingRequest,
    ColumnMappingResponse,
    EditRowRequest,
    ImportProgressResponse,
    ImportResultResponse,
    ImportUploadResponse,
    PreviewResponse,
    PreviewSummaryResponse,
    SkipRowRequest,
)
from showtracker.services.import_service import (
    CancellationToken,
    ImportFatalError,
    MissingRequiredMappingError,
    missing_required_fields,
)
from showtracker.services.import_service.constants import ERROR_MESSAGES
from showtracker.services.import_service.parsers import ALLOWED_EXTENSIONS, get_file_extension
from showtracker.services.screenshot import (
    SUPPORTED_MEDIA_TYPES,
    ScreenshotAnalysisError,
    ScreenshotAnalysisService,
)
from showtracker.services.setlist_matcher import SetlistMatcher

from .deps import (
    ImportSession,
    ImportSessionsDep,
    ShowStoreDep,
    get_import_matcher,
    get_screenshot_service,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# Screenshot analysis calls Claude, so it is rate limited per client
limiter = Limiter(key_func=get_remote_address)

PREVIEW_ROW_COUNT = 5
READ_CHUNK_SIZE = 64 * 1024


async def _read_upload(file: UploadFile) -> bytes:
    """Read an upload in chunks, refusing anything over the size limit."""
    max_size = settings.max_upload_size_bytes
    chunks: list[bytes] = []
    total_size = 0
    while True:
        chunk = await file.read(READ_CHUNK_SIZE)
        if not chunk:
            break
        total_size += len(chunk)
        if total_size > max_size:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"File exceeds maximum size of {max_size // (1024 * 1024)} MB",
            )
        chunks.append(chunk)
    return b"".join(chunks)


def _candidate_response(candidate: CandidateRecord) -> CandidateResponse:
    return CandidateResponse(
        **asdict(candidate),
        error_messages=[ERROR_MESSAGES.get(code, code) for code in candidate.errors],
        is_ready=candidate.is_ready,
    )


def _preview_response(session: ImportSession) -> PreviewResponse:
    orchestrator = session.orchestrator
    return PreviewResponse(
        batch_id=session.batch_id,
        status=orchestrator.status.value,
        summary=PreviewSummaryResponse.model_validate(orchestrator.preview_summary()),
        candidates=[_candidate_response(c) for c in orchestrator.candidates],
    )


def _result_response(session: ImportSession, result: Optional[ImportResult]) -> ImportResultResponse:
    result = result or ImportResult()
    return ImportResultResponse(
        batch_id=session.batch_id,
        imported=result.imported,
        failed=result.failed,
        skipped=result.skipped,
        setlists_found=result.setlists_found,
        cancelled=result.cancelled,
        status=session.orchestrator.status.value,
    )


def _conflict(e: InvalidTransitionError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


async def _run_commit(session: ImportSession) -> ImportResult:
    orchestrator = session.orchestrator
    try:
        return await orchestrator.commit(cancel_token=session.cancel_token)
    finally:
        if orchestrator.matcher is not None:
            await orchestrator.matcher.aclose()


def _log_task_failure(task: asyncio.Task) -> None:
    if not task.cancelled() and task.exception() is not None:
        logger.error("Background import failed: %s", task.exception())


@router.post("/upload", response_model=ImportUploadResponse)
async def upload_spreadsheet(
    store: ShowStoreDep,
    sessions: ImportSessionsDep,
    file: UploadFile = File(..., description="CSV or XLSX spreadsheet"),
    use_ai: bool = Query(False, description="Ask Claude for the column mapping"),
) -> ImportUploadResponse:
    """Upload a spreadsheet for import.

    Parses the file and returns headers, preview rows and a suggested column mapping.
    """
    ext = get_file_extension(file.filename)
    if ext not in ALLOWED_EXTENSIONS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported file type '.{ext}'. Allowed: CSV, XLSX",
        )
    content = await _read_upload(file)

    session = sessions.create(store)
    orchestrator = session.orchestrator
    try:
        orchestrator.load_file(content, file.filename)
    except ImportFatalError as e:
        sessions.discard(session.batch_id)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if use_ai:
        await orchestrator.suggest_mapping_with_ai()

    return ImportUploadResponse(
        batch_id=session.batch_id,
        filename=file.filename,
        row_count=len(orchestrator.rows),
        truncated=orchestrator.truncated,
        headers=orchestrator.headers,
        preview_rows=orchestrator.rows[:PREVIEW_ROW_COUNT],
        suggested_mapping=orchestrator.mapping,
        status=orchestrator.status.value,
    )


@router.post("/screenshot", response_model=PreviewResponse)
@limiter.limit(lambda: f"{settings.rate_limit_per_minute}/minute")
async def upload_screenshot(
    request: Request,
    store: ShowStoreDep,
    sessions: ImportSessionsDep,
    service: Annotated[ScreenshotAnalysisService, Depends(get_screenshot_service)],
    file: UploadFile = File(..., description="Screenshot of a ticket platform's past events"),
) -> PreviewResponse:
    """Extract shows from a ticket-history screenshot and preview them."""
    media_type = file.content_type or ""
    if media_type not in SUPPORTED_MEDIA_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported image type '{media_type}'",
        )
    if not service.is_available():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Screenshot analysis is not configured",
        )
    image_data = await _read_upload(file)

    try:
        records = await service.analyze_screenshot(image_data, media_type)
    except ScreenshotAnalysisError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    if not records:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No shows found in screenshot",
        )

    session = sessions.create(store)
    await session.orchestrator.load_records(records, source="screenshot")
    return _preview_response(session)


@router.post("/records", response_model=PreviewResponse)
async def upload_records(
    records: list[dict[str, Any]],
    store: ShowStoreDep,
    sessions: ImportSessionsDep,
) -> PreviewResponse:
    """Preview already-structured show records ({artist, venue, date, ...})."""
    session = sessions.create(store)
    try:
        await session.orchestrator.load_records(records)
    except ImportFatalError as e:
        sessions.discard(session.batch_id)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return _preview_response(session)


@router.post("/{batch_id}/mapping", response_model=ColumnMappingResponse)
async def set_column_mapping(
    batch_id: str,
    request: ColumnMappingRequest,
    sessions: ImportSessionsDep,
) -> ColumnMappingResponse:
    """Override the column mapping of an import batch."""
    session = sessions.get(batch_id)
    try:
        mapping = session.orchestrator.set_mapping(request.mapping)
    except InvalidTransitionError as e:
        raise _conflict(e)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return ColumnMappingResponse(
        batch_id=batch_id,
        mapping=mapping,
        missing_required=missing_required_fields(mapping),
        status=session.orchestrator.status.value,
    )


@router.get("/{batch_id}/preview", response_model=PreviewResponse)
async def get_preview(batch_id: str, sessions: ImportSessionsDep) -> PreviewResponse:
    """Validate every row and show what the import would do."""
    session = sessions.get(batch_id)
    orchestrator = session.orchestrator
    if orchestrator.status is ImportStatus.MAPPING:
        try:
            await orchestrator.build_preview()
        except MissingRequiredMappingError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    elif orchestrator.status is not ImportStatus.PREVIEWING:
        raise _conflict(InvalidTransitionError(orchestrator.status, ImportStatus.PREVIEWING))
    return _preview_response(session)


@router.post("/{batch_id}/skip", response_model=CandidateResponse)
async def skip_row(
    batch_id: str,
    request: SkipRowRequest,
    sessions: ImportSessionsDep,
) -> CandidateResponse:
    """Exclude a row from the import, or include it again."""
    session = sessions.get(batch_id)
    try:
        candidate = session.orchestrator.set_skip(request.row_index, request.skip)
    except InvalidTransitionError as e:
        raise _conflict(e)
    except IndexError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return _candidate_response(candidate)


@router.patch("/{batch_id}/rows/{row_index}", response_model=CandidateResponse)
async def edit_row(
    batch_id: str,
    row_index: int,
    request: EditRowRequest,
    sessions: ImportSessionsDep,
) -> CandidateResponse:
    """Correct a preview row and re-validate it."""
    session = sessions.get(batch_id)
    try:
        candidate = session.orchestrator.edit_candidate(row_index, request.values)
    except InvalidTransitionError as e:
        raise _conflict(e)
    except IndexError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return _candidate_response(candidate)


@router.post("/{batch_id}/process", response_model=ImportResultResponse)
async def process_batch(
    batch_id: str,
    response: Response,
    sessions: ImportSessionsDep,
    matcher: Annotated[Optional[SetlistMatcher], Depends(get_import_matcher)],
    wait: bool = Query(False, description="Wait for the import, setlists included, to finish"),
) -> ImportResultResponse:
    """Commit the ready rows, then look up setlists for the new shows.

    By default the import runs in the background and progress is polled
    from ``/progress``.
    """
    session = sessions.get(batch_id)
    orchestrator = session.orchestrator
    if session.running or orchestrator.status is not ImportStatus.PREVIEWING:
        if matcher is not None:
            await matcher.aclose()
        raise _conflict(InvalidTransitionError(orchestrator.status, ImportStatus.COMMITTING))

    orchestrator.matcher = matcher
    session.cancel_token = CancellationToken()
    if wait:
        result = await _run_commit(session)
        return _result_response(session, result)

    session.task = asyncio.create_task(_run_commit(session))
    session.task.add_done_callback(_log_task_failure)
    response.status_code = status.HTTP_202_ACCEPTED
    return _result_response(session, orchestrator.result)


@router.get("/{batch_id}/progress", response_model=ImportProgressResponse)
async def get_progress(batch_id: str, sessions: ImportSessionsDep) -> ImportProgressResponse:
    session = sessions.get(batch_id)
    orchestrator = session.orchestrator
    progress = orchestrator.progress
    result = orchestrator.result or ImportResult()
    return ImportProgressResponse(
        batch_id=batch_id,
        status=orchestrator.status.value,
        phase=progress.phase.value,
        current=progress.current,
        total=progress.total,
        imported=result.imported,
        failed=result.failed,
        setlists_found=result.setlists_found,
        skipped=result.skipped,
        cancelled=result.cancelled,
    )


@router.post("/{batch_id}/cancel", response_model=ImportProgressResponse)
async def cancel_batch(batch_id: str, sessions: ImportSessionsDep) -> ImportProgressResponse:
    """Stop a running import after the current row."""
    session = sessions.get(batch_id)
    if not session.running:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="No import is running for this batch",
        )
    session.cancel_token.cancel()
    await asyncio.gather(session.task, return_exceptions=True)
    return await get_progress(batch_id, sessions)


@router.delete("/{batch_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_batch(batch_id: str, sessions: ImportSessionsDep) -> None:
    """Discard an import batch; a running import is cancelled."""
    sessions.discard(batch_id)
