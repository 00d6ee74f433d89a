"""Pydantic schemas for spreadsheet and screenshot import functionality."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CandidateResponse(BaseModel):
    """One reconciled import row, as shown in the preview."""

    row_index: int
    artist: str
    venue: str
    date: str
    city: str
    country: str
    rating: str
    comment: str
    tour: str
    normalized_date: Optional[str] = None
    rating_value: Optional[int] = None
    errors: list[str]
    error_messages: list[str] = []
    duplicate: bool
    skip: bool
    is_ready: bool

    model_config = ConfigDict(from_attributes=True)


class PreviewSummaryResponse(BaseModel):
    total: int
    ready: int
    invalid: int
    skipped: int
    duplicates: int

    model_config = ConfigDict(from_attributes=True)


class ImportUploadResponse(BaseModel):
    """Response after uploading a spreadsheet."""

    batch_id: str
    filename: Optional[str]
    row_count: int
    truncated: bool = False
    headers: list[str]
    preview_rows: list[list[str]]
    suggested_mapping: dict[str, Optional[int]]
    status: str


class ColumnMappingRequest(BaseModel):
    """Request to override the column mapping of an import batch."""

    mapping: dict[str, Optional[int]] = Field(
        ...,
        description="Map of show field -> zero-based column index, or null to unmap",
    )


class ColumnMappingResponse(BaseModel):
    batch_id: str
    mapping: dict[str, Optional[int]]
    missing_required: list[str]
    status: str


class PreviewResponse(BaseModel):
    """Preview of every row before the user confirms the import."""

    batch_id: str
    status: str
    summary: PreviewSummaryResponse
    candidates: list[CandidateResponse]


class SkipRowRequest(BaseModel):
    row_index: int = Field(..., ge=0)
    skip: bool = True


class EditRowRequest(BaseModel):
    """Corrected raw values for one preview row."""

    values: dict[str, str]


class ImportResultResponse(BaseModel):
    """Response after processing an import batch."""

    batch_id: str
    imported: int
    failed: int
    skipped: int
    setlists_found: int
    cancelled: bool
    status: str


class ImportProgressResponse(BaseModel):
    batch_id: str
    status: str
    phase: str
    current: int
    total: int
    imported: int
    failed: int
    setlists_found: int
    skipped: int = 0
    cancelled: bool = False
