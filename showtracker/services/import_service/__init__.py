"""Import service package for parsing spreadsheets and reconciling show records."""

from .constants import (
    FIELD_DESCRIPTIONS,
    FIELD_PATTERNS,
    MAX_ROWS,
    REQUIRED_FIELDS,
    SHOW_FIELDS,
)
from .dates import from_spreadsheet_serial, normalize_date, setlistfm_to_canonical
from .errors import ImportFatalError, MissingRequiredMappingError
from .mapping import (
    FieldMapping,
    apply_mapping_overrides,
    missing_required_fields,
    suggest_field_mapping,
    suggest_field_mapping_ai,
)
from .orchestrator import CancellationToken, ImportOrchestrator
from .parsers import parse_csv, parse_delimited_text, parse_file, parse_xlsx
from .validation import (
    build_candidate,
    candidate_to_show,
    is_duplicate,
    parse_rating,
    validate_candidate,
)

__all__ = [
    # Constants
    "FIELD_DESCRIPTIONS",
    "FIELD_PATTERNS",
    "MAX_ROWS",
    "REQUIRED_FIELDS",
    "SHOW_FIELDS",
    # Errors
    "ImportFatalError",
    "MissingRequiredMappingError",
    # Parsers
    "parse_csv",
    "parse_delimited_text",
    "parse_file",
    "parse_xlsx",
    # Mapping
    "FieldMapping",
    "apply_mapping_overrides",
    "missing_required_fields",
    "suggest_field_mapping",
    "suggest_field_mapping_ai",
    # Dates
    "from_spreadsheet_serial",
    "normalize_date",
    "setlistfm_to_canonical",
    # Validation
    "build_candidate",
    "candidate_to_show",
    "is_duplicate",
    "parse_rating",
    "validate_candidate",
    # Orchestration
    "CancellationToken",
    "ImportOrchestrator",
]
