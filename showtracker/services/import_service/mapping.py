"""Column mapping functions for show imports."""

import json
import logging
import os
from typing import Any, Optional

from showtracker.config import settings

from .constants import FIELD_DESCRIPTIONS, FIELD_PATTERNS, REQUIRED_FIELDS, SHOW_FIELDS

logger = logging.getLogger(__name__)

# Semantic field name -> zero-based column index, or None when unmapped
FieldMapping = dict[str, Optional[int]]


def empty_mapping() -> FieldMapping:
    """Return a mapping with every field unmapped."""
    return {field: None for field in SHOW_FIELDS}


def identity_mapping() -> FieldMapping:
    """Mapping for pre-structured records whose columns follow SHOW_FIELDS order."""
    return {field: index for index, field in enumerate(SHOW_FIELDS)}


def suggest_field_mapping(headers: list[str]) -> FieldMapping:
    """Auto-suggest a field mapping from header names.

    Each header is tested against the field patterns in order; it is assigned
    to the first field it matches that has not been claimed yet. A field is
    never assigned twice and unmatched headers stay unmapped.

    Args:
        headers: Header row cells from the spreadsheet.

    Returns:
        FieldMapping with an entry for every field.
    """
    mapping = empty_mapping()
    for index, header in enumerate(headers):
        normalized = header.strip()
        for field, pattern in FIELD_PATTERNS.items():
            if mapping[field] is None and pattern.match(normalized):
                mapping[field] = index
                break
    return mapping


def apply_mapping_overrides(
    mapping: FieldMapping,
    overrides: dict[str, Optional[int]],
    column_count: int,
) -> FieldMapping:
    """Return a copy of ``mapping`` with user overrides applied.

    Args:
        mapping: Current mapping.
        overrides: Field -> column index, or None to unmap the field.
        column_count: Number of columns in the header row.

    Raises:
        ValueError: On unknown fields or column indexes out of range.
    """
    result = dict(mapping)
    for field, column in overrides.items():
        if field not in result:
            raise ValueError(f"Unknown field '{field}'")
        if column is not None and not 0 <= column < column_count:
            raise ValueError(f"Column {column} for '{field}' is out of range")
        result[field] = column
    return result


def missing_required_fields(mapping: FieldMapping) -> list[str]:
    """List the required fields that have no column assigned."""
    return [field for field in REQUIRED_FIELDS if mapping.get(field) is None]


def mapped_values(row: list[str], mapping: FieldMapping) -> dict[str, str]:
    """Pull the mapped cells out of a row, using "" for unmapped or short rows."""
    values: dict[str, str] = {}
    for field in SHOW_FIELDS:
        column = mapping.get(field)
        values[field] = row[column].strip() if column is not None and column < len(row) else ""
    return values


def _build_mapping_prompt(headers: list[str], preview_rows: list[list[str]]) -> str:
    """Build the Claude prompt for AI-assisted column mapping."""
    fields_section = "\n".join(
        f'  - "{field}": {desc}' for field, desc in FIELD_DESCRIPTIONS.items()
    )

    header_sections: list[str] = []
    for index, header in enumerate(headers):
        samples = [row[index] for row in preview_rows[:3] if index < len(row) and row[index]]
        sample_text = ", ".join(f'"{s}"' for s in samples) if samples else "(no values)"
        header_sections.append(f'  - "{header}": sample values: {sample_text}')
    headers_section = "\n".join(header_sections)

    return f"""You are mapping spreadsheet columns of a concert history export to show fields.

Fields:
{fields_section}

Spreadsheet columns (with sample values):
{headers_section}

Instructions:
- For each field, pick the single column header that holds it, or null if none does.
- A column may be used for at most one field.
- Use sample values to disambiguate (e.g. a column of dates is "date" even if titled "Night").
- Return ONLY a JSON object mapping each field name to a column header or null. No extra text.

Example output:
{{"artist": "Band", "venue": "Where", "date": "Night", "city": null}}"""


async def suggest_field_mapping_ai(
    headers: list[str],
    preview_rows: list[list[str]],
) -> FieldMapping | None:
    """Suggest a field mapping using Claude Haiku for headers the patterns miss.

    Falls back to None if the API key is missing, the call fails, or the
    response can't be parsed. Fields the model leaves out, or maps to an
    unknown or already-used column, keep their pattern-based suggestion.

    Args:
        headers: Header row cells.
        preview_rows: A few data rows for context.

    Returns:
        FieldMapping, or None on failure.
    """
    api_key = settings.anthropic_api_key or os.getenv("ANTHROPIC_API_KEY")
    if not api_key:
        logger.debug("No Anthropic API key available, skipping AI mapping")
        return None

    try:
        import anthropic

        client = anthropic.Anthropic(api_key=api_key)
        message = client.messages.create(
            model=settings.mapping_model,
            max_tokens=1024,
            messages=[{"role": "user", "content": _build_mapping_prompt(headers, preview_rows)}],
        )

        response_text = message.content[0].text
        if "```json" in response_text:
            response_text = response_text.split("```json")[1].split("```")[0]
        elif "```" in response_text:
            response_text = response_text.split("```")[1].split("```")[0]

        result: Any = json.loads(response_text.strip())
        if not isinstance(result, dict):
            logger.warning("AI mapping returned non-dict: %s", type(result).__name__)
            return None

        static = suggest_field_mapping(headers)
        mapping = empty_mapping()
        used: set[int] = set()
        for field in SHOW_FIELDS:
            header = result.get(field)
            if isinstance(header, str) and header in headers and headers.index(header) not in used:
                mapping[field] = headers.index(header)
            elif static[field] is not None and static[field] not in used:
                mapping[field] = static[field]
                if header is not None:
                    logger.debug(
                        "AI mapping for '%s' -> '%s' invalid, using pattern match", field, header
                    )
            if mapping[field] is not None:
                used.add(mapping[field])

        return mapping

    except json.JSONDecodeError as e:
        logger.warning("Failed to parse AI mapping response as JSON: %s", e)
        return None
    except Exception as e:
        logger.warning("AI column mapping failed: %s", e)
        return None
