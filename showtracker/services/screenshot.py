"""Claude Vision service for ticket-history screenshots."""

import base64
import json
import logging
import os
import re
from typing import Any

from showtracker.config import settings

logger = logging.getLogger(__name__)

SUPPORTED_MEDIA_TYPES = {"image/jpeg", "image/png", "image/gif", "image/webp"}

SCREENSHOT_FIELDS = ("artist", "venue", "date", "city")

_JSON_ARRAY_RE = re.compile(r"\[[\s\S]*\]")

SCREENSHOT_ANALYSIS_PROMPT = """You are analyzing a screenshot of a ticket platform (Ticketmaster, AXS, StubHub, Live Nation, Eventbrite, or similar) showing a user's past concert/event history.

Extract every concert/show/event visible in the screenshot. For each show, provide:
- artist: The performing artist or band name (the headliner, not the opener)
- venue: The venue name
- date: The date in YYYY-MM-DD format
- city: The city where the venue is located

Return ONLY a JSON array with no additional text, markdown, or explanation. Example format:
[
  {"artist": "Radiohead", "venue": "Madison Square Garden", "date": "2023-07-15", "city": "New York"},
  {"artist": "Foo Fighters", "venue": "The Forum", "date": "2023-08-20", "city": "Los Angeles"}
]

Important rules:
- If a date is partially visible or ambiguous, make your best guess and include it
- If you cannot determine a field, use an empty string "" for that field
- Do NOT include non-concert events (sports, comedy specials, theater, etc.) unless they are clearly musical performances
- If the screenshot shows no events or is not a ticket platform screenshot, return an empty array []
- For festivals, use the festival name as the artist (e.g., "Bonnaroo 2023")
- Normalize artist names to their common/official form (e.g., "The Rolling Stones" not "ROLLING STONES")
- Dates must always be YYYY-MM-DD format regardless of how they appear in the screenshot"""


class ScreenshotAnalysisError(RuntimeError):
    """The screenshot could not be analyzed."""


def _field_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def extract_show_records(response_text: str) -> list[dict[str, str]]:
    """Pull the JSON array of shows out of a model response.

    Raises:
        ScreenshotAnalysisError: If no JSON array can be found or parsed.
    """
    match = _JSON_ARRAY_RE.search(response_text)
    if not match:
        raise ScreenshotAnalysisError("Could not extract show data from screenshot")
    try:
        items = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise ScreenshotAnalysisError(f"Failed to parse screenshot response: {e}") from e
    if not isinstance(items, list):
        raise ScreenshotAnalysisError("Screenshot response is not a list")

    records = []
    for item in items:
        if not isinstance(item, dict):
            continue
        records.append({field: _field_text(item.get(field)) for field in SCREENSHOT_FIELDS})
    return records


class ScreenshotAnalysisService:
    """Extract past shows from a screenshot of a ticket platform."""

    def __init__(self, api_key: str | None = None) -> None:
        self._api_key = api_key
        self._client = None

    def _get_api_key(self) -> str | None:
        return self._api_key or settings.anthropic_api_key or os.getenv("ANTHROPIC_API_KEY")

    def _get_client(self):
        if self._client is None:
            import anthropic

            api_key = self._get_api_key()
            if not api_key:
                raise ScreenshotAnalysisError("No Anthropic API key configured")
            self._client = anthropic.Anthropic(api_key=api_key)
        return self._client

    def is_available(self) -> bool:
        """Check if screenshot analysis can run."""
        return bool(self._get_api_key()) and settings.use_claude_vision

    async def analyze_screenshot(
        self,
        image_data: bytes,
        media_type: str = "image/png",
    ) -> list[dict[str, str]]:
        """Analyze a screenshot and return the shows it lists.

        Args:
            image_data: Raw image bytes.
            media_type: MIME type of the image.

        Returns:
            ``{artist, venue, date, city}`` records; unknown fields are empty
            strings. An empty list when the screenshot shows no concerts.

        Raises:
            ScreenshotAnalysisError: Missing API key, failed call or unreadable response.
        """
        if media_type not in SUPPORTED_MEDIA_TYPES:
            raise ScreenshotAnalysisError(f"Unsupported image type '{media_type}'")
        if not image_data:
            raise ScreenshotAnalysisError("Image is empty")

        client = self._get_client()
        image_base64 = base64.standard_b64encode(image_data).decode("utf-8")

        try:
            message = client.messages.create(
                model=settings.vision_model,
                max_tokens=settings.vision_max_tokens,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {
                                "type": "image",
                                "source": {
                                    "type": "base64",
                                    "media_type": media_type,
                                    "data": image_base64,
                                },
                            },
                            {"type": "text", "text": SCREENSHOT_ANALYSIS_PROMPT},
                        ],
                    }
                ],
            )
        except Exception as e:
            logger.error("Claude screenshot analysis failed: %s", e)
            raise ScreenshotAnalysisError(f"Screenshot analysis failed: {e}") from e

        response_text = "".join(
            block.text for block in message.content if getattr(block, "type", None) == "text"
        )
        records = extract_show_records(response_text)
        logger.info("Screenshot analysis found %d shows", len(records))
        return records
