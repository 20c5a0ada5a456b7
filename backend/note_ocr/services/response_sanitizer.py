"""
Handwritten Note OCR — Response Sanitizer
===========================================

What:  Converts the vision model's free-form reply into a complete ExtractedNote.
Why:   The model is asked for "only valid JSON" but routinely wraps it in prose,
       drops fields, or returns the wrong types. Callers must still get every field.
How:   1. Take the broadest substring that starts with '{' and ends with '}'
       2. Parse it as JSON
       3. Coerce each field independently, substituting a default when the
          value is missing or has the wrong type
Who:   Called by NoteService.extract_note() after the model call.

Failure modes (both raise UpstreamFormatError, never retried):
    - empty reply
    - no '{...}' span, or the span is not valid JSON
"""

import json
import logging
import math
import re
from typing import Any, Dict, List, Optional

from note_ocr.exceptions import UpstreamFormatError
from note_ocr.schemas.note import ExtractedNote

logger = logging.getLogger(__name__)

# Greedy: first '{' through last '}', across newlines
JSON_OBJECT_PATTERN = re.compile(r"\{.*\}", re.DOTALL)

DEFAULT_TITLE = "Untitled Note"
DEFAULT_CATEGORY = "note"
DEFAULT_CONFIDENCE = 0.8


# ── JSON extraction ───────────────────────────────────────────────────────

def extract_json_object(reply_text: Optional[str]) -> Dict[str, Any]:
    """
    Locate and parse the JSON object embedded in a model reply.

    Raises:
        UpstreamFormatError: empty reply, no object span, or invalid JSON.
    """
    if not reply_text or not reply_text.strip():
        raise UpstreamFormatError(message="Empty response from AI service")

    match = JSON_OBJECT_PATTERN.search(reply_text)
    if not match:
        raise UpstreamFormatError(
            message="Failed to parse AI response: No JSON found in response",
            context={"reply_length": len(reply_text)},
        )

    try:
        parsed = json.loads(match.group(0))
    except (ValueError, RecursionError) as e:
        # Over-long integers raise ValueError and deep nesting RecursionError
        raise UpstreamFormatError(
            message=f"Failed to parse AI response: {e}",
            context={"parser_error": str(e), "reply_length": len(reply_text)},
        )

    # A span that starts with '{' and parses is always an object
    return parsed


# ── Field coercion ────────────────────────────────────────────────────────

def coerce_title(value: Any) -> str:
    return value if isinstance(value, str) and value else DEFAULT_TITLE


def coerce_content(value: Any) -> str:
    return value if isinstance(value, str) else ""


def coerce_category(value: Any) -> str:
    return value if isinstance(value, str) else DEFAULT_CATEGORY


def coerce_list(value: Any) -> List[Any]:
    """Lists pass through untouched (elements unchecked); anything else becomes []."""
    return value if isinstance(value, list) else []


def coerce_confidence(value: Any) -> float:
    """
    Clamp numeric confidence into [0.0, 1.0]; default to 0.8 otherwise.

    Booleans are not numbers here, and NaN has no position in the range.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return DEFAULT_CONFIDENCE
    if isinstance(value, int):
        # Integers beyond float range must not reach float()
        return 0.0 if value < 0 else (1.0 if value > 1 else float(value))
    if math.isnan(value):
        return DEFAULT_CONFIDENCE
    return max(0.0, min(1.0, float(value)))


def coerce_raw_text(value: Any, content: str) -> str:
    """Non-empty string as-is, else the already-resolved content (which may be "")."""
    if isinstance(value, str) and value:
        return value
    return content


def sanitize_fields(data: Dict[str, Any]) -> ExtractedNote:
    """Build an ExtractedNote from an arbitrary JSON object. Never raises."""
    content = coerce_content(data.get("content"))
    return ExtractedNote(
        title=coerce_title(data.get("title")),
        content=content,
        category=coerce_category(data.get("category")),
        tags=coerce_list(data.get("tags")),
        dates=coerce_list(data.get("dates")),
        contacts=coerce_list(data.get("contacts")),
        confidence=coerce_confidence(data.get("confidence")),
        raw_text=coerce_raw_text(data.get("raw_text"), content),
    )


def sanitize(reply_text: Optional[str]) -> ExtractedNote:
    """Extract, parse, and coerce a model reply into an ExtractedNote."""
    data = extract_json_object(reply_text)
    missing = [field for field in ExtractedNote.model_fields if field not in data]
    if missing:
        logger.info("Model reply missing fields, defaults applied: %s", ", ".join(missing))
    return sanitize_fields(data)
