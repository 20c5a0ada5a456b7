"""
Handwritten Note OCR — Tool-Calling Adapter
=============================================

What:  Exposes the extraction pipeline as a callable tool for AI assistants.
Why:   Assistants call tools with JSON arguments and expect text back plus an
       error flag, never an HTTP error; this adapter does that translation.
How:   Validates the data URL, normalizes it, runs NoteService.extract_note(),
       and renders either the note (indented JSON) or an error message.
Who:   Called by the tools route.
"""

import json
import logging
from typing import List

from note_ocr import __version__
from note_ocr.exceptions import ConfigurationError, NoteOCRError
from note_ocr.schemas.note import (
    ProcessingOptions,
    ToolArguments,
    ToolCallResult,
    ToolContent,
    ToolDescriptor,
)
from note_ocr.services.image_normalizer import normalize_data_url
from note_ocr.services.note_service import note_service

logger = logging.getLogger(__name__)

SERVER_NAME = "handwritten-note-ocr-server"
SERVER_VERSION = __version__
TOOL_NAME = "process_handwritten_note"
TOOL_DESCRIPTION = (
    "Convert an image of a handwritten note into structured JSON "
    "(title, content, category, tags, dates, contacts, confidence, raw text)."
)
INVALID_IMAGE_MESSAGE = (
    "Error: Invalid image format. Please provide a base64 encoded image with "
    "data URL format (data:image/jpeg;base64,...)"
)


def _text_result(text: str, is_error: bool = False) -> ToolCallResult:
    return ToolCallResult(content=[ToolContent(text=text)], is_error=is_error)


class ToolService:
    """Adapter between tool-call arguments and the note pipeline. Never raises."""

    def list_tools(self) -> List[ToolDescriptor]:
        return [
            ToolDescriptor(
                name=TOOL_NAME,
                description=TOOL_DESCRIPTION,
                input_schema=ToolArguments.model_json_schema(),
            )
        ]

    async def process_handwritten_note(self, arguments: ToolArguments) -> ToolCallResult:
        if not arguments.image.startswith("data:image/"):
            return _text_result(INVALID_IMAGE_MESSAGE, is_error=True)

        options = ProcessingOptions(
            category_hints=arguments.category_hints,
            extract_dates=arguments.extract_dates,
            extract_contacts=arguments.extract_contacts,
        )

        try:
            image = normalize_data_url(arguments.image)
            note = await note_service.extract_note(image, options)
        except ConfigurationError as e:
            return _text_result(f"Error: {e.message}", is_error=True)
        except NoteOCRError as e:
            logger.warning("Tool call failed: %s", e.message)
            return _text_result(f"Error processing handwritten note: {e.message}", is_error=True)
        except Exception as e:
            logger.error("Unexpected error in tool call: %s", str(e), exc_info=True)
            return _text_result(
                f"Error processing handwritten note: {str(e) or 'Unknown error'}", is_error=True
            )

        return _text_result(json.dumps(note.model_dump(), indent=2, ensure_ascii=False))


# ── Singleton Instance ────────────────────────────────────────────────────
tool_service = ToolService()
