"""
Handwritten Note OCR — Note Service (Pipeline Orchestrator)
=============================================================

What:  Runs the extraction pipeline for one image and wraps the result for the caller.
Why:   The REST endpoint and the tool adapter share exactly one implementation.
How:   Composes the prompt builder, the vision client, the sanitizer and the formatter.
Who:   Called by route handlers and ToolService.

Orchestration Flow:
    ┌──────────────┐   ┌──────────────┐   ┌──────────────┐   ┌──────────────┐
    │ Build prompt │──▶│  Gemini API  │──▶│   Sanitize   │──▶│    Format    │
    │ (options)    │   │  (one call)  │   │  (coerce)    │   │ (checklists) │
    └──────────────┘   └──────────────┘   └──────────────┘   └──────────────┘

Design Decision:
    NoteService is stateless. Elapsed time is not tracked in shared state:
    the caller passes the start timestamp in and the duration is computed
    when the result (or error) leaves the pipeline.
"""

import logging
import time
from typing import Optional

from note_ocr.config import settings
from note_ocr.exceptions import NoteOCRError, ProcessingError
from note_ocr.schemas.note import (
    ExtractedNote,
    ImagePayload,
    ProcessingOptions,
    ProcessingResult,
)
from note_ocr.services.gemini_service import gemini_service
from note_ocr.services.image_store import image_store
from note_ocr.services.note_formatter import format_note
from note_ocr.services.prompt_builder import build_prompt
from note_ocr.services.response_sanitizer import sanitize

logger = logging.getLogger(__name__)


def elapsed_ms(started_at: float) -> int:
    """Milliseconds since `started_at` (a time.perf_counter() reading), never negative."""
    return max(0, int((time.perf_counter() - started_at) * 1000))


class NoteService:
    """
    Business logic layer for note extraction.

    Responsibilities:
        - extract_note(): prompt → model → sanitize → format
        - process_note(): extract_note() plus timing and the temporary image copy
    """

    async def extract_note(
        self,
        image: ImagePayload,
        options: Optional[ProcessingOptions] = None,
    ) -> ExtractedNote:
        """
        Extract a structured note from a normalized image.

        Raises:
            ConfigurationError: No Gemini API key
            QuotaExceededError: Gemini quota exhausted
            LLMServiceError: Gemini call failed
            UpstreamFormatError: Reply had no parseable JSON object
        """
        options = options or ProcessingOptions()
        prompt = build_prompt(image, options)

        reply = await gemini_service.generate(prompt)

        note = format_note(sanitize(reply))
        logger.info(
            "Extracted note: category=%s, confidence=%.2f, %d chars",
            note.category,
            note.confidence,
            len(note.content),
        )
        return note

    async def process_note(
        self,
        image: ImagePayload,
        options: Optional[ProcessingOptions],
        started_at: float,
    ) -> ProcessingResult:
        """
        Full REST workflow: extract, keep a temporary copy of the image, time it.

        Args:
            image: Normalized image
            options: Processing options (None = defaults)
            started_at: time.perf_counter() reading taken when the request arrived

        Raises:
            NoteOCRError subclasses, each with processing_time_ms filled in.
            Unexpected exceptions are wrapped in ProcessingError.
        """
        try:
            note = await self.extract_note(image, options)

            image_id = None
            if settings.store_uploaded_images:
                image_id = await image_store.save(image)

        except NoteOCRError as e:
            raise e.with_timing(elapsed_ms(started_at))
        except Exception as e:
            logger.error("Unexpected error in process_note: %s", str(e), exc_info=True)
            raise ProcessingError(reason=str(e) or type(e).__name__).with_timing(
                elapsed_ms(started_at)
            ) from e

        return ProcessingResult(
            success=True,
            data=note,
            processing_time_ms=elapsed_ms(started_at),
            image_id=image_id,
        )


# ── Singleton Instance ────────────────────────────────────────────────────
note_service = NoteService()
