"""
Handwritten Note OCR — Process-Note Route Handler
===================================================

What:  Handles POST /api/process-note, the REST entry point of the pipeline.
How:   Accepts either multipart/form-data (an `image` file plus optional `options`
       JSON text) or a JSON body ({"image": "<data URL>", "options": {...}}),
       normalizes it, and delegates to NoteService.
Who:   Called by web/mobile clients.

Request Flow:
    1. Take the start timestamp (for processing_time_ms, success or failure)
    2. Read the request in whichever encoding it arrived
    3. Normalize the image and parse the options (→ 400 on bad input)
    4. NoteService: prompt → Gemini → sanitize → format → store image copy
    5. Return ProcessingResult
"""

import json
import logging
import time
from typing import Tuple

from fastapi import APIRouter, Request
from starlette.datastructures import UploadFile

from note_ocr.exceptions import InvalidInputError, NoteOCRError
from note_ocr.schemas.note import (
    ErrorResponse,
    ImagePayload,
    ProcessingOptions,
    ProcessingResult,
)
from note_ocr.services.image_normalizer import (
    normalize_data_url,
    normalize_upload,
    parse_options,
)
from note_ocr.services.note_service import elapsed_ms, note_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Notes"])

# The endpoint reads the body itself (two encodings), so the schema is declared by hand
_OPTIONS_SCHEMA = {
    "type": "object",
    "properties": {
        "category_hints": {"type": "array", "items": {"type": "string"}},
        "extract_dates": {"type": "boolean", "default": True},
        "extract_contacts": {"type": "boolean", "default": False},
    },
}
PROCESS_NOTE_REQUEST_BODY = {
    "requestBody": {
        "required": True,
        "content": {
            "multipart/form-data": {
                "schema": {
                    "type": "object",
                    "required": ["image"],
                    "properties": {
                        "image": {"type": "string", "format": "binary"},
                        "options": {
                            "type": "string",
                            "description": "Processing options as JSON text",
                        },
                    },
                }
            },
            "application/json": {
                "schema": {
                    "type": "object",
                    "required": ["image"],
                    "properties": {
                        "image": {
                            "type": "string",
                            "description": "Data URL (data:image/jpeg;base64,...)",
                        },
                        "options": _OPTIONS_SCHEMA,
                    },
                }
            },
        },
    }
}


async def read_multipart(request: Request) -> Tuple[ImagePayload, ProcessingOptions]:
    form = await request.form()
    upload = form.get("image")

    if upload is None:
        raise InvalidInputError(message="No image file provided", field="image")
    if not isinstance(upload, UploadFile):
        raise InvalidInputError(message="Invalid file format", field="image")

    try:
        content = await upload.read()
        image = normalize_upload(content, upload.content_type, upload.size)
    finally:
        await upload.close()

    raw_options = form.get("options")
    if raw_options is not None and not isinstance(raw_options, str):
        raise InvalidInputError(message="Invalid options JSON", field="options")
    return image, parse_options(raw_options)


async def read_json(request: Request) -> Tuple[ImagePayload, ProcessingOptions]:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidInputError(
            message="Request body must be valid JSON",
            field="body",
            context={"parser_error": str(e)},
        )
    if not isinstance(body, dict):
        raise InvalidInputError(message="Request body must be a JSON object", field="body")

    image = normalize_data_url(body.get("image"))
    return image, parse_options(body.get("options"))


@router.post(
    "/process-note",
    response_model=ProcessingResult,
    responses={
        200: {"description": "Note extracted", "model": ProcessingResult},
        400: {"description": "Invalid image or options", "model": ErrorResponse},
        429: {"description": "Gemini quota exceeded", "model": ErrorResponse},
        500: {"description": "Processing failed", "model": ErrorResponse},
        503: {"description": "AI service unavailable", "model": ErrorResponse},
    },
    summary="Convert a handwritten note image to structured JSON",
    description=(
        "Upload a handwritten note image (multipart `image` field, or a data URL in a "
        "JSON body; max 10MB) and get back title, content, category, tags, dates, "
        "contacts, confidence and raw text. Todo/task notes come back as checklists."
    ),
    openapi_extra=PROCESS_NOTE_REQUEST_BODY,
)
async def process_note(request: Request) -> ProcessingResult:
    started_at = time.perf_counter()
    content_type = request.headers.get("content-type", "")

    try:
        if "multipart/form-data" in content_type:
            image, options = await read_multipart(request)
        else:
            image, options = await read_json(request)
    except NoteOCRError as e:
        raise e.with_timing(elapsed_ms(started_at))

    logger.info(
        "Received process-note request: %s, hints=%d, dates=%s, contacts=%s",
        image.mime_type,
        len(options.category_hints),
        options.extract_dates,
        options.extract_contacts,
    )
    return await note_service.process_note(image, options, started_at)
