"""
Handwritten Note OCR — Input Normalizer
=========================================

What:  Turns an uploaded image (multipart file or data URL) into an ImagePayload,
       and parses the optional processing options that travel with it.
Why:   Downstream stages only ever see one shape: (mime type, base64 text).
How:   Validates MIME type and decoded size, re-encodes raw bytes to base64,
       splits data URLs into header and payload.
Who:   Called by the process-note route and the tool adapter.
When:  First pipeline stage, before any model call.

Validation order (cheap checks first):
    1. Presence: empty uploads are rejected before anything else
    2. MIME type: must start with image/ (or be a documented type in strict mode)
    3. Size: decoded bytes must not exceed settings.max_image_size
"""

import base64
import binascii
import json
import logging
from typing import Any, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from note_ocr.config import DOCUMENTED_MIME_TYPES, settings
from note_ocr.exceptions import InvalidInputError
from note_ocr.schemas.note import ImagePayload, ProcessingOptions

logger = logging.getLogger(__name__)

DATA_URL_SCHEME = "data:"
BASE64_MARKER = "base64"


def validate_mime_type(mime_type: Optional[str]) -> str:
    """
    Check the declared MIME type.

    Returns the normalized (lowercase, parameter-free) type.
    Raises InvalidInputError when it is not an image type.
    """
    normalized = (mime_type or "").split(";")[0].strip().lower()
    if not normalized.startswith("image/"):
        raise InvalidInputError(
            message="Invalid file type. Only image files are allowed",
            field="image",
            context={"content_type": mime_type or ""},
        )
    if settings.strict_mime_types and normalized not in DOCUMENTED_MIME_TYPES:
        raise InvalidInputError(
            message=(
                f"Image type '{normalized}' is not supported. "
                f"Allowed types: {', '.join(DOCUMENTED_MIME_TYPES)}"
            ),
            field="image",
            context={"content_type": normalized, "allowed": list(DOCUMENTED_MIME_TYPES)},
        )
    return normalized


def validate_size(actual_size: int, declared_size: Optional[int] = None) -> None:
    """
    Validate image size against settings.max_image_size.

    The declared size (from the transport) is checked too so clients that
    report a huge upload are rejected with the same message.
    """
    limit = settings.max_image_size
    max_mb = limit / (1024 * 1024)

    if actual_size == 0:
        raise InvalidInputError(message="Image file is empty", field="image")

    for size in (declared_size, actual_size):
        if size is not None and size > limit:
            raise InvalidInputError(
                message=f"Image file too large. Maximum size is {max_mb:.0f}MB",
                field="image",
                context={"max_size_bytes": limit, "size_bytes": size},
            )


def normalize_upload(
    content: bytes,
    content_type: Optional[str],
    declared_size: Optional[int] = None,
) -> ImagePayload:
    """
    Normalize a multipart file part.

    Args:
        content: Raw file bytes
        content_type: MIME type declared by the transport
        declared_size: Size reported by the transport (may be None)
    """
    if content is None:
        raise InvalidInputError(message="No image file provided", field="image")

    mime_type = validate_mime_type(content_type)
    validate_size(len(content), declared_size)

    payload = ImagePayload(
        mime_type=mime_type,
        base64_data=base64.b64encode(content).decode("ascii"),
    )
    logger.info("Normalized uploaded image: %s, %d bytes", mime_type, len(content))
    return payload


def normalize_data_url(data_url: Any) -> ImagePayload:
    """
    Normalize a data URL of the form data:<mime>;base64,<payload>.

    The URL is split on its first comma into header and payload; the MIME type
    sits between the scheme's ':' and the first ';' of the header.

    >>> normalize_data_url("data:image/png;base64,iVBORw0KGgo=").mime_type
    'image/png'
    """
    if data_url is None or data_url == "":
        raise InvalidInputError(message="No image data provided", field="image")
    if not isinstance(data_url, str):
        raise InvalidInputError(
            message="Image must be a data URL string",
            field="image",
            context={"type": type(data_url).__name__},
        )

    text = data_url.strip()
    if not text.lower().startswith(DATA_URL_SCHEME):
        raise InvalidInputError(
            message="Invalid image data. Expected a data URL (data:image/jpeg;base64,...)",
            field="image",
        )

    header, sep, encoded = text.partition(",")
    if not sep:
        raise InvalidInputError(
            message="Malformed data URL: missing ',' between header and payload",
            field="image",
        )

    header_parts = header.split(":", 1)[1].split(";")
    mime_type = validate_mime_type(header_parts[0])
    if BASE64_MARKER not in (part.strip().lower() for part in header_parts[1:]):
        raise InvalidInputError(
            message="Malformed data URL: only base64-encoded images are supported",
            field="image",
        )
    if not encoded:
        raise InvalidInputError(message="No image data provided", field="image")

    try:
        decoded = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidInputError(
            message="Image data is not valid base64",
            field="image",
            context={"decoder_error": str(e)},
        )

    validate_size(len(decoded))
    logger.info("Normalized data URL image: %s, %d bytes", mime_type, len(decoded))
    return ImagePayload(mime_type=mime_type, base64_data=encoded)


def parse_options(raw: Union[str, dict, None]) -> ProcessingOptions:
    """
    Parse processing options from JSON text (multipart) or a decoded object (JSON body).

    Failures are reported with field="options" so they are distinguishable
    from image errors.
    """
    if raw is None or raw == "":
        return ProcessingOptions()

    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise InvalidInputError(
                message="Invalid options JSON",
                field="options",
                context={"parser_error": str(e)},
            )

    if raw is None:
        return ProcessingOptions()
    if not isinstance(raw, dict):
        raise InvalidInputError(
            message="Options must be a JSON object",
            field="options",
            context={"type": type(raw).__name__},
        )

    try:
        return ProcessingOptions.model_validate(raw)
    except PydanticValidationError as e:
        raise InvalidInputError(
            message="Invalid processing options",
            field="options",
            context={
                "errors": [
                    {"loc": ".".join(str(p) for p in err["loc"]), "msg": err["msg"]}
                    for err in e.errors()
                ]
            },
        )
