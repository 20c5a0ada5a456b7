"""
Handwritten Note OCR — Pydantic Request/Response Schemas
=========================================================

What:  Pydantic models for the pipeline's value objects and the API contract.
Why:   Strict input validation, automatic serialization, and OpenAPI doc generation.
How:   FastAPI uses these models to serialize responses and document request bodies;
       the services build and pass them between pipeline stages.
Who:   Used by services (as stage inputs/outputs) and route handlers (as response models).
When:  Constructed once per request and discarded after the response is sent.

Design Decision:
    Value objects that flow through the pipeline (ImagePayload, ProcessingOptions,
    PromptSpec, ProcessingResult) are frozen: no stage can mutate what an earlier
    stage produced.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


# ══════════════════════════════════════════════════════════════════════════
# Pipeline Value Objects
# ══════════════════════════════════════════════════════════════════════════


class ImagePayload(BaseModel):
    """
    What:  Canonical in-memory form of an uploaded image.
    Who:   Produced by the image normalizer from either a multipart file or a data URL.
    """
    mime_type: str = Field(description="Declared image MIME type, e.g. image/png")
    base64_data: str = Field(description="Base64-encoded image bytes")

    model_config = {"frozen": True}


class ProcessingOptions(BaseModel):
    """
    What:  Caller-tunable knobs for the prompt.
    Who:   Parsed from the `options` part of a request; read only by the prompt builder.

    Defaults: no category hints, extract dates, do not extract contacts.
    Booleans are strict so "yes" or 1 are rejected instead of silently coerced.
    """
    category_hints: List[str] = Field(
        default_factory=list,
        description="Category labels the model should choose from (e.g. meeting, todo, idea)",
    )
    extract_dates: bool = Field(default=True, strict=True, description="Whether to extract dates")
    extract_contacts: bool = Field(
        default=False, strict=True, description="Whether to extract contact information"
    )

    model_config = {"frozen": True}

    @field_validator("category_hints", mode="before")
    @classmethod
    def none_means_no_hints(cls, v: Any) -> Any:
        return [] if v is None else v


class PromptSpec(BaseModel):
    """Instruction text plus the image to send to the vision model."""
    instruction: str
    image: ImagePayload

    model_config = {"frozen": True}


class ExtractedNote(BaseModel):
    """
    What:  Structured record extracted from a handwritten note.
    Who:   Returned inside ProcessingResult and by the tool adapter.

    Every field is always present: the response sanitizer substitutes a default
    for anything the model omitted or got the type wrong. List elements are not
    validated and pass through as the model produced them.
    """
    title: str = Field(description="Main heading or subject of the note")
    content: str = Field(description="Main body text")
    category: str = Field(description="Inferred category (meeting, todo, idea, note, ...)")
    tags: List[Any] = Field(default_factory=list, description="Relevant keywords")
    dates: List[Any] = Field(default_factory=list, description="Extracted dates (YYYY-MM-DD)")
    contacts: List[Any] = Field(default_factory=list, description="Names and contact details")
    confidence: float = Field(ge=0.0, le=1.0, description="Model confidence in the transcription")
    raw_text: str = Field(description="All extracted text as-is")


# ══════════════════════════════════════════════════════════════════════════
# Response Models: What the API returns to clients
# ══════════════════════════════════════════════════════════════════════════


class ProcessingResult(BaseModel):
    """
    What:  Success envelope for POST /api/process-note.

    `image_id` identifies the temporary copy of the upload (GET /api/images/{id});
    it is null when image storage is disabled.
    """
    success: bool = Field(default=True)
    data: ExtractedNote
    processing_time_ms: int = Field(ge=0, description="Wall-clock time spent on the request")
    image_id: Optional[str] = Field(default=None, description="Id of the temporarily stored image")

    model_config = {"frozen": True}


class ErrorResponse(BaseModel):
    """
    What:  Standardized error response format for all API errors.

    Example:
        {
            "error": "quota_exceeded",
            "message": "API quota exceeded. Please try again later.",
            "details": {"retry_after": 60},
            "processing_time_ms": 412,
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    processing_time_ms: Optional[int] = Field(default=None, description="Elapsed time before the failure")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status")
    timestamp: datetime = Field(description="Server time (UTC)")
    version: str = Field(description="Application version")
    gemini: str = Field(description="Gemini API key state: configured, not_configured")


# ══════════════════════════════════════════════════════════════════════════
# Tool-Calling Models
# ══════════════════════════════════════════════════════════════════════════


class ToolArguments(BaseModel):
    """Arguments of the process_handwritten_note tool."""
    image: str = Field(description="Base64 encoded image data (data:image/jpeg;base64,...)")
    category_hints: Optional[List[str]] = Field(
        default=None, description="Optional category hints like 'meeting', 'todo', 'idea'"
    )
    extract_dates: bool = Field(
        default=True, strict=True, description="Whether to extract dates from the note"
    )
    extract_contacts: bool = Field(
        default=False, strict=True, description="Whether to extract contact information"
    )


class ToolContent(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ToolCallResult(BaseModel):
    """Tool output: text content items plus a flag separating failures from results."""
    content: List[ToolContent]
    is_error: bool = False


class ToolDescriptor(BaseModel):
    name: str
    description: str
    input_schema: Dict[str, Any]


class ToolListResponse(BaseModel):
    server: str
    version: str
    tools: List[ToolDescriptor]
