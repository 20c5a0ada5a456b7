"""
Handwritten Note OCR — Custom Exception Hierarchy
==================================================

What:  Defines application-specific exceptions for every failure the pipeline can report.
Why:   Each kind maps to one HTTP status and one machine-readable error code, so
       callers can tell a bad upload from a misbehaving model from an exhausted quota.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
Who:   Raised by services; caught by global handlers and the tool adapter.
When:  During request processing, as soon as a stage detects the failure.

Exception Hierarchy:
    NoteOCRError (base)
    ├── InvalidInputError       → 400 Bad Request (image or options unusable)
    ├── NotFoundError           → 404 Not Found (stored image missing/expired)
    ├── QuotaExceededError      → 429 Too Many Requests (model quota/rate limit)
    ├── UpstreamFormatError     → 500 (model reply had no usable JSON object)
    ├── ProcessingError         → 500 (anything else inside the pipeline)
    ├── ConfigurationError      → 500 (API key missing)
    ├── FileStorageError        → 500 (temporary image store I/O failed)
    └── LLMServiceError         → 503 Service Unavailable (model call failed)

Timing:
    Every error raised while a request is being processed gets its
    `processing_time_ms` filled in at the request boundary, so error responses
    report elapsed time just like successful ones.
"""

from typing import Any, Dict, Optional


class NoteOCRError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged and returned as `details`)
        processing_time_ms: Elapsed pipeline time, set by the request boundary
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        self.processing_time_ms: Optional[int] = None
        super().__init__(self.message)

    def with_timing(self, processing_time_ms: int) -> "NoteOCRError":
        """Records elapsed time; returns self so callers can `raise exc.with_timing(...)`."""
        self.processing_time_ms = processing_time_ms
        return self


class InvalidInputError(NoteOCRError):
    """
    Raised when the caller-supplied image or options are absent, malformed,
    oversized, or of the wrong type.

    `field` is "image" or "options" so callers can tell the two causes apart.

    Example response:
        {
            "error": "invalid_input",
            "message": "Invalid file type. Only image files are allowed",
            "details": {"field": "image", "content_type": "application/pdf"}
        }
    """

    def __init__(
        self,
        message: str = "Invalid input",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class NotFoundError(NoteOCRError):
    """Raised when a stored image does not exist or has outlived its time-to-live."""

    def __init__(
        self,
        message: str = "The requested resource was not found",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class UpstreamFormatError(NoteOCRError):
    """
    Raised when the vision model's reply is empty or holds no parseable JSON object.

    The underlying parser message (when there is one) is kept in
    context["parser_error"]. Never retried.
    """

    def __init__(
        self,
        message: str = "Failed to parse AI response",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class QuotaExceededError(NoteOCRError):
    """
    Raised when the vision model rejects the call for quota or rate-limit reasons.

    HTTP: 429 Too Many Requests with a Retry-After header.
    """

    def __init__(
        self,
        message: str = "API quota exceeded. Please try again later.",
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class LLMServiceError(NoteOCRError):
    """
    Raised when the vision model call itself fails (transport error, timeout,
    server error) for any reason other than quota.

    HTTP: 503 Service Unavailable; the client should retry later.
    """

    def __init__(
        self,
        message: str = "AI note extraction service is temporarily unavailable",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ConfigurationError(NoteOCRError):
    """Raised when a request needs a setting (the Gemini API key) that is missing."""

    def __init__(
        self,
        message: str = "Google Gemini API key not configured",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ProcessingError(NoteOCRError):
    """
    Catch-all for unexpected failures inside the pipeline.

    The original exception text travels in context["reason"] as best-effort diagnostics.
    """

    def __init__(
        self,
        message: str = "Failed to process image",
        reason: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["reason"] = reason or "Unknown error"
        super().__init__(message=message, context=ctx)


class FileStorageError(NoteOCRError):
    """
    Raised when the temporary image store cannot read or write a file.

    The client gets a generic message; file paths stay in the server logs.
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
