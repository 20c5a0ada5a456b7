"""
Handwritten Note OCR — FastAPI Application Factory
====================================================

What:  Creates and configures the FastAPI application instance.
Why:   Centralizes app configuration, middleware registration, route mounting,
       and lifecycle management in one place.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn note_ocr.main:app).

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware:  Request ID → Logging → GZip → CORS         │
    │                                                          │
    │  Routes:                                                 │
    │   POST /api/process-note        GET /api/images/{id}     │
    │   GET  /api/tools               POST /api/tools/{tool}   │
    │   GET  /api/health                                       │
    │                                                          │
    │  Exception Handlers:                                     │
    │   InvalidInput→400 │ Quota→429 │ LLM→503 │ other→500     │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, configuration check, purge of expired temporary images
    Shutdown: log only; there are no pooled resources to release
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from note_ocr import __version__
from note_ocr.config import settings
from note_ocr.exceptions import (
    ConfigurationError,
    FileStorageError,
    InvalidInputError,
    LLMServiceError,
    NoteOCRError,
    NotFoundError,
    ProcessingError,
    QuotaExceededError,
    UpstreamFormatError,
)
from note_ocr.middleware.logging import RequestLoggingMiddleware
from note_ocr.middleware.request_id import RequestIDMiddleware, request_id_var
from note_ocr.routes import health, images, process, tools
from note_ocr.services.image_store import image_store

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s, to stdout
    (container runtimes collect stdout).
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party libraries that log every request at INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("google").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("=" * 60)
    logger.info("Handwritten Note OCR %s starting up...", __version__)

    # A missing key is logged, not fatal: health checks must still answer
    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))

    purged = await image_store.purge_expired()
    logger.info(
        "Temporary image store: %s (ttl=%ds, purged %d)",
        image_store.root,
        settings.temp_image_ttl,
        purged,
    )
    logger.info("Gemini model: %s, timeout %ds", settings.gemini_model, settings.gemini_timeout)
    logger.info("API docs: http://%s:%d/docs", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def error_response(
    status_code: int,
    error: str,
    exc: NoteOCRError,
    message: Optional[str] = None,
    include_details: bool = True,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """Uniform JSON error body; processing_time_ms is included when the boundary set it."""
    content = {
        "error": error,
        "message": message or exc.message,
        "request_id": request_id_var.get(""),
    }
    if include_details and exc.context:
        content["details"] = exc.context
    if exc.processing_time_ms is not None:
        content["processing_time_ms"] = exc.processing_time_ms
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to HTTP status codes and response bodies.

    Handler hierarchy:
        InvalidInputError       → 400
        NotFoundError           → 404
        QuotaExceededError      → 429 (+ Retry-After)
        UpstreamFormatError     → 500
        ProcessingError         → 500
        ConfigurationError      → 500
        FileStorageError        → 500 (no details: they hold file paths)
        LLMServiceError         → 503
        NoteOCRError (base)     → 500
        Exception (fallback)    → 500 (generic message, stack trace logged)
    """

    @app.exception_handler(InvalidInputError)
    async def handle_invalid_input(request: Request, exc: InvalidInputError):
        logger.warning("[%s] Invalid input: %s", request_id_var.get(""), exc.message)
        return error_response(400, "invalid_input", exc)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return error_response(404, "not_found", exc, include_details=False)

    @app.exception_handler(QuotaExceededError)
    async def handle_quota_exceeded(request: Request, exc: QuotaExceededError):
        logger.warning("[%s] Gemini quota exceeded", request_id_var.get(""))
        return error_response(
            429, "quota_exceeded", exc, headers={"Retry-After": str(exc.retry_after)}
        )

    @app.exception_handler(UpstreamFormatError)
    async def handle_upstream_format(request: Request, exc: UpstreamFormatError):
        logger.error("[%s] Unusable model reply: %s", request_id_var.get(""), exc.message)
        return error_response(500, "upstream_format_error", exc)

    @app.exception_handler(ProcessingError)
    async def handle_processing_error(request: Request, exc: ProcessingError):
        logger.error("[%s] Processing failed: %s", request_id_var.get(""), exc.context)
        return error_response(500, "processing_error", exc)

    @app.exception_handler(ConfigurationError)
    async def handle_configuration_error(request: Request, exc: ConfigurationError):
        logger.error("[%s] Configuration error: %s", request_id_var.get(""), exc.message)
        return error_response(500, "configuration_error", exc)

    @app.exception_handler(FileStorageError)
    async def handle_file_storage_error(request: Request, exc: FileStorageError):
        rid = request_id_var.get("")
        logger.error("[%s] File storage error: %s | Context: %s", rid, exc.message, exc.context)
        return error_response(500, "server_error", exc, include_details=False)

    @app.exception_handler(LLMServiceError)
    async def handle_llm_error(request: Request, exc: LLMServiceError):
        logger.error("[%s] LLM service error: %s", request_id_var.get(""), exc.message)
        return error_response(503, "llm_service_error", exc)

    @app.exception_handler(NoteOCRError)
    async def handle_app_error(request: Request, exc: NoteOCRError):
        logger.error("[%s] Application error: %s", request_id_var.get(""), exc.message)
        return error_response(500, "server_error", exc)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred. Please try again or contact support.",
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="Handwritten Note OCR API",
        description=(
            "Convert handwritten note images into structured JSON output using the "
            "Google Gemini vision API. Also exposes the same capability as a tool "
            "for AI assistants."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Middleware executes in REVERSE order of addition:
    # RequestID → Logging → GZip → CORS → route
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(process.router)
    app.include_router(images.router)
    app.include_router(tools.router)
    app.include_router(health.router)

    return app


app = create_app()
