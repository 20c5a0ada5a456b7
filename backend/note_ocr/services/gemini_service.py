"""
Handwritten Note OCR — Google Gemini Service Implementation
=============================================================

What:  Concrete vision model client using the Google Gemini API.
Why:   Gemini accepts an instruction and an inline image in a single call and
       handles handwriting (print, cursive, mixed) well.
How:   Sends the prompt text plus the decoded image blob, bounded by an explicit
       timeout; translates SDK failures into the application's error kinds.
Who:   Instantiated once at import; called by NoteService for each extraction.
When:  After the prompt is built, before the reply is sanitized.

Failure translation:
    quota / rate limit (ResourceExhausted, or "quota" in the message)
        → QuotaExceededError (never retried)
    timeout, connection errors, 503
        → retried with tenacity up to settings.retry_max_attempts, then LLMServiceError
    anything else
        → LLMServiceError
"""

import asyncio
import base64
import logging
import time
import uuid

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential_jitter,
    retry_if_exception_type,
    before_sleep_log,
)

from note_ocr.config import settings
from note_ocr.exceptions import (
    ConfigurationError,
    LLMServiceError,
    NoteOCRError,
    QuotaExceededError,
)
from note_ocr.schemas.note import PromptSpec
from note_ocr.services.llm_base import VisionModelClient

logger = logging.getLogger(__name__)

# Failures worth a second attempt; quota exhaustion is deliberately absent
TRANSIENT_ERRORS = (
    ConnectionError,
    TimeoutError,
    asyncio.TimeoutError,
    google_exceptions.ServiceUnavailable,
    google_exceptions.DeadlineExceeded,
)


def is_quota_error(error: Exception) -> bool:
    """True when the provider rejected the call for quota or rate-limit reasons."""
    if isinstance(error, google_exceptions.ResourceExhausted):
        return True
    return "quota" in str(error).lower()


def response_text(response) -> str:
    """
    Reply text of a Gemini response, or "" when there is none.

    The SDK raises ValueError from `.text` when the reply was blocked or has
    no candidates; that is an empty reply, not a transport failure.
    """
    try:
        return response.text or ""
    except ValueError as e:
        logger.warning("Gemini returned no text: %s", str(e))
        return ""


class GeminiService(VisionModelClient):
    """
    Google Gemini implementation of VisionModelClient.

    Holds no per-request state: the model handle is reused, every call is independent.
    """

    def __init__(self):
        if settings.gemini_configured:
            genai.configure(api_key=settings.gemini_api_key)

        self.model = genai.GenerativeModel(settings.gemini_model)

        logger.info(
            "GeminiService initialized with model=%s, timeout=%ds, max_attempts=%d",
            settings.gemini_model,
            settings.gemini_timeout,
            settings.retry_max_attempts,
        )

    async def generate(self, prompt: PromptSpec) -> str:
        """
        Send instruction + image to Gemini and return the reply text.

        Raises:
            ConfigurationError: API key missing
            QuotaExceededError: Quota or rate limit hit
            LLMServiceError: Call failed or timed out
        """
        if not settings.gemini_configured:
            raise ConfigurationError()

        # Per-call ID for correlating log lines of concurrent calls
        request_id = str(uuid.uuid4())[:8]
        logger.info(
            "[%s] Starting Gemini extraction (%s, %d base64 chars)",
            request_id,
            prompt.image.mime_type,
            len(prompt.image.base64_data),
        )

        try:
            return await self._call_gemini_with_retry(prompt, request_id)

        except NoteOCRError:
            raise
        except Exception as e:
            if is_quota_error(e):
                logger.warning("[%s] Gemini quota exceeded: %s", request_id, str(e))
                raise QuotaExceededError(context={"request_id": request_id})

            if isinstance(e, (TimeoutError, asyncio.TimeoutError)):
                logger.error(
                    "[%s] Gemini call timed out after %ds", request_id, settings.gemini_timeout
                )
                raise LLMServiceError(
                    message=f"AI service did not respond within {settings.gemini_timeout} seconds.",
                    context={"request_id": request_id, "timeout_seconds": settings.gemini_timeout},
                )

            logger.error("[%s] Gemini call failed: %s", request_id, str(e), exc_info=True)
            raise LLMServiceError(
                message="AI note extraction failed. Please try again later.",
                context={
                    "request_id": request_id,
                    "error_type": type(e).__name__,
                    "reason": str(e),
                },
            )

    @retry(
        retry=retry_if_exception_type(TRANSIENT_ERRORS),
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=wait_exponential_jitter(
            initial=settings.retry_min_wait,
            max=settings.retry_max_wait,
            jitter=1,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _call_gemini_with_retry(self, prompt: PromptSpec, request_id: str) -> str:
        """
        Make the actual Gemini call; only this method is retried.

        The image goes inline as raw bytes. asyncio.wait_for enforces the
        timeout even if the SDK's own request timeout is not honoured.
        """
        start_time = time.perf_counter()

        try:
            image_blob = {
                "mime_type": prompt.image.mime_type,
                "data": base64.b64decode(prompt.image.base64_data),
            }
            response = await asyncio.wait_for(
                self.model.generate_content_async(
                    [prompt.instruction, image_blob],
                    request_options={"timeout": settings.gemini_timeout},
                ),
                timeout=settings.gemini_timeout,
            )

            reply = response_text(response)
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.info(
                "[%s] Gemini call completed in %.0fms, reply %d chars",
                request_id,
                duration_ms,
                len(reply),
            )
            return reply

        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.warning(
                "[%s] Gemini API call failed after %.0fms: %s",
                request_id,
                duration_ms,
                str(e) or type(e).__name__,
            )
            raise

    async def health_check(self) -> bool:
        """
        Check if the Gemini API is reachable by listing models (no token cost).
        """
        if not settings.gemini_configured:
            return False
        try:
            models = await asyncio.to_thread(lambda: list(genai.list_models()))
            target = f"models/{settings.gemini_model}"
            if target not in [m.name for m in models]:
                logger.warning("Configured model %s not found in available models", target)
            return True
        except Exception as e:
            logger.warning("Gemini health check failed: %s", str(e))
            return False


# ── Singleton Instance ────────────────────────────────────────────────────
gemini_service = GeminiService()
