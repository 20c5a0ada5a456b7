"""
Handwritten Note OCR — Health Check Route
===========================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   By default reports only local state (is a Gemini key configured), which
       costs nothing. With ?check_upstream=true it also lists Gemini models to
       prove the key and network path work.

    Status levels:
    - healthy:   service up (and Gemini reachable, when checked)
    - degraded:  Gemini unreachable or unconfigured; requests will fail
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Query

from note_ocr import __version__
from note_ocr.config import settings
from note_ocr.schemas.note import HealthResponse
from note_ocr.services.gemini_service import gemini_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(
    check_upstream: bool = Query(
        default=False,
        description="Also verify Gemini connectivity (one list-models call, no token cost)",
    ),
) -> HealthResponse:
    overall = "healthy"
    gemini_status = "configured" if settings.gemini_configured else "not_configured"

    if not settings.gemini_configured:
        overall = "degraded"
    elif check_upstream:
        if await gemini_service.health_check():
            gemini_status = "available"
        else:
            gemini_status = "unavailable"
            overall = "degraded"
            logger.warning("Health check: Gemini unreachable")

    return HealthResponse(
        status=overall,
        timestamp=datetime.now(timezone.utc),
        version=__version__,
        gemini=gemini_status,
    )
