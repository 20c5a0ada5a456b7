"""
Handwritten Note OCR — Stored Image Route
===========================================

What:  GET /api/images/{image_id} serves the temporary copy of a processed upload.
Why:   Lets a client display the source image next to the extracted note while
       the copy is still within its time-to-live.
"""

from fastapi import APIRouter, Response

from note_ocr.config import settings
from note_ocr.schemas.note import ErrorResponse
from note_ocr.services.image_store import image_store

router = APIRouter(prefix="/api", tags=["Images"])


@router.get(
    "/images/{image_id}",
    response_class=Response,
    responses={
        200: {"description": "The stored image", "content": {"image/*": {}}},
        404: {"description": "Image not found or expired", "model": ErrorResponse},
    },
    summary="Retrieve a temporarily stored image",
)
async def get_image(image_id: str) -> Response:
    stored = await image_store.load(image_id)
    return Response(
        content=stored.content,
        media_type=stored.content_type,
        headers={
            "ETag": stored.etag,
            "Cache-Control": f"max-age={settings.temp_image_ttl}",
        },
    )
