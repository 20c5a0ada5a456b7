"""
Handwritten Note OCR — Tool-Calling Routes
============================================

What:  GET /api/tools lists the callable tools; POST /api/tools/process_handwritten_note
       invokes the note pipeline with tool-call arguments.
Why:   AI assistants get the same pipeline as REST clients, but with the
       tool-call contract: always HTTP 200, failures flagged by `is_error`.
"""

from fastapi import APIRouter

from note_ocr.schemas.note import ToolArguments, ToolCallResult, ToolListResponse
from note_ocr.services.tool_service import (
    SERVER_NAME,
    SERVER_VERSION,
    TOOL_NAME,
    tool_service,
)

router = APIRouter(prefix="/api/tools", tags=["Tools"])


@router.get("", response_model=ToolListResponse, summary="List available tools")
async def list_tools() -> ToolListResponse:
    return ToolListResponse(
        server=SERVER_NAME,
        version=SERVER_VERSION,
        tools=tool_service.list_tools(),
    )


@router.post(
    f"/{TOOL_NAME}",
    response_model=ToolCallResult,
    summary="Convert a handwritten note image (data URL) to structured JSON",
)
async def call_process_handwritten_note(arguments: ToolArguments) -> ToolCallResult:
    return await tool_service.process_handwritten_note(arguments)
