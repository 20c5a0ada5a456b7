"""
Handwritten Note OCR — Test Configuration (conftest.py)
========================================================

What:  Shared pytest fixtures for the entire test suite.
Why:   Provides reusable test infrastructure (sample images, model replies,
       a temporary image store, an API client) without network access.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── sample_png_bytes: Tiny PNG-looking payload for upload tests
    ├── sample_data_url: The same bytes as a data URL
    ├── sample_image: The same bytes as a normalized ImagePayload
    ├── model_reply: Well-formed JSON reply as Gemini would send it
    ├── temp_store: TempImageStore rooted in pytest's tmp_path
    ├── mock_gemini: Patches the vision client used by NoteService
    └── test_client: HTTPX AsyncClient bound to the FastAPI app
"""

import base64
import json
import os
import tempfile
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport


# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

# Must happen BEFORE any note_ocr import: settings are read at import time
os.environ["GEMINI_API_KEY"] = "test-key-not-real"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="note_ocr_test_")
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RETRY_MAX_ATTEMPTS"] = "1"

from note_ocr.schemas.note import ImagePayload  # noqa: E402
from note_ocr.services.image_store import TempImageStore  # noqa: E402


# ══════════════════════════════════════════════════════════════════════════
# Function-Scoped Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def sample_png_bytes():
    """
    PNG signature plus a few IHDR-like bytes.

    Not a decodable picture; the pipeline never decodes pixels, it only
    forwards bytes to the model.
    """
    return b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01"


@pytest.fixture
def sample_data_url(sample_png_bytes):
    return "data:image/png;base64," + base64.b64encode(sample_png_bytes).decode("ascii")


@pytest.fixture
def sample_image(sample_png_bytes):
    return ImagePayload(
        mime_type="image/png",
        base64_data=base64.b64encode(sample_png_bytes).decode("ascii"),
    )


@pytest.fixture
def model_reply():
    """A complete reply, wrapped in prose the way models often answer."""
    payload = {
        "title": "Team sync",
        "content": "Discuss roadmap\nAssign owners",
        "category": "meeting",
        "tags": ["roadmap", "team", "planning"],
        "dates": ["2024-03-15"],
        "contacts": [],
        "confidence": 0.92,
        "raw_text": "Team sync\nDiscuss roadmap\nAssign owners",
    }
    return "Here is the extracted note:\n" + json.dumps(payload) + "\nLet me know if you need more."


@pytest.fixture
def temp_store(tmp_path):
    return TempImageStore(storage_root=str(tmp_path), ttl_seconds=3600)


@pytest.fixture
def mock_gemini(model_reply):
    """
    Replaces the vision client NoteService talks to.

    Usage:
        async def test_x(mock_gemini):
            mock_gemini.generate.return_value = '{"title": "X"}'
    """
    with patch("note_ocr.services.note_service.gemini_service") as mock_service:
        mock_service.generate = AsyncMock(return_value=model_reply)
        yield mock_service


@pytest_asyncio.fixture
async def test_client(temp_store):
    """
    HTTPX AsyncClient talking to the FastAPI app through ASGITransport.

    The temporary image store is redirected to the test's tmp_path.
    """
    from note_ocr.main import app

    with patch("note_ocr.services.note_service.image_store", temp_store), \
         patch("note_ocr.routes.images.image_store", temp_store):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client
