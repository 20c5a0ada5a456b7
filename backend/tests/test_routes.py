"""
Handwritten Note OCR — API Route Tests
========================================

What:  Exercises the HTTP surface end to end through the FastAPI app.
How:   HTTPX AsyncClient over ASGITransport; Gemini mocked, image store in tmp_path.

What we test:
    ✅ JSON (data URL) and multipart bodies both accepted
    ✅ Input errors → 400 with the offending field
    ✅ Quota → 429 + Retry-After; bad reply → 500; service down → 503
    ✅ Stored image served back; unknown id → 404
    ✅ Tool listing and tool call
    ✅ Health and X-Request-ID
"""

import json
from unittest.mock import AsyncMock, patch

import pytest

from note_ocr.exceptions import LLMServiceError, QuotaExceededError


class TestProcessNote:

    @pytest.mark.asyncio
    async def test_json_body(self, test_client, mock_gemini, sample_data_url):
        response = await test_client.post(
            "/api/process-note",
            json={"image": sample_data_url, "options": {"category_hints": ["meeting"]}},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["title"] == "Team sync"
        assert body["data"]["dates"] == ["2024-03-15"]
        assert body["processing_time_ms"] >= 0
        assert body["image_id"]

    @pytest.mark.asyncio
    async def test_multipart_upload(self, test_client, mock_gemini, sample_png_bytes):
        mock_gemini.generate.return_value = '{"title": "Chores", "content": "dishes", "category": "Todo"}'

        response = await test_client.post(
            "/api/process-note",
            files={"image": ("note.png", sample_png_bytes, "image/png")},
            data={"options": json.dumps({"extract_dates": False})},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["content"] == "☐ dishes"
        assert data["confidence"] == 0.8
        prompt = mock_gemini.generate.call_args.args[0]
        assert '"dates": []' in prompt.instruction

    @pytest.mark.asyncio
    async def test_multipart_without_image(self, test_client, mock_gemini, sample_png_bytes):
        response = await test_client.post(
            "/api/process-note",
            files={"picture": ("note.png", sample_png_bytes, "image/png")},
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "invalid_input"
        assert body["message"] == "No image file provided"
        assert "processing_time_ms" in body

    @pytest.mark.asyncio
    async def test_multipart_image_as_text(self, test_client, mock_gemini):
        response = await test_client.post(
            "/api/process-note",
            files={"other": ("x.txt", b"x", "text/plain")},
            data={"image": "just text"},
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid file format"

    @pytest.mark.asyncio
    async def test_non_image_upload(self, test_client, mock_gemini):
        response = await test_client.post(
            "/api/process-note",
            files={"image": ("doc.pdf", b"%PDF-1.4", "application/pdf")},
        )
        assert response.status_code == 400
        assert response.json()["details"]["field"] == "image"
        mock_gemini.generate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_bad_options(self, test_client, mock_gemini, sample_png_bytes):
        response = await test_client.post(
            "/api/process-note",
            files={"image": ("note.png", sample_png_bytes, "image/png")},
            data={"options": "{not json"},
        )
        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "Invalid options JSON"
        assert body["details"]["field"] == "options"

    @pytest.mark.asyncio
    async def test_invalid_json_body(self, test_client, mock_gemini):
        response = await test_client.post(
            "/api/process-note",
            content=b"{broken",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json()["details"]["field"] == "body"

    @pytest.mark.asyncio
    async def test_quota_exceeded(self, test_client, mock_gemini, sample_data_url):
        mock_gemini.generate.side_effect = QuotaExceededError()

        response = await test_client.post("/api/process-note", json={"image": sample_data_url})

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "60"
        body = response.json()
        assert body["error"] == "quota_exceeded"
        assert body["processing_time_ms"] >= 0

    @pytest.mark.asyncio
    async def test_unparseable_reply(self, test_client, mock_gemini, sample_data_url):
        mock_gemini.generate.return_value = "Sorry, I can't help with that."

        response = await test_client.post("/api/process-note", json={"image": sample_data_url})

        assert response.status_code == 500
        assert response.json()["error"] == "upstream_format_error"

    @pytest.mark.asyncio
    async def test_service_unavailable(self, test_client, mock_gemini, sample_data_url):
        mock_gemini.generate.side_effect = LLMServiceError()

        response = await test_client.post("/api/process-note", json={"image": sample_data_url})

        assert response.status_code == 503
        assert response.json()["error"] == "llm_service_error"

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, test_client, mock_gemini, sample_data_url):
        response = await test_client.post(
            "/api/process-note",
            json={"image": sample_data_url},
            headers={"X-Request-ID": "req-123"},
        )
        assert response.headers["X-Request-ID"] == "req-123"


class TestImages:

    @pytest.mark.asyncio
    async def test_stored_image_served(self, test_client, mock_gemini, sample_data_url, sample_png_bytes):
        processed = await test_client.post("/api/process-note", json={"image": sample_data_url})
        image_id = processed.json()["image_id"]

        response = await test_client.get(f"/api/images/{image_id}")

        assert response.status_code == 200
        assert response.content == sample_png_bytes
        assert response.headers["content-type"] == "image/png"
        assert "ETag" in response.headers

    @pytest.mark.asyncio
    async def test_unknown_image(self, test_client):
        response = await test_client.get("/api/images/3f2b8a44-5d1e-4c2b-9a1c-0123456789ab")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"


class TestTools:

    @pytest.mark.asyncio
    async def test_list_tools(self, test_client):
        response = await test_client.get("/api/tools")

        assert response.status_code == 200
        body = response.json()
        assert body["server"] == "handwritten-note-ocr-server"
        assert [t["name"] for t in body["tools"]] == ["process_handwritten_note"]

    @pytest.mark.asyncio
    async def test_call_tool(self, test_client, mock_gemini, sample_data_url):
        response = await test_client.post(
            "/api/tools/process_handwritten_note", json={"image": sample_data_url}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["is_error"] is False
        assert json.loads(body["content"][0]["text"])["title"] == "Team sync"

    @pytest.mark.asyncio
    async def test_call_tool_rejects_non_boolean_flag(self, test_client, mock_gemini, sample_data_url):
        response = await test_client.post(
            "/api/tools/process_handwritten_note",
            json={"image": sample_data_url, "extract_dates": "yes"},
        )
        assert response.status_code == 422
        mock_gemini.generate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_call_tool_bad_image(self, test_client, mock_gemini):
        response = await test_client.post(
            "/api/tools/process_handwritten_note", json={"image": "hello"}
        )
        assert response.status_code == 200
        assert response.json()["is_error"] is True


class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, test_client):
        response = await test_client.get("/api/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["gemini"] == "configured"
        assert "X-Request-ID" in response.headers

    @pytest.mark.asyncio
    async def test_health_with_upstream_down(self, test_client):
        with patch("note_ocr.routes.health.gemini_service") as mock_service:
            mock_service.health_check = AsyncMock(return_value=False)
            response = await test_client.get("/api/health", params={"check_upstream": "true"})

        body = response.json()
        assert body["status"] == "degraded"
        assert body["gemini"] == "unavailable"


class TestOpenAPI:

    @pytest.mark.asyncio
    async def test_process_note_documents_both_bodies(self, test_client):
        response = await test_client.get("/openapi.json")

        body = response.json()["paths"]["/api/process-note"]["post"]["requestBody"]
        assert set(body["content"]) == {"multipart/form-data", "application/json"}
        json_schema = body["content"]["application/json"]["schema"]
        assert json_schema["required"] == ["image"]
        assert "extract_dates" in json_schema["properties"]["options"]["properties"]
