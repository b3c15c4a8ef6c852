"""Tests for timeout helpers and the document parser."""

import asyncio
import io

import docx
import httpx
import pytest

from sales_coach.errors import ApiError, RequestTimeoutError, ValidationFailed
from sales_coach.utils.parser import DocumentParser
from sales_coach.utils.timeout import fetch_bytes, fetch_with_timeout, with_timeout


class TestWithTimeout:
    def test_returns_result(self):
        async def quick():
            return 42

        assert asyncio.run(with_timeout(quick(), 1.0)) == 42

    def test_raises_on_timeout(self):
        with pytest.raises(RequestTimeoutError) as excinfo:
            asyncio.run(with_timeout(asyncio.sleep(1.0), 0.01))
        assert excinfo.value.status_code == 504
        assert excinfo.value.timeout == 0.01


def _run_with_transport(handler, call):
    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await call(client)

    return asyncio.run(run())


class TestFetchWithTimeout:
    def test_sends_json_and_decodes_response(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["url"] = str(request.url)
            seen["content_type"] = request.headers["content-type"]
            seen["auth"] = request.headers.get("authorization")
            return httpx.Response(200, json={"ok": True})

        result = _run_with_transport(
            handler,
            lambda client: fetch_with_timeout(
                "/items",
                "POST",
                json_body={"name": "x"},
                headers={"Authorization": "Bearer t"},
                base_url="https://api.test",
                client=client,
            ),
        )

        assert result == {"ok": True}
        assert seen == {
            "method": "POST",
            "url": "https://api.test/items",
            "content_type": "application/json",
            "auth": "Bearer t",
        }

    def test_error_status_raises_api_error(self):
        def handler(request):
            return httpx.Response(404, json={"detail": "missing"})

        with pytest.raises(ApiError) as excinfo:
            _run_with_transport(handler, lambda client: fetch_with_timeout("https://api.test/x", client=client))
        assert excinfo.value.status == 404
        assert excinfo.value.data == {"detail": "missing"}

    def test_transport_timeout_raises(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(RequestTimeoutError):
            _run_with_transport(handler, lambda client: fetch_with_timeout("https://api.test/x", client=client))

    def test_connection_failure_raises_api_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ApiError) as excinfo:
            _run_with_transport(handler, lambda client: fetch_with_timeout("https://api.test/x", client=client))
        assert excinfo.value.status_code == 502

        with pytest.raises(ApiError):
            _run_with_transport(handler, lambda client: fetch_bytes("https://files.test/a.pdf", client=client))

    def test_fetch_bytes(self):
        def handler(request):
            return httpx.Response(200, content=b"%PDF-bytes", headers={"content-type": "application/pdf"})

        response = _run_with_transport(handler, lambda client: fetch_bytes("https://files.test/a.pdf", client=client))
        assert response.content == b"%PDF-bytes"
        assert response.headers["content-type"] == "application/pdf"


class TestDocumentParser:
    def test_markdown_and_text(self):
        parser = DocumentParser()
        assert parser.parse(b"# Title\n\nBody", "notes.md") == "# Title\n\nBody"
        assert parser.parse("Café".encode("utf-8"), "upload", "text/plain") == "Café"

    def test_docx(self):
        document = docx.Document()
        document.add_paragraph("Discovery questions")
        document.add_paragraph("Ask about budget")
        buffer = io.BytesIO()
        document.save(buffer)

        text = DocumentParser().parse(buffer.getvalue(), "guide.docx")

        assert "Discovery questions\nAsk about budget" in text

    def test_unsupported_type(self):
        with pytest.raises(ValidationFailed):
            DocumentParser().parse(b"\x00", "image.png", "image/png")
