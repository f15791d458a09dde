"""Tests for the HTTP boundary."""

import base64
import json

import pytest
from fastapi.testclient import TestClient

from svgpdf.app import build_app
from svgpdf.config import Settings
from svgpdf.shared.errors import BrowserLaunchError

SVG = '<svg width="300" height="150"><rect width="300" height="150"/></svg>'


def upload(client: TestClient, data: bytes):
    return client.post("/render", files={"file": ("drawing.svg", data, "image/svg+xml")})


class TestUploadRender:
    """Multipart uploads always return a PDF."""

    def test_upload_returns_pdf(self, client: TestClient) -> None:
        response = upload(client, SVG.encode())

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.headers["x-page-width-in"] == "3.1250"
        assert response.headers["x-page-height-in"] == "1.5625"
        assert response.content.startswith(b"%PDF")

    def test_upload_without_graphic_returns_500_with_message(self, client: TestClient) -> None:
        response = upload(client, b"<p>no drawing here</p>")

        assert response.status_code == 500
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text == "measurement failed: no graphic element found"

    def test_upload_must_be_utf8(self, client: TestClient) -> None:
        response = upload(client, b"\xff\xfe<svg>")

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "bad_request"

    def test_oversized_upload_rejected(self, client: TestClient, settings: Settings) -> None:
        response = upload(client, b"x" * (settings.max_upload_bytes + 1))

        assert response.status_code == 413
        assert response.json()["error"]["code"] == "payload_too_large"

    def test_chunked_upload_over_limit_rejected(self, client: TestClient, settings: Settings) -> None:
        def chunks():
            yield b"--boundary\r\nContent-Disposition: form-data; name=\"file\"; filename=\"a.svg\"\r\n\r\n"
            for _ in range(settings.max_upload_bytes // 1024 + 8):
                yield b"x" * 1024
            yield b"\r\n--boundary--\r\n"

        response = client.post(
            "/render",
            content=chunks(),
            headers={"content-type": "multipart/form-data; boundary=boundary"},
        )

        assert response.status_code == 413

    def test_empty_form_rejected(self, client: TestClient) -> None:
        response = client.post(
            "/render",
            content=b"--boundary--\r\n",
            headers={"content-type": "multipart/form-data; boundary=boundary"},
        )

        assert response.status_code == 400


class TestJsonRender:
    """Structured requests choose their output format."""

    def test_pdf_format(self, client: TestClient) -> None:
        response = client.post("/render", json={"format": "pdf", "input": SVG})

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"

    def test_format_defaults_to_pdf(self, client: TestClient) -> None:
        response = client.post("/render", json={"input": SVG})

        assert response.headers["content-type"] == "application/pdf"

    def test_html_format_returns_document_as_text(self, client: TestClient) -> None:
        response = client.post("/render", json={"format": "html", "input": SVG})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert "<!DOCTYPE html>" in response.text
        assert SVG in response.text

    def test_both_format_returns_json(self, client: TestClient) -> None:
        response = client.post("/render", json={"format": "both", "input": SVG})

        assert response.status_code == 200
        data = response.json()
        assert SVG in data["html"]
        assert base64.b64decode(data["pdf"]).startswith(b"%PDF")
        assert data["width_px"] == 300
        assert data["height_px"] == 150
        assert data["width_in"] == pytest.approx(3.125)
        assert data["height_in"] == pytest.approx(1.5625)

    def test_empty_input_is_measurement_failure(self, client: TestClient) -> None:
        response = client.post("/render", json={"format": "pdf", "input": ""})

        assert response.status_code == 500
        assert "measurement failed" in response.text

    def test_unknown_format_rejected(self, client: TestClient) -> None:
        response = client.post("/render", json={"format": "png", "input": SVG})

        assert response.status_code == 400
        assert response.json()["error"]["details"]["errors"][0]["loc"] == ["format"]

    def test_malformed_json_rejected(self, client: TestClient) -> None:
        response = client.post(
            "/render",
            content=b"{not json",
            headers={"content-type": "application/json"},
        )

        assert response.status_code == 400

    def test_chunked_json_within_limit(self, client: TestClient) -> None:
        body = json.dumps({"format": "html", "input": SVG}).encode()

        def chunks():
            yield body[:10]
            yield body[10:]

        response = client.post(
            "/render",
            content=chunks(),
            headers={"content-type": "application/json"},
        )

        assert response.status_code == 200
        assert SVG in response.text

    def test_chunked_json_over_limit_rejected(self, client: TestClient, settings: Settings) -> None:
        def chunks():
            for _ in range(settings.max_json_bytes // 1024 + 8):
                yield b"x" * 1024

        response = client.post(
            "/render",
            content=chunks(),
            headers={"content-type": "application/json"},
        )

        assert response.status_code == 413
        assert response.json()["error"]["code"] == "payload_too_large"

    def test_oversized_json_rejected(self, client: TestClient, settings: Settings) -> None:
        response = client.post(
            "/render",
            json={"input": "x" * settings.max_json_bytes},
        )

        assert response.status_code == 413


class TestBoundary:

    def test_unsupported_content_type(self, client: TestClient) -> None:
        response = client.post(
            "/render",
            content=SVG.encode(),
            headers={"content-type": "image/svg+xml"},
        )

        assert response.status_code == 415
        assert response.json()["error"]["code"] == "unsupported_media_type"

    def test_request_id_is_echoed(self, client: TestClient) -> None:
        response = client.get("/", headers={"X-Request-ID": "req_abc"})

        assert response.headers["x-request-id"] == "req_abc"

    def test_request_id_is_generated(self, client: TestClient) -> None:
        response = client.get("/")

        assert response.headers["x-request-id"].startswith("req_")

    def test_root(self, client: TestClient) -> None:
        assert client.get("/").json() == {"service": "SvgPdf", "version": "0.1.0"}

    def test_upload_form(self, client: TestClient) -> None:
        response = client.get("/test")

        assert response.status_code == 200
        assert 'action="/render"' in response.text
        assert 'enctype="multipart/form-data"' in response.text
        assert "Max size: 64KB" in response.text


class TestHealthAndLifecycle:

    def test_health_reports_session_counters(self, client: TestClient, launches) -> None:
        upload(client, SVG.encode())
        upload(client, SVG.encode())
        upload(client, b"<p>nothing</p>")

        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["browser_version"] == "HeadlessChrome/120.0.6099.28"
        assert data["pump_running"] is True
        assert data["sessions_launched"] == 1
        assert data["pages_created"] == 3
        assert data["open_pages"] == 0
        assert data["max_concurrent_renders"] == 4
        assert len(launches) == 1

    def test_health_unhealthy_after_disconnect(self, client: TestClient, fake_browser) -> None:
        fake_browser.connected = False

        response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["browser_connected"] is False

    def test_render_after_disconnect_returns_503(self, client: TestClient, fake_browser) -> None:
        fake_browser.connected = False

        response = upload(client, SVG.encode())

        assert response.status_code == 503
        assert "not connected" in response.text

    def test_shutdown_closes_browser(self, settings: Settings, launcher, fake_browser) -> None:
        app = build_app(settings, browser_launcher=launcher)
        with TestClient(app):
            assert not fake_browser.closed

        assert fake_browser.closed
        assert app.state.browser_session is None

    def test_launch_failure_prevents_startup(self, settings: Settings) -> None:
        async def launcher(_settings):
            raise BrowserLaunchError("Failed to launch Chromium: no binary")

        app = build_app(settings, browser_launcher=launcher)

        with pytest.raises(BrowserLaunchError):
            with TestClient(app):
                pass
