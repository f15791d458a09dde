"""
Shared fixtures.

The fakes below stand in for Playwright's Browser / BrowserContext / Page.
FakePage measures the first <svg> by reading its width/height attributes
(300x150 when absent, like a browser's default replaced-element size).
"""

import asyncio
import re
from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from svgpdf.app import build_app
from svgpdf.config import Settings, reset_settings
from svgpdf.infra.browser import BrowserSession

SVG_TAG = re.compile(r"<svg\b([^>]*)>", re.IGNORECASE)


def _attr(attrs: str, name: str, default: float) -> float:
    match = re.search(rf'\b{name}="([\d.]+)"', attrs)
    return float(match.group(1)) if match else default


class FakePage:
    def __init__(self, browser: "FakeBrowser"):
        self.browser = browser
        self.media: str | None = None
        self.html: str | None = None
        self.pdf_kwargs: dict | None = None
        self.on = MagicMock()
        self.set_default_timeout = MagicMock()

    async def emulate_media(self, media: str | None = None) -> None:
        self.media = media

    async def set_content(self, html: str) -> None:
        await asyncio.sleep(0)
        self.html = html

    async def evaluate(self, script: str):
        if self.browser.evaluate_hook is not None:
            return await self.browser.evaluate_hook(self)
        await asyncio.sleep(0)
        match = SVG_TAG.search(self.html or "")
        if match is None:
            return None
        return {
            "width": _attr(match.group(1), "width", 300),
            "height": _attr(match.group(1), "height", 150),
        }

    async def content(self) -> str:
        return self.html or ""

    async def pdf(self, **kwargs) -> bytes:
        if self.browser.pdf_error is not None:
            raise self.browser.pdf_error
        await asyncio.sleep(0)
        self.pdf_kwargs = kwargs
        return f"%PDF-1.4 {kwargs['width']} x {kwargs['height']}".encode()


class FakeContext:
    def __init__(self, browser: "FakeBrowser"):
        self.browser = browser
        self.closed = False
        self.pages: list[FakePage] = []

    async def new_page(self) -> FakePage:
        if self.browser.new_page_hook is not None:
            await self.browser.new_page_hook(self)
        page = FakePage(self.browser)
        self.pages.append(page)
        return page

    async def close(self) -> None:
        if self.browser.close_hook is not None:
            await self.browser.close_hook(self)
        if not self.closed:
            self.closed = True
            self.browser.open_contexts -= 1


class FakeCDPSession:
    def __init__(self, browser: "FakeBrowser"):
        self.browser = browser
        self.detached = False

    async def send(self, method: str, params: dict | None = None) -> dict:
        self.browser.cdp_calls.append(method)
        return {"product": "HeadlessChrome/120.0.6099.28", "protocolVersion": "1.3"}

    async def detach(self) -> None:
        self.detached = True


class FakeBrowser:
    version = "120.0.6099.28"

    def __init__(self):
        self.contexts: list[FakeContext] = []
        self.open_contexts = 0
        self.max_open_contexts = 0
        self.cdp_calls: list[str] = []
        self.handlers: dict[str, list] = {}
        self.connected = True
        self.closed = False
        self.evaluate_hook = None
        self.pdf_error: Exception | None = None
        self.new_context_error: Exception | None = None
        self.new_page_hook = None
        self.close_hook = None

    def on(self, event: str, handler) -> None:
        self.handlers.setdefault(event, []).append(handler)

    def is_connected(self) -> bool:
        return self.connected

    async def new_browser_cdp_session(self) -> FakeCDPSession:
        return FakeCDPSession(self)

    async def new_context(self) -> FakeContext:
        if self.new_context_error is not None:
            raise self.new_context_error
        context = FakeContext(self)
        self.contexts.append(context)
        self.open_contexts += 1
        self.max_open_contexts = max(self.max_open_contexts, self.open_contexts)
        return context

    async def close(self) -> None:
        self.closed = True
        self.connected = False

    def disconnect(self) -> None:
        """Simulate the browser process going away."""
        self.connected = False
        for handler in self.handlers.get("disconnected", []):
            handler(self)


@pytest.fixture(autouse=True)
def _reset_settings():
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        render_timeout_seconds=5,
        max_concurrent_renders=4,
        max_upload_bytes=64 * 1024,
        max_json_bytes=32 * 1024,
    )


@pytest.fixture
def fake_browser() -> FakeBrowser:
    return FakeBrowser()


async def start_session(browser: FakeBrowser) -> BrowserSession:
    session = BrowserSession(browser)
    await session.start()
    session.stats.sessions_launched += 1
    return session


@pytest_asyncio.fixture
async def session(fake_browser: FakeBrowser):
    session = await start_session(fake_browser)
    yield session
    await session.close()


@pytest.fixture
def launches() -> list[BrowserSession]:
    return []


@pytest.fixture
def launcher(fake_browser: FakeBrowser, launches: list[BrowserSession]):
    """Browser launcher handing out sessions over the fake browser."""

    async def launch(_settings: Settings) -> BrowserSession:
        session = await start_session(fake_browser)
        launches.append(session)
        return session

    return launch


@pytest.fixture
def client(settings: Settings, launcher):
    """TestClient with the fake browser injected through the launcher."""
    app = build_app(settings, browser_launcher=launcher)
    with TestClient(app) as test_client:
        yield test_client
