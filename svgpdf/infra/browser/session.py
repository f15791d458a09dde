"""
Browser session - one launched Chromium shared by every request.

The session owns the Playwright driver, the browser process and the event
pump. Requests only ever ask it for fresh isolated rendering contexts.
"""

import asyncio
import itertools
from collections.abc import AsyncIterator, Awaitable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, TypeVar

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from svgpdf.config import Settings
from svgpdf.shared.errors import (
    BrowserLaunchError,
    BrowserUnavailableError,
    RenderError,
    SvgPdfError,
)
from svgpdf.shared.logging import get_logger

from .pump import EventPump

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class SessionStats:
    """Lifetime counters for a browser session."""
    sessions_launched: int = 0
    pages_created: int = 0
    pages_closed: int = 0

    @property
    def open_pages(self) -> int:
        return self.pages_created - self.pages_closed


@dataclass
class RenderContext:
    """An isolated browser context with a single page, used by one request."""
    context_id: int
    context: BrowserContext
    page: Page
    closed: bool = field(default=False)


class BrowserSession:
    """Shared handle to the launched browser."""

    def __init__(
        self,
        browser: Browser,
        playwright: Playwright | None = None,
        pump: EventPump | None = None,
        close_timeout: float = 5.0,
    ):
        self._browser = browser
        self.close_timeout = close_timeout
        self._playwright = playwright
        self.pump = pump or EventPump()
        self.stats = SessionStats()
        self.version: str | None = None
        self._ids = itertools.count(1)
        self._closed = False

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    @classmethod
    async def launch(cls, settings: Settings) -> "BrowserSession":
        """
        Start Chromium and confirm the connection with a version round trip.

        Raises:
            BrowserLaunchError: the binary is missing or the handshake failed
        """
        args = settings.launch_args
        logger.info(f"Starting Chromium (headless={settings.browser_headless}, args={args})")

        try:
            playwright = await async_playwright().start()
        except Exception as e:
            raise BrowserLaunchError(f"Failed to start Playwright driver: {e}") from e

        try:
            browser = await playwright.chromium.launch(
                headless=settings.browser_headless,
                args=args,
                executable_path=settings.browser_executable_path,
            )
        except Exception as e:
            await playwright.stop()
            raise BrowserLaunchError(f"Failed to launch Chromium: {e}") from e

        session = cls(browser, playwright, close_timeout=settings.context_close_timeout_seconds)
        try:
            await session.start()
        except Exception as e:
            try:
                await session.close()
            except Exception as cleanup_error:
                logger.warning(f"Error cleaning up after failed handshake: {cleanup_error}")
            raise BrowserLaunchError(f"Browser handshake failed: {e}") from e

        session.stats.sessions_launched += 1
        return session

    async def start(self) -> str:
        """
        Start the event pump, then issue the first command.

        The pump must be running before anything is sent to the browser.
        Returns the browser product string.
        """
        self.pump.attach(self._browser)
        self.pump.start()

        cdp = await self._browser.new_browser_cdp_session()
        try:
            info = await cdp.send("Browser.getVersion")
        finally:
            await cdp.detach()

        self.version = info.get("product") or self._browser.version
        logger.info(f"Browser ready: {self.version}")
        return self.version

    async def close(self) -> None:
        """Stop the pump and shut the browser down. Idempotent."""
        if self._closed:
            return
        self._closed = True

        if self.stats.open_pages:
            logger.warning(f"Closing browser with {self.stats.open_pages} open pages")

        await self.pump.stop()
        try:
            await self._browser.close()
        except PlaywrightError as e:
            logger.warning(f"Error closing browser: {e}")
        if self._playwright is not None:
            await self._playwright.stop()
        logger.info("Browser closed")

    @property
    def connected(self) -> bool:
        return not self._closed and not self.pump.closed and self._browser.is_connected()

    # =========================================================================
    # PAGES
    # =========================================================================

    async def new_page(self) -> RenderContext:
        """
        Open a fresh isolated rendering context.

        Raises:
            BrowserUnavailableError: the connection has been torn down
            RenderError: the browser refused a context while still connected
        """
        self._ensure_connected()

        try:
            context = await self._browser.new_context()
        except PlaywrightError as e:
            raise self._open_error("Could not open browser context", e) from e

        # Cancellation here must not leave the context behind.
        try:
            page = await context.new_page()
        except BaseException as e:
            await self._close_quietly(context)
            if isinstance(e, PlaywrightError):
                raise self._open_error("Could not open page", e) from e
            raise

        ctx = RenderContext(context_id=next(self._ids), context=context, page=page)
        page.on("crash", lambda _page: self.pump.emit("page.crash", ctx.context_id))
        self.stats.pages_created += 1
        logger.debug(f"Opened render context {ctx.context_id} ({self.stats.open_pages} open)")
        return ctx

    async def close_page(self, ctx: RenderContext) -> None:
        """Close a rendering context. Never raises."""
        if ctx.closed:
            return
        ctx.closed = True
        self.stats.pages_closed += 1
        await self._close_quietly(ctx.context)
        logger.debug(f"Closed render context {ctx.context_id} ({self.stats.open_pages} open)")

    @asynccontextmanager
    async def page(self) -> AsyncIterator[RenderContext]:
        ctx = await self.new_page()
        try:
            yield ctx
        finally:
            await self.close_page(ctx)

    async def guard(self, work: Awaitable[T]) -> T:
        """
        Await ``work`` unless the connection drops first.

        On connection loss the work is cancelled (its cleanup still runs)
        and BrowserUnavailableError is raised.
        """
        task = asyncio.ensure_future(work)
        if self.pump.closed:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
            raise BrowserUnavailableError("Browser connection is closed")

        watcher = asyncio.ensure_future(self.pump.wait_closed())
        try:
            done, _ = await asyncio.wait({task, watcher}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            watcher.cancel()
            if not task.done():
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)

        if task in done:
            return task.result()
        raise BrowserUnavailableError(
            f"Browser connection lost during render ({self.pump.close_reason})"
        )

    def _ensure_connected(self) -> None:
        if self._closed:
            raise BrowserUnavailableError("Browser session is closed")
        if not self.pump.running:
            # Commands issued without a running pump never complete.
            raise BrowserUnavailableError(
                f"Event pump is not running ({self.pump.close_reason or 'not started'})"
            )
        if not self._browser.is_connected():
            raise BrowserUnavailableError("Browser is not connected")

    def _open_error(self, message: str, error: PlaywrightError) -> SvgPdfError:
        if self._browser.is_connected():
            return RenderError(f"{message}: {error}")
        return BrowserUnavailableError(f"{message}: {error}")

    async def _close_quietly(self, context: Any) -> None:
        """Close a context within ``close_timeout``. Never raises."""
        try:
            await asyncio.wait_for(context.close(), timeout=self.close_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Browser context did not close within {self.close_timeout:g}s")
        except Exception as e:
            logger.warning(f"Error closing browser context: {e}")
