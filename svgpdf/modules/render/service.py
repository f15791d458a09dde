"""
Render service - SVG markup to a PDF sized to the graphic.

Each render runs in its own browser context:
acquire -> emulate screen media -> inject -> measure -> print -> close.
"""

import asyncio

from fastapi import Request
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page
from pydantic import ValidationError

from svgpdf.config import Settings, get_settings
from svgpdf.infra.browser import BrowserSession
from svgpdf.shared.errors import (
    BrowserUnavailableError,
    DegenerateGraphicError,
    GraphicNotFoundError,
    MeasurementError,
    PrintError,
    RenderError,
    RenderTimeoutError,
    SvgPdfError,
)
from svgpdf.shared.logging import get_logger

from .schemas import MeasuredSize, RenderOutputMode, RenderResult

logger = get_logger(__name__)


DOCUMENT_TEMPLATE = """<!DOCTYPE html>
<html>
    <head>
        <meta charset="utf-8">
        <meta name="viewport" content="width=device-width, initial-scale=1.0">
    </head>
    <body style="margin: 0;">
        <div>{markup}</div>
    </body>
</html>
"""

# Returns null when the document has no <svg>.
MEASURE_SCRIPT = """() => {
    const svg = document.getElementsByTagName("svg")[0];
    if (!svg) {
        return null;
    }
    return {
        width: svg.clientWidth,
        height: svg.clientHeight,
    };
}"""

ZERO_MARGINS = {"top": "0", "right": "0", "bottom": "0", "left": "0"}


def build_document(markup: str) -> str:
    """Wrap raw markup in a minimal HTML shell. The markup is not escaped."""
    return DOCUMENT_TEMPLATE.replace("{markup}", markup)


class RenderService:
    """Renders markup through the shared browser session."""

    def __init__(self, session: BrowserSession, settings: Settings | None = None):
        self.session = session
        self.settings = settings or get_settings()
        self._gate = asyncio.Semaphore(self.settings.max_concurrent_renders)
        self.active_renders = 0

    async def render(
        self,
        markup: str,
        mode: RenderOutputMode = RenderOutputMode.PDF,
    ) -> RenderResult:
        """
        Render markup and return the PDF (and/or injected HTML).

        The whole pipeline, including waiting for a free slot, runs under
        ``render_timeout_seconds``.

        Raises:
            RenderError: the render failed (see subclasses for the cause)
            BrowserUnavailableError: the browser connection is gone
        """
        timeout = self.settings.render_timeout_seconds
        try:
            return await asyncio.wait_for(self._admit(markup, mode), timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Render timed out after {timeout:g}s")
            raise RenderTimeoutError(timeout) from None

    async def _admit(self, markup: str, mode: RenderOutputMode) -> RenderResult:
        async with self._gate:
            self.active_renders += 1
            try:
                return await self.session.guard(self._pipeline(markup, mode))
            finally:
                self.active_renders -= 1

    async def _pipeline(self, markup: str, mode: RenderOutputMode) -> RenderResult:
        ctx = await self.session.new_page()
        try:
            page = ctx.page
            page.set_default_timeout(self.settings.browser_timeout_ms)

            await self._inject(page, markup)
            size = await self._measure(page)
            width_in, height_in = size.to_inches(self.settings.pixels_per_inch)

            html = await page.content() if mode.includes_html else None
            pdf = await self._print(page, width_in, height_in) if mode.includes_pdf else None

            return RenderResult(
                size=size,
                width_in=width_in,
                height_in=height_in,
                pdf=pdf,
                html=html,
            )
        except SvgPdfError:
            raise
        except PlaywrightError as e:
            if not self.session.connected:
                raise BrowserUnavailableError(f"Browser connection lost: {e}") from e
            raise RenderError(str(e)) from e
        except Exception as e:
            logger.exception("Unexpected render failure")
            raise RenderError(f"unexpected error: {e}") from e
        finally:
            await self.session.close_page(ctx)

    async def _inject(self, page: Page, markup: str) -> None:
        # Screen rules, not print rules, decide the graphic's size.
        try:
            await page.emulate_media(media="screen")
            await page.set_content(build_document(markup))
        except PlaywrightError as e:
            if not self.session.connected:
                raise
            raise RenderError(f"content injection failed: {e}") from e

    async def _measure(self, page: Page) -> MeasuredSize:
        try:
            measured = await page.evaluate(MEASURE_SCRIPT)
        except PlaywrightError as e:
            if not self.session.connected:
                raise
            raise MeasurementError(f"measurement script failed: {e}") from e

        if measured is None:
            raise GraphicNotFoundError()

        try:
            size = MeasuredSize.model_validate(measured)
        except ValidationError as e:
            raise MeasurementError(f"unexpected measurement result: {measured!r}") from e

        minimum = self.settings.min_dimension_px
        if size.width < minimum or size.height < minimum:
            raise DegenerateGraphicError(size.width, size.height, minimum)

        logger.info(f"Printing with size {size.width}x{size.height}px")
        return size

    async def _print(self, page: Page, width_in: float, height_in: float) -> bytes:
        # Only page 1: the injected document is a single flow.
        try:
            return await page.pdf(
                width=f"{width_in}in",
                height=f"{height_in}in",
                margin=ZERO_MARGINS,
                page_ranges="1",
                prefer_css_page_size=False,
                print_background=self.settings.print_background,
            )
        except PlaywrightError as e:
            if not self.session.connected:
                raise
            raise PrintError(str(e)) from e


def get_render_service(request: Request) -> RenderService:
    """FastAPI dependency returning the service created at startup."""
    service = getattr(request.app.state, "render_service", None)
    if service is None:
        raise BrowserUnavailableError("Render service has not been started")
    return service
