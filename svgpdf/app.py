"""
Application factory - builds the FastAPI app with middleware and routes.

Startup launches the shared browser and waits for its first round trip
before the server accepts any request.
"""

from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from svgpdf import __version__
from svgpdf.config import Settings, get_settings
from svgpdf.infra.browser import BrowserSession
from svgpdf.modules.debug import router as debug_router
from svgpdf.modules.health import router as health_router
from svgpdf.modules.render import RenderService
from svgpdf.modules.render import router as render_router
from svgpdf.shared.errors import BrowserLaunchError, SvgPdfError
from svgpdf.shared.ids import generate_request_id
from svgpdf.shared.logging import (
    clear_request_context,
    get_logger,
    get_request_context,
    set_request_context,
    setup_logging,
)
from svgpdf.shared.types import RequestContext

logger = get_logger(__name__)

BrowserLauncher = Callable[[Settings], Awaitable[BrowserSession]]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan - startup and shutdown."""
    settings: Settings = app.state.settings
    launcher: BrowserLauncher = app.state.browser_launcher

    setup_logging(settings.log_level)
    logger.info("Starting SvgPdf...")

    try:
        session = await launcher(settings)
    except BrowserLaunchError as e:
        logger.critical(f"Cannot start without a browser: {e}")
        raise

    app.state.browser_session = session
    app.state.render_service = RenderService(session, settings)
    logger.info(f"SvgPdf started (browser {session.version})")

    try:
        yield
    finally:
        logger.info("Shutting down SvgPdf...")
        app.state.render_service = None
        app.state.browser_session = None
        await session.close()
        logger.info("SvgPdf stopped")


def build_app(
    settings: Settings | None = None,
    browser_launcher: BrowserLauncher | None = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Optional settings override (useful for testing)
        browser_launcher: Optional coroutine creating the browser session;
            defaults to launching Chromium

    Returns:
        Configured FastAPI application
    """
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title="SvgPdf",
        description="Render SVG markup to a PDF sized to the graphic",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.browser_launcher = browser_launcher or BrowserSession.launch
    app.state.browser_session = None
    app.state.render_service = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next: Any) -> Response:
        """Attach request context for logging."""
        ctx = RequestContext(
            request_id=request.headers.get("X-Request-ID") or generate_request_id(),
            client=request.client.host if request.client else None,
        )
        set_request_context(ctx)

        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = ctx.request_id
            return response
        finally:
            clear_request_context()

    @app.exception_handler(SvgPdfError)
    async def svgpdf_error_handler(request: Request, exc: SvgPdfError) -> JSONResponse:
        """Handle SvgPdfError with a consistent JSON response."""
        ctx = get_request_context()
        if exc.http_status >= 500:
            logger.error(f"{exc.code}: {exc.message}")
        else:
            logger.info(f"Rejected request: {exc.code}: {exc.message}")

        return JSONResponse(
            status_code=exc.http_status,
            content={
                "error": exc.to_dict(),
                "request_id": ctx.request_id if ctx else None,
            },
        )

    app.include_router(health_router, tags=["health"])
    app.include_router(render_router)
    app.include_router(debug_router)

    @app.get("/")
    async def root() -> dict[str, str]:
        return {"service": "SvgPdf", "version": __version__}

    return app
