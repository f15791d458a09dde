"""Health check routes."""

from datetime import datetime, timezone

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel


router = APIRouter()


class HealthResponse(BaseModel):
    """Service status and browser session counters."""
    status: str
    timestamp: datetime
    browser_connected: bool
    browser_version: str | None = None
    pump_running: bool = False
    pump_close_reason: str | None = None
    sessions_launched: int = 0
    pages_created: int = 0
    pages_closed: int = 0
    open_pages: int = 0
    active_renders: int = 0
    max_concurrent_renders: int = 0


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> JSONResponse:
    """
    Report whether renders can be served.

    Returns 503 when the browser is not connected or the event pump has
    stopped.
    """
    session = getattr(request.app.state, "browser_session", None)
    service = getattr(request.app.state, "render_service", None)

    connected = bool(session is not None and session.connected)
    body = HealthResponse(
        status="healthy" if connected else "unhealthy",
        timestamp=datetime.now(timezone.utc),
        browser_connected=connected,
    )

    if session is not None:
        body.browser_version = session.version
        body.pump_running = session.pump.running
        body.pump_close_reason = session.pump.close_reason
        body.sessions_launched = session.stats.sessions_launched
        body.pages_created = session.stats.pages_created
        body.pages_closed = session.stats.pages_closed
        body.open_pages = session.stats.open_pages

    if service is not None:
        body.active_renders = service.active_renders
        body.max_concurrent_renders = service.settings.max_concurrent_renders

    return JSONResponse(
        status_code=200 if connected else 503,
        content=body.model_dump(mode="json"),
    )
