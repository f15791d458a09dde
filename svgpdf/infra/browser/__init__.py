"""Browser infrastructure - the shared Chromium session and its event pump."""

from fastapi import Request

from svgpdf.shared.errors import BrowserUnavailableError

from .pump import EventPump, ProtocolEvent
from .session import BrowserSession, RenderContext, SessionStats


def get_browser_session(request: Request) -> BrowserSession:
    """FastAPI dependency returning the session created at startup."""
    session = getattr(request.app.state, "browser_session", None)
    if session is None:
        raise BrowserUnavailableError("Browser session has not been started")
    return session


__all__ = [
    "BrowserSession",
    "EventPump",
    "ProtocolEvent",
    "RenderContext",
    "SessionStats",
    "get_browser_session",
]
