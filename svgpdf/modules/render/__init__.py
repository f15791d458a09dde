"""Render module - SVG markup to a PDF sized to the graphic."""

from .router import router
from .schemas import MeasuredSize, RenderOutputMode, RenderRequest, RenderResult
from .service import RenderService, get_render_service

__all__ = [
    "router",
    "MeasuredSize",
    "RenderOutputMode",
    "RenderRequest",
    "RenderResult",
    "RenderService",
    "get_render_service",
]
