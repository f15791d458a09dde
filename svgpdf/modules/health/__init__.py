"""Health module - browser readiness and session counters."""

from .router import router

__all__ = ["router"]
