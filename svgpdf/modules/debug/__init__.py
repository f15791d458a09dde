"""Debug module - static upload form."""

from .router import router

__all__ = ["router"]
