"""Configuration package."""

from .settings import (
    DEFAULT_BROWSER_ARGS,
    Settings,
    get_settings,
    init_settings,
    reset_settings,
)

__all__ = [
    "DEFAULT_BROWSER_ARGS",
    "Settings",
    "get_settings",
    "init_settings",
    "reset_settings",
]
