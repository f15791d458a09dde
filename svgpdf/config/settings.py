"""
Service configuration.

All settings can be overridden via ``SVGPDF_``-prefixed environment
variables or a local ``.env`` file. List values are given as JSON, e.g.
``SVGPDF_BROWSER_EXTRA_ARGS='["--font-render-hinting=none"]'``.
"""

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MIB = 1024 * 1024

# Chromium flags for containerized execution.
DEFAULT_BROWSER_ARGS = [
    "--disable-gpu",
    "--no-sandbox",
    "--disable-setuid-sandbox",
]


class Settings(BaseSettings):
    """SvgPdf settings with validation."""

    model_config = SettingsConfigDict(
        env_prefix="SVGPDF_",
        env_file=".env",
        extra="ignore",
    )

    # === Server ===
    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=8080, ge=1, le=65535, description="Bind port")
    log_level: str = Field(default="INFO", description="Root log level")
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    # === Browser ===
    browser_headless: bool = True
    browser_args: list[str] = Field(default_factory=lambda: list(DEFAULT_BROWSER_ARGS))
    browser_extra_args: list[str] = Field(default_factory=list)
    browser_executable_path: Path | None = Field(
        default=None,
        description="Chromium binary to use instead of the Playwright bundled one",
    )
    browser_timeout_ms: int = Field(
        default=30000,
        ge=1000,
        description="Default timeout for individual browser commands",
    )

    # === Rendering ===
    render_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Deadline for a whole render, including waiting for a slot",
    )
    max_concurrent_renders: int = Field(
        default=8,
        ge=1,
        le=256,
        description="Maximum number of rendering contexts open at once",
    )
    context_close_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Upper bound on closing a rendering context, even after the deadline",
    )
    min_dimension_px: float = Field(
        default=1.0,
        ge=0,
        description="Graphics smaller than this in either dimension are rejected",
    )
    pixels_per_inch: float = Field(default=96.0, gt=0)
    print_background: bool = Field(
        default=True,
        description="Include CSS backgrounds around the graphic in the PDF",
    )

    # === Request limits ===
    max_upload_bytes: int = Field(default=2 * MIB, ge=1)
    max_json_bytes: int = Field(default=1 * MIB, ge=1)

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        value = value.upper()
        if value not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {value}")
        return value

    @property
    def launch_args(self) -> list[str]:
        """Chromium command line flags, base flags first."""
        args = list(self.browser_args)
        for arg in self.browser_extra_args:
            if arg not in args:
                args.append(arg)
        return args


_settings: Settings | None = None


def get_settings() -> Settings:
    """Return the process settings, loading them from the environment once."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def init_settings(settings: Settings) -> Settings:
    """Install explicit settings (tests, embedding)."""
    global _settings
    _settings = settings
    return _settings


def reset_settings() -> None:
    global _settings
    _settings = None
