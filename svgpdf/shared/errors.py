"""
Error hierarchy for SvgPdf.

Every error carries a stable code, a human readable message and the HTTP
status the boundary layer should answer with.
"""

from typing import Any


class SvgPdfError(Exception):
    """Base class for all SvgPdf errors."""

    code = "internal_error"
    http_status = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


# =============================================================================
# BOUNDARY ERRORS
# =============================================================================

class BadRequestError(SvgPdfError):
    """Malformed request body or upload."""
    code = "bad_request"
    http_status = 400


class PayloadTooLargeError(SvgPdfError):
    """Request body exceeds the configured cap."""
    code = "payload_too_large"
    http_status = 413

    def __init__(self, size: int, limit: int):
        super().__init__(
            f"Request body of {size} bytes exceeds limit of {limit} bytes",
            {"size": size, "limit": limit},
        )


class UnsupportedMediaTypeError(SvgPdfError):
    """Request content type is neither multipart nor JSON."""
    code = "unsupported_media_type"
    http_status = 415


# =============================================================================
# BROWSER ERRORS
# =============================================================================

class BrowserLaunchError(SvgPdfError):
    """Browser could not be started or the initial handshake failed."""
    code = "browser_launch_failed"


class BrowserUnavailableError(SvgPdfError):
    """Browser connection is gone; no new pages can be opened."""
    code = "browser_unavailable"
    http_status = 503


# =============================================================================
# RENDER ERRORS
# =============================================================================

class RenderError(SvgPdfError):
    """A single render request failed. Other requests are unaffected."""
    code = "render_failed"
    kind = "render failed"

    def __str__(self) -> str:
        return f"{self.kind}: {self.message}"


class GraphicNotFoundError(RenderError):
    """The rendered document has no <svg> element to measure."""
    code = "graphic_not_found"
    kind = "measurement failed"

    def __init__(self) -> None:
        super().__init__("no graphic element found")


class MeasurementError(RenderError):
    """The measurement script could not be evaluated."""
    code = "measurement_error"
    kind = "measurement failed"


class DegenerateGraphicError(RenderError):
    """The measured graphic is smaller than the configured minimum."""
    code = "degenerate_graphic"
    kind = "measurement failed"

    def __init__(self, width: float, height: float, minimum: float):
        super().__init__(
            f"graphic size {width}x{height}px is below minimum of {minimum}px",
            {"width": width, "height": height, "minimum": minimum},
        )


class PrintError(RenderError):
    """The browser rejected the print-to-PDF command."""
    code = "print_failed"
    kind = "print failed"


class RenderTimeoutError(RenderError):
    """The pipeline did not finish before its deadline."""
    code = "render_timeout"
    kind = "render timed out"
    http_status = 504

    def __init__(self, timeout: float):
        super().__init__(
            f"render did not complete within {timeout:g}s",
            {"timeout_seconds": timeout},
        )
