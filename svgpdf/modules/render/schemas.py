"""Render module schemas."""

from enum import Enum

from pydantic import BaseModel, Field


class RenderOutputMode(str, Enum):
    """What a render returns."""

    PDF = "pdf"
    HTML = "html"
    BOTH = "both"

    @property
    def includes_pdf(self) -> bool:
        return self is not RenderOutputMode.HTML

    @property
    def includes_html(self) -> bool:
        return self is not RenderOutputMode.PDF


class RenderRequest(BaseModel):
    """Structured render request."""

    format: RenderOutputMode = Field(
        default=RenderOutputMode.PDF,
        description="Output: pdf, html (injected document) or both",
    )
    input: str = Field(..., description="Markup containing an <svg> element")


class MeasuredSize(BaseModel):
    """Rendered size of the first <svg> element, in CSS pixels."""

    width: float
    height: float

    def to_inches(self, pixels_per_inch: float = 96.0) -> tuple[float, float]:
        return self.width / pixels_per_inch, self.height / pixels_per_inch


class RenderResult(BaseModel):
    """Output of one render."""

    size: MeasuredSize
    width_in: float
    height_in: float
    pdf: bytes | None = None
    html: str | None = None


class RenderBothResponse(BaseModel):
    """JSON response for format=both."""

    html: str
    pdf: str = Field(..., description="Base64 encoded PDF")
    width_px: float
    height_px: float
    width_in: float
    height_in: float
