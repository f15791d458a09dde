"""Render module routes."""

import base64

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.datastructures import UploadFile

from svgpdf.shared.errors import (
    BadRequestError,
    BrowserUnavailableError,
    PayloadTooLargeError,
    RenderError,
    UnsupportedMediaTypeError,
)
from svgpdf.shared.logging import get_logger

from .schemas import RenderBothResponse, RenderOutputMode, RenderRequest, RenderResult
from .service import RenderService, get_render_service

logger = get_logger(__name__)
router = APIRouter(prefix="/render", tags=["render"])


@router.post("")
async def render(
    request: Request,
    service: RenderService = Depends(get_render_service),
) -> Response:
    """
    Render markup containing an <svg> to a PDF sized to the graphic.

    Accepts either a multipart upload (one file part, UTF-8 markup) which
    always returns a PDF, or a JSON body ``{"format": ..., "input": ...}``.
    Render failures come back as 5xx with the error message as plain text.
    """
    content_type = request.headers.get("content-type", "").lower()

    if content_type.startswith("multipart/form-data"):
        markup = await _read_upload(request, service.settings.max_upload_bytes)
        mode = RenderOutputMode.PDF
    elif content_type.startswith("application/json"):
        body = await _read_body(request, service.settings.max_json_bytes)
        try:
            payload = RenderRequest.model_validate_json(body)
        except ValidationError as e:
            raise BadRequestError(f"Invalid render request: {e.error_count()} validation error(s)", {
                "errors": [
                    {"loc": list(err["loc"]), "msg": err["msg"]} for err in e.errors()
                ],
            }) from e
        markup, mode = payload.input, payload.format
    else:
        raise UnsupportedMediaTypeError(
            f"Unsupported content type: {content_type or 'none'}",
            {"accepted": ["multipart/form-data", "application/json"]},
        )

    try:
        result = await service.render(markup, mode)
    except (RenderError, BrowserUnavailableError) as e:
        logger.error(f"Render failed: {e}")
        return Response(
            content=str(e),
            status_code=e.http_status,
            media_type="text/plain",
        )

    return _to_response(result, mode)


def _to_response(result: RenderResult, mode: RenderOutputMode) -> Response:
    if mode is RenderOutputMode.HTML:
        return Response(content=result.html, media_type="text/plain; charset=utf-8")

    if mode is RenderOutputMode.BOTH:
        body = RenderBothResponse(
            html=result.html or "",
            pdf=base64.b64encode(result.pdf or b"").decode("ascii"),
            width_px=result.size.width,
            height_px=result.size.height,
            width_in=result.width_in,
            height_in=result.height_in,
        )
        return JSONResponse(content=body.model_dump())

    return Response(
        content=result.pdf,
        media_type="application/pdf",
        headers={
            "Content-Disposition": "inline; filename=render.pdf",
            "X-Page-Width-In": f"{result.width_in:.4f}",
            "X-Page-Height-In": f"{result.height_in:.4f}",
        },
    )


async def _read_body(request: Request, limit: int) -> bytes:
    """Read the request body, rejecting anything over ``limit`` bytes."""
    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > limit:
        raise PayloadTooLargeError(int(declared), limit)

    # Chunked bodies carry no length; count while reading.
    chunks: list[bytes] = []
    received = 0
    async for chunk in request.stream():
        received += len(chunk)
        if received > limit:
            raise PayloadTooLargeError(received, limit)
        chunks.append(chunk)

    body = b"".join(chunks)
    # Cached where Starlette keeps it, so request.form() can reparse it.
    request._body = body
    return body


async def _read_upload(request: Request, limit: int) -> str:
    """Return the first form part of a multipart upload as text."""
    # Buffers the body so the size check applies before parsing.
    await _read_body(request, limit)
    form = await request.form()

    try:
        part = next(iter(form.values()), None)
        if part is None:
            raise BadRequestError("Invalid file: no file part in upload")

        data = await part.read() if isinstance(part, UploadFile) else part.encode("utf-8")
    finally:
        await form.close()

    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise BadRequestError("Invalid file: upload is not valid UTF-8") from e
