"""Debug routes - a bare upload form for trying the render endpoint."""

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse

router = APIRouter(tags=["debug"])


UPLOAD_FORM = """<html>
    <head><title>Upload Test</title></head>
    <body>
        <form action="/render" method="post" enctype="multipart/form-data">
            <input type="file" name="file"/>
            <button type="submit">Submit</button>
        </form>
        <p>Max size: {max_size}</p>
    </body>
</html>
"""


def _format_size(size: int) -> str:
    mib = size / (1024 * 1024)
    if mib >= 1:
        return f"{mib:g}MB"
    return f"{size / 1024:g}KB"


@router.get("/test", response_class=HTMLResponse)
async def upload_form(request: Request) -> HTMLResponse:
    settings = request.app.state.settings
    html = UPLOAD_FORM.replace("{max_size}", _format_size(settings.max_upload_bytes))
    return HTMLResponse(content=html)
