"""
SvgPdf entrypoint - runs uvicorn server.
"""

import uvicorn

from svgpdf.app import build_app
from svgpdf.config import get_settings


def main() -> None:
    """Run the SvgPdf server."""
    settings = get_settings()
    app = build_app(settings)

    print(f"Starting SvgPdf on http://{settings.host}:{settings.port}")
    print(f"Upload form: http://{settings.host}:{settings.port}/test")

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
