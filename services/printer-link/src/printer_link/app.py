"""FastAPI application for the printer-link service."""

from __future__ import annotations

from typing import Optional

from fastapi import FastAPI

from common.config import Settings, get_settings
from common.logging import configure_logging, get_logger

from .routes import router
from .service import PrinterLink, create_printer_link

LOGGER = get_logger(__name__)


def create_app(
    link: Optional[PrinterLink] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """Build the API around an existing component graph or one made from ``settings``."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Printer Link Service",
        description="OctoPrint instance registry and dispatch",
        version="0.1.0",
    )
    app.state.printer_link = link or create_printer_link(settings)
    app.include_router(router)

    @app.get("/healthz")
    async def health() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok"}

    LOGGER.info("Printer link API ready", service=settings.service_name)
    return app


def main() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run(create_app(settings=settings), host=settings.printer_link_host, port=settings.printer_link_port)


if __name__ == "__main__":
    main()
