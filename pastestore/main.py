"""
pastestore - Main FastAPI application.
"""
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import FileResponse, JSONResponse

from pastestore.clock import Clock
from pastestore.config import Settings, settings
from pastestore.database import PasteStore, build_store
from pastestore.routes import health, pastes
from pastestore.service import PasteService

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).parent / "templates"

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Content-Security-Policy": "default-src 'self'; style-src 'self' 'unsafe-inline'; script-src 'self' 'unsafe-inline'",
}


def configure_logging(config: Settings = settings) -> None:
    logging.basicConfig(
        level=logging.DEBUG if config.DEBUG else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("pastestore application starting...")
    if app.state.service is None:
        app.state.service = PasteService(build_store(app.state.config), config=app.state.config)

    if app.state.service.store.using_fallback:
        logger.warning("⚠️  STORE: Using IN-MEMORY storage (Redis not available)")
        logger.warning("   Data will NOT persist across server restarts!")
    yield
    logger.info("pastestore application shutting down...")
    app.state.service.store.close()


def create_app(
    store: Optional[PasteStore] = None,
    clock: Optional[Clock] = None,
    config: Settings = settings,
) -> FastAPI:
    """
    Build the FastAPI application.

    When no store is given, one is connected on startup from the config.
    """
    app = FastAPI(
        title="pastestore",
        description="Pastes with expiry and view limits, consumed atomically",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.service = PasteService(store, clock=clock, config=config) if store is not None else None

    @app.middleware("http")
    async def limit_body_size(request: Request, call_next):
        """Reject request bodies over MAX_BODY_BYTES before they are read."""
        if request.method in ("POST", "PUT", "PATCH"):
            length = request.headers.get("content-length")
            if length is not None and (not length.isdigit() or int(length) > config.MAX_BODY_BYTES):
                return JSONResponse(status_code=413, content={"detail": "Request body too large"})
        return await call_next(request)

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response

    app.include_router(health.router)
    app.include_router(pastes.router)

    @app.get("/", response_class=FileResponse, include_in_schema=False)
    async def root():
        """Serve the create paste HTML page."""
        return FileResponse(TEMPLATES_DIR / "create.html", media_type="text/html")

    return app


configure_logging()
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "pastestore.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )
