"""FastAPI application entrypoint.

``create_app`` wires settings, logging, the Spotify session and the routes
together. The session is built here and stored on ``app.state`` so tests can
inject their own HTTP transport and clock.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from contextlib import asynccontextmanager
from pathlib import Path

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from . import __version__
from .api.spotify import router as spotify_router
from .errors import register_error_handlers
from .integrations.spotify.client import SpotifyClient
from .integrations.spotify.oauth import SpotifyOAuth
from .integrations.spotify.session import SpotifySession
from .logging_config import configure_logging
from .middleware import RequestIDMiddleware
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)

_BUNDLED_STATIC = Path(__file__).parent / "static"


def build_async_httpx_client(timeout: float, **kwargs) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=httpx.Timeout(timeout), **kwargs)


def create_app(
    settings: Settings | None = None,
    *,
    http_client: httpx.AsyncClient | None = None,
    clock: Callable[[], float] = time.time,
) -> FastAPI:
    settings = settings or get_settings()
    owns_client = http_client is None
    http = http_client or build_async_httpx_client(settings.HTTP_CLIENT_TIMEOUT)

    oauth = SpotifyOAuth(
        client_id=settings.SPOTIFY_CLIENT_ID,
        client_secret=settings.SPOTIFY_CLIENT_SECRET,
        redirect_uri=settings.SPOTIFY_REDIRECT_URI,
        http=http,
    )
    session = SpotifySession(oauth, clock=clock)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if owns_client:
            await http.aclose()

    app = FastAPI(title="VibeCanvas", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.spotify = session
    app.state.spotify_client = SpotifyClient(session, http)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app)

    app.include_router(spotify_router)

    static_dir = Path(settings.STATIC_DIR) if settings.STATIC_DIR else _BUNDLED_STATIC
    if static_dir.is_dir():
        # Mounted last so API routes take precedence over files
        app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")
    else:
        logger.warning("Static directory %s not found; page not served", static_dir)

    return app


def run() -> None:
    """Console entry point: configure logging and serve with uvicorn."""
    import uvicorn

    settings = get_settings()
    configure_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)
    app = create_app(settings)
    logger.info("🎵 VibeCanvas server running on http://localhost:%s", settings.PORT)
    logger.info("🔐 Visit http://localhost:%s/login to authenticate with Spotify", settings.PORT)
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_config=None)
