from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.routes import discover, health, listening, playlists, tracks, videos
from .core.config import get_settings
from .core.logging import setup_logging
from .db.session import init_db
from .services.errors import SoundwaveError

logger = logging.getLogger("soundwave.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    yield


async def soundwave_error_handler(request: Request, exc: SoundwaveError) -> JSONResponse:
    fields = {"status": exc.status_code, "error": exc.message, "path": request.url.path}
    if exc.status_code >= 500:
        logger.error("request failed", extra=fields)
    else:
        logger.warning("request rejected", extra=fields)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings.log_level, sql_echo=settings.sql_echo)
    app = FastAPI(
        title="SoundWave Backend",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allow_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        allow_credentials=True,
    )
    app.add_exception_handler(SoundwaveError, soundwave_error_handler)
    app.include_router(health.router)
    app.include_router(discover.router)
    app.include_router(listening.router)
    app.include_router(tracks.router)
    app.include_router(tracks.admin)
    app.include_router(videos.router)
    app.include_router(videos.admin)
    app.include_router(playlists.router)
    app.include_router(playlists.admin)
    return app


app = create_app()
