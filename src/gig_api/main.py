"""ASGI entry point: ``uvicorn gig_api.main:create_app --factory``."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from gig_api import __version__
from gig_api.api.router import create_router, setup_middleware
from gig_api.core.config import get_settings
from gig_api.core.database import dispose_engine, init_engine
from gig_api.core.logging import setup_logging


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None]:
    """Open the engine for the life of the process."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_dir)
    init_engine(settings.database_url, schema=settings.database_schema)
    try:
        yield
    finally:
        await dispose_engine()


async def _bad_value(_request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


def create_app() -> FastAPI:
    """Build the application: routers, fraud interceptor, CORS and error handlers."""
    settings = get_settings()
    app = FastAPI(
        title="Gig API",
        description="Gig marketplace back end with fraud detection and a hash-chained audit log",
        version=__version__,
        lifespan=lifespan,
    )
    app.add_exception_handler(ValueError, _bad_value)
    setup_middleware(app, settings)
    app.include_router(create_router(settings))
    return app
