"""Assembles the versioned API and its middleware stack."""

from fastapi import APIRouter, FastAPI

from gig_api.api.fraud_middleware import FraudDetectionMiddleware
from gig_api.api.middleware import setup_cors
from gig_api.api.v1.auth import router as auth_router
from gig_api.api.v1.fraud import fraud_router
from gig_api.api.v1.marketplace import marketplace_router
from gig_api.core.config import Settings


def create_router(settings: Settings) -> APIRouter:
    """Every v1 router under ``settings.api_v1_prefix``."""
    api = APIRouter(prefix=settings.api_v1_prefix)
    for sub in (auth_router, marketplace_router, fraud_router):
        api.include_router(sub)
    return api


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Install the fraud interceptor, then CORS around it.

    Starlette runs the last-added middleware outermost, so rejections issued
    by the interceptor still pass through CORS.
    """
    app.add_middleware(FraudDetectionMiddleware, settings=settings)
    setup_cors(app, settings)
