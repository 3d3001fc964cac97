"""CORS setup and HTTP helpers shared by the middleware stack.

Includes client IP extraction behind proxies, JSON-versus-page caller
detection, and redirect-back responses carrying flash cookies.
"""

from typing import Any
from urllib.parse import quote

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import RedirectResponse, Response

from gig_api.core.config import Settings

_DEFAULT_TRUSTED_HEADERS = ["CF-Connecting-IP", "X-Forwarded-For", "X-Real-IP"]

FLASH_FRAUD_ALERT = "flash_fraud_alert"
FLASH_WARNING = "flash_warning"
FLASH_MAX_AGE = 60
FRAUD_WARNING_HEADER = "X-Fraud-Warning"


def get_client_ip(request: Request, trusted_headers: list[str] | None = None) -> str:
    """Best guess at the caller's address.

    The first non-empty trusted header wins; for X-Forwarded-For that is its
    leftmost hop.  Without one, the socket peer is used, and "unknown" when
    there is none (e.g. in-process test transports).
    """
    for header in _DEFAULT_TRUSTED_HEADERS if trusted_headers is None else trusted_headers:
        value = request.headers.get(header, "").strip()
        if not value:
            continue
        # "client, proxy1, proxy2"
        if header.lower() == "x-forwarded-for":
            return value.split(",")[0].strip()
        return value

    if request.client:
        return request.client.host
    return "unknown"


def wants_json(request: Request, api_prefix: str = "/api/") -> bool:
    """Whether the caller expects a JSON body rather than a page redirect."""
    if api_prefix and request.url.path.startswith(api_prefix):
        return True
    if "application/json" in request.headers.get("accept", "").lower():
        return True
    return request.headers.get("x-requested-with", "").lower() == "xmlhttprequest"


def set_flash(response: Response, key: str, message: str) -> Response:
    """Attach a one-shot flash message cookie to ``response``."""
    response.set_cookie(key, quote(message), max_age=FLASH_MAX_AGE, httponly=True, samesite="lax")
    return response


def redirect_back(request: Request, flash_key: str, message: str) -> RedirectResponse:
    """303 redirect to the Referer (or ``/``) carrying a flash cookie."""
    response = RedirectResponse(url=request.headers.get("referer") or "/", status_code=303)
    set_flash(response, flash_key, message)
    return response


def setup_cors(app: FastAPI, settings: Settings) -> None:
    """Install CORS; the fraud warning header is exposed so browser clients can read it."""
    origins: dict[str, Any] = {"allow_origins": settings.cors_origin_list} if settings.cors_origin_list else {}
    app.add_middleware(
        CORSMiddleware,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[FRAUD_WARNING_HEADER],
        **origins,
    )
