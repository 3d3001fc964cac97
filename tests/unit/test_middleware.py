"""Tests for client IP extraction, caller detection and flash redirects."""

from urllib.parse import unquote

from fastapi import FastAPI
from fastapi.testclient import TestClient
from starlette.requests import Request
from starlette.responses import Response

from gig_api.api.middleware import get_client_ip, redirect_back, set_flash, setup_cors, wants_json
from gig_api.core.config import Settings


def _request(path: str = "/", headers: dict[str, str] | None = None, client: tuple[str, int] | None = None) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": path,
        "query_string": b"",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


class TestGetClientIp:
    def test_cloudflare_header_wins(self) -> None:
        request = _request(headers={"CF-Connecting-IP": "1.1.1.1", "X-Forwarded-For": "2.2.2.2"})
        assert get_client_ip(request) == "1.1.1.1"

    def test_forwarded_for_uses_leftmost(self) -> None:
        request = _request(headers={"X-Forwarded-For": "203.0.113.5, 10.0.0.1, 10.0.0.2"})
        assert get_client_ip(request) == "203.0.113.5"

    def test_falls_back_to_peer(self) -> None:
        assert get_client_ip(_request(client=("192.0.2.44", 5000))) == "192.0.2.44"

    def test_unknown_without_peer(self) -> None:
        assert get_client_ip(_request()) == "unknown"

    def test_empty_trusted_list_ignores_headers(self) -> None:
        request = _request(headers={"X-Real-IP": "9.9.9.9"}, client=("192.0.2.1", 1))
        assert get_client_ip(request, []) == "192.0.2.1"


class TestWantsJson:
    def test_api_prefix(self) -> None:
        assert wants_json(_request("/api/v1/payments"), "/api/v1") is True

    def test_accept_header(self) -> None:
        assert wants_json(_request("/payments", {"Accept": "application/json"}), "/api/v1") is True

    def test_xhr(self) -> None:
        assert wants_json(_request("/payments", {"X-Requested-With": "XMLHttpRequest"}), "/api/v1") is True

    def test_page_request(self) -> None:
        assert wants_json(_request("/payments", {"Accept": "text/html"}), "/api/v1") is False


class TestFlash:
    def test_redirect_back_to_referer(self) -> None:
        response = redirect_back(_request(headers={"Referer": "/bids/new"}), "flash_warning", "Careful now")
        assert response.status_code == 303
        assert response.headers["location"] == "/bids/new"
        cookie = response.headers["set-cookie"]
        assert cookie.startswith("flash_warning=")
        assert "Careful now" in unquote(cookie.strip('"'))

    def test_redirect_defaults_to_root(self) -> None:
        assert redirect_back(_request(), "flash_fraud_alert", "x").headers["location"] == "/"

    def test_set_flash_is_short_lived(self) -> None:
        response = set_flash(Response(), "flash_warning", "hi")
        assert "Max-Age=60" in response.headers["set-cookie"]
        assert "HttpOnly" in response.headers["set-cookie"]


class TestCors:
    def test_exposes_fraud_warning_header(self) -> None:
        app = FastAPI()

        @app.get("/ping")
        async def ping() -> dict:
            return {"ok": True}

        settings = Settings(
            database_url="sqlite+aiosqlite:///:memory:",
            jwt_secret_key="x" * 32,
            cors_origins="https://app.example.com",
        )
        setup_cors(app, settings)
        response = TestClient(app).get("/ping", headers={"Origin": "https://app.example.com"})
        assert response.headers["access-control-allow-origin"] == "https://app.example.com"
        assert "X-Fraud-Warning" in response.headers["access-control-expose-headers"]
