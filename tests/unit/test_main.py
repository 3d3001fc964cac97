"""Tests for the FastAPI application factory."""

import pytest
from fastapi import Request
from fastapi.routing import APIRoute
from fastapi.testclient import TestClient

from gig_api.api.fraud_middleware import FraudDetectionMiddleware, route_name_for
from gig_api.main import create_app

TEST_ENV = {
    "DATABASE_URL": "sqlite+aiosqlite:///:memory:",
    "JWT_SECRET_KEY": "test-secret-key-not-for-production-use",
}


def _api_routes(routes):
    for route in routes:
        if isinstance(route, APIRoute):
            yield route
        else:
            yield from _api_routes(getattr(route, "routes", []))


@pytest.fixture
def app(monkeypatch: pytest.MonkeyPatch):
    for key, value in TEST_ENV.items():
        monkeypatch.setenv(key, value)
    return create_app()


class TestCreateApp:
    def test_metadata(self, app) -> None:
        assert app.title == "Gig API"

    def test_routes_carry_names_used_for_classification(self, app) -> None:
        names = {route.name for route in _api_routes(app.routes)}
        for expected in (
            "payments.store",
            "bids.store",
            "projects.store",
            "messages.store",
            "profile.update",
            "auth.login",
            "health",
            "fraud.alerts.index",
            "fraud.audit.verify_chain",
        ):
            assert expected in names

    def test_routes_are_versioned(self, app) -> None:
        assert app.url_path_for("payments.store") == "/api/v1/payments"
        assert app.url_path_for("fraud.audit.verify_chain") == "/api/v1/fraud/audit-logs/verify-chain"

    def test_interceptor_resolves_route_names(self, app) -> None:
        scope = {"type": "http", "app": app, "method": "POST", "path": "/api/v1/payments", "headers": []}
        assert route_name_for(Request(scope)) == "payments.store"

    def test_fraud_middleware_registered(self, app) -> None:
        assert any(m.cls is FraudDetectionMiddleware for m in app.user_middleware)


class TestHealth:
    def test_health_endpoint(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for key, value in TEST_ENV.items():
            monkeypatch.setenv(key, value)
        monkeypatch.setenv("FRAUD_DETECTION_ENABLED", "false")
        monkeypatch.setenv("ENVIRONMENT", "test")

        response = TestClient(create_app()).get("/api/v1/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["environment"] == "test"
