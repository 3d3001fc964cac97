"""Tests for RequestContext helpers."""

import uuid
from decimal import Decimal

from gig_api.lib.risk import RequestContext


def _ctx(fields: dict) -> RequestContext:
    return RequestContext(user_id=uuid.uuid4(), role="employer", email="e@example.com", fields=fields)


class TestAmount:
    def test_first_present_name_wins(self) -> None:
        assert _ctx({"bid_amount": "12.5", "amount": "99"}).amount("bid_amount", "amount") == Decimal("12.5")

    def test_falls_through_blank_and_invalid(self) -> None:
        assert _ctx({"bid_amount": "", "amount": 7}).amount("bid_amount", "amount") == Decimal("7")
        assert _ctx({"amount": "abc"}).amount("amount") is None

    def test_non_finite_is_rejected(self) -> None:
        assert _ctx({"amount": "NaN"}).amount("amount") is None
        assert _ctx({"amount": "Infinity"}).amount("amount") is None

    def test_missing(self) -> None:
        assert _ctx({}).amount("amount") is None


class TestTelemetry:
    def test_only_known_non_null_fields(self) -> None:
        ctx = _ctx({"mouse_movements": [], "scroll_behavior": None, "title": "x"})
        assert ctx.telemetry == {"mouse_movements": []}
