"""Explicit per-request context handed to signal collection and evaluation."""

import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

# Client-side behavioural telemetry, passed through unvalidated.
TELEMETRY_FIELDS: tuple[str, ...] = (
    "typing_data",
    "mouse_movements",
    "form_interaction_time",
    "click_patterns",
    "scroll_behavior",
    "page_focus_time",
    "tab_switches",
)


@dataclass(frozen=True)
class RequestContext:
    """Everything the fraud pipeline knows about one inbound request."""

    user_id: uuid.UUID
    role: str
    email: str
    is_admin: bool = False
    id_verified: bool = False
    route_name: str | None = None
    method: str = "GET"
    path: str = "/"
    fields: Mapping[str, Any] = field(default_factory=dict)
    ip_address: str | None = None
    user_agent: str | None = None
    session_id: str | None = None
    referer: str | None = None
    request_size: int = 0
    now: datetime = field(default_factory=lambda: datetime.now(UTC))

    def amount(self, *names: str) -> Decimal | None:
        """First of ``names`` present in the body that parses as a number."""
        for name in names:
            raw = self.fields.get(name)
            if raw is None or raw == "":
                continue
            try:
                value = Decimal(str(raw))
            except InvalidOperation:
                continue
            if value.is_finite():
                return value
        return None

    @property
    def telemetry(self) -> dict[str, Any]:
        return {name: self.fields[name] for name in TELEMETRY_FIELDS if self.fields.get(name) is not None}
