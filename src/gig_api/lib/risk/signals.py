"""Signal source capability and the per-request signal bundle."""

import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Protocol

from gig_api.lib.risk.action_class import ActionClass, AssessmentCategory

WINDOWS: dict[str, timedelta] = {
    "1m": timedelta(minutes=1),
    "5m": timedelta(minutes=5),
    "10m": timedelta(minutes=10),
    "1h": timedelta(hours=1),
    "2h": timedelta(hours=2),
    "24h": timedelta(hours=24),
}

# Audit-log table whose CREATE/UPDATE rows count as profile changes.
PROFILE_TABLE = "users"
PROFILE_CHANGE_ACTIONS: tuple[str, ...] = ("CREATE", "UPDATE")


class SignalSource(Protocol):
    """Read-only queries over recent activity. Implementations may raise; callers treat failures as absent."""

    async def count_recent_actions(self, user_id: uuid.UUID, action_class: ActionClass, since: datetime) -> int: ...

    async def average_amount(self, user_id: uuid.UUID, action_class: ActionClass) -> Decimal | None: ...

    async def round_amount_stats(self, user_id: uuid.UUID, since: datetime) -> tuple[int, int]: ...

    async def count_audit_entries(
        self, table_name: str, record_id: str, actions: Sequence[str], since: datetime
    ) -> int: ...

    async def count_requests_from_ip(self, user_id: uuid.UUID, ip_address: str, since: datetime) -> int: ...

    async def has_recent_alert(self, user_id: uuid.UUID, since: datetime, min_score: int) -> bool: ...


@dataclass(frozen=True)
class SignalBundle:
    """Signals gathered for one request, input to the pure rule evaluators."""

    action_class: ActionClass
    category: AssessmentCategory
    amount: Decimal | None = None
    counts: dict[str, int] = field(default_factory=dict)
    average_amount: Decimal | None = None
    round_payments: int = 0
    completed_payments: int = 0
    profile_changes: int = 0
    email_changed: bool = False
    id_verified: bool = False
    recent_high_risk_alert: bool = False
    telemetry: dict[str, Any] = field(default_factory=dict)
    failed_signals: tuple[str, ...] = ()

    def count(self, window: str) -> int:
        return self.counts.get(window, 0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "action_class": self.action_class.value,
            "amount": str(self.amount) if self.amount is not None else None,
            "counts": dict(self.counts),
            "average_amount": str(self.average_amount) if self.average_amount is not None else None,
            "round_payments": self.round_payments,
            "completed_payments": self.completed_payments,
            "profile_changes": self.profile_changes,
            "email_changed": self.email_changed,
            "recent_high_risk_alert": self.recent_high_risk_alert,
            "telemetry": self.telemetry,
            "failed_signals": list(self.failed_signals),
        }
