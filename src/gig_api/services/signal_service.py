"""SQL-backed signal source for the fraud rules.

Implements :class:`gig_api.lib.risk.SignalSource` over the marketplace tables,
the audit log and the alert table.  Queries are read-only and may raise; the
collector treats any failure as an absent signal.
"""

import uuid
from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from gig_api.lib.risk import ActionClass
from gig_api.models.audit_log import AuditLogEntry
from gig_api.models.bid import Bid
from gig_api.models.fraud_alert import FraudAlert
from gig_api.models.message import Message
from gig_api.models.payment import PAYMENT_COMPLETED, Payment
from gig_api.models.project import Project

# (actor column, created_at column) per action class with its own table.
_ACTIVITY_COLUMNS: dict[ActionClass, tuple[InstrumentedAttribute, InstrumentedAttribute]] = {
    ActionClass.PAYMENT: (Payment.payer_id, Payment.created_at),
    ActionClass.BID: (Bid.bidder_id, Bid.created_at),
    ActionClass.PROJECT: (Project.employer_id, Project.created_at),
    ActionClass.MESSAGE: (Message.sender_id, Message.created_at),
}


def _to_decimal(value: object) -> Decimal | None:
    if value is None:
        return None
    return value if isinstance(value, Decimal) else Decimal(str(value))


class SqlSignalSource:
    """Signal queries bound to one async session."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def count_recent_actions(self, user_id: uuid.UUID, action_class: ActionClass, since: datetime) -> int:
        columns = _ACTIVITY_COLUMNS.get(action_class)
        if columns is None:
            return 0
        actor, created_at = columns
        query = select(func.count()).select_from(actor.class_).where(actor == user_id, created_at >= since)
        return (await self.session.execute(query)).scalar_one()

    async def average_amount(self, user_id: uuid.UUID, action_class: ActionClass) -> Decimal | None:
        """Historical average: completed payments, or all bids."""
        if action_class is ActionClass.PAYMENT:
            query = select(func.avg(Payment.amount)).where(
                Payment.payer_id == user_id, Payment.status == PAYMENT_COMPLETED
            )
        elif action_class is ActionClass.BID:
            query = select(func.avg(Bid.bid_amount)).where(Bid.bidder_id == user_id)
        else:
            return None
        return _to_decimal((await self.session.execute(query)).scalar_one())

    async def round_amount_stats(self, user_id: uuid.UUID, since: datetime) -> tuple[int, int]:
        """Return (whole-number completed payments, all completed payments) since ``since``."""
        is_round = case((Payment.amount == func.round(Payment.amount, 0), 1), else_=0)
        query = select(func.coalesce(func.sum(is_round), 0), func.count(Payment.id)).where(
            Payment.payer_id == user_id,
            Payment.status == PAYMENT_COMPLETED,
            Payment.created_at >= since,
        )
        round_count, total = (await self.session.execute(query)).one()
        return int(round_count), int(total)

    async def count_audit_entries(
        self, table_name: str, record_id: str, actions: Sequence[str], since: datetime
    ) -> int:
        query = select(func.count(AuditLogEntry.id)).where(
            AuditLogEntry.table_name == table_name,
            AuditLogEntry.record_id == record_id,
            AuditLogEntry.action.in_(list(actions)),
            AuditLogEntry.logged_at >= since,
        )
        return (await self.session.execute(query)).scalar_one()

    async def count_requests_from_ip(self, user_id: uuid.UUID, ip_address: str, since: datetime) -> int:
        query = select(func.count(AuditLogEntry.id)).where(
            AuditLogEntry.user_id == user_id,
            AuditLogEntry.ip_address == ip_address,
            AuditLogEntry.logged_at >= since,
        )
        return (await self.session.execute(query)).scalar_one()

    async def has_recent_alert(self, user_id: uuid.UUID, since: datetime, min_score: int) -> bool:
        query = (
            select(FraudAlert.id)
            .where(
                FraudAlert.user_id == user_id,
                FraudAlert.triggered_at >= since,
                FraudAlert.risk_score >= min_score,
            )
            .limit(1)
        )
        return (await self.session.execute(query)).first() is not None
