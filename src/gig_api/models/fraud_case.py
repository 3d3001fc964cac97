"""FraudCase model: an investigation aggregating related alerts for one user."""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gig_api.models.base import Base, JSONType, TimestampMixin, UUIDMixin, utcnow
from gig_api.models.fraud_alert import FraudAlert

CASE_STATUSES = ("investigating", "confirmed", "resolved", "false_positive")
CLOSED_CASE_STATUSES = ("resolved", "false_positive")


class FraudCase(Base, UUIDMixin, TimestampMixin):
    """Investigation unit. ``financial_impact`` is the sum of linked alert amounts."""

    __tablename__ = "fraud_detection_cases"

    case_id: Mapped[str] = mapped_column(String(40), unique=True, nullable=False, index=True)
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    fraud_type: Mapped[str] = mapped_column(String(40), nullable=False, default="suspicious_behavior")
    description: Mapped[str] = mapped_column(Text, nullable=False)
    evidence_data: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    fraud_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    severity: Mapped[str] = mapped_column(String(10), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="investigating", index=True)
    financial_impact: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    recovered_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    assigned_admin_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    investigation_notes: Mapped[list | None] = mapped_column(JSONType, nullable=True)
    resolution_data: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    detected_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    alerts: Mapped[list[FraudAlert]] = relationship(
        back_populates="fraud_case",
        foreign_keys=[FraudAlert.fraud_case_id],
        order_by=FraudAlert.triggered_at.desc(),
    )

    @property
    def is_closed(self) -> bool:
        return self.status in CLOSED_CASE_STATUSES
