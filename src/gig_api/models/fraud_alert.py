"""FraudAlert model: an assessment that crossed an alert-worthy threshold."""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gig_api.models.base import Base, JSONType, TimestampMixin, UUIDMixin, utcnow

ALERT_STATUSES = ("active", "acknowledged", "resolved", "dismissed")
ALERT_TYPES = ("system_detected", "manual_flag")


class FraudAlert(Base, UUIDMixin, TimestampMixin):
    """Persisted fraud alert. Status changes only through admin actions."""

    __tablename__ = "fraud_detection_alerts"

    alert_id: Mapped[str] = mapped_column(String(40), unique=True, nullable=False, index=True)
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    fraud_case_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("fraud_detection_cases.id", ondelete="SET NULL"), nullable=True, index=True
    )
    alert_type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    alert_message: Mapped[str] = mapped_column(Text, nullable=False)
    alert_data: Mapped[dict] = mapped_column(JSONType, nullable=False)
    risk_score: Mapped[int] = mapped_column(Integer, nullable=False)
    severity: Mapped[str] = mapped_column(String(10), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active", index=True)
    amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    assigned_admin_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    triggered_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    acknowledged_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    resolution_notes: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    context_data: Mapped[dict | None] = mapped_column(JSONType, nullable=True)

    fraud_case: Mapped["FraudCase"] = relationship(  # noqa: F821
        "FraudCase", back_populates="alerts", foreign_keys=[fraud_case_id]
    )

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    @property
    def is_closed(self) -> bool:
        return self.status in ("resolved", "dismissed")
