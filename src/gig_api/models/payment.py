"""Payment model (escrow releases and direct payments between users)."""

import uuid
from decimal import Decimal

from sqlalchemy import ForeignKey, Numeric, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from gig_api.models.base import Base, TimestampMixin, UUIDMixin

PAYMENT_COMPLETED = "completed"


class Payment(Base, UUIDMixin, TimestampMixin):
    """A payment made by ``payer_id``. Read by the payment velocity and amount rules."""

    __tablename__ = "payments"

    payer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    payee_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending", index=True)
