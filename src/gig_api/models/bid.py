"""Bid model."""

import uuid
from decimal import Decimal

from sqlalchemy import ForeignKey, Numeric
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from gig_api.models.base import Base, TimestampMixin, UUIDMixin


class Bid(Base, UUIDMixin, TimestampMixin):
    """A freelancer's bid on a project."""

    __tablename__ = "bids"

    bidder_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    project_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("projects.id", ondelete="CASCADE"), nullable=True, index=True
    )
    bid_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
