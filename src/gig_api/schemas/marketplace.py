"""Pydantic v2 schemas for the marketplace endpoints guarded by the fraud interceptor.

Request bodies may also carry client behaviour telemetry (``typing_data``,
``mouse_movements`` and so on); those keys are read by the interceptor and
ignored here.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, EmailStr, Field


class PaymentCreateRequest(BaseModel):
    payee_id: uuid.UUID | None = None
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    status: str = Field(default="pending", pattern="^(pending|completed)$")


class PaymentResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: uuid.UUID
    payer_id: uuid.UUID
    payee_id: uuid.UUID | None = None
    amount: Decimal
    status: str
    created_at: datetime


class BidCreateRequest(BaseModel):
    project_id: uuid.UUID
    bid_amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)


class BidResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: uuid.UUID
    bidder_id: uuid.UUID
    project_id: uuid.UUID | None = None
    bid_amount: Decimal
    created_at: datetime


class ProjectCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=10000)
    budget: Decimal | None = Field(default=None, gt=0, max_digits=12, decimal_places=2)


class ProjectResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: uuid.UUID
    employer_id: uuid.UUID
    title: str
    description: str | None = None
    budget: Decimal | None = None
    created_at: datetime


class MessageCreateRequest(BaseModel):
    receiver_id: uuid.UUID
    body: str = Field(min_length=1, max_length=10000)


class MessageResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: uuid.UUID
    sender_id: uuid.UUID
    receiver_id: uuid.UUID
    body: str
    created_at: datetime


class ProfileUpdateRequest(BaseModel):
    """Partial profile update; omitted fields are left unchanged."""

    email: EmailStr | None = None
    username: str | None = Field(default=None, min_length=3, max_length=100)
