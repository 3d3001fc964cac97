"""Authentication and user Pydantic v2 schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from gig_api.schemas.common import PaginationMeta

ROLE_PATTERN = "^(admin|employer|freelancer)$"


class TokenResponse(BaseModel):
    """JWT token pair response."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int = Field(description="Access token expiration in seconds")


class UserCreateRequest(BaseModel):
    """Request to create a new account."""

    username: str = Field(min_length=3, max_length=100)
    email: EmailStr
    password: str = Field(min_length=8)
    role: str = Field(pattern=ROLE_PATTERN)
    id_verified: bool = False


class UserResponse(BaseModel):
    """Account information response."""

    id: UUID
    username: str
    email: str
    role: str
    is_active: bool
    id_verified: bool
    created_at: datetime
    last_login_at: datetime | None = None

    model_config = {"from_attributes": True}


class PaginatedUserResponse(BaseModel):
    items: list[UserResponse]
    pagination: PaginationMeta
