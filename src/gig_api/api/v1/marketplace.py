"""Marketplace API endpoints guarded by the fraud interceptor.

POST /payments, POST /bids, POST /projects, POST /messages, PATCH /profile.

Route names carry the keywords the interceptor classifies requests by
(``payment``, ``bid``, ``project``, ``message``, ``profile``).
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from gig_api.core.dependencies import client_ip, get_async_session, get_current_user
from gig_api.models.user import User
from gig_api.schemas.auth import UserResponse
from gig_api.schemas.marketplace import (
    BidCreateRequest,
    BidResponse,
    MessageCreateRequest,
    MessageResponse,
    PaymentCreateRequest,
    PaymentResponse,
    ProfileUpdateRequest,
    ProjectCreateRequest,
    ProjectResponse,
)
from gig_api.services import marketplace_service
from gig_api.services.audit_service import AuditLogWriteError

marketplace_router = APIRouter(tags=["marketplace"])


@marketplace_router.post("/payments", status_code=status.HTTP_201_CREATED, name="payments.store")
async def create_payment(
    body: PaymentCreateRequest,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> PaymentResponse:
    """Record a payment from the current user."""
    try:
        payment = await marketplace_service.create_payment(
            session, payer=current_user, amount=body.amount, payee_id=body.payee_id, status=body.status
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    return PaymentResponse.model_validate(payment)


@marketplace_router.post("/bids", status_code=status.HTTP_201_CREATED, name="bids.store")
async def create_bid(
    body: BidCreateRequest,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> BidResponse:
    """Place a bid on a project."""
    try:
        bid = await marketplace_service.create_bid(
            session, bidder=current_user, project_id=body.project_id, bid_amount=body.bid_amount
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    return BidResponse.model_validate(bid)


@marketplace_router.post("/projects", status_code=status.HTTP_201_CREATED, name="projects.store")
async def create_project(
    body: ProjectCreateRequest,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> ProjectResponse:
    """Post a new project."""
    project = await marketplace_service.create_project(
        session, employer=current_user, title=body.title, description=body.description, budget=body.budget
    )
    return ProjectResponse.model_validate(project)


@marketplace_router.post("/messages", status_code=status.HTTP_201_CREATED, name="messages.store")
async def send_message(
    body: MessageCreateRequest,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> MessageResponse:
    """Send a direct message to another user."""
    try:
        message = await marketplace_service.send_message(
            session, sender=current_user, receiver_id=body.receiver_id, body=body.body
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    return MessageResponse.model_validate(message)


@marketplace_router.patch("/profile", name="profile.update")
async def update_profile(
    body: ProfileUpdateRequest,
    request: Request,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> UserResponse:
    """Update the current user's profile."""
    try:
        user = await marketplace_service.update_profile(
            session,
            current_user,
            body.model_dump(exclude_unset=True),
            ip_address=client_ip(request),
            user_agent=request.headers.get("user-agent"),
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    except AuditLogWriteError as e:
        logger.error(f"Profile update for user {current_user.id} rolled back: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Profile update could not be recorded. Please retry.",
        ) from e
    return UserResponse.model_validate(user)
