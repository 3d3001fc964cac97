"""Thin marketplace operations: payments, bids, projects, messages and profiles.

These exist so the fraud signal queries have real rows to read and the
interceptor has real handlers to guard.  Profile updates are state changes
and are committed together with their audit log entry.
"""

import uuid
from decimal import Decimal
from typing import Any

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gig_api.models.bid import Bid
from gig_api.models.message import Message
from gig_api.models.payment import Payment
from gig_api.models.project import Project
from gig_api.models.user import User
from gig_api.services import audit_service

_PROFILE_FIELDS: frozenset[str] = frozenset({"email", "username"})


async def create_payment(
    session: AsyncSession,
    *,
    payer: User,
    amount: Decimal,
    payee_id: uuid.UUID | None = None,
    status: str = "pending",
) -> Payment:
    """Record a payment made by ``payer``.

    Raises:
        ValueError: If the payee does not exist or is the payer.
    """
    if payee_id is not None:
        if payee_id == payer.id:
            msg = "Cannot pay yourself"
            raise ValueError(msg)
        if await session.get(User, payee_id) is None:
            msg = f"Payee {payee_id} not found"
            raise ValueError(msg)
    payment = Payment(payer_id=payer.id, payee_id=payee_id, amount=amount, status=status)
    session.add(payment)
    await session.commit()
    await session.refresh(payment)
    logger.info(f"Payment {payment.id} of {amount} by user {payer.id}")
    return payment


async def create_bid(session: AsyncSession, *, bidder: User, project_id: uuid.UUID, bid_amount: Decimal) -> Bid:
    """Place a bid on a project.

    Raises:
        ValueError: If the project does not exist or belongs to the bidder.
    """
    project = await session.get(Project, project_id)
    if project is None:
        msg = f"Project {project_id} not found"
        raise ValueError(msg)
    if project.employer_id == bidder.id:
        msg = "Cannot bid on your own project"
        raise ValueError(msg)
    bid = Bid(bidder_id=bidder.id, project_id=project_id, bid_amount=bid_amount)
    session.add(bid)
    await session.commit()
    await session.refresh(bid)
    return bid


async def create_project(
    session: AsyncSession,
    *,
    employer: User,
    title: str,
    description: str | None = None,
    budget: Decimal | None = None,
) -> Project:
    project = Project(employer_id=employer.id, title=title, description=description, budget=budget)
    session.add(project)
    await session.commit()
    await session.refresh(project)
    return project


async def send_message(session: AsyncSession, *, sender: User, receiver_id: uuid.UUID, body: str) -> Message:
    """Send a direct message.

    Raises:
        ValueError: If the receiver does not exist or is the sender.
    """
    if receiver_id == sender.id:
        msg = "Cannot message yourself"
        raise ValueError(msg)
    if await session.get(User, receiver_id) is None:
        msg = f"User {receiver_id} not found"
        raise ValueError(msg)
    message = Message(sender_id=sender.id, receiver_id=receiver_id, body=body)
    session.add(message)
    await session.commit()
    await session.refresh(message)
    return message


async def update_profile(
    session: AsyncSession,
    user: User,
    updates: dict[str, Any],
    *,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> User:
    """Apply a profile update and record it as an UPDATE on ``users``.

    Args:
        session: The database session.
        user: The account being updated.
        updates: Field names to new values; unknown fields are ignored.
        ip_address: The caller's IP address.
        user_agent: The caller's User-Agent header.

    Returns:
        The updated User.

    Raises:
        ValueError: If the new email or username is already taken.
        AuditLogWriteError: If the change could not be recorded (the change
            is rolled back with it).
    """
    changes = {k: v for k, v in updates.items() if k in _PROFILE_FIELDS and v is not None and getattr(user, k) != v}
    if not changes:
        return user

    for field, value in changes.items():
        column = getattr(User, field)
        taken = await session.execute(select(User.id).where(column == value, User.id != user.id))
        if taken.first() is not None:
            msg = f"{field.capitalize()} already in use"
            raise ValueError(msg)

    old_values = {field: getattr(user, field) for field in changes}
    for field, value in changes.items():
        setattr(user, field, value)

    await audit_service.log_state_change(
        session,
        table_name="users",
        action="UPDATE",
        record_id=user.id,
        user_id=user.id,
        user_type="admin" if user.is_admin else "user",
        old_values=old_values,
        new_values=changes,
        ip_address=ip_address,
        user_agent=audit_service.user_agent_map(user_agent),
    )
    await session.refresh(user)
    logger.info(f"User {user.id} updated profile fields: {', '.join(sorted(changes))}")
    return user
