"""Tests for marketplace operations and audited profile updates."""

import uuid
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gig_api.models import AuditLogEntry, User
from gig_api.services import marketplace_service
from gig_api.services.audit_service import AuditLogWriteError


class TestPaymentsBidsMessages:
    @pytest.mark.asyncio
    async def test_create_payment(self, async_session: AsyncSession, employer: User, freelancer: User) -> None:
        payment = await marketplace_service.create_payment(
            async_session, payer=employer, amount=Decimal("75.00"), payee_id=freelancer.id, status="completed"
        )
        assert payment.payer_id == employer.id
        assert payment.status == "completed"

    @pytest.mark.asyncio
    async def test_cannot_pay_self_or_unknown(self, async_session: AsyncSession, employer: User) -> None:
        with pytest.raises(ValueError, match="yourself"):
            await marketplace_service.create_payment(
                async_session, payer=employer, amount=Decimal("1"), payee_id=employer.id
            )
        with pytest.raises(ValueError, match="not found"):
            await marketplace_service.create_payment(
                async_session, payer=employer, amount=Decimal("1"), payee_id=uuid.uuid4()
            )

    @pytest.mark.asyncio
    async def test_bid_rules(self, async_session: AsyncSession, employer: User, freelancer: User) -> None:
        project = await marketplace_service.create_project(async_session, employer=employer, title="Website")
        bid = await marketplace_service.create_bid(
            async_session, bidder=freelancer, project_id=project.id, bid_amount=Decimal("300")
        )
        assert bid.project_id == project.id

        with pytest.raises(ValueError, match="own project"):
            await marketplace_service.create_bid(
                async_session, bidder=employer, project_id=project.id, bid_amount=Decimal("1")
            )
        with pytest.raises(ValueError, match="not found"):
            await marketplace_service.create_bid(
                async_session, bidder=freelancer, project_id=uuid.uuid4(), bid_amount=Decimal("1")
            )

    @pytest.mark.asyncio
    async def test_send_message(self, async_session: AsyncSession, employer: User, freelancer: User) -> None:
        message = await marketplace_service.send_message(
            async_session, sender=employer, receiver_id=freelancer.id, body="Interested?"
        )
        assert message.receiver_id == freelancer.id
        with pytest.raises(ValueError, match="yourself"):
            await marketplace_service.send_message(
                async_session, sender=employer, receiver_id=employer.id, body="hi"
            )


class TestUpdateProfile:
    @pytest.mark.asyncio
    async def test_change_is_audited(self, async_session: AsyncSession, freelancer: User) -> None:
        user = await marketplace_service.update_profile(
            async_session,
            freelancer,
            {"email": "fresh@example.com"},
            ip_address="192.0.2.1",
            user_agent="Mozilla/5.0",
        )
        assert user.email == "fresh@example.com"

        entry = (await async_session.execute(select(AuditLogEntry))).scalar_one()
        assert entry.table_name == "users"
        assert entry.action == "UPDATE"
        assert entry.record_id == str(freelancer.id)
        assert entry.user_type == "user"
        assert entry.changes == {"email": {"old": "freelancer@example.com", "new": "fresh@example.com"}}
        assert entry.ip_address == "192.0.2.1"
        assert entry.user_agent["raw"] == "Mozilla/5.0"

    @pytest.mark.asyncio
    async def test_no_op_update_writes_nothing(self, async_session: AsyncSession, freelancer: User) -> None:
        await marketplace_service.update_profile(async_session, freelancer, {"email": freelancer.email, "bio": "x"})
        assert (await async_session.execute(select(AuditLogEntry))).first() is None

    @pytest.mark.asyncio
    async def test_duplicate_email(self, async_session: AsyncSession, freelancer: User, employer: User) -> None:
        with pytest.raises(ValueError, match="Email already in use"):
            await marketplace_service.update_profile(async_session, freelancer, {"email": employer.email})

    @pytest.mark.asyncio
    async def test_audit_failure_rolls_back_change(self, async_session: AsyncSession, freelancer: User) -> None:
        user_id = freelancer.id
        with (
            patch(
                "gig_api.services.marketplace_service.audit_service.log_state_change",
                new=AsyncMock(side_effect=AuditLogWriteError("down")),
            ),
            pytest.raises(AuditLogWriteError),
        ):
            await marketplace_service.update_profile(async_session, freelancer, {"username": "renamed"})

        await async_session.rollback()
        stored = (
            await async_session.execute(select(User.username).where(User.id == user_id))
        ).scalar_one()
        assert stored == "freelancer"
