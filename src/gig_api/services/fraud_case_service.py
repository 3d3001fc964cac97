"""Fraud case service -- investigations built from fraud alerts.

A case belongs to one user and aggregates that user's alerts.  Its
``fraud_score`` is the highest linked alert score and ``financial_impact``
is the sum of linked alert amounts; both are recomputed whenever alerts are
linked.
"""

import uuid
from datetime import timedelta
from decimal import Decimal
from typing import Any

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from gig_api.lib.audit_chain import format_timestamp, generate_reference
from gig_api.lib.risk import Severity, severity_for_score
from gig_api.models.base import utcnow
from gig_api.models.fraud_alert import FraudAlert
from gig_api.models.fraud_case import CASE_STATUSES, FraudCase
from gig_api.models.user import User
from gig_api.services import audit_service

CASE_TABLE = "fraud_detection_cases"


def _snapshot(case: FraudCase) -> dict[str, Any]:
    return {
        "status": case.status,
        "severity": case.severity,
        "fraud_score": case.fraud_score,
        "financial_impact": case.financial_impact,
        "recovered_amount": case.recovered_amount,
        "assigned_admin_id": case.assigned_admin_id,
        "resolved_at": case.resolved_at,
    }


def _note(admin: User, text: str) -> dict[str, str]:
    return {"note": text, "admin_id": str(admin.id), "added_at": format_timestamp(utcnow())}


async def _load_alerts(session: AsyncSession, alert_ids: list[str]) -> list[FraudAlert]:
    """Load alerts by identifier, rejecting unknown or already-linked ones."""
    if not alert_ids:
        msg = "At least one alert is required"
        raise ValueError(msg)
    result = await session.execute(select(FraudAlert).where(FraudAlert.alert_id.in_(alert_ids)))
    alerts = list(result.scalars().all())
    missing = sorted(set(alert_ids) - {a.alert_id for a in alerts})
    if missing:
        msg = f"Alerts not found: {', '.join(missing)}"
        raise ValueError(msg)
    linked = [a.alert_id for a in alerts if a.fraud_case_id is not None]
    if linked:
        msg = f"Alerts already linked to a case: {', '.join(linked)}"
        raise ValueError(msg)
    return alerts


async def _recompute_totals(session: AsyncSession, case: FraudCase) -> None:
    result = await session.execute(
        select(func.coalesce(func.sum(FraudAlert.amount), 0), func.coalesce(func.max(FraudAlert.risk_score), 0)).where(
            FraudAlert.fraud_case_id == case.id
        )
    )
    impact, score = result.one()
    case.financial_impact = Decimal(str(impact))
    case.fraud_score = int(score)
    case.severity = severity_for_score(case.fraud_score).value


async def get_case(session: AsyncSession, case_id: str) -> FraudCase | None:
    """Get a case by its ``FDC-...`` identifier, with its alerts loaded."""
    result = await session.execute(
        select(FraudCase)
        .where(FraudCase.case_id == case_id)
        .options(selectinload(FraudCase.alerts))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def list_cases(
    session: AsyncSession,
    *,
    status: str | None = None,
    severity: str | None = None,
    user_id: uuid.UUID | None = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[FraudCase], int]:
    """List cases with optional filters, most recently detected first.

    Args:
        session: The database session.
        status: Filter by case status.
        severity: Filter by severity band.
        user_id: Filter by subject user.
        page: Page number (1-based).
        page_size: Items per page.

    Returns:
        Tuple of (cases, total count).
    """
    filters = []
    if status is not None:
        filters.append(FraudCase.status == status)
    if severity is not None:
        filters.append(FraudCase.severity == severity)
    if user_id is not None:
        filters.append(FraudCase.user_id == user_id)

    total = (await session.execute(select(func.count(FraudCase.id)).where(*filters))).scalar_one()

    offset = (page - 1) * page_size
    result = await session.execute(
        select(FraudCase)
        .where(*filters)
        .options(selectinload(FraudCase.alerts))
        .order_by(FraudCase.detected_at.desc())
        .offset(offset)
        .limit(page_size)
    )
    return list(result.scalars().all()), total


async def open_case(
    session: AsyncSession,
    *,
    admin: User,
    alert_ids: list[str],
    description: str,
    fraud_type: str = "suspicious_behavior",
    ip_address: str | None = None,
) -> FraudCase:
    """Open an investigation from one or more alerts of the same user.

    Args:
        session: The database session.
        admin: The acting administrator.
        alert_ids: ``ALT-...`` identifiers to link.
        description: What is being investigated.
        fraud_type: Free-form classification.
        ip_address: The admin's IP address.

    Returns:
        The created FraudCase with its alerts loaded.

    Raises:
        ValueError: If an alert is unknown, already linked, or the alerts
            belong to different users.
        AuditLogWriteError: If the audit entry could not be written.
    """
    alerts = await _load_alerts(session, alert_ids)
    user_ids = {a.user_id for a in alerts}
    if len(user_ids) > 1:
        msg = "All alerts in a case must belong to the same user"
        raise ValueError(msg)

    now = utcnow()
    case = FraudCase(
        case_id=generate_reference("FDC", now),
        user_id=user_ids.pop(),
        fraud_type=fraud_type,
        description=description,
        evidence_data={"alert_ids": sorted(a.alert_id for a in alerts)},
        fraud_score=0,
        severity=Severity.LOW.value,
        status="investigating",
        financial_impact=Decimal("0"),
        recovered_amount=Decimal("0"),
        assigned_admin_id=admin.id,
        investigation_notes=[],
        detected_at=now,
    )
    session.add(case)
    await session.flush()
    for alert in alerts:
        alert.fraud_case_id = case.id
    await session.flush()
    await _recompute_totals(session, case)

    await audit_service.log_state_change(
        session,
        table_name=CASE_TABLE,
        action="CREATE",
        record_id=case.case_id,
        user_id=admin.id,
        user_type="admin",
        new_values={**_snapshot(case), "alert_ids": sorted(alert_ids)},
        ip_address=ip_address,
    )
    logger.info(f"Admin {admin.username} opened case {case.case_id} with {len(alerts)} alerts")
    return await get_case(session, case.case_id)  # type: ignore[return-value]


async def link_alerts(
    session: AsyncSession,
    case: FraudCase,
    *,
    admin: User,
    alert_ids: list[str],
    ip_address: str | None = None,
) -> FraudCase:
    """Link further alerts of the case's user and recompute the totals.

    Raises:
        ValueError: If an alert is unknown, already linked, or belongs to
            another user.
    """
    alerts = await _load_alerts(session, alert_ids)
    foreign = [a.alert_id for a in alerts if a.user_id != case.user_id]
    if foreign:
        msg = f"Alerts belong to a different user: {', '.join(foreign)}"
        raise ValueError(msg)

    before = _snapshot(case)
    for alert in alerts:
        alert.fraud_case_id = case.id
    await session.flush()
    await _recompute_totals(session, case)
    evidence = dict(case.evidence_data or {})
    evidence["alert_ids"] = sorted({*evidence.get("alert_ids", []), *alert_ids})
    case.evidence_data = evidence

    await audit_service.log_state_change(
        session,
        table_name=CASE_TABLE,
        action="UPDATE",
        record_id=case.case_id,
        user_id=admin.id,
        user_type="admin",
        old_values=before,
        new_values={**_snapshot(case), "linked_alert_ids": sorted(alert_ids)},
        ip_address=ip_address,
    )
    logger.info(f"Admin {admin.username} linked {len(alerts)} alerts to case {case.case_id}")
    return await get_case(session, case.case_id)  # type: ignore[return-value]


async def update_case_status(
    session: AsyncSession,
    case: FraudCase,
    *,
    admin: User,
    status: str,
    severity: str | None = None,
    note: str | None = None,
    resolution_data: dict | None = None,
    recovered_amount: Decimal | None = None,
    ip_address: str | None = None,
) -> FraudCase:
    """Move a case through its investigation lifecycle.

    Raises:
        ValueError: If ``status`` or ``severity`` is unknown, or the recovered
            amount is negative.
    """
    if status not in CASE_STATUSES:
        msg = f"Unknown case status '{status}'"
        raise ValueError(msg)
    if severity is not None and severity not in {s.value for s in Severity}:
        msg = f"Unknown severity '{severity}'"
        raise ValueError(msg)
    if recovered_amount is not None and recovered_amount < 0:
        msg = "Recovered amount cannot be negative"
        raise ValueError(msg)

    before = _snapshot(case)
    case.status = status
    if severity is not None:
        case.severity = severity
    if recovered_amount is not None:
        case.recovered_amount = recovered_amount
    if resolution_data is not None:
        case.resolution_data = resolution_data
    if note:
        case.investigation_notes = [*(case.investigation_notes or []), _note(admin, note)]
    case.resolved_at = utcnow() if case.is_closed else None

    await audit_service.log_state_change(
        session,
        table_name=CASE_TABLE,
        action="UPDATE",
        record_id=case.case_id,
        user_id=admin.id,
        user_type="admin",
        old_values=before,
        new_values=_snapshot(case),
        metadata={"note": note} if note else None,
        ip_address=ip_address,
    )
    logger.info(f"Admin {admin.username} set case {case.case_id} to {status}")
    return await get_case(session, case.case_id)  # type: ignore[return-value]


async def assign_case(
    session: AsyncSession,
    case: FraudCase,
    *,
    admin: User,
    assignee_id: uuid.UUID,
    ip_address: str | None = None,
) -> FraudCase:
    """Assign a case to an administrator.

    Raises:
        ValueError: If the assignee is not an active administrator.
    """
    assignee = await session.get(User, assignee_id)
    if assignee is None or not assignee.is_admin or not assignee.is_active:
        msg = "Cases can only be assigned to active administrators"
        raise ValueError(msg)

    before = _snapshot(case)
    case.assigned_admin_id = assignee.id
    await audit_service.log_state_change(
        session,
        table_name=CASE_TABLE,
        action="UPDATE",
        record_id=case.case_id,
        user_id=admin.id,
        user_type="admin",
        old_values=before,
        new_values=_snapshot(case),
        ip_address=ip_address,
    )
    return await get_case(session, case.case_id)  # type: ignore[return-value]


async def add_case_note(
    session: AsyncSession,
    case: FraudCase,
    *,
    admin: User,
    note: str,
    ip_address: str | None = None,
) -> FraudCase:
    """Append an investigation note. Notes are never edited or removed."""
    if not note or not note.strip():
        msg = "Note text is required"
        raise ValueError(msg)

    entry = _note(admin, note.strip())
    case.investigation_notes = [*(case.investigation_notes or []), entry]
    await audit_service.log_state_change(
        session,
        table_name=CASE_TABLE,
        action="UPDATE",
        record_id=case.case_id,
        user_id=admin.id,
        user_type="admin",
        new_values={"investigation_note": entry},
        ip_address=ip_address,
    )
    return await get_case(session, case.case_id)  # type: ignore[return-value]


async def fraud_statistics(session: AsyncSession) -> dict[str, Any]:
    """Dashboard counters over alerts and cases."""
    since = utcnow() - timedelta(hours=24)

    async def count(query: Any) -> int:
        return (await session.execute(query)).scalar_one()

    by_severity = await session.execute(
        select(FraudAlert.severity, func.count(FraudAlert.id))
        .where(FraudAlert.status == "active")
        .group_by(FraudAlert.severity)
    )
    impact, recovered = (
        await session.execute(
            select(
                func.coalesce(func.sum(FraudCase.financial_impact), 0),
                func.coalesce(func.sum(FraudCase.recovered_amount), 0),
            )
        )
    ).one()

    return {
        "total_alerts": await count(select(func.count(FraudAlert.id))),
        "active_alerts": await count(select(func.count(FraudAlert.id)).where(FraudAlert.status == "active")),
        "critical_alerts": await count(
            select(func.count(FraudAlert.id)).where(
                FraudAlert.status == "active", FraudAlert.severity == Severity.CRITICAL.value
            )
        ),
        "alerts_last_24h": await count(select(func.count(FraudAlert.id)).where(FraudAlert.triggered_at >= since)),
        "open_cases": await count(
            select(func.count(FraudCase.id)).where(FraudCase.status.in_(("investigating", "confirmed")))
        ),
        "active_alerts_by_severity": {severity: total for severity, total in by_severity.all()},
        "total_financial_impact": Decimal(str(impact)),
        "total_recovered": Decimal(str(recovered)),
    }
