"""Fraud alert service.

Persists alerts raised by the request interceptor and implements the admin
moderation workflow (acknowledge, resolve, dismiss, manual flags).  Every
admin mutation is committed together with its audit log entry.
"""

import uuid
from decimal import Decimal
from typing import Any

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from gig_api.lib.audit_chain import format_timestamp, generate_reference, json_safe
from gig_api.lib.risk import ActionClass, Decision, RequestContext, RiskAssessment, severity_for_score
from gig_api.models.base import utcnow
from gig_api.models.fraud_alert import ALERT_STATUSES, FraudAlert
from gig_api.models.user import User
from gig_api.services import audit_service

ALERT_TABLE = "fraud_detection_alerts"


def _snapshot(alert: FraudAlert) -> dict[str, Any]:
    return {
        "status": alert.status,
        "assigned_admin_id": alert.assigned_admin_id,
        "acknowledged_at": alert.acknowledged_at,
        "resolved_at": alert.resolved_at,
        "resolution_notes": alert.resolution_notes,
    }


async def record_alert(
    session: AsyncSession,
    ctx: RequestContext,
    assessment: RiskAssessment,
    decision: Decision,
    *,
    action_class: ActionClass | None = None,
    amount: Decimal | None = None,
    signals: dict | None = None,
) -> FraudAlert:
    """Persist a system-detected alert for an assessment that requires action.

    Args:
        session: The database session.
        ctx: The request that was assessed.
        assessment: The assessment; its score determines the severity.
        decision: The decision taken for the request.
        action_class: Resolved class of the request.
        amount: Monetary amount of the request, if any.
        signals: Collected signals, stored alongside the assessment.

    Returns:
        The created FraudAlert.
    """
    payload = assessment.to_dict()
    if signals is not None:
        payload["signals"] = signals
    alert = FraudAlert(
        alert_id=generate_reference("ALT", ctx.now),
        user_id=ctx.user_id,
        alert_type="system_detected",
        alert_message="; ".join(assessment.alerts) or "Suspicious activity detected",
        alert_data=json_safe(payload),
        risk_score=assessment.risk_score,
        severity=assessment.severity.value,
        status="active",
        amount=amount,
        triggered_at=ctx.now,
        ip_address=ctx.ip_address,
        user_agent=audit_service.user_agent_map(ctx.user_agent),
        context_data=json_safe(
            {
                "route": ctx.route_name,
                "method": ctx.method,
                "path": ctx.path,
                "action_class": action_class.value if action_class else None,
                "decision": decision.value,
                "session_id": ctx.session_id,
            }
        ),
    )
    session.add(alert)
    await session.commit()
    logger.bind(json_output=True).warning(
        f"Fraud alert {alert.alert_id} for user {ctx.user_id}: score={alert.risk_score} "
        f"severity={alert.severity} decision={decision.value} ip={ctx.ip_address}"
    )
    return alert


async def file_manual_alert(
    session: AsyncSession,
    *,
    admin: User,
    user_id: uuid.UUID,
    message: str,
    risk_score: int,
    amount: Decimal | None = None,
    ip_address: str | None = None,
) -> FraudAlert:
    """File an alert by hand against a user.

    Raises:
        ValueError: If the subject user does not exist.
        AuditLogWriteError: If the audit entry could not be written.
    """
    subject = await session.get(User, user_id)
    if subject is None:
        msg = f"User {user_id} not found"
        raise ValueError(msg)

    now = utcnow()
    alert = FraudAlert(
        alert_id=generate_reference("ALT", now),
        user_id=user_id,
        alert_type="manual_flag",
        alert_message=message,
        alert_data={"filed_by": str(admin.id), "risk_score": risk_score},
        risk_score=risk_score,
        severity=severity_for_score(risk_score).value,
        status="active",
        amount=amount,
        assigned_admin_id=admin.id,
        triggered_at=now,
        ip_address=ip_address,
    )
    session.add(alert)
    await session.flush()
    await audit_service.log_state_change(
        session,
        table_name=ALERT_TABLE,
        action="CREATE",
        record_id=alert.alert_id,
        user_id=admin.id,
        user_type="admin",
        new_values={"user_id": user_id, "alert_type": "manual_flag", "risk_score": risk_score, "amount": amount},
        ip_address=ip_address,
    )
    logger.info(f"Admin {admin.username} filed manual alert {alert.alert_id} against user {user_id}")
    return alert


async def list_alerts(
    session: AsyncSession,
    *,
    status: str | None = None,
    severity: str | None = None,
    alert_type: str | None = None,
    user_id: uuid.UUID | None = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[FraudAlert], int]:
    """List alerts with optional filters, newest first.

    Args:
        session: The database session.
        status: Filter by status.
        severity: Filter by severity band.
        alert_type: Filter by system_detected / manual_flag.
        user_id: Filter by subject user.
        page: Page number (1-based).
        page_size: Items per page.

    Returns:
        Tuple of (alerts, total count).
    """
    filters = []
    if status is not None:
        filters.append(FraudAlert.status == status)
    if severity is not None:
        filters.append(FraudAlert.severity == severity)
    if alert_type is not None:
        filters.append(FraudAlert.alert_type == alert_type)
    if user_id is not None:
        filters.append(FraudAlert.user_id == user_id)

    total = (await session.execute(select(func.count(FraudAlert.id)).where(*filters))).scalar_one()

    offset = (page - 1) * page_size
    result = await session.execute(
        select(FraudAlert).where(*filters).order_by(FraudAlert.triggered_at.desc()).offset(offset).limit(page_size)
    )
    return list(result.scalars().all()), total


async def get_alert(session: AsyncSession, alert_id: str) -> FraudAlert | None:
    """Get an alert by its ``ALT-...`` identifier."""
    result = await session.execute(select(FraudAlert).where(FraudAlert.alert_id == alert_id))
    return result.scalar_one_or_none()


async def _apply_transition(
    session: AsyncSession,
    alert: FraudAlert,
    *,
    admin: User,
    status: str,
    ip_address: str | None,
    notes: str | None = None,
) -> FraudAlert:
    if status not in ALERT_STATUSES:
        msg = f"Unknown alert status '{status}'"
        raise ValueError(msg)
    if alert.is_closed:
        msg = f"Alert {alert.alert_id} is already {alert.status}"
        raise ValueError(msg)

    before = _snapshot(alert)
    now = utcnow()
    alert.status = status
    alert.assigned_admin_id = alert.assigned_admin_id or admin.id
    if status == "acknowledged":
        alert.acknowledged_at = now
    else:
        alert.resolved_at = now
        alert.resolution_notes = {
            "notes": notes,
            "resolved_by": str(admin.id),
            "resolved_at": format_timestamp(now),
        }
    await audit_service.log_state_change(
        session,
        table_name=ALERT_TABLE,
        action="UPDATE",
        record_id=alert.alert_id,
        user_id=admin.id,
        user_type="admin",
        old_values=before,
        new_values=_snapshot(alert),
        ip_address=ip_address,
    )
    logger.info(f"Admin {admin.username} moved alert {alert.alert_id} to {status}")
    return alert


async def acknowledge_alert(
    session: AsyncSession, alert: FraudAlert, *, admin: User, ip_address: str | None = None
) -> FraudAlert:
    """Mark an active alert as being looked at.

    Raises:
        ValueError: If the alert is not active.
    """
    if not alert.is_active:
        msg = f"Only active alerts can be acknowledged (alert is {alert.status})"
        raise ValueError(msg)
    return await _apply_transition(session, alert, admin=admin, status="acknowledged", ip_address=ip_address)


async def resolve_alert(
    session: AsyncSession,
    alert: FraudAlert,
    *,
    admin: User,
    notes: str,
    ip_address: str | None = None,
) -> FraudAlert:
    """Close an alert as handled.

    Raises:
        ValueError: If ``notes`` is blank (checked before any change) or the
            alert is already closed.
    """
    if not notes or not notes.strip():
        msg = "Resolution notes are required"
        raise ValueError(msg)
    return await _apply_transition(
        session, alert, admin=admin, status="resolved", ip_address=ip_address, notes=notes.strip()
    )


async def dismiss_alert(
    session: AsyncSession,
    alert: FraudAlert,
    *,
    admin: User,
    reason: str | None = None,
    ip_address: str | None = None,
) -> FraudAlert:
    """Close an alert as a false positive."""
    return await _apply_transition(
        session,
        alert,
        admin=admin,
        status="dismissed",
        ip_address=ip_address,
        notes=(reason or "").strip() or "Dismissed as false positive",
    )
