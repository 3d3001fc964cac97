"""Admin fraud moderation and audit log endpoints.

Alerts:     GET/POST /fraud/alerts, GET /fraud/alerts/{alert_id},
            POST /fraud/alerts/{alert_id}/acknowledge|resolve|dismiss
Cases:      GET/POST /fraud/cases, GET /fraud/cases/{case_id},
            POST /fraud/cases/{case_id}/alerts|assign|notes,
            PATCH /fraud/cases/{case_id}/status
Dashboard:  GET /fraud/statistics
Audit log:  GET /fraud/audit-logs, GET /fraud/audit-logs/verify-chain,
            GET /fraud/audit-logs/{log_id}, GET /fraud/audit-logs/{log_id}/verify

All endpoints require the admin role.
"""

import uuid
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from gig_api.core.dependencies import client_ip, get_async_session, require_role
from gig_api.models.fraud_alert import FraudAlert
from gig_api.models.fraud_case import FraudCase
from gig_api.models.user import User
from gig_api.schemas.common import PaginationMeta, PaginationParams
from gig_api.schemas.fraud import (
    AuditLogResponse,
    CaseAssignRequest,
    CaseCreateRequest,
    CaseNoteRequest,
    CaseStatusUpdateRequest,
    ChainReportResponse,
    DismissAlertRequest,
    FraudAlertResponse,
    FraudCaseResponse,
    FraudStatisticsResponse,
    IntegrityReportResponse,
    LinkAlertsRequest,
    ManualAlertRequest,
    PaginatedAuditLogResponse,
    PaginatedFraudAlertResponse,
    PaginatedFraudCaseResponse,
    ResolveAlertRequest,
)
from gig_api.services import audit_service, fraud_alert_service, fraud_case_service
from gig_api.services.audit_service import AuditLogWriteError

fraud_router = APIRouter(prefix="/fraud", tags=["fraud"])

AdminUser = Annotated[User, Depends(require_role("admin"))]
Session = Annotated[AsyncSession, Depends(get_async_session)]


def _audit_unavailable(e: AuditLogWriteError) -> HTTPException:
    logger.error(f"Fraud moderation change rolled back, audit write failed: {e}")
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="The change could not be recorded in the audit log and was not applied.",
    )


async def _load_alert(session: AsyncSession, alert_id: str) -> FraudAlert:
    alert = await fraud_alert_service.get_alert(session, alert_id)
    if alert is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Alert {alert_id} not found")
    return alert


async def _load_case(session: AsyncSession, case_id: str) -> FraudCase:
    case = await fraud_case_service.get_case(session, case_id)
    if case is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Case {case_id} not found")
    return case


# -- Alerts ------------------------------------------------------------------


@fraud_router.get("/alerts", name="fraud.alerts.index")
async def list_alerts(
    session: Session,
    _admin: AdminUser,
    pagination: Annotated[PaginationParams, Depends()],
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    severity: str | None = None,
    alert_type: str | None = None,
    user_id: uuid.UUID | None = None,
) -> PaginatedFraudAlertResponse:
    """List alerts, newest first, with optional filters."""
    alerts, total = await fraud_alert_service.list_alerts(
        session,
        status=status_filter,
        severity=severity,
        alert_type=alert_type,
        user_id=user_id,
        page=pagination.page,
        page_size=pagination.page_size,
    )
    return PaginatedFraudAlertResponse(
        items=[FraudAlertResponse.model_validate(a) for a in alerts],
        pagination=PaginationMeta.from_counts(total, pagination.page, pagination.page_size),
    )


@fraud_router.post("/alerts", status_code=status.HTTP_201_CREATED, name="fraud.alerts.store")
async def file_manual_alert(
    body: ManualAlertRequest, request: Request, session: Session, admin: AdminUser
) -> FraudAlertResponse:
    """File an alert against a user by hand."""
    try:
        alert = await fraud_alert_service.file_manual_alert(
            session,
            admin=admin,
            user_id=body.user_id,
            message=body.message,
            risk_score=body.risk_score,
            amount=body.amount,
            ip_address=client_ip(request),
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except AuditLogWriteError as e:
        raise _audit_unavailable(e) from e
    return FraudAlertResponse.model_validate(alert)


@fraud_router.get("/alerts/{alert_id}", name="fraud.alerts.show")
async def get_alert(alert_id: str, session: Session, _admin: AdminUser) -> FraudAlertResponse:
    return FraudAlertResponse.model_validate(await _load_alert(session, alert_id))


@fraud_router.post("/alerts/{alert_id}/acknowledge", name="fraud.alerts.acknowledge")
async def acknowledge_alert(alert_id: str, request: Request, session: Session, admin: AdminUser) -> FraudAlertResponse:
    alert = await _load_alert(session, alert_id)
    try:
        alert = await fraud_alert_service.acknowledge_alert(session, alert, admin=admin, ip_address=client_ip(request))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    except AuditLogWriteError as e:
        raise _audit_unavailable(e) from e
    return FraudAlertResponse.model_validate(alert)


@fraud_router.post("/alerts/{alert_id}/resolve", name="fraud.alerts.resolve")
async def resolve_alert(
    alert_id: str, body: ResolveAlertRequest, request: Request, session: Session, admin: AdminUser
) -> FraudAlertResponse:
    """Resolve an alert. ``resolution_notes`` is required."""
    alert = await _load_alert(session, alert_id)
    try:
        alert = await fraud_alert_service.resolve_alert(
            session, alert, admin=admin, notes=body.resolution_notes, ip_address=client_ip(request)
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    except AuditLogWriteError as e:
        raise _audit_unavailable(e) from e
    return FraudAlertResponse.model_validate(alert)


@fraud_router.post("/alerts/{alert_id}/dismiss", name="fraud.alerts.dismiss")
async def dismiss_alert(
    alert_id: str,
    request: Request,
    session: Session,
    admin: AdminUser,
    body: DismissAlertRequest | None = None,
) -> FraudAlertResponse:
    """Dismiss an alert as a false positive."""
    alert = await _load_alert(session, alert_id)
    try:
        alert = await fraud_alert_service.dismiss_alert(
            session, alert, admin=admin, reason=body.reason if body else None, ip_address=client_ip(request)
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    except AuditLogWriteError as e:
        raise _audit_unavailable(e) from e
    return FraudAlertResponse.model_validate(alert)


# -- Cases -------------------------------------------------------------------


@fraud_router.get("/cases", name="fraud.cases.index")
async def list_cases(
    session: Session,
    _admin: AdminUser,
    pagination: Annotated[PaginationParams, Depends()],
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    severity: str | None = None,
    user_id: uuid.UUID | None = None,
) -> PaginatedFraudCaseResponse:
    cases, total = await fraud_case_service.list_cases(
        session,
        status=status_filter,
        severity=severity,
        user_id=user_id,
        page=pagination.page,
        page_size=pagination.page_size,
    )
    return PaginatedFraudCaseResponse(
        items=[FraudCaseResponse.model_validate(c) for c in cases],
        pagination=PaginationMeta.from_counts(total, pagination.page, pagination.page_size),
    )


@fraud_router.post("/cases", status_code=status.HTTP_201_CREATED, name="fraud.cases.store")
async def open_case(body: CaseCreateRequest, request: Request, session: Session, admin: AdminUser) -> FraudCaseResponse:
    """Open an investigation from alerts of a single user."""
    try:
        case = await fraud_case_service.open_case(
            session,
            admin=admin,
            alert_ids=body.alert_ids,
            description=body.description,
            fraud_type=body.fraud_type,
            ip_address=client_ip(request),
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    except AuditLogWriteError as e:
        raise _audit_unavailable(e) from e
    return FraudCaseResponse.model_validate(case)


@fraud_router.get("/cases/{case_id}", name="fraud.cases.show")
async def get_case(case_id: str, session: Session, _admin: AdminUser) -> FraudCaseResponse:
    return FraudCaseResponse.model_validate(await _load_case(session, case_id))


@fraud_router.post("/cases/{case_id}/alerts", name="fraud.cases.link")
async def link_alerts(
    case_id: str, body: LinkAlertsRequest, request: Request, session: Session, admin: AdminUser
) -> FraudCaseResponse:
    case = await _load_case(session, case_id)
    try:
        case = await fraud_case_service.link_alerts(
            session, case, admin=admin, alert_ids=body.alert_ids, ip_address=client_ip(request)
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    except AuditLogWriteError as e:
        raise _audit_unavailable(e) from e
    return FraudCaseResponse.model_validate(case)


@fraud_router.patch("/cases/{case_id}/status", name="fraud.cases.status")
async def update_case_status(
    case_id: str, body: CaseStatusUpdateRequest, request: Request, session: Session, admin: AdminUser
) -> FraudCaseResponse:
    case = await _load_case(session, case_id)
    try:
        case = await fraud_case_service.update_case_status(
            session,
            case,
            admin=admin,
            status=body.status,
            severity=body.severity,
            note=body.note,
            resolution_data=body.resolution_data,
            recovered_amount=body.recovered_amount,
            ip_address=client_ip(request),
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    except AuditLogWriteError as e:
        raise _audit_unavailable(e) from e
    return FraudCaseResponse.model_validate(case)


@fraud_router.post("/cases/{case_id}/assign", name="fraud.cases.assign")
async def assign_case(
    case_id: str, body: CaseAssignRequest, request: Request, session: Session, admin: AdminUser
) -> FraudCaseResponse:
    case = await _load_case(session, case_id)
    try:
        case = await fraud_case_service.assign_case(
            session, case, admin=admin, assignee_id=body.assignee_id, ip_address=client_ip(request)
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    except AuditLogWriteError as e:
        raise _audit_unavailable(e) from e
    return FraudCaseResponse.model_validate(case)


@fraud_router.post("/cases/{case_id}/notes", name="fraud.cases.notes")
async def add_case_note(
    case_id: str, body: CaseNoteRequest, request: Request, session: Session, admin: AdminUser
) -> FraudCaseResponse:
    case = await _load_case(session, case_id)
    try:
        case = await fraud_case_service.add_case_note(
            session, case, admin=admin, note=body.note, ip_address=client_ip(request)
        )
    except AuditLogWriteError as e:
        raise _audit_unavailable(e) from e
    return FraudCaseResponse.model_validate(case)


@fraud_router.get("/statistics", name="fraud.statistics")
async def statistics(session: Session, _admin: AdminUser) -> FraudStatisticsResponse:
    """Dashboard counters over alerts and cases."""
    return FraudStatisticsResponse(**await fraud_case_service.fraud_statistics(session))


# -- Audit log ---------------------------------------------------------------


@fraud_router.get("/audit-logs", name="fraud.audit.index")
async def list_audit_logs(
    session: Session,
    _admin: AdminUser,
    pagination: Annotated[PaginationParams, Depends()],
    user_id: uuid.UUID | None = None,
    table_name: str | None = None,
    action: str | None = None,
    user_type: str | None = None,
    start_time: datetime | None = None,
    end_time: datetime | None = None,
) -> PaginatedAuditLogResponse:
    """Query the audit log, newest first."""
    entries, total = await audit_service.query_audit_logs(
        session,
        user_id=user_id,
        table_name=table_name,
        action=action,
        user_type=user_type,
        start_time=start_time,
        end_time=end_time,
        page=pagination.page,
        page_size=pagination.page_size,
    )
    return PaginatedAuditLogResponse(
        items=[AuditLogResponse.model_validate(e) for e in entries],
        pagination=PaginationMeta.from_counts(total, pagination.page, pagination.page_size),
    )


@fraud_router.get("/audit-logs/verify-chain", name="fraud.audit.verify_chain")
async def verify_audit_chain(session: Session, _admin: AdminUser) -> ChainReportResponse:
    """Re-chain the whole audit log from genesis."""
    report = await audit_service.verify_chain(session)
    return ChainReportResponse.model_validate(report)


@fraud_router.get("/audit-logs/{log_id}", name="fraud.audit.show")
async def get_audit_log(log_id: str, session: Session, _admin: AdminUser) -> AuditLogResponse:
    entry = await audit_service.get_log(session, log_id)
    if entry is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Audit log entry {log_id} not found")
    return AuditLogResponse.model_validate(entry)


@fraud_router.get("/audit-logs/{log_id}/verify", name="fraud.audit.verify")
async def verify_audit_log(log_id: str, session: Session, _admin: AdminUser) -> IntegrityReportResponse:
    """Recompute one entry's hash and compare it with the stored signature."""
    try:
        report = await audit_service.verify_integrity(session, log_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    return IntegrityReportResponse.model_validate(report)
