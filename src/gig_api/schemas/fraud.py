"""Pydantic v2 schemas for fraud alerts, fraud cases and the audit log."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field, field_validator

from gig_api.schemas.common import PaginationMeta

SEVERITY_PATTERN = "^(low|medium|high|critical)$"
CASE_STATUS_PATTERN = "^(investigating|confirmed|resolved|false_positive)$"


def _required_text(value: str) -> str:
    value = value.strip()
    if not value:
        msg = "must not be blank"
        raise ValueError(msg)
    return value


class FraudAlertResponse(BaseModel):
    """A persisted fraud alert."""

    model_config = {"from_attributes": True}

    alert_id: str
    user_id: uuid.UUID
    fraud_case_id: uuid.UUID | None = None
    alert_type: str
    alert_message: str
    alert_data: dict[str, Any]
    risk_score: int
    severity: str
    status: str
    amount: Decimal | None = None
    assigned_admin_id: uuid.UUID | None = None
    triggered_at: datetime
    acknowledged_at: datetime | None = None
    resolved_at: datetime | None = None
    resolution_notes: dict[str, Any] | None = None
    ip_address: str | None = None
    context_data: dict[str, Any] | None = None


class PaginatedFraudAlertResponse(BaseModel):
    items: list[FraudAlertResponse]
    pagination: PaginationMeta


class ManualAlertRequest(BaseModel):
    """Request body for filing an alert by hand."""

    user_id: uuid.UUID
    message: str = Field(min_length=1, max_length=2000)
    risk_score: int = Field(ge=0, le=100)
    amount: Decimal | None = Field(default=None, ge=0)


class ResolveAlertRequest(BaseModel):
    """Request body for resolving an alert. Notes are mandatory."""

    resolution_notes: str = Field(min_length=1, max_length=2000)

    @field_validator("resolution_notes")
    @classmethod
    def notes_not_blank(cls, v: str) -> str:
        return _required_text(v)


class DismissAlertRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=2000)


class FraudCaseResponse(BaseModel):
    """An investigation with its linked alerts."""

    model_config = {"from_attributes": True}

    case_id: str
    user_id: uuid.UUID
    fraud_type: str
    description: str
    evidence_data: dict[str, Any] | None = None
    fraud_score: int
    severity: str
    status: str
    financial_impact: Decimal
    recovered_amount: Decimal
    assigned_admin_id: uuid.UUID | None = None
    investigation_notes: list[dict[str, Any]] | None = None
    resolution_data: dict[str, Any] | None = None
    detected_at: datetime
    resolved_at: datetime | None = None
    alerts: list[FraudAlertResponse] = Field(default_factory=list)


class PaginatedFraudCaseResponse(BaseModel):
    items: list[FraudCaseResponse]
    pagination: PaginationMeta


class CaseCreateRequest(BaseModel):
    """Request body for opening a case from alerts."""

    alert_ids: list[str] = Field(min_length=1)
    description: str = Field(min_length=1, max_length=5000)
    fraud_type: str = Field(default="suspicious_behavior", min_length=1, max_length=40)


class LinkAlertsRequest(BaseModel):
    alert_ids: list[str] = Field(min_length=1)


class CaseStatusUpdateRequest(BaseModel):
    """Request body for moving a case through its lifecycle."""

    status: str = Field(pattern=CASE_STATUS_PATTERN)
    severity: str | None = Field(default=None, pattern=SEVERITY_PATTERN)
    note: str | None = Field(default=None, max_length=5000)
    resolution_data: dict[str, Any] | None = None
    recovered_amount: Decimal | None = Field(default=None, ge=0)


class CaseAssignRequest(BaseModel):
    assignee_id: uuid.UUID


class CaseNoteRequest(BaseModel):
    note: str = Field(min_length=1, max_length=5000)

    @field_validator("note")
    @classmethod
    def note_not_blank(cls, v: str) -> str:
        return _required_text(v)


class FraudStatisticsResponse(BaseModel):
    """Dashboard counters."""

    total_alerts: int
    active_alerts: int
    critical_alerts: int
    alerts_last_24h: int
    open_cases: int
    active_alerts_by_severity: dict[str, int]
    total_financial_impact: Decimal
    total_recovered: Decimal


class AuditLogResponse(BaseModel):
    """An audit log entry as stored, plus derived views."""

    model_config = {"from_attributes": True}

    log_id: str
    sequence: int
    table_name: str
    action: str
    action_description: str
    record_id: str | None = None
    user_id: uuid.UUID | None = None
    user_type: str
    old_values: dict[str, Any] | None = None
    new_values: dict[str, Any] | None = None
    metadata: dict[str, Any] | None = Field(default=None, validation_alias="log_metadata")
    changes: dict[str, Any]
    ip_address: str | None = None
    user_agent: dict[str, Any] | None = None
    session_id: str | None = None
    logged_at: datetime
    hash_signature: str
    previous_hash: str


class PaginatedAuditLogResponse(BaseModel):
    items: list[AuditLogResponse]
    pagination: PaginationMeta


class IntegrityReportResponse(BaseModel):
    model_config = {"from_attributes": True}

    log_id: str
    valid: bool
    expected_hash: str
    stored_hash: str


class ChainReportResponse(BaseModel):
    model_config = {"from_attributes": True}

    valid: bool
    checked: int
    broken_log_ids: list[str]
    first_broken: str | None = None
