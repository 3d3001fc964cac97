"""Append-only, hash-chained audit log.

Rows are written once by ``audit_service.create_log`` and never updated or
deleted.  ``audit_chain_head`` holds the tip of the chain so writers can
serialize on a single row lock.
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from gig_api.lib.audit_chain.verify import verify_entry
from gig_api.models.base import Base, JSONType, UUIDMixin, utcnow


class AuditLogEntry(Base, UUIDMixin):
    """Immutable record of a state change or a sampled request."""

    __tablename__ = "immutable_audit_logs"

    log_id: Mapped[str] = mapped_column(String(40), unique=True, nullable=False, index=True)
    sequence: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    table_name: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    action: Mapped[str] = mapped_column(String(10), nullable=False, index=True)
    record_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    user_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True, index=True)
    user_type: Mapped[str] = mapped_column(String(10), nullable=False, default="system")
    old_values: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    new_values: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    log_metadata: Mapped[dict | None] = mapped_column("metadata", JSONType, nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True, index=True)
    user_agent: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    session_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    logged_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    hash_signature: Mapped[str] = mapped_column(String(64), nullable=False)
    previous_hash: Mapped[str] = mapped_column(String(64), nullable=False)

    @property
    def action_description(self) -> str:
        return {"CREATE": "Created", "UPDATE": "Updated", "DELETE": "Deleted"}.get(
            self.action, self.action.capitalize()
        )

    @property
    def changes(self) -> dict[str, Any]:
        """Field-level view of what this entry changed."""
        if self.action == "CREATE":
            return dict(self.new_values or {})
        if self.action == "DELETE":
            return dict(self.old_values or {})
        if self.action == "UPDATE" and self.old_values and self.new_values:
            return {
                key: {"old": self.old_values.get(key), "new": new}
                for key, new in self.new_values.items()
                if self.old_values.get(key) != new
            }
        return {}

    @property
    def is_tampered(self) -> bool:
        return not verify_entry(self).valid


class AuditChainHead(Base):
    """Single-row pointer to the most recent audit log entry."""

    __tablename__ = "audit_chain_head"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_hash: Mapped[str] = mapped_column(String(64), nullable=False)
