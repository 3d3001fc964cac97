"""Audit logging service.

Appends entries to the hash-chained audit log and verifies it.  Writers
serialize on the ``audit_chain_head`` row: the tip is read ``FOR UPDATE`` in
the same transaction that inserts the new entry and advances the tip.
"""

import uuid
from datetime import datetime
from typing import Any

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from gig_api.lib.audit_chain import (
    GENESIS_HASH,
    ChainReport,
    IntegrityReport,
    compute_entry_hash,
    generate_log_id,
    json_safe,
    verify_chain as verify_entries,
    verify_entry,
)
from gig_api.lib.risk import ActionClass, RequestContext
from gig_api.models.audit_log import AuditChainHead, AuditLogEntry
from gig_api.models.base import utcnow

CHAIN_HEAD_ID = 1
BEHAVIOR_TABLE = "user_behavior"
USER_TYPES = ("user", "admin", "system")


class AuditLogWriteError(RuntimeError):
    """A state-change audit entry could not be persisted."""


def user_agent_map(user_agent: str | None) -> dict[str, Any] | None:
    """Wrap a raw User-Agent header as the stored map."""
    if not user_agent:
        return None
    lowered = user_agent.lower()
    return {
        "raw": user_agent,
        "is_mobile": "mobile" in lowered,
        "is_bot": any(token in lowered for token in ("bot", "crawler", "spider")),
    }


async def _lock_chain_head(session: AsyncSession) -> AuditChainHead:
    result = await session.execute(
        select(AuditChainHead).where(AuditChainHead.id == CHAIN_HEAD_ID).with_for_update()
    )
    head = result.scalar_one_or_none()
    if head is None:
        head = AuditChainHead(id=CHAIN_HEAD_ID, sequence=0, last_hash=GENESIS_HASH)
        session.add(head)
        await session.flush()
    return head


async def create_log(
    session: AsyncSession,
    *,
    table_name: str,
    action: str,
    record_id: str | uuid.UUID | int | None = None,
    user_id: uuid.UUID | None = None,
    user_type: str = "system",
    old_values: dict | None = None,
    new_values: dict | None = None,
    metadata: dict | None = None,
    ip_address: str | None = None,
    user_agent: dict | None = None,
    session_id: str | None = None,
    commit: bool = True,
) -> AuditLogEntry:
    """Append an entry to the audit chain.

    Any pending changes on ``session`` are committed together with the entry,
    which lets callers make a mutation and its audit record atomic.

    Args:
        session: The database session.
        table_name: Entity the entry describes.
        action: CREATE, UPDATE, DELETE or REQUEST.
        record_id: Affected record id, if any.
        user_id: Acting user; None for system actions.
        user_type: One of user, admin or system.
        old_values: Prior-value snapshot.
        new_values: New-value snapshot.
        metadata: Free-form context.
        ip_address: Originating IP address.
        user_agent: Parsed user-agent map.
        session_id: Client session identifier.
        commit: Commit the transaction (False leaves it to the caller).

    Returns:
        The created AuditLogEntry.
    """
    if user_type not in USER_TYPES:
        msg = f"Unknown audit user type '{user_type}'"
        raise ValueError(msg)

    now = utcnow()
    head = await _lock_chain_head(session)
    entry = AuditLogEntry(
        log_id=generate_log_id(now),
        sequence=head.sequence + 1,
        table_name=table_name,
        action=action.upper(),
        record_id=str(record_id) if record_id is not None else None,
        user_id=user_id,
        user_type=user_type,
        old_values=json_safe(old_values),
        new_values=json_safe(new_values),
        log_metadata=json_safe(metadata),
        ip_address=ip_address,
        user_agent=json_safe(user_agent),
        session_id=session_id,
        logged_at=now,
        previous_hash=head.last_hash,
    )
    entry.hash_signature = compute_entry_hash(entry)
    head.sequence = entry.sequence
    head.last_hash = entry.hash_signature
    session.add(entry)
    if commit:
        await session.commit()
    else:
        await session.flush()
    return entry


async def log_state_change(session: AsyncSession, **fields: Any) -> AuditLogEntry:
    """Record a genuine mutation. Store failures are surfaced to the caller.

    Args:
        session: The database session.
        **fields: Keyword arguments accepted by :func:`create_log`.

    Returns:
        The created AuditLogEntry.

    Raises:
        AuditLogWriteError: If the entry (and the mutation committed with it)
            could not be persisted.
    """
    try:
        return await create_log(session, **fields)
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(f"Audit write failed for {fields.get('table_name')} {fields.get('record_id')}: {e}")
        msg = "Audit log entry could not be written"
        raise AuditLogWriteError(msg) from e


async def record_behavior_sample(
    session: AsyncSession,
    ctx: RequestContext,
    action_class: ActionClass,
    *,
    risk_score: int | None = None,
) -> AuditLogEntry | None:
    """Best-effort log of a sampled request. Never raises.

    Args:
        session: The database session.
        ctx: The sampled request.
        action_class: Resolved class of the request.
        risk_score: Score of the request's assessment, when one was made.

    Returns:
        The created entry, or None if it could not be written.
    """
    metadata = {
        "route": ctx.route_name,
        "method": ctx.method,
        "path": ctx.path,
        "action_class": action_class.value,
        "request_size": ctx.request_size,
        "telemetry": ctx.telemetry,
    }
    if risk_score is not None:
        metadata["risk_score"] = risk_score
    try:
        return await create_log(
            session,
            table_name=BEHAVIOR_TABLE,
            action="REQUEST",
            user_id=ctx.user_id,
            user_type="user",
            metadata=metadata,
            ip_address=ctx.ip_address,
            user_agent=user_agent_map(ctx.user_agent),
            session_id=ctx.session_id,
        )
    except Exception as e:
        logger.warning(f"Behavior sample for user {ctx.user_id} not recorded: {e}")
        try:
            await session.rollback()
        except SQLAlchemyError as rollback_error:
            logger.warning(f"Rollback after failed behavior sample also failed: {rollback_error}")
        return None


async def get_log(session: AsyncSession, log_id: str) -> AuditLogEntry | None:
    """Get an audit log entry by its log identifier.

    Args:
        session: The database session.
        log_id: The ``LOG-...`` identifier.

    Returns:
        The entry if found, None otherwise.
    """
    result = await session.execute(select(AuditLogEntry).where(AuditLogEntry.log_id == log_id))
    return result.scalar_one_or_none()


async def verify_integrity(session: AsyncSession, log_id: str) -> IntegrityReport:
    """Recompute one entry's hash and compare it with the stored signature.

    Raises:
        ValueError: If no entry has ``log_id``.
    """
    entry = await get_log(session, log_id)
    if entry is None:
        msg = f"Audit log entry {log_id} not found"
        raise ValueError(msg)
    report = verify_entry(entry)
    if not report.valid:
        logger.warning(f"Audit log entry {log_id} failed integrity check")
    return report


async def verify_chain(session: AsyncSession) -> ChainReport:
    """Walk the whole chain in sequence order from genesis."""
    result = await session.execute(select(AuditLogEntry).order_by(AuditLogEntry.sequence))
    report = verify_entries(result.scalars())
    if report.valid:
        logger.info(f"Audit chain verified ({report.checked} entries)")
    else:
        logger.warning(
            f"Audit chain broken at {report.first_broken}; {len(report.broken_log_ids)} of {report.checked} entries invalid"
        )
    return report


async def query_audit_logs(
    session: AsyncSession,
    *,
    user_id: uuid.UUID | None = None,
    table_name: str | None = None,
    action: str | None = None,
    user_type: str | None = None,
    start_time: datetime | None = None,
    end_time: datetime | None = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[AuditLogEntry], int]:
    """Query audit logs with optional filters.

    Args:
        session: The database session.
        user_id: Filter by acting user.
        table_name: Filter by entity name.
        action: Filter by action kind.
        user_type: Filter by user/admin/system.
        start_time: Filter entries at or after this timestamp.
        end_time: Filter entries at or before this timestamp.
        page: Page number (1-based).
        page_size: Items per page.

    Returns:
        Tuple of (entries, total count), newest first.
    """
    filters = []
    if user_id is not None:
        filters.append(AuditLogEntry.user_id == user_id)
    if table_name is not None:
        filters.append(AuditLogEntry.table_name == table_name)
    if action is not None:
        filters.append(AuditLogEntry.action == action.upper())
    if user_type is not None:
        filters.append(AuditLogEntry.user_type == user_type)
    if start_time is not None:
        filters.append(AuditLogEntry.logged_at >= start_time)
    if end_time is not None:
        filters.append(AuditLogEntry.logged_at <= end_time)

    total = (await session.execute(select(func.count(AuditLogEntry.id)).where(*filters))).scalar_one()

    offset = (page - 1) * page_size
    query = select(AuditLogEntry).where(*filters).order_by(AuditLogEntry.sequence.desc()).offset(offset).limit(page_size)
    result = await session.execute(query)
    return list(result.scalars().all()), total
