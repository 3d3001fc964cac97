"""Canonical serialization and SHA-256 hashing of audit log entries.

The byte format is deliberately simple so other languages can re-verify a
chain: JSON with sorted keys, ``(",", ":")`` separators and raw UTF-8,
followed by the previous hash, hashed with SHA-256 and hex-encoded.
Timestamps are UTC ``YYYY-MM-DDTHH:MM:SS.ffffffZ``; Decimals, UUIDs and
dates are rendered as strings.
"""

import hashlib
import json
import secrets
import string
import uuid
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any, Protocol

GENESIS_HASH = "0" * 64

_LOG_ID_ALPHABET = string.ascii_uppercase + string.digits


class HashableEntry(Protocol):
    """Attributes of an audit log entry that participate in its hash."""

    log_id: str
    table_name: str
    action: str
    record_id: str | None
    user_id: uuid.UUID | None
    old_values: dict | None
    new_values: dict | None
    log_metadata: dict | None
    logged_at: datetime
    previous_hash: str


def format_timestamp(value: datetime) -> str:
    """Render a timestamp in the canonical UTC form.

    Naive datetimes are taken to be UTC (SQLite drops the offset on reload).
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def _encode(value: Any) -> Any:
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Decimal | uuid.UUID):
        return str(value)
    if isinstance(value, set | frozenset):
        return sorted(value, key=str)
    msg = f"Object of type {type(value).__name__} is not audit-log serializable"
    raise TypeError(msg)


def canonical_json(value: Any) -> str:
    """Serialize ``value`` to the canonical JSON text."""
    return json.dumps(
        value, sort_keys=True, separators=(",", ":"), ensure_ascii=False, allow_nan=False, default=_encode
    )


def json_safe(value: Any) -> Any:
    """Normalize a snapshot so the stored JSON re-hashes identically after reload."""
    if value is None:
        return None
    return json.loads(canonical_json(value))


def entry_payload(entry: HashableEntry) -> dict[str, Any]:
    """The content of an entry that its hash covers."""
    return {
        "log_id": entry.log_id,
        "table_name": entry.table_name,
        "action": entry.action,
        "record_id": entry.record_id,
        "user_id": str(entry.user_id) if entry.user_id is not None else None,
        "old_values": entry.old_values,
        "new_values": entry.new_values,
        "metadata": entry.log_metadata,
        "logged_at": format_timestamp(entry.logged_at),
        "previous_hash": entry.previous_hash,
    }


def compute_entry_hash(entry: HashableEntry, previous_hash: str | None = None) -> str:
    """Compute the SHA-256 hash signature of an entry.

    Args:
        entry: The entry to hash.
        previous_hash: Link to chain onto; defaults to ``entry.previous_hash``.
            Chain verification passes the recomputed hash of the prior entry.

    Returns:
        Lowercase hex digest.
    """
    link = entry.previous_hash if previous_hash is None else previous_hash
    payload = entry_payload(entry)
    payload["previous_hash"] = link
    data = canonical_json(payload) + link
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def generate_reference(prefix: str, now: datetime) -> str:
    """Opaque, externally referenceable identifier: ``<PREFIX>-<12 chars>-<YYYYmmddHHMMSS>``."""
    token = "".join(secrets.choice(_LOG_ID_ALPHABET) for _ in range(12))
    return f"{prefix}-{token}-{now.astimezone(UTC).strftime('%Y%m%d%H%M%S')}"


def generate_log_id(now: datetime) -> str:
    return generate_reference("LOG", now)
