"""Audit chain library: canonical hashing and verification of the audit log.

Public API:
    - GENESIS_HASH: Link value of the first entry in the chain
    - canonical_json / json_safe: Deterministic serialization helpers
    - compute_entry_hash: SHA-256 signature of one entry
    - generate_log_id / generate_reference: Opaque identifiers
    - verify_entry / IntegrityReport: Single-entry re-hash
    - verify_chain / ChainReport: Full re-chain from genesis
"""

from gig_api.lib.audit_chain.canonical import (
    GENESIS_HASH,
    HashableEntry,
    canonical_json,
    compute_entry_hash,
    format_timestamp,
    generate_log_id,
    generate_reference,
    json_safe,
)
from gig_api.lib.audit_chain.verify import ChainReport, IntegrityReport, verify_chain, verify_entry

__all__ = [
    "GENESIS_HASH",
    "ChainReport",
    "HashableEntry",
    "IntegrityReport",
    "canonical_json",
    "compute_entry_hash",
    "format_timestamp",
    "generate_log_id",
    "generate_reference",
    "json_safe",
    "verify_chain",
    "verify_entry",
]
