"""Integrity checks over single entries and whole chains."""

import hmac
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Protocol

from gig_api.lib.audit_chain.canonical import GENESIS_HASH, HashableEntry, compute_entry_hash


class SignedEntry(HashableEntry, Protocol):
    """An entry carrying its stored hash signature."""

    hash_signature: str


@dataclass(frozen=True)
class IntegrityReport:
    """Result of re-hashing one entry."""

    log_id: str
    valid: bool
    expected_hash: str
    stored_hash: str


@dataclass
class ChainReport:
    """Result of walking the chain from genesis."""

    valid: bool = True
    checked: int = 0
    broken_log_ids: list[str] = field(default_factory=list)

    @property
    def first_broken(self) -> str | None:
        return self.broken_log_ids[0] if self.broken_log_ids else None


def verify_entry(entry: SignedEntry) -> IntegrityReport:
    """Recompute an entry's hash from its stored content and stored link."""
    expected = compute_entry_hash(entry)
    return IntegrityReport(
        log_id=entry.log_id,
        valid=hmac.compare_digest(expected, entry.hash_signature),
        expected_hash=expected,
        stored_hash=entry.hash_signature,
    )


def verify_chain(entries: Iterable[SignedEntry], genesis: str = GENESIS_HASH) -> ChainReport:
    """Re-chain entries (in sequence order) from ``genesis``.

    Each entry is re-hashed against the *recomputed* hash of its predecessor,
    so tampering with one entry also breaks every entry after it.
    """
    report = ChainReport()
    running = genesis
    for entry in entries:
        report.checked += 1
        recomputed = compute_entry_hash(entry, previous_hash=running)
        linked = hmac.compare_digest(entry.previous_hash, running)
        if not (linked and hmac.compare_digest(recomputed, entry.hash_signature)):
            report.valid = False
            report.broken_log_ids.append(entry.log_id)
        running = recomputed
    return report
