"""Tests for single-entry and whole-chain verification."""

from dataclasses import dataclass, replace
from datetime import UTC, datetime, timedelta

from gig_api.lib.audit_chain import GENESIS_HASH, compute_entry_hash, verify_chain, verify_entry


@dataclass
class Entry:
    log_id: str
    table_name: str = "users"
    action: str = "CREATE"
    record_id: str | None = None
    user_id: None = None
    old_values: dict | None = None
    new_values: dict | None = None
    log_metadata: dict | None = None
    logged_at: datetime = datetime(2026, 1, 1, tzinfo=UTC)
    previous_hash: str = GENESIS_HASH
    hash_signature: str = ""


def _chain(length: int) -> list[Entry]:
    entries = []
    previous = GENESIS_HASH
    for i in range(length):
        entry = Entry(
            log_id=f"LOG-{i}",
            record_id=str(i),
            new_values={"n": i},
            logged_at=datetime(2026, 1, 1, tzinfo=UTC) + timedelta(seconds=i),
            previous_hash=previous,
        )
        entry.hash_signature = compute_entry_hash(entry)
        previous = entry.hash_signature
        entries.append(entry)
    return entries


class TestVerifyEntry:
    def test_untouched_entry_is_valid(self) -> None:
        entry = _chain(1)[0]
        report = verify_entry(entry)
        assert report.valid is True
        assert report.expected_hash == report.stored_hash

    def test_edited_content_is_detected(self) -> None:
        entry = _chain(1)[0]
        entry.new_values = {"n": 999}
        report = verify_entry(entry)
        assert report.valid is False
        assert report.stored_hash == entry.hash_signature
        assert report.expected_hash != entry.hash_signature


class TestVerifyChain:
    def test_empty_chain_is_valid(self) -> None:
        report = verify_chain([])
        assert report.valid is True
        assert report.checked == 0
        assert report.first_broken is None

    def test_intact_chain(self) -> None:
        report = verify_chain(_chain(5))
        assert report.valid is True
        assert report.checked == 5

    def test_first_entry_links_to_genesis(self) -> None:
        assert _chain(1)[0].previous_hash == "0" * 64

    def test_tampering_breaks_the_entry_and_everything_after(self) -> None:
        entries = _chain(5)
        entries[2].new_values = {"n": "tampered"}
        report = verify_chain(entries)
        assert report.valid is False
        assert report.first_broken == "LOG-2"
        assert report.broken_log_ids == ["LOG-2", "LOG-3", "LOG-4"]

    def test_rehashing_a_tampered_entry_still_breaks_the_next_link(self) -> None:
        entries = _chain(3)
        entries[1].new_values = {"n": "tampered"}
        entries[1].hash_signature = compute_entry_hash(entries[1])
        report = verify_chain(entries)
        assert report.broken_log_ids == ["LOG-2"]

    def test_removed_entry_is_detected(self) -> None:
        entries = _chain(4)
        del entries[1]
        report = verify_chain(entries)
        assert report.valid is False
        assert report.first_broken == "LOG-2"

    def test_wrong_genesis(self) -> None:
        entries = [replace(e) for e in _chain(2)]
        report = verify_chain(entries, genesis="1" * 64)
        assert report.valid is False
        assert report.first_broken == "LOG-0"
