"""Tests for canonical serialization and entry hashing."""

import hashlib
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from gig_api.lib.audit_chain import (
    GENESIS_HASH,
    canonical_json,
    compute_entry_hash,
    format_timestamp,
    generate_log_id,
    generate_reference,
    json_safe,
)


@dataclass
class Entry:
    log_id: str = "LOG-AAAAAAAAAAAA-20260101000000"
    table_name: str = "users"
    action: str = "UPDATE"
    record_id: str | None = "42"
    user_id: uuid.UUID | None = None
    old_values: dict | None = None
    new_values: dict | None = None
    log_metadata: dict | None = None
    logged_at: datetime = datetime(2026, 1, 1, 12, 30, 0, 123456, tzinfo=UTC)
    previous_hash: str = GENESIS_HASH
    hash_signature: str = ""


class TestCanonicalJson:
    def test_sorted_keys_and_compact_separators(self) -> None:
        assert canonical_json({"b": 1, "a": [1, 2]}) == '{"a":[1,2],"b":1}'

    def test_non_ascii_kept_raw(self) -> None:
        assert canonical_json({"name": "Zoë"}) == '{"name":"Zoë"}'

    def test_decimal_uuid_and_datetime_rendered_as_strings(self) -> None:
        uid = uuid.UUID("12345678-1234-5678-1234-567812345678")
        text = canonical_json(
            {"amount": Decimal("10.50"), "id": uid, "at": datetime(2026, 1, 1, tzinfo=UTC)}
        )
        assert '"amount":"10.50"' in text
        assert f'"id":"{uid}"' in text
        assert '"at":"2026-01-01T00:00:00.000000Z"' in text

    def test_unserializable_type_raises(self) -> None:
        with pytest.raises(TypeError, match="not audit-log serializable"):
            canonical_json({"x": object()})

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_numbers_raise(self, value: float) -> None:
        with pytest.raises(ValueError):
            canonical_json({"amount": value})


class TestJsonSafe:
    def test_none_passes_through(self) -> None:
        assert json_safe(None) is None

    def test_normalizes_to_plain_json(self) -> None:
        uid = uuid.uuid4()
        assert json_safe({"id": uid, "amount": Decimal("3")}) == {"id": str(uid), "amount": "3"}


class TestFormatTimestamp:
    def test_naive_is_treated_as_utc(self) -> None:
        assert format_timestamp(datetime(2026, 3, 1, 8, 0)) == "2026-03-01T08:00:00.000000Z"

    def test_offset_is_converted_to_utc(self) -> None:
        eastern = timezone(timedelta(hours=-5))
        assert format_timestamp(datetime(2026, 3, 1, 8, 0, tzinfo=eastern)) == "2026-03-01T13:00:00.000000Z"


class TestComputeEntryHash:
    def test_is_sha256_hex(self) -> None:
        digest = compute_entry_hash(Entry())
        assert len(digest) == 64
        int(digest, 16)

    def test_deterministic(self) -> None:
        assert compute_entry_hash(Entry()) == compute_entry_hash(Entry())

    def test_matches_documented_byte_format(self) -> None:
        entry = Entry(new_values={"email": "a@example.com"})
        payload = {
            "action": "UPDATE",
            "log_id": entry.log_id,
            "logged_at": "2026-01-01T12:30:00.123456Z",
            "metadata": None,
            "new_values": {"email": "a@example.com"},
            "old_values": None,
            "previous_hash": GENESIS_HASH,
            "record_id": "42",
            "table_name": "users",
            "user_id": None,
        }
        expected = hashlib.sha256((canonical_json(payload) + GENESIS_HASH).encode("utf-8")).hexdigest()
        assert compute_entry_hash(entry) == expected

    @pytest.mark.parametrize(
        "field,value",
        [
            ("table_name", "payments"),
            ("action", "DELETE"),
            ("record_id", "43"),
            ("new_values", {"email": "b@example.com"}),
            ("log_metadata", {"route": "x"}),
            ("previous_hash", "f" * 64),
        ],
    )
    def test_any_field_change_changes_hash(self, field: str, value: object) -> None:
        original = compute_entry_hash(Entry())
        assert compute_entry_hash(Entry(**{field: value})) != original

    def test_explicit_previous_hash_overrides_stored_link(self) -> None:
        entry = Entry()
        assert compute_entry_hash(entry, previous_hash="a" * 64) != compute_entry_hash(entry)


class TestReferences:
    def test_log_id_shape(self) -> None:
        log_id = generate_log_id(datetime(2026, 5, 4, 3, 2, 1, tzinfo=UTC))
        prefix, token, stamp = log_id.split("-")
        assert prefix == "LOG"
        assert len(token) == 12
        assert token.isalnum() and token.upper() == token
        assert stamp == "20260504030201"

    def test_references_are_unique(self) -> None:
        now = datetime.now(UTC)
        assert len({generate_reference("ALT", now) for _ in range(200)}) == 200
