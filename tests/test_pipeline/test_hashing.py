"""Unit tests for content hashing."""
from datetime import date

from laxstats.services.pipeline.hashing import canonical_json, content_hash


class TestContentHash:
    """Test suite for content_hash."""

    def test_is_sha256_hex(self):
        """Should return a 64 character lowercase hex digest."""
        digest = content_hash({"officialId": "ATL"})
        assert len(digest) == 64
        assert all(c in "0123456789abcdef" for c in digest)

    def test_key_order_does_not_matter(self):
        """Should hash identically regardless of key order, including nested objects."""
        a = {"officialId": "ATL", "fullName": "Atlas", "meta": {"x": 1, "y": 2}}
        b = {"meta": {"y": 2, "x": 1}, "fullName": "Atlas", "officialId": "ATL"}
        assert content_hash(a) == content_hash(b)

    def test_changes_when_value_changes(self):
        """Should change when any field value changes."""
        base = {"officialId": "ATL", "fullName": "Atlas"}
        assert content_hash(base) != content_hash({**base, "fullName": "Atlas LC"})
        assert content_hash(base) != content_hash({**base, "location": None})

    def test_is_deterministic(self):
        """Should be stable across calls."""
        record = {"goals": 10, "assists": 5}
        assert content_hash(record) == content_hash(dict(record))

    def test_distinguishes_types(self):
        """Should treat "10" and 10 as different values."""
        assert content_hash({"goals": 10}) != content_hash({"goals": "10"})

    def test_serializes_dates(self):
        """Should accept values JSON cannot encode natively."""
        assert canonical_json({"dob": date(1992, 9, 15)}) == '{"dob":"1992-09-15"}'
