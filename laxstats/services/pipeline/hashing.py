"""Content hashing for change detection between extractions."""
import hashlib
import json
from typing import Any


def canonical_json(record: Any) -> str:
    """Serialize with sorted keys at every depth and no insignificant whitespace."""
    return json.dumps(record, sort_keys=True, separators=(',', ':'), ensure_ascii=False, default=str)


def content_hash(record: Any) -> str:
    """
    SHA-256 hex digest of a raw record.

    Key order never affects the result; any changed value does.

    Examples:
        >>> content_hash({"a": 1, "b": 2}) == content_hash({"b": 2, "a": 1})
        True
    """
    return hashlib.sha256(canonical_json(record).encode('utf-8')).hexdigest()
