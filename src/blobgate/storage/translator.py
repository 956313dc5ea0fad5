"""Translation of binding list responses into typed listings.

The Azure Blob binding answers a list request with a JSON array of blob
items shaped like the Azure SDK's BlobItem:

    [{"Name": "x", "Properties": {"LastModified": "2024-01-01T00:00:00Z", ...}}, ...]

Records are decoded field by field; a missing or mistyped field becomes
None on that entry instead of failing the whole page.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import Any

from blobgate.storage.base import BlobEntry, BlobListing

logger = logging.getLogger(__name__)


def _field(record: Mapping[str, Any], key: str) -> Any:
    """Look up key, falling back to a case-insensitive match."""
    if key in record:
        return record[key]
    lowered = key.lower()
    for candidate, value in record.items():
        if isinstance(candidate, str) and candidate.lower() == lowered:
            return value
    return None


def parse_timestamp(value: Any) -> datetime | None:
    """Parse RFC 3339 or RFC 1123 timestamps; anything else yields None."""
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        try:
            parsed = parsedate_to_datetime(text)
        except (TypeError, ValueError):
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def decode_record(record: Any) -> BlobEntry:
    """Decode one loosely typed blob item."""
    if not isinstance(record, Mapping):
        logger.warning(f"Skipping fields of non-object list record: {type(record).__name__}")
        return BlobEntry(name=None)

    name = _field(record, "Name")
    if not isinstance(name, str) or not name:
        name = None

    last_modified = None
    properties = _field(record, "Properties")
    if isinstance(properties, Mapping):
        last_modified = parse_timestamp(_field(properties, "LastModified"))

    return BlobEntry(name=name, last_modified=last_modified)


def translate(records: Sequence[Any], cursor: str | None = None) -> BlobListing:
    """Convert decoded list records and an optional side-channel cursor.

    Args:
        records: The decoded JSON array
        cursor: Continuation marker reported out of band, if any

    Returns:
        BlobListing in record order; next_cursor is None unless a non-empty
        marker was reported
    """
    entries = tuple(decode_record(record) for record in records)
    return BlobListing(entries=entries, next_cursor=cursor or None)
