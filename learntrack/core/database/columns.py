"""Column helpers shared by the Cassandra entity classes.

Nested documents (syllabus entries, module contents, quiz questions, ...)
are stored as JSON text columns. orjson encodes datetimes and UUIDs
natively, so values read back carry ISO-8601 strings for those fields.
"""

from datetime import UTC, datetime
from typing import Any

import orjson


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def utc_now() -> datetime:
    return datetime.now(UTC)


def to_json_column(value: Any) -> str | None:
    """Serialize a nested document for storage in a TEXT column."""
    if value is None:
        return None
    return orjson.dumps(value, option=orjson.OPT_NAIVE_UTC).decode()


def from_json_column(value: str | None, default: Any = None) -> Any:
    """Deserialize a TEXT column, returning ``default`` when it is empty."""
    if not value:
        return default
    return orjson.loads(value)


def parse_datetime(value: datetime | str | None) -> datetime | None:
    """Parse an ISO timestamp stored inside a JSON document."""
    if value is None or isinstance(value, datetime):
        return ensure_utc_aware(value)
    return ensure_utc_aware(datetime.fromisoformat(value))
