"""Small helpers shared by the models and the cache layer."""
import uuid
from datetime import UTC, datetime
from typing import Optional


def generate_id() -> str:
    """Generate a unique identifier for a new entity."""
    return uuid.uuid4().hex


def utc_now() -> datetime:
    """Current wall-clock time, timezone-aware."""
    return datetime.now(UTC)


def to_iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def from_iso(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 string; naive values are taken to be UTC."""
    if value is None:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed
