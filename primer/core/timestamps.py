"""
core/timestamps.py - RFC3339 helpers.

The API server writes second-precision UTC timestamps ("2021-06-01T12:00:00Z");
the export job and the artifact address use the same rendering.
"""

from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Optional

RFC3339_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def utcnow() -> datetime:
    """Current time in UTC, truncated to whole seconds."""
    return datetime.now(timezone.utc).replace(microsecond=0)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an RFC3339 timestamp as written by the API server."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def format_rfc3339(value: Optional[datetime]) -> str:
    """Format a timestamp in UTC with second precision."""
    if value is None:
        return ""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(RFC3339_FORMAT)
