"""Small helpers shared by the stores and services"""

import math
import secrets
from datetime import datetime, timezone
from typing import Any, Optional


def generate_id(prefix: str) -> str:
    """Opaque id like ``usr_1f2e3d4c5b6a7988``"""
    return f"{prefix}_{secrets.token_hex(8)}"


def to_iso(dt: datetime) -> str:
    """UTC ISO-8601 with milliseconds and a trailing Z"""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt.isoformat(timespec="milliseconds") + "Z"


def utc_now_iso() -> str:
    return to_iso(datetime.now(timezone.utc))


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 string or epoch milliseconds into an aware UTC datetime.

    Naive strings are read as UTC. Returns None when the value can't be parsed.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    try:
        return dt.astimezone(timezone.utc)
    except (OverflowError, ValueError):
        # Offset pushes the instant outside the datetime range
        return None
