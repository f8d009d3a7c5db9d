"""Record identifiers and timestamps."""

import uuid
from datetime import datetime, timezone


def new_record_id(prefix: str) -> str:
    """Return ``<prefix>-<12 hex chars>``, random rather than clock-derived."""
    return f"{prefix}-{uuid.uuid4().hex[:12].upper()}"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def today_iso() -> str:
    return datetime.now(timezone.utc).date().isoformat()
