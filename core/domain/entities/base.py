"""Shared helpers for domain entities."""
from datetime import datetime, timezone
import uuid


def new_id(prefix: str) -> str:
    """Generate a prefixed identifier, e.g. ``cali_1f3c...``."""
    return f"{prefix}_{uuid.uuid4().hex}"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
