"""
Firestore query and document helpers shared by the services.

NOTE: For firebase_admin SDK, we use positional arguments which still work.
The deprecation warning is just a warning - the functionality is still supported.
"""

from datetime import datetime, timezone
from typing import Dict, Optional


def where_filter(query, field_path: str, op_string: str, value):
    """
    Helper function for Firestore queries.

    Usage:
        query = where_filter(collection, "created_by", "==", user_id)
        query = where_filter(query, "status", "==", "OPEN")
    """
    return query.where(field_path, op_string, value)


def utc_now() -> datetime:
    """Timezone-aware UTC timestamp used for every stored datetime."""
    return datetime.now(timezone.utc)


def to_datetime(value) -> Optional[datetime]:
    """
    Convert a stored timestamp to a Python datetime.

    Handles datetimes, Firestore Timestamp objects (to_datetime) and ISO strings.
    """
    if value is None or isinstance(value, datetime):
        return value
    if hasattr(value, "to_datetime"):
        return value.to_datetime()
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    raise TypeError(f"Unsupported timestamp type: {type(value).__name__}")


def snapshot_to_dict(doc) -> Dict:
    """Document snapshot as a dict with its Firestore id under "id"."""
    data = doc.to_dict() or {}
    data["id"] = doc.id
    return data
