"""Utilities for transforming store rows into Business snapshots."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from signs_directory.models import Business

logger = logging.getLogger(__name__)


def _strip_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    value_str = str(value).strip()
    return value_str or None


def _safe_float(value: Any) -> Optional[float]:
    try:
        if value is None:
            return None
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number or number < 0:
        return None
    return number


def _safe_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        digits = "".join(ch for ch in value if ch.isdigit())
        if digits:
            return int(digits)
    return None


def _safe_datetime(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            logger.debug("Unparseable updated_at value: %s", value)
            return None
    # naive timestamps from the store are UTC
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_business(row: Dict[str, Any]) -> Business:
    """Build a Business from a store row.

    The city label is kept verbatim (no trimming) because its exact spelling is
    what the grouping pass counts and what the detail filter matches on.
    """
    city = row.get("address_info_city")
    return Business(
        id=row.get("id"),
        name=_strip_or_none(row.get("business_name")),
        city=city if isinstance(city, str) else None,
        rating=_safe_float(row.get("rating")),
        slug=_strip_or_none(row.get("slug")),
        place_id=_strip_or_none(row.get("place_id")),
        votes_count=_safe_int(row.get("votes_count")),
        about=_strip_or_none(row.get("about")),
        category=_strip_or_none(row.get("category")),
        phone=_strip_or_none(row.get("phone")),
        website=_strip_or_none(row.get("url")),
        address=_strip_or_none(row.get("address")),
        updated_at=_safe_datetime(row.get("updated_at")),
        raw=row,
    )
