"""
Expiry and view-limit rules shared by every store backend.
"""
import enum
from typing import Optional

from pastestore.errors import InvalidArgument
from pastestore.records import PasteRecord


class Availability(str, enum.Enum):
    AVAILABLE = "available"
    MISSING = "missing"
    EXPIRED = "expired"
    EXHAUSTED = "exhausted"


def availability(record: Optional[PasteRecord], now_ms: int) -> Availability:
    """
    Decide whether a record may be served at logical time now_ms.

    Expiry is checked before the view budget, so an expired paste with views
    left still reports EXPIRED.
    """
    if record is None:
        return Availability.MISSING
    if record.expires_at is not None and now_ms >= record.expires_at:
        return Availability.EXPIRED
    if record.remaining_views is not None and record.remaining_views <= 0:
        return Availability.EXHAUSTED
    return Availability.AVAILABLE


def is_consumable(record: Optional[PasteRecord], now_ms: int) -> bool:
    return availability(record, now_ms) is Availability.AVAILABLE


def expiry_for(now_ms: int, ttl_seconds: Optional[int]) -> Optional[int]:
    if ttl_seconds is None:
        return None
    return now_ms + ttl_seconds * 1000


def check_limits(ttl_seconds: Optional[int], max_views: Optional[int]) -> None:
    """Store-level sanity check on the optional limits of a new paste."""
    if ttl_seconds is not None and (not _is_int(ttl_seconds) or ttl_seconds < 1):
        raise InvalidArgument("ttl_seconds must be an integer >= 1")
    if max_views is not None and (not _is_int(max_views) or max_views < 0):
        raise InvalidArgument("max_views must be an integer >= 0")


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
