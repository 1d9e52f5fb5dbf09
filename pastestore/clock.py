"""
Clock sources supplying "now" as milliseconds since the epoch.
"""
import logging
from datetime import datetime, timezone
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


class Clock(Protocol):
    """Anything that can tell the current time in ms. Inject a fake in tests."""

    def now_ms(self) -> int: ...


class SystemClock:
    """Wall-clock time in UTC."""

    def now_ms(self) -> int:
        return int(datetime.now(timezone.utc).timestamp() * 1000)


class FixedClock:
    """A clock that only moves when told to."""

    def __init__(self, now_ms: int = 0):
        self.current = now_ms

    def now_ms(self) -> int:
        return self.current

    def advance(self, ms: int) -> None:
        self.current += ms


def resolve_now(clock: Clock, test_mode: bool, x_test_now_ms: Optional[str] = None) -> int:
    """
    Resolve "now" for a single request.

    Args:
        clock: Clock used when no override applies
        test_mode: Whether the x-test-now-ms override is honoured
        x_test_now_ms: Test timestamp header (milliseconds since epoch)

    Returns:
        Milliseconds since the epoch
    """
    if test_mode and x_test_now_ms:
        try:
            return int(x_test_now_ms)
        except (ValueError, TypeError) as e:
            logger.warning(f"Invalid x-test-now-ms header: {e}")

    return clock.now_ms()


def to_iso_z(ms: Optional[int]) -> Optional[str]:
    """Render an ms timestamp as ISO 8601 with a trailing Z, None stays None."""
    if ms is None:
        return None
    dt = datetime.fromtimestamp(ms / 1000, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")
