"""Virtual clock for time manipulation and fast-forwarding.

Responsibilities:
- Provide the current (virtual) UTC time to every service
- Advance time (days, hours, minutes) or jump to an instant
- Reset back to real time

The clock follows real time plus an offset. A clock created with a start
instant is pinned: it only moves when advanced, which keeps tests
deterministic.
"""

import threading
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from provider_subscriptions.logging_config import get_logger

logger = get_logger(__name__)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Clock:
    """Virtual clock shared by services, the sweep and the control API.

    Args:
        start: optional instant to pin the clock to
    """

    def __init__(self, start: Optional[datetime] = None) -> None:
        self._lock = threading.RLock()
        self._pinned = _as_utc(start) if start is not None else None
        self._offset = timedelta(0)

        logger.info("clock_initialized", pinned=self._pinned is not None)

    def now(self) -> datetime:
        """Current virtual time, timezone-aware UTC."""
        with self._lock:
            base = self._pinned if self._pinned is not None else datetime.now(timezone.utc)
            return base + self._offset

    @property
    def offset(self) -> timedelta:
        with self._lock:
            return self._offset

    def advance(self, days: int = 0, hours: int = 0, minutes: int = 0) -> Tuple[datetime, datetime]:
        """Advance virtual time.

        Returns:
            (previous time, new time)

        Raises:
            ValueError: if any value is negative
        """
        if days < 0 or hours < 0 or minutes < 0:
            raise ValueError("Cannot advance time backwards, negative values are not allowed")

        delta = timedelta(days=days, hours=hours, minutes=minutes)
        with self._lock:
            previous = self.now()
            self._offset += delta
            current = previous + delta

        if delta:
            logger.info(
                "time_advanced",
                previous_time=previous.isoformat(),
                current_time=current.isoformat(),
                days=days,
                hours=hours,
                minutes=minutes,
            )
        return previous, current

    def set_time(self, target: datetime) -> Tuple[datetime, datetime]:
        """Jump to a specific instant.

        Naive datetimes are taken as UTC.

        Raises:
            ValueError: If target is before the current virtual time
        """
        target = _as_utc(target)
        with self._lock:
            previous = self.now()
            if target < previous:
                raise ValueError(
                    f"Cannot set time backwards, current: {previous.isoformat()}, "
                    f"requested: {target.isoformat()}"
                )
            self._offset += target - previous

        logger.info("time_set", previous_time=previous.isoformat(), current_time=target.isoformat())
        return previous, target

    def reset(self) -> Tuple[datetime, datetime]:
        """Drop the offset (a pinned clock returns to its start instant)."""
        with self._lock:
            previous = self.now()
            self._offset = timedelta(0)
            current = self.now()

        logger.info("time_reset", previous_time=previous.isoformat(), current_time=current.isoformat())
        return previous, current


_clock_instance: Optional[Clock] = None
_clock_lock = threading.Lock()


def get_clock() -> Clock:
    global _clock_instance
    if _clock_instance is None:
        with _clock_lock:
            if _clock_instance is None:
                _clock_instance = Clock()
    return _clock_instance
