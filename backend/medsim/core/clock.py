"""Virtual clock for time-travel training scenarios.

The clock keeps a single offset that is added to the true wall-clock time.
Instructors advance it (for example "skip 8 hours") to let students rehearse
delayed follow-up doses without waiting. Readings are presented in a fixed
civil timezone (US Eastern by default) through ``zoneinfo`` so daylight saving
transitions follow the regional rules, while every piece of duration math is
performed on absolute UTC instants.

The offset lives in memory only: restarting the process returns the clock to
real time.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)

TimeSource = Callable[[], datetime]

_DISPLAY_FORMAT = "%m/%d/%Y, %I:%M:%S %p %Z"


def _system_now() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime (naive values are assumed UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def shift(moment: datetime, delta: timedelta) -> datetime:
    """Add an elapsed duration to ``moment`` on the absolute timeline.

    Aware datetimes sharing a ``ZoneInfo`` add timedeltas in wall-clock terms,
    which gains or loses an hour across a DST transition. Converting to UTC
    first keeps "48 hours later" equal to 48 elapsed hours.
    """
    shifted = as_utc(moment) + delta
    if moment.tzinfo is None:
        return shifted
    return shifted.astimezone(moment.tzinfo)


def format_duration(delta: timedelta) -> str:
    """Render a remaining wait largest unit first (``1d 2h``, ``3h 5m``, ``42m``)."""
    total_minutes = max(0, int(delta.total_seconds() // 60))
    days, remainder = divmod(total_minutes, 24 * 60)
    hours, minutes = divmod(remainder, 60)
    if days > 0:
        return f"{days}d {hours}h"
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


@dataclass(slots=True, frozen=True)
class ClockStatus:
    """Snapshot of the virtual clock."""

    current_time: datetime
    is_simulating: bool
    offset_hours: int
    offset_minutes: int


class VirtualClock:
    """Authoritative "current time" for protocol timing decisions."""

    def __init__(
        self,
        timezone: str | ZoneInfo = "America/New_York",
        *,
        source: TimeSource | None = None,
    ) -> None:
        self._tz = timezone if isinstance(timezone, ZoneInfo) else ZoneInfo(timezone)
        self._source = source or _system_now
        self._offset = timedelta(0)
        self._simulating = False

    @property
    def tz(self) -> ZoneInfo:
        return self._tz

    @property
    def offset(self) -> timedelta:
        return self._offset

    @property
    def is_simulating(self) -> bool:
        return self._simulating

    def to_local(self, moment: datetime) -> datetime:
        """Express an instant in the clock's civil timezone."""
        return as_utc(moment).astimezone(self._tz)

    def format(self, moment: datetime) -> str:
        """Human readable local rendering used in operator messages."""
        return self.to_local(moment).strftime(_DISPLAY_FORMAT)

    def now(self) -> datetime:
        """Return the simulated current time in the civil timezone."""
        return self.to_local(as_utc(self._source()) + self._offset)

    def advance(self, hours: int = 0, minutes: int = 0) -> datetime:
        """Move the clock forward; repeated calls accumulate."""
        if hours < 0 or minutes < 0:
            raise ValueError("The virtual clock can only move forward")
        self._offset += timedelta(hours=hours, minutes=minutes)
        self._simulating = True
        current = self.now()
        logger.info(
            "Virtual clock advanced %sh %sm to %s", hours, minutes, self.format(current)
        )
        return current

    def reset(self) -> datetime:
        """Return to real time."""
        self._offset = timedelta(0)
        self._simulating = False
        current = self.now()
        logger.info("Virtual clock reset to real time %s", self.format(current))
        return current

    def status(self) -> ClockStatus:
        total_minutes = int(self._offset.total_seconds() // 60)
        offset_hours, offset_minutes = divmod(total_minutes, 60)
        return ClockStatus(
            current_time=self.now(),
            is_simulating=self._simulating,
            offset_hours=offset_hours,
            offset_minutes=offset_minutes,
        )


__all__ = [
    "ClockStatus",
    "TimeSource",
    "VirtualClock",
    "as_utc",
    "format_duration",
    "shift",
]
