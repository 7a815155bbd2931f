"""
Timezone-aware clock adapters.

ZoneTimeAdapter reads the system clock; FrozenTimeAdapter is a settable clock
for tests, the CLI's --at option and replaying schedules.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo


class ZoneTimeAdapter:
    """System clock with a display timezone (default Europe/Istanbul)."""

    def __init__(self, tz_name: str = "Europe/Istanbul") -> None:
        self._tz_name = tz_name
        self._tz = ZoneInfo(tz_name)

    def now_utc(self) -> datetime:
        return datetime.now(UTC)

    def now_local(self) -> datetime:
        return self.now_utc().astimezone(self._tz)

    def to_local(self, utc_dt: datetime) -> datetime:
        """Convert UTC to local time. Naive input is assumed to be UTC."""
        if utc_dt.tzinfo is None:
            utc_dt = utc_dt.replace(tzinfo=UTC)
        return utc_dt.astimezone(self._tz)

    def to_utc(self, local_dt: datetime) -> datetime:
        """Convert local time to UTC. Naive input is assumed to be local."""
        if local_dt.tzinfo is None:
            local_dt = local_dt.replace(tzinfo=self._tz)
        return local_dt.astimezone(UTC)

    @property
    def timezone_name(self) -> str:
        return self._tz_name


class FrozenTimeAdapter(ZoneTimeAdapter):
    """Clock that only moves when told to."""

    def __init__(self, frozen_utc: datetime, tz_name: str = "Europe/Istanbul") -> None:
        super().__init__(tz_name)
        if frozen_utc.tzinfo is None:
            frozen_utc = frozen_utc.replace(tzinfo=UTC)
        self._now = frozen_utc.astimezone(UTC)

    def now_utc(self) -> datetime:
        return self._now

    def set(self, utc_dt: datetime) -> None:
        if utc_dt.tzinfo is None:
            utc_dt = utc_dt.replace(tzinfo=UTC)
        self._now = utc_dt.astimezone(UTC)

    def advance(self, **kwargs: float) -> datetime:
        """Move the clock forward, e.g. advance(minutes=5)."""
        self._now = self._now + timedelta(**kwargs)
        return self._now
