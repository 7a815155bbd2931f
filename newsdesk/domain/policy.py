"""
Publishing policy model.

The policy is an immutable, versioned value object. Callers load it once per
scheduling decision and pass it by value; updates produce a new version.

Time arithmetic helpers work on local wall-clock times in the policy
timezone. Conversion to and from UTC happens at the edges.
"""

from __future__ import annotations

from datetime import UTC, date, datetime, time, timedelta, tzinfo
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TimeWindow(BaseModel):
    """A daily wall-clock window. start > end wraps past midnight."""

    model_config = ConfigDict(frozen=True)

    start: time
    end: time

    def contains(self, t: time) -> bool:
        t = t.replace(tzinfo=None)
        if self.start <= self.end:
            return self.start <= t < self.end
        return t >= self.start or t < self.end


class NightMode(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: time = time(23, 0)
    end: time = time(8, 0)
    silence_push: bool = True
    queue_for_morning: bool = False

    @property
    def window(self) -> TimeWindow:
        return TimeWindow(start=self.start, end=self.end)

    def is_night(self, t: time) -> bool:
        return self.window.contains(t)


class PlatformPolicy(BaseModel):
    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    # Empty means the platform is open around the clock
    allowed_windows: tuple[TimeWindow, ...] = (TimeWindow(start=time(8, 0), end=time(23, 0)),)
    daily_limit: int = Field(default=10, ge=0)
    min_interval_minutes: int = Field(default=30, ge=0)
    night_mode: NightMode | None = Field(default_factory=NightMode)
    emergency_override: bool = True

    def in_allowed_window(self, t: time) -> bool:
        if not self.allowed_windows:
            return True
        return any(w.contains(t) for w in self.allowed_windows)


class EmergencyRules(BaseModel):
    model_config = ConfigDict(frozen=True)

    keywords: tuple[str, ...] = (
        "son dakika",
        "acil",
        "flaş",
        "breaking",
        "deprem",
        "saldırı",
        "patlama",
        "sel",
        "yangın",
        "ölüm",
        "kaza",
    )
    categories: tuple[str, ...] = ("Gündem", "Son Dakika", "Afet")
    trusted_sources: tuple[str, ...] = ()
    min_keyword_score: int = Field(default=1, ge=1)
    default_priority: int = Field(default=50, ge=0, le=100)
    auto_enqueue: bool = False


def _default_platforms() -> dict[str, PlatformPolicy]:
    social = PlatformPolicy()
    return {
        "web": PlatformPolicy(
            allowed_windows=(), daily_limit=0, min_interval_minutes=0, night_mode=None
        ),
        "mobile": PlatformPolicy(allowed_windows=(), daily_limit=0, min_interval_minutes=0),
        "x": social,
        "instagram": social,
    }


class PublishingPolicy(BaseModel):
    """Versioned per-platform scheduling configuration."""

    model_config = ConfigDict(frozen=True)

    version: int = 1
    timezone: str = "Europe/Istanbul"
    schedule_offset_minutes: int = Field(default=15, ge=0)
    platforms: dict[str, PlatformPolicy] = Field(default_factory=_default_platforms)
    emergency: EmergencyRules = Field(default_factory=EmergencyRules)

    @field_validator("platforms", mode="before")
    @classmethod
    def _lowercase_platforms(cls, value: object) -> object:
        if isinstance(value, dict):
            return {str(k).strip().lower(): v for k, v in value.items()}
        return value

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (KeyError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {value}") from e
        return value

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def platform(self, name: str) -> PlatformPolicy | None:
        return self.platforms.get(name.strip().lower())

    def to_local(self, utc_dt: datetime) -> datetime:
        if utc_dt.tzinfo is None:
            utc_dt = utc_dt.replace(tzinfo=UTC)
        return utc_dt.astimezone(self.tz)

    def day_bounds_utc(self, utc_dt: datetime) -> tuple[datetime, datetime]:
        """UTC start (inclusive) and end (exclusive) of the local calendar day."""
        local = self.to_local(utc_dt)
        start = local_at(local.date(), time(0, 0), self.tz)
        end = local_at(local.date() + timedelta(days=1), time(0, 0), self.tz)
        return start.astimezone(UTC), end.astimezone(UTC)


# --- Wall-clock helpers ---


def local_at(day: date, t: time, tz: tzinfo | None) -> datetime:
    return datetime.combine(day, t.replace(tzinfo=None), tzinfo=tz)


def next_occurrence(local_now: datetime, t: time) -> datetime:
    """First local datetime strictly after local_now whose wall clock is t."""
    tz = local_now.tzinfo
    candidate = local_at(local_now.date(), t, tz)
    if candidate <= local_now:
        candidate = local_at(local_now.date() + timedelta(days=1), t, tz)
    return candidate


def next_window_start(local_now: datetime, windows: tuple[TimeWindow, ...]) -> datetime:
    """Earliest upcoming window start after local_now."""
    return min(next_occurrence(local_now, w.start) for w in windows)


def next_local_midnight(local_now: datetime) -> datetime:
    tz = local_now.tzinfo
    return local_at(local_now.date() + timedelta(days=1), time(0, 0), tz)
