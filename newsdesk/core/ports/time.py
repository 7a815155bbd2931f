"""Clock/timezone port."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol


class TimePort(Protocol):
    """Supplies the current instant; policy code converts to local time."""

    def now_utc(self) -> datetime:
        """Get current UTC time (timezone-aware)."""
        ...

    def to_local(self, utc_dt: datetime) -> datetime:
        """Convert a UTC datetime to the adapter's display timezone."""
        ...
