"""
Policy component port definitions.
"""

from __future__ import annotations

from newsdesk.core.ports.db import ChannelLogRepoPort as ChannelLogRepoPort
from newsdesk.core.ports.db import SettingsRepoPort as SettingsRepoPort
from newsdesk.core.ports.time import TimePort as TimePort

__all__ = ["ChannelLogRepoPort", "SettingsRepoPort", "TimePort"]
