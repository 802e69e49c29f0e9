"""Wall-clock access for quota and cache bookkeeping."""

import time
from datetime import date, datetime
from typing import Protocol, runtime_checkable
from zoneinfo import ZoneInfo

from guardian.app.core.config import settings


@runtime_checkable
class Clock(Protocol):
    """Anything that can tell the current site date and epoch time."""

    def today(self) -> date:
        ...

    def now(self) -> float:
        ...


class SystemClock:
    """Clock backed by the system time, in the site's timezone.

    Calendar days are evaluated in ``settings.site_timezone`` so the daily
    quota rolls over at the site's midnight, not the server's.
    """

    def __init__(self, timezone: str | None = None) -> None:
        self._tz = ZoneInfo(timezone or settings.site_timezone)

    def today(self) -> date:
        return datetime.now(self._tz).date()

    def now(self) -> float:
        return time.time()
