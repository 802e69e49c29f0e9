"""Shared free-tier daily quota.

State lives in two options, ``wpaig_ai_daily_calls`` and
``wpaig_ai_reset_date``. The counter is reset lazily by whichever read first
notices the date has changed, and actively by the daily scheduler via
``reset``. Both paths write the same state, so running both on one day is
harmless.
"""

import logging
from datetime import date, timedelta
from typing import Optional

from guardian.app.core.clock import Clock, SystemClock
from guardian.app.core.options import OptionsStore, get_options_store
from guardian.app.services.results import UsageStats

logger = logging.getLogger(__name__)

COUNTER_OPTION = "wpaig_ai_daily_calls"
RESET_DATE_OPTION = "wpaig_ai_reset_date"
PREMIUM_OPTION = "wpaig_is_premium"


def _parse_date(raw) -> Optional[date]:
    if isinstance(raw, date):
        return raw
    if not raw:
        return None
    try:
        return date.fromisoformat(str(raw))
    except ValueError:
        return None


class QuotaTracker:
    """Daily call counter shared by every feature.

    Premium sites bypass the counter entirely: it is neither checked nor
    incremented for them.
    """

    def __init__(
        self,
        options: Optional[OptionsStore] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._options = options
        self.clock = clock or SystemClock()

    @property
    def options(self) -> OptionsStore:
        if self._options is None:
            self._options = get_options_store()
        return self._options

    async def is_premium(self) -> bool:
        return bool(await self.options.get(PREMIUM_OPTION, False))

    async def last_reset_date(self) -> Optional[date]:
        return _parse_date(await self.options.get(RESET_DATE_OPTION, None))

    async def check_and_reset_if_new_day(self) -> bool:
        """Reset the counter if the stored reset date is not today.

        Returns:
            True if a reset happened on this call
        """
        today = self.clock.today()
        if await self.last_reset_date() == today:
            return False
        # Another worker may have reset since the read above; the store decides
        reset = await self.options.reset_if_stale(
            COUNTER_OPTION, RESET_DATE_OPTION, today.isoformat()
        )
        if not reset:
            return False
        logger.info(f"Daily AI call counter reset for {today.isoformat()}")
        return True

    async def current_count(self) -> int:
        await self.check_and_reset_if_new_day()
        return int(await self.options.get(COUNTER_OPTION, 0) or 0)

    async def increment(self) -> int:
        """Record one upstream call and return the new count."""
        await self.check_and_reset_if_new_day()
        return await self.options.increment(COUNTER_OPTION)

    async def reset(self) -> None:
        """Unconditionally zero the counter and stamp today's date."""
        today = self.clock.today()
        await self._write_reset(today)
        logger.info(f"Daily AI call counter reset for {today.isoformat()} (scheduled)")

    async def _write_reset(self, today: date) -> None:
        await self.options.set_many({
            COUNTER_OPTION: 0,
            RESET_DATE_OPTION: today.isoformat(),
        })

    async def is_exhausted(self, max_calls: int) -> bool:
        """True when a non-premium caller has used ``max_calls`` calls today."""
        if await self.is_premium():
            return False
        return await self.current_count() >= max_calls

    async def calls_remaining(self, max_calls: int) -> Optional[int]:
        """Calls left today under ``max_calls``; None means unlimited (premium)."""
        if await self.is_premium():
            return None
        return max(0, max_calls - await self.current_count())

    async def usage_stats(self) -> UsageStats:
        calls_today = await self.current_count()
        return UsageStats(
            calls_today=calls_today,
            last_reset_date=await self.last_reset_date(),
            is_premium=await self.is_premium(),
            next_reset_date=self.clock.today() + timedelta(days=1),
        )
