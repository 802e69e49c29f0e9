"""
Reset the shared daily AI call counter.

Meant to be run once a day by cron (or any scheduler), e.g.:

    5 0 * * * cd /srv/guardian && python scripts/reset_daily_quota.py

The gateway also resets lazily when it notices the date changed, so a
missed run only delays the reset until the next AI call.

The script needs the shared Redis options store (GUARDIAN_REDIS_ENABLED=true).
With the in-memory store it refuses to run; schedule
POST /wpaig/v1/ai-reset against the server instead.
"""
import argparse
import asyncio
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from guardian.app.core.logging import get_logger, setup_logging
from guardian.app.core.options import (
    InMemoryOptionsStore,
    RedisOptionsStore,
    get_options_store,
)
from guardian.app.services.quota import QuotaTracker

logger = get_logger("guardian.scripts.reset_daily_quota")


async def reset_quota(only_if_stale: bool = False) -> bool:
    """Reset the counter; with ``only_if_stale`` skip it if already reset today.

    Returns:
        True if the counter was reset
    """
    options = get_options_store()
    tracker = QuotaTracker(options)
    try:
        if only_if_stale:
            reset = await tracker.check_and_reset_if_new_day()
        else:
            await tracker.reset()
            reset = True
        stats = await tracker.usage_stats()
    finally:
        if isinstance(options, RedisOptionsStore):
            await options.close()

    logger.info(
        f"calls_today={stats.calls_today} last_reset={stats.last_reset_date} "
        f"next_reset={stats.next_reset_date} reset={reset}"
    )
    return reset


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Reset the daily AI call counter")
    parser.add_argument(
        "--only-if-stale",
        action="store_true",
        help="skip the reset when the counter was already reset today",
    )
    args = parser.parse_args(argv)

    setup_logging()
    if isinstance(get_options_store(), InMemoryOptionsStore):
        logger.error(
            "Options store is process-local, so a reset here would not reach the "
            "server. Set GUARDIAN_REDIS_ENABLED=true or call POST /wpaig/v1/ai-reset."
        )
        return 1
    asyncio.run(reset_quota(only_if_stale=args.only_if_stale))
    return 0


if __name__ == "__main__":
    sys.exit(main())
