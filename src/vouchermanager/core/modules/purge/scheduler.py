"""Daily midnight purge of expired rolling vouchers."""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, time, timedelta
from typing import Protocol
from zoneinfo import ZoneInfo

import structlog

from vouchermanager.core.modules.voucher.models import DeleteResponse
from vouchermanager.utils import now

logger = structlog.get_logger(__name__)


class Clock(Protocol):
    """Wall clock and sleep, replaceable in tests."""

    def now(self) -> datetime:
        """Current time as an aware datetime."""
        ...

    async def sleep(self, seconds: float) -> None: ...


class SystemClock:
    def now(self) -> datetime:
        return now()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


def next_midnight(current: datetime, timezone: ZoneInfo) -> datetime:
    """Start of the next calendar day in ``timezone``, as a UTC instant.

    Local midnight can be ambiguous (clocks fall back over it) or skipped (clocks
    spring forward over it). Both fold interpretations are resolved and the later
    instant wins: the second occurrence of an ambiguous midnight, or the first
    moment after a gap. The result never precedes the start of the new day.
    """
    local_date = current.astimezone(timezone).date()
    wall = datetime.combine(local_date + timedelta(days=1), time())
    candidates = (wall.replace(tzinfo=timezone, fold=fold).astimezone(UTC) for fold in (0, 1))
    return max(candidates)


class PurgeScheduler:
    """Sleeps until local midnight, purges, and repeats for the life of the process."""

    def __init__(
        self,
        purge: Callable[[], Awaitable[DeleteResponse]],
        timezone: ZoneInfo,
        clock: Clock,
    ) -> None:
        self._purge = purge
        self._timezone = timezone
        self._clock = clock

    def seconds_until_midnight(self) -> float:
        current = self._clock.now()
        return (next_midnight(current, self._timezone) - current).total_seconds()

    async def run_once(self) -> None:
        delay = self.seconds_until_midnight()
        hours, remainder = divmod(int(delay), 3600)
        logger.info(
            "rolling_purge_scheduled",
            timezone=str(self._timezone),
            in_hours=hours,
            in_minutes=remainder // 60,
        )
        await self._clock.sleep(delay)

        logger.info("rolling_purge_started")
        try:
            result = await self._purge()
        except Exception as e:
            # The next midnight still gets its run
            logger.exception("rolling_purge_failed", error=str(e))
        else:
            logger.info("rolling_purge_finished", vouchers_deleted=result.vouchers_deleted)

    async def run_forever(self) -> None:
        while True:
            await self.run_once()
