import asyncio
import contextlib

import structlog

from vouchermanager.core.core import Service
from vouchermanager.core.modules.purge.scheduler import PurgeScheduler

logger = structlog.get_logger(__name__)


class PurgeService(Service):
    """Owns the background task that deletes expired rolling vouchers every midnight."""

    _task: asyncio.Task[None] | None = None

    async def on_start(self) -> None:
        scheduler = PurgeScheduler(
            purge=self.core.services.voucher.delete_expired_rolling,
            timezone=self.core.config.tz,
            clock=self.core.clock,
        )
        self._task = asyncio.create_task(scheduler.run_forever(), name="rolling-voucher-purge")
        self._task.add_done_callback(self._on_task_done)
        logger.debug("purge_service_started")

    async def on_stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @staticmethod
    def _on_task_done(task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        # Not restarted here
        if exc := task.exception():
            logger.critical("purge_task_died", error=str(exc), exc_info=exc)
