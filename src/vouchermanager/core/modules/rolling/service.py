import structlog

from vouchermanager.core.core import Service
from vouchermanager.core.modules.rolling.models import ReplenishResult, ReplenishStatus
from vouchermanager.core.modules.rolling.selector import (
    has_rotated,
    oldest_first,
    pick_newest,
    pool_deficit,
    rolling_voucher_name,
    unused_rolling,
)
from vouchermanager.core.modules.voucher.models import CreateVoucherRequest, Voucher
from vouchermanager.errors import ControllerError, NotFoundError, PolicyViolationError, ProtocolError

logger = structlog.get_logger(__name__)


class RollingService(Service):
    """Single-use vouchers handed out one per client IP, kept topped up to a minimum pool."""

    # Pause between sequential creations so generated names never share a timestamp
    creation_delay_seconds = 0.1

    async def get_unused_rolling(self) -> list[Voucher]:
        """Unused, unexpired rolling vouchers, oldest first."""
        vouchers = await self.core.services.voucher.list_vouchers()
        return oldest_first(unused_rolling(vouchers))

    async def get_rolling_candidate(self, index: int = 0) -> Voucher:
        """Voucher at ``index`` of the oldest-first queue; kiosks use distinct indexes."""
        queue = await self.get_unused_rolling()
        if index < 0 or index >= len(queue):
            logger.info("rolling_voucher_slot_empty", index=index, available=len(queue))
            raise NotFoundError(f"No rolling voucher at index {index}")
        return queue[index]

    async def get_newest_rolling(self) -> Voucher:
        newest = pick_newest(unused_rolling(await self.core.services.voucher.list_vouchers()))
        if newest is None:
            raise NotFoundError("No unused rolling voucher available")
        return newest

    async def check_ip_rotated(self, ip: str) -> bool:
        return has_rotated(await self.core.services.voucher.list_vouchers(), ip)

    async def create_rolling_for_ip(self, ip: str) -> Voucher:
        if await self.check_ip_rotated(ip):
            logger.info("rolling_voucher_already_rotated", ip=ip)
            raise PolicyViolationError(f"A rolling voucher was already issued to {ip}")

        vouchers = await self._create_rolling(ip)
        if not vouchers:
            raise ProtocolError("Controller did not return the created rolling voucher")
        voucher = vouchers[0]
        logger.info("rolling_voucher_created", ip=ip, voucher_id=voucher.id, code=voucher.code)
        return voucher

    async def replenish_rolling_pool(self) -> ReplenishResult:
        min_pool_size = self.core.rolling_policy.min_rolling_vouchers
        vouchers = await self.core.services.voucher.list_vouchers()
        deficit = pool_deficit(vouchers, min_pool_size)
        if deficit == 0:
            logger.debug("rolling_pool_sufficient", min_pool_size=min_pool_size)
            return ReplenishResult(status=ReplenishStatus.NO_ACTION_NEEDED)

        logger.info("rolling_pool_replenishing", to_create=deficit, min_pool_size=min_pool_size)
        created: list[Voucher] = []
        failed = 0
        for i in range(deficit):
            try:
                batch = await self._create_rolling(f"auto-{i}")
            except ControllerError as e:
                failed += 1
                logger.error("rolling_voucher_create_failed", attempt=i + 1, total=deficit, error=str(e))
            else:
                if batch:
                    created.append(batch[0])
                    logger.info("rolling_voucher_created", attempt=i + 1, total=deficit, voucher_id=batch[0].id)
                else:
                    failed += 1
                    logger.error("rolling_voucher_create_empty", attempt=i + 1, total=deficit)

            if i < deficit - 1:
                await self.core.clock.sleep(self.creation_delay_seconds)

        if not created:
            return ReplenishResult(status=ReplenishStatus.FAILED, failed=failed)
        return ReplenishResult(status=ReplenishStatus.CREATED, voucher=created[0], created=len(created), failed=failed)

    async def _create_rolling(self, key: str) -> list[Voucher]:
        policy = self.core.rolling_policy
        moment = self.core.clock.now().astimezone(self.core.config.tz)
        request = CreateVoucherRequest(
            count=1,
            name=rolling_voucher_name(moment, key),
            time_limit_minutes=policy.duration_minutes,
            authorized_guest_limit=None,
            data_usage_limit_mbytes=policy.data_limit_mb,
            tx_rate_limit_kbps=policy.download_kbps,
            rx_rate_limit_kbps=policy.upload_kbps,
        )
        response = await self.core.services.voucher.create_voucher(request)
        return response.vouchers
