from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from vouchermanager.config import Config
from vouchermanager.core.core import Core
from vouchermanager.core.modules.rolling.models import ReplenishResult
from vouchermanager.core.modules.voucher.models import CreateVoucherRequest, CreateVoucherResponse, DeleteResponse, Voucher


class App:
    """Facade for all voucher operations exposed to the route layer."""

    def __init__(self, config: Config, core: Core | None = None) -> None:
        self._core = core or Core(config)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Application lifespan management - delegates to Core."""
        async with self._core.lifespan():
            yield

    # === Vouchers ===
    async def list_vouchers(self) -> list[Voucher]:
        """Get all vouchers currently known to the controller."""
        return await self._core.services.voucher.list_vouchers()

    async def get_voucher(self, voucher_id: str) -> Voucher:
        """Get one voucher by controller ID."""
        return await self._core.services.voucher.get_voucher(voucher_id)

    async def get_newest_voucher(self) -> Voucher:
        """Get the most recently created voucher."""
        return await self._core.services.voucher.get_newest_voucher()

    async def create_voucher(self, request: CreateVoucherRequest) -> CreateVoucherResponse:
        """Create vouchers with the requested settings."""
        return await self._core.services.voucher.create_voucher(request)

    async def delete_by_ids(self, ids: list[str]) -> DeleteResponse:
        """Delete the given vouchers, counting the ones the controller confirmed."""
        return await self._core.services.voucher.delete_by_ids(ids)

    async def delete_expired(self) -> DeleteResponse:
        """Delete every expired voucher."""
        return await self._core.services.voucher.delete_expired()

    async def delete_expired_rolling(self) -> DeleteResponse:
        """Delete expired rolling vouchers only."""
        return await self._core.services.voucher.delete_expired_rolling()

    # === Rolling vouchers ===
    async def get_unused_rolling(self) -> list[Voucher]:
        """Get unused rolling vouchers, oldest first."""
        return await self._core.services.rolling.get_unused_rolling()

    async def get_rolling_candidate(self, index: int = 0) -> Voucher:
        """Get the rolling voucher a kiosk at ``index`` should display."""
        return await self._core.services.rolling.get_rolling_candidate(index)

    async def get_newest_rolling(self) -> Voucher:
        """Get the most recently created unused rolling voucher."""
        return await self._core.services.rolling.get_newest_rolling()

    async def check_ip_rotated(self, ip: str) -> bool:
        """Check whether this client IP already received a rolling voucher."""
        return await self._core.services.rolling.check_ip_rotated(ip)

    async def create_rolling_for_ip(self, ip: str) -> Voucher:
        """Issue a rolling voucher to a client IP (once per live voucher)."""
        return await self._core.services.rolling.create_rolling_for_ip(ip)

    async def replenish_rolling_pool(self) -> ReplenishResult:
        """Top up the unused rolling voucher pool to the configured minimum."""
        return await self._core.services.rolling.replenish_rolling_pool()
