from collections.abc import Callable

import structlog

from vouchermanager.core.core import Service
from vouchermanager.core.modules.rolling.selector import is_rolling, pick_newest
from vouchermanager.core.modules.voucher.models import CreateVoucherRequest, CreateVoucherResponse, DeleteResponse, Voucher
from vouchermanager.errors import ControllerError, NotFoundError

logger = structlog.get_logger(__name__)


class VoucherService(Service):
    """Fetch, create and delete vouchers on the controller.

    Nothing is cached: every call reads the controller again, so results always
    reflect redemptions and expiries that happened since the last call.
    """

    async def list_vouchers(self) -> list[Voucher]:
        raw = await self.controller.fetch_vouchers()
        return self.core.normalizer.normalize_all(raw)

    async def get_voucher(self, voucher_id: str) -> Voucher:
        raw = await self.controller.fetch_voucher(voucher_id)
        if raw is None:
            raise NotFoundError(f"Voucher '{voucher_id}' not found")
        return self.core.normalizer.normalize(raw)

    async def get_newest_voucher(self) -> Voucher:
        newest = pick_newest(await self.list_vouchers())
        if newest is None:
            logger.warning("newest_voucher_requested_but_none_exist")
            raise NotFoundError("No vouchers exist")
        return newest

    async def create_voucher(self, request: CreateVoucherRequest) -> CreateVoucherResponse:
        raw = await self.controller.create_vouchers(request)
        vouchers = self.core.normalizer.normalize_all(raw)
        logger.info("vouchers_created", requested=request.count, created=len(vouchers), name=request.name)
        return CreateVoucherResponse(vouchers=vouchers)

    async def delete_by_ids(self, ids: list[str]) -> DeleteResponse:
        """Delete vouchers one by one; failures are logged and left out of the count."""
        ids = [voucher_id for voucher_id in ids if voucher_id]
        if not ids:
            return DeleteResponse(vouchers_deleted=0)

        deleted = 0
        for voucher_id in ids:
            try:
                confirmed = await self.controller.delete_voucher(voucher_id)
            except ControllerError as e:
                logger.error("voucher_delete_failed", voucher_id=voucher_id, error=str(e))
                continue
            if confirmed:
                deleted += 1
            else:
                logger.warning("voucher_delete_not_confirmed", voucher_id=voucher_id)

        logger.info("vouchers_deleted", deleted=deleted, requested=len(ids))
        return DeleteResponse(vouchers_deleted=deleted)

    async def delete_expired(self) -> DeleteResponse:
        return await self._delete_matching(lambda v: v.expired)

    async def delete_expired_rolling(self) -> DeleteResponse:
        return await self._delete_matching(lambda v: v.expired and is_rolling(v))

    async def _delete_matching(self, predicate: Callable[[Voucher], bool]) -> DeleteResponse:
        vouchers = await self.list_vouchers()
        return await self.delete_by_ids([v.id for v in vouchers if predicate(v)])
