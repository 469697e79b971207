"""Legacy controller API: cookie session and command-style hotspot calls."""

from typing import Any

import httpx
import structlog
from pydantic import BaseModel

from vouchermanager.core.controller.executor import RequestExecutor
from vouchermanager.core.controller.session import CookieSession
from vouchermanager.core.modules.voucher.models import ControllerVoucher, CreateVoucherRequest
from vouchermanager.errors import RequestError

logger = structlog.get_logger(__name__)


class LegacyMeta(BaseModel):
    rc: str
    msg: str | None = None


class VoucherEnvelope(BaseModel):
    meta: LegacyMeta
    data: list[ControllerVoucher]


class CreateTime(BaseModel):
    create_time: int


class CreateEnvelope(BaseModel):
    meta: LegacyMeta
    data: list[CreateTime]


class CommandEnvelope(BaseModel):
    meta: LegacyMeta
    data: list[Any] = []


def _require_ok(meta: LegacyMeta, url: str) -> None:
    if meta.rc != "ok":
        logger.error("controller_command_rejected", url=url, rc=meta.rc, msg=meta.msg)
        raise RequestError(httpx.codes.OK, f"Controller rejected the command: {meta.msg or meta.rc}")


class LegacyControllerApi:
    """Voucher operations against ``/api/s/{site}`` of a self-hosted controller."""

    def __init__(self, http: httpx.AsyncClient, username: str, password: str, site_id: str) -> None:
        self.session = CookieSession(http, "/api/login", username, password)
        self._executor = RequestExecutor(http, self.session)
        site = "default" if site_id.lower() == "default" else site_id
        self._vouchers_url = f"/api/s/{site}/stat/voucher"
        self._hotspot_url = f"/api/s/{site}/cmd/hotspot"

    async def connect(self) -> None:
        await self.session.ensure_authenticated()

    async def fetch_vouchers(self) -> list[ControllerVoucher]:
        envelope = await self._executor.request("GET", self._vouchers_url, VoucherEnvelope)
        _require_ok(envelope.meta, self._vouchers_url)
        return envelope.data

    async def fetch_voucher(self, voucher_id: str) -> ControllerVoucher | None:
        # No single-voucher endpoint in this generation
        return next((v for v in await self.fetch_vouchers() if v.id == voucher_id), None)

    async def create_vouchers(self, request: CreateVoucherRequest) -> list[ControllerVoucher]:
        body: dict[str, Any] = {
            "cmd": "create-voucher",
            "n": request.count,
            "expire": request.time_limit_minutes,
        }
        # Optional settings are only sent when they carry a meaningful value
        if request.name:
            body["note"] = request.name
        optional = {
            "quota": request.authorized_guest_limit,
            "up": request.tx_rate_limit_kbps,
            "down": request.rx_rate_limit_kbps,
            "bytes": request.data_usage_limit_mbytes,
        }
        body.update({key: value for key, value in optional.items() if value})

        envelope = await self._executor.request("POST", self._hotspot_url, CreateEnvelope, json=body)
        _require_ok(envelope.meta, self._hotspot_url)

        # The reply only carries create_time, find the vouchers it refers to
        create_times = {str(item.create_time) for item in envelope.data}
        logger.info("controller_vouchers_created", count=len(create_times), create_times=sorted(create_times))
        created = [v for v in await self.fetch_vouchers() if str(v.created_at) in create_times]
        return created[: request.count]

    async def delete_voucher(self, voucher_id: str) -> bool:
        body = {"cmd": "delete-voucher", "_id": voucher_id}
        envelope = await self._executor.request("POST", self._hotspot_url, CommandEnvelope, json=body)
        if envelope.meta.rc != "ok":
            logger.warning("controller_delete_rejected", voucher_id=voucher_id, rc=envelope.meta.rc, msg=envelope.meta.msg)
            return False
        return True
