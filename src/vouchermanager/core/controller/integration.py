"""Integration controller API: API key header and declarative REST resources."""

import httpx
import structlog
from pydantic import BaseModel, Field

from vouchermanager.core.controller.executor import RequestExecutor
from vouchermanager.core.controller.session import ApiKeySession
from vouchermanager.core.modules.voucher.models import ControllerVoucher, CreateVoucherRequest
from vouchermanager.errors import NotFoundError, RequestError

logger = structlog.get_logger(__name__)

INTEGRATION_API_ROUTE = "/proxy/network/integration/v1"
PAGE_SIZE = 1000


class Site(BaseModel):
    id: str
    internal_reference: str = Field(alias="internalReference")
    name: str = ""


class Page[T](BaseModel):
    """One page of a paginated integration API listing."""

    offset: int = 0
    limit: int = 0
    count: int = 0
    total_count: int = Field(alias="totalCount")
    data: list[T]


class CreatedVouchers(BaseModel):
    vouchers: list[ControllerVoucher]


class DeletedVouchers(BaseModel):
    vouchers_deleted: int = Field(alias="vouchersDeleted")


def id_filter(voucher_id: str) -> str:
    """Filter expression selecting a single voucher, e.g. ``id.eq(abc)``."""
    return f"id.eq({voucher_id})"


class IntegrationControllerApi:
    """Voucher operations against the controller's integration API of one site."""

    def __init__(self, http: httpx.AsyncClient, api_key: str, site_id: str) -> None:
        self.session = ApiKeySession(http, api_key)
        self._executor = RequestExecutor(http, self.session)
        self._site_reference = site_id
        self._site_uuid: str | None = None

    @property
    def vouchers_url(self) -> str:
        if self._site_uuid is None:
            raise RuntimeError("Integration API used before connect()")
        return f"{INTEGRATION_API_ROUTE}/sites/{self._site_uuid}/hotspot/vouchers"

    async def connect(self) -> None:
        """Resolve the configured site reference (e.g. ``default``) to the site UUID."""
        sites = await self._fetch_all(f"{INTEGRATION_API_ROUTE}/sites", Page[Site])
        for site in sites:
            if self._site_reference in (site.internal_reference, site.id):
                self._site_uuid = site.id
                logger.info("controller_site_resolved", reference=self._site_reference, site_id=site.id, name=site.name)
                return
        raise NotFoundError(f"Site '{self._site_reference}' not found on controller")

    async def fetch_vouchers(self) -> list[ControllerVoucher]:
        return await self._fetch_all(self.vouchers_url, Page[ControllerVoucher])

    async def fetch_voucher(self, voucher_id: str) -> ControllerVoucher | None:
        try:
            return await self._executor.request("GET", f"{self.vouchers_url}/{voucher_id}", ControllerVoucher)
        except RequestError as e:
            if e.status == httpx.codes.NOT_FOUND:
                return None
            raise

    async def create_vouchers(self, request: CreateVoucherRequest) -> list[ControllerVoucher]:
        body = request.model_dump(by_alias=True, exclude_none=True)
        created = await self._executor.request("POST", self.vouchers_url, CreatedVouchers, json=body)
        logger.info("controller_vouchers_created", count=len(created.vouchers))
        return created.vouchers

    async def delete_voucher(self, voucher_id: str) -> bool:
        result = await self._executor.request(
            "DELETE", self.vouchers_url, DeletedVouchers, params={"filter": id_filter(voucher_id)}
        )
        return result.vouchers_deleted > 0

    async def _fetch_all[T](self, url: str, page_model: type[Page[T]]) -> list[T]:
        items: list[T] = []
        while True:
            page = await self._executor.request("GET", url, page_model, params={"offset": len(items), "limit": PAGE_SIZE})
            items.extend(page.data)
            if not page.data or len(items) >= page.total_count:
                return items
