"""Contract shared by both controller API generations."""

from typing import Protocol

import httpx

from vouchermanager.config import ApiMode, Config
from vouchermanager.core.controller.executor import HTTP_TIMEOUT
from vouchermanager.core.controller.integration import IntegrationControllerApi
from vouchermanager.core.controller.legacy import LegacyControllerApi
from vouchermanager.core.modules.voucher.models import ControllerVoucher, CreateVoucherRequest


class ControllerApi(Protocol):
    """Voucher operations of one controller API generation.

    Implementations return raw ``ControllerVoucher`` objects; normalization happens above them.
    """

    async def connect(self) -> None:
        """Prepare the client for use (initial login, site lookup)."""

    async def fetch_vouchers(self) -> list[ControllerVoucher]: ...

    async def fetch_voucher(self, voucher_id: str) -> ControllerVoucher | None: ...

    async def create_vouchers(self, request: CreateVoucherRequest) -> list[ControllerVoucher]: ...

    async def delete_voucher(self, voucher_id: str) -> bool:
        """Delete one voucher, returning whether the controller confirmed it."""
        ...


def create_http_client(config: Config) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=config.unifi_controller_url,
        timeout=HTTP_TIMEOUT,
        verify=config.unifi_has_valid_cert,
        headers={"Accept": "application/json"},
    )


def create_controller_api(config: Config, http: httpx.AsyncClient) -> ControllerApi:
    """Build the API client for the generation selected in config."""
    if config.unifi_api_mode == ApiMode.INTEGRATION:
        return IntegrationControllerApi(http, config.unifi_api_key, config.unifi_site_id)
    return LegacyControllerApi(http, config.unifi_username, config.unifi_password, config.unifi_site_id)
