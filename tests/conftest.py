"""Shared pytest fixtures."""

import asyncio
from datetime import UTC, datetime, timedelta
from itertools import count
from typing import Any

import pytest

from vouchermanager.config import Config
from vouchermanager.core.core import Core
from vouchermanager.core.modules.rolling.models import RollingVoucherPolicy
from vouchermanager.core.modules.voucher.models import ControllerVoucher, CreateVoucherRequest
from vouchermanager.errors import ControllerError


class FakeClock:
    """Manually driven clock; ``sleep`` advances time instead of waiting.

    With ``block_after`` set, sleeps beyond that many block forever so background loops park.
    """

    def __init__(self, current: datetime, block_after: int | None = None) -> None:
        self.current = current
        self.sleeps: list[float] = []
        self.block_after = block_after

    def now(self) -> datetime:
        return self.current

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        if self.block_after is not None and len(self.sleeps) > self.block_after:
            await asyncio.Event().wait()
        self.current += timedelta(seconds=seconds)
        await asyncio.sleep(0)


class FakeController:
    """In-memory controller speaking the integration API field names."""

    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.vouchers: list[ControllerVoucher] = []
        self.created_requests: list[CreateVoucherRequest] = []
        self.deleted_ids: list[str] = []
        self.connect_failures = 0
        self.connect_calls = 0
        self.fail_create_at: set[int] = set()
        self.fail_delete_ids: set[str] = set()
        self.unconfirmed_delete_ids: set[str] = set()
        self._ids = count(1)

    def add(self, **fields: Any) -> ControllerVoucher:
        number = next(self._ids)
        data = {"id": f"v{number}", "code": f"{number:010d}", "createdAt": "2024-01-01T00:00:00Z"} | fields
        voucher = ControllerVoucher.model_validate(data)
        self.vouchers.append(voucher)
        return voucher

    async def connect(self) -> None:
        self.connect_calls += 1
        if self.connect_calls <= self.connect_failures:
            raise ControllerError("controller not ready")

    async def fetch_vouchers(self) -> list[ControllerVoucher]:
        return list(self.vouchers)

    async def fetch_voucher(self, voucher_id: str) -> ControllerVoucher | None:
        return next((v for v in self.vouchers if v.id == voucher_id), None)

    async def create_vouchers(self, request: CreateVoucherRequest) -> list[ControllerVoucher]:
        self.created_requests.append(request)
        if len(self.created_requests) in self.fail_create_at:
            raise ControllerError("create failed")
        created_at = self.clock.now().astimezone(UTC).isoformat()
        return [
            self.add(
                name=request.name,
                createdAt=created_at,
                timeLimitMinutes=request.time_limit_minutes,
                dataUsageLimitMBytes=request.data_usage_limit_mbytes,
                txRateLimitKbps=request.tx_rate_limit_kbps,
                rxRateLimitKbps=request.rx_rate_limit_kbps,
            )
            for _ in range(request.count)
        ]

    async def delete_voucher(self, voucher_id: str) -> bool:
        if voucher_id in self.fail_delete_ids:
            raise ControllerError("delete failed")
        if voucher_id in self.unconfirmed_delete_ids:
            return False
        before = len(self.vouchers)
        self.vouchers = [v for v in self.vouchers if v.id != voucher_id]
        if len(self.vouchers) < before:
            self.deleted_ids.append(voucher_id)
            return True
        return False


@pytest.fixture
def config():
    """Legacy-mode config that ignores any local .env file."""
    return Config(
        _env_file=None,
        unifi_controller_url="https://unifi.test:8443",
        unifi_username="admin",
        unifi_password="secret",
        timezone="UTC",
    )


@pytest.fixture
def clock():
    """Clock frozen at 2024-06-15 12:00 UTC."""
    return FakeClock(datetime(2024, 6, 15, 12, 0, tzinfo=UTC))


@pytest.fixture
def controller(clock):
    return FakeController(clock)


@pytest.fixture
def rolling_policy():
    return RollingVoucherPolicy(enabled=True, duration_hours=24, download_mbps=10, upload_mbps=5, min_rolling_vouchers=3)


@pytest.fixture
def core(config, controller, clock, rolling_policy):
    """Core wired to the fake controller; services are not started."""
    return Core(config, controller=controller, clock=clock, rolling_policy=rolling_policy)
