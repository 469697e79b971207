from __future__ import annotations

import importlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, cast

import httpx
import structlog

from vouchermanager.config import Config
from vouchermanager.core.controller.base import ControllerApi, create_controller_api, create_http_client
from vouchermanager.core.modules.purge.scheduler import Clock, SystemClock
from vouchermanager.core.modules.rolling.models import RollingVoucherPolicy
from vouchermanager.core.modules.rolling.policy import load_rolling_policy
from vouchermanager.core.modules.voucher.normalizer import VoucherNormalizer
from vouchermanager.errors import ControllerError

if TYPE_CHECKING:
    from vouchermanager.core.modules.purge.service import PurgeService
    from vouchermanager.core.modules.rolling.service import RollingService
    from vouchermanager.core.modules.voucher.service import VoucherService

logger = structlog.get_logger(__name__)

CONNECT_RETRY_DELAY_SECONDS = 5.0


class Service:
    """Base class for services working against the controller."""

    def __init__(self, controller: ControllerApi) -> None:
        self.controller = controller
        self._core: Core | None = None

    async def on_start(self) -> None:
        """Initialize service on application startup."""

    async def on_stop(self) -> None:
        """Cleanup service on application shutdown."""

    @property
    def core(self) -> Core:
        """Get the core application context."""
        if self._core is None:
            raise RuntimeError("Core not set for service")
        return self._core

    def set_core(self, core: Core) -> None:
        """Set the core application context."""
        self._core = core


class Services:
    """Service registry that automatically discovers and initializes services."""

    voucher: VoucherService
    rolling: RollingService
    purge: PurgeService

    def __init__(self, controller: ControllerApi) -> None:
        """Initialize all services automatically using service configuration."""
        self._services: list[Service] = []

        # Service configuration: (attribute_name, module_path, class_name)
        # Order matters for startup - purge must start after the services it calls
        service_configs = [
            ("voucher", "vouchermanager.core.modules.voucher.service", "VoucherService"),
            ("rolling", "vouchermanager.core.modules.rolling.service", "RollingService"),
            ("purge", "vouchermanager.core.modules.purge.service", "PurgeService"),
        ]

        for attr_name, module_path, class_name in service_configs:
            module = importlib.import_module(module_path)
            service_class = cast(type[Service], getattr(module, class_name))
            service_instance = service_class(controller)
            setattr(self, attr_name, service_instance)
            self._services.append(service_instance)

    def set_core(self, core: Core) -> None:
        """Set core reference for all services."""
        for service in self._services:
            service.set_core(core)

    async def start_all(self) -> None:
        for service in self._services:
            await service.on_start()

    async def stop_all(self) -> None:
        # Reverse order so the purge task is gone before anything it uses
        for service in reversed(self._services):
            await service.on_stop()


class Core:
    """Container providing config, the controller client, and all service instances.

    Built once at startup and shared by reference; ``controller``, ``clock`` and
    ``rolling_policy`` can be injected for tests.
    """

    config: Config
    http: httpx.AsyncClient | None
    controller: ControllerApi
    normalizer: VoucherNormalizer
    rolling_policy: RollingVoucherPolicy
    clock: Clock
    services: Services

    def __init__(
        self,
        config: Config,
        controller: ControllerApi | None = None,
        clock: Clock | None = None,
        rolling_policy: RollingVoucherPolicy | None = None,
    ) -> None:
        self.config = config
        self.clock = clock or SystemClock()
        if controller is None:
            self.http = create_http_client(config)
            self.controller = create_controller_api(config, self.http)
        else:
            self.http = None
            self.controller = controller
        self.normalizer = VoucherNormalizer(config.tz, clock=self.clock.now)
        self.rolling_policy = rolling_policy or load_rolling_policy(config.voucher_tiers_path)
        self.services = Services(self.controller)
        self.services.set_core(self)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Manage application lifecycle - startup and shutdown."""
        await self.on_start()
        try:
            yield
        finally:
            await self.on_stop()

    async def on_start(self) -> None:
        """Connect to the controller, then start all services."""
        await self.connect_controller()
        await self.services.start_all()

    async def on_stop(self) -> None:
        """Stop services and close the controller connection pool."""
        await self.services.stop_all()
        if self.http is not None:
            await self.http.aclose()

    async def connect_controller(self) -> None:
        """Block until the controller accepts us, retrying on controller failures."""
        while True:
            try:
                await self.controller.connect()
            except ControllerError as e:
                logger.warning("controller_connect_failed", error=str(e), retry_in_seconds=CONNECT_RETRY_DELAY_SECONDS)
                await self.clock.sleep(CONNECT_RETRY_DELAY_SECONDS)
            else:
                logger.info("controller_connected", url=self.config.unifi_controller_url, mode=self.config.unifi_api_mode)
                return
