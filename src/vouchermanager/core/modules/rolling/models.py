"""Rolling voucher policy and rotation results."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from vouchermanager.core.modules.voucher.models import Voucher

DEFAULT_ROLLING_DURATION_HOURS = 24.0


class RollingVoucherPolicy(BaseModel):
    """Settings applied to every rolling voucher (``rollingVoucher`` in the tiers file)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    enabled: bool = False
    duration_hours: float = DEFAULT_ROLLING_DURATION_HOURS
    download_mbps: int | None = None
    upload_mbps: int | None = None
    data_limit_mb: int | None = None
    min_rolling_vouchers: int = Field(1, ge=0)

    @property
    def duration_minutes(self) -> int:
        return int(self.duration_hours * 60)

    @property
    def download_kbps(self) -> int | None:
        return self.download_mbps * 1000 if self.download_mbps is not None else None

    @property
    def upload_kbps(self) -> int | None:
        return self.upload_mbps * 1000 if self.upload_mbps is not None else None


class VoucherTier(BaseModel):
    """Preset offered by the kiosk for manually created vouchers."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    name: str
    description: str = ""
    duration_hours: float
    download_mbps: int | None = None
    upload_mbps: int | None = None
    data_limit_mb: int | None = None


class VoucherTiersFile(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    rolling_voucher: RollingVoucherPolicy | None = None
    tiers: list[VoucherTier] = []


class ReplenishStatus(StrEnum):
    CREATED = "created"
    NO_ACTION_NEEDED = "no_action_needed"
    FAILED = "failed"


class ReplenishResult(BaseModel):
    """Outcome of topping up the unused rolling voucher pool."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    status: ReplenishStatus
    voucher: Voucher | None = Field(None, description="First voucher created in this run")
    created: int = Field(0, description="Vouchers created in this run")
    failed: int = Field(0, description="Creations that failed and were skipped")
