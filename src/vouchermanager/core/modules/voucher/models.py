"""Voucher models: the controller wire shape and the canonical representation."""

from datetime import datetime
from typing import Annotated, Any

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel


def coerce_optional_count(value: Any) -> Any:
    """Coerce optional limits that controllers send as bool, int or nothing.

    ``true`` means "limited to nothing" (0), ``false`` and missing values mean unlimited,
    and negative numbers are treated as unlimited as well.
    """
    if value is None or value is False:
        return None
    if value is True:
        return 0
    if isinstance(value, int | float) and value < 0:
        return None
    return value


OptionalCount = Annotated[int | None, BeforeValidator(coerce_optional_count)]
RawTimestamp = int | float | str


class ControllerVoucher(BaseModel):
    """Voucher as decoded from either controller API generation.

    Field names follow the integration API; the legacy API names are accepted as aliases.
    Timestamps are kept raw here and formatted by the normalizer.
    """

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    id: str = Field(validation_alias=AliasChoices("id", "_id"))
    created_at: RawTimestamp = Field(validation_alias=AliasChoices("createdAt", "create_time"))
    name: str = Field("", validation_alias=AliasChoices("name", "note"))
    code: str
    authorized_guest_limit: OptionalCount = Field(None, validation_alias=AliasChoices("authorizedGuestLimit", "quota"))
    authorized_guest_count: int = Field(0, validation_alias=AliasChoices("authorizedGuestCount", "used"))
    activated_at: RawTimestamp | None = Field(None, validation_alias=AliasChoices("activatedAt", "start_time"))
    expires_at: RawTimestamp | None = Field(None, validation_alias=AliasChoices("expiresAt", "end_time"))
    expired: bool = False
    time_limit_minutes: int = Field(0, validation_alias=AliasChoices("timeLimitMinutes", "duration"))
    data_usage_limit_mbytes: OptionalCount = Field(
        None, validation_alias=AliasChoices("dataUsageLimitMBytes", "qos_usage_quota")
    )
    tx_rate_limit_kbps: OptionalCount = Field(None, validation_alias=AliasChoices("txRateLimitKbps", "qos_rate_max_up"))
    rx_rate_limit_kbps: OptionalCount = Field(None, validation_alias=AliasChoices("rxRateLimitKbps", "qos_rate_max_down"))


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Voucher(CamelModel):
    """Canonical voucher returned to callers.

    Timestamps are formatted ``YYYY-MM-DD HH:MM:SS`` in the configured timezone.
    ``expired`` is computed when the voucher is normalized and never sent back to the controller.
    """

    id: str = Field(..., description="Controller-assigned voucher ID")
    created_at: str = Field(..., description="Creation time in the configured timezone")
    created_at_instant: datetime | None = Field(None, exclude=True, description="Parsed creation instant, used for ordering")
    name: str = Field("", description="Free-text note; rolling vouchers start with [ROLLING]")
    code: str = Field(..., description="Redeemable voucher code")
    authorized_guest_limit: int | None = Field(None, description="Max simultaneous guests, unset means unlimited")
    authorized_guest_count: int = Field(0, description="Number of redemptions, 0 means unused")
    activated_at: str | None = Field(None, description="First redemption time")
    expires_at: str | None = Field(None, description="Expiry time")
    expired: bool = Field(False, description="Whether the voucher expired at the time it was fetched")
    time_limit_minutes: int = Field(0, description="Session duration in minutes")
    data_usage_limit_mbytes: int | None = Field(None, alias="dataUsageLimitMBytes", description="Data cap in MB")
    tx_rate_limit_kbps: int | None = Field(None, description="Upload rate cap in kbps")
    rx_rate_limit_kbps: int | None = Field(None, description="Download rate cap in kbps")


class CreateVoucherRequest(CamelModel):
    """Request to create one or more vouchers with identical settings."""

    count: int = Field(1, ge=1, description="Number of vouchers to create")
    name: str = Field("", description="Note attached to every created voucher")
    authorized_guest_limit: int | None = Field(None, ge=0)
    time_limit_minutes: int = Field(..., ge=1)
    data_usage_limit_mbytes: int | None = Field(None, alias="dataUsageLimitMBytes", ge=0)
    rx_rate_limit_kbps: int | None = Field(None, ge=0)
    tx_rate_limit_kbps: int | None = Field(None, ge=0)


class CreateVoucherResponse(CamelModel):
    vouchers: list[Voucher]


class VoucherListResponse(CamelModel):
    data: list[Voucher]


class DeleteResponse(CamelModel):
    vouchers_deleted: int = Field(0, ge=0, description="Number of vouchers the controller confirmed deleted")
