"""Conversion of controller vouchers into the canonical, timezone-aware shape."""

import re
from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from zoneinfo import ZoneInfo

import structlog

from vouchermanager.core.modules.voucher.models import ControllerVoucher, RawTimestamp, Voucher
from vouchermanager.utils import now

logger = structlog.get_logger(__name__)

DATE_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"
EPOCH_SECONDS_RE = re.compile(r"^-?\d+$")


class VoucherNormalizer:
    """Formats timestamps in one timezone and recomputes the expired flag."""

    def __init__(self, timezone: ZoneInfo, clock: Callable[[], datetime] = now) -> None:
        self.timezone = timezone
        self._clock = clock

    def parse_timestamp(self, value: RawTimestamp | None) -> datetime | None:
        """Parse epoch seconds (number or digit string) or an ISO 8601 string into an aware datetime.

        Naive strings are read in the configured timezone. Returns None when the value cannot be parsed.
        """
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, str):
            text = value.strip()
            if EPOCH_SECONDS_RE.match(text):
                value = int(text)
            else:
                try:
                    parsed = datetime.fromisoformat(text)
                except ValueError:
                    return None
                if parsed.tzinfo is None:
                    parsed = parsed.replace(tzinfo=self.timezone)
                return parsed
        try:
            return datetime.fromtimestamp(value, UTC)
        except (OverflowError, OSError, ValueError):
            return None

    def format_timestamp(self, value: RawTimestamp) -> str:
        parsed = self.parse_timestamp(value)
        if parsed is None:
            logger.error("timestamp_parse_failed", value=value)
            return str(value)
        return parsed.astimezone(self.timezone).strftime(DATE_TIME_FORMAT)

    def normalize(self, raw: ControllerVoucher) -> Voucher:
        expired = False
        if raw.expires_at is not None:
            expires = self.parse_timestamp(raw.expires_at)
            # Unparsable expiry: keep whatever the controller reported
            expired = expires < self._clock() if expires is not None else raw.expired

        return Voucher(
            id=raw.id,
            created_at=self.format_timestamp(raw.created_at),
            created_at_instant=self.parse_timestamp(raw.created_at),
            name=raw.name,
            code=raw.code,
            authorized_guest_limit=raw.authorized_guest_limit,
            authorized_guest_count=raw.authorized_guest_count,
            activated_at=self.format_timestamp(raw.activated_at) if raw.activated_at is not None else None,
            expires_at=self.format_timestamp(raw.expires_at) if raw.expires_at is not None else None,
            expired=expired,
            time_limit_minutes=raw.time_limit_minutes,
            data_usage_limit_mbytes=raw.data_usage_limit_mbytes,
            tx_rate_limit_kbps=raw.tx_rate_limit_kbps,
            rx_rate_limit_kbps=raw.rx_rate_limit_kbps,
        )

    def normalize_all(self, raws: Iterable[ControllerVoucher]) -> list[Voucher]:
        return [self.normalize(raw) for raw in raws]
