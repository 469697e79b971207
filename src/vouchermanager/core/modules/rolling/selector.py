"""Selection rules for rolling vouchers.

All functions work on an already fetched list of normalized vouchers and never
talk to the controller. A voucher counts as rolling purely by its name prefix.
"""

from collections.abc import Iterable
from datetime import UTC, datetime

from vouchermanager.core.modules.voucher.models import Voucher

ROLLING_VOUCHER_NAME_PREFIX = "[ROLLING]"
ROTATION_TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"
UNPARSABLE_CREATED_AT = datetime(1970, 1, 1, tzinfo=UTC)


def is_rolling(voucher: Voucher) -> bool:
    return voucher.name.startswith(ROLLING_VOUCHER_NAME_PREFIX)


def created_at_key(voucher: Voucher) -> datetime:
    """Sort key on the creation instant; local display times repeat when clocks fall back.

    Vouchers whose creation time could not be parsed sort as the oldest.
    """
    return voucher.created_at_instant or UNPARSABLE_CREATED_AT


def unused_rolling(vouchers: Iterable[Voucher]) -> list[Voucher]:
    return [v for v in vouchers if is_rolling(v) and v.authorized_guest_count == 0 and not v.expired]


def pick_newest(vouchers: Iterable[Voucher]) -> Voucher | None:
    # max() keeps the first of equal keys, timestamps only have second resolution
    return max(vouchers, key=created_at_key, default=None)


def oldest_first(vouchers: Iterable[Voucher]) -> list[Voucher]:
    return sorted(vouchers, key=created_at_key)


def has_rotated(vouchers: Iterable[Voucher], ip: str) -> bool:
    """Whether a live rolling voucher was already issued to this client IP.

    Matches the whole rotation key, so ``110.0.0.5`` does not count for ``10.0.0.5``.
    """
    suffix = f"-{ip}"
    return any(is_rolling(v) and not v.expired and v.name.endswith(suffix) for v in vouchers)


def pool_deficit(vouchers: Iterable[Voucher], min_pool_size: int) -> int:
    return max(0, min_pool_size - len(unused_rolling(vouchers)))


def rolling_voucher_name(moment: datetime, key: str) -> str:
    return f"{ROLLING_VOUCHER_NAME_PREFIX} {moment.strftime(ROTATION_TIMESTAMP_FORMAT)}-{key}"
