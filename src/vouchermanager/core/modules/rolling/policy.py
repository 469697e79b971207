from pathlib import Path

import pydantic
import structlog

from vouchermanager.core.modules.rolling.models import RollingVoucherPolicy, VoucherTiersFile

logger = structlog.get_logger(__name__)


def load_tiers_file(path: str | Path) -> VoucherTiersFile:
    """Read the voucher tiers file, falling back to an empty file on any problem."""
    try:
        content = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        logger.error("voucher_tiers_file_unreadable", path=str(path), error=str(e))
        return VoucherTiersFile()

    try:
        return VoucherTiersFile.model_validate_json(content)
    except pydantic.ValidationError as e:
        logger.error("voucher_tiers_file_invalid", path=str(path), error=str(e))
        return VoucherTiersFile()


def load_rolling_policy(path: str | Path) -> RollingVoucherPolicy:
    policy = load_tiers_file(path).rolling_voucher or RollingVoucherPolicy()
    logger.info(
        "rolling_voucher_policy_loaded",
        enabled=policy.enabled,
        duration_hours=policy.duration_hours,
        download_mbps=policy.download_mbps,
        upload_mbps=policy.upload_mbps,
        data_limit_mb=policy.data_limit_mb,
        min_rolling_vouchers=policy.min_rolling_vouchers,
    )
    return policy
