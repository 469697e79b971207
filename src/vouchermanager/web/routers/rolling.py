from typing import Annotated

import structlog
from fastapi import APIRouter, Query

from vouchermanager.core.modules.rolling.models import ReplenishResult
from vouchermanager.core.modules.voucher.models import Voucher
from vouchermanager.errors import ValidationError
from vouchermanager.web.deps import AppDep, ClientInfoDep
from vouchermanager.web.openapi import ErrorResponse
from vouchermanager.web.routers.vouchers import CONTROLLER_ERROR_RESPONSES

logger = structlog.get_logger(__name__)

router: APIRouter = APIRouter(tags=["rolling"])


@router.get(
    "/vouchers/rolling",
    summary="Get rolling voucher for a kiosk",
    description=(
        "Get the unused rolling voucher at `index` of the oldest-first queue. "
        "Each kiosk uses its own index so two screens never show the same code."
    ),
    operation_id="getRollingVoucher",
    responses={
        200: {"description": "Rolling voucher to display"},
        404: {"model": ErrorResponse, "description": "No rolling voucher at this index"},
        **CONTROLLER_ERROR_RESPONSES,
    },
)
async def get_rolling_voucher(app: AppDep, index: Annotated[int, Query(ge=0)] = 0) -> Voucher:
    return await app.get_rolling_candidate(index)


@router.get(
    "/vouchers/rolling/all",
    summary="List unused rolling vouchers",
    operation_id="listUnusedRollingVouchers",
    responses={200: {"description": "Unused rolling vouchers, oldest first"}, **CONTROLLER_ERROR_RESPONSES},
)
async def list_unused_rolling(app: AppDep) -> list[Voucher]:
    return await app.get_unused_rolling()


@router.get(
    "/vouchers/rolling/newest",
    summary="Get newest unused rolling voucher",
    operation_id="getNewestRollingVoucher",
    responses={
        200: {"description": "Most recently created unused rolling voucher"},
        404: {"model": ErrorResponse, "description": "No unused rolling voucher available"},
        **CONTROLLER_ERROR_RESPONSES,
    },
)
async def get_newest_rolling(app: AppDep) -> Voucher:
    return await app.get_newest_rolling()


@router.post(
    "/vouchers/rolling",
    summary="Issue rolling voucher to the calling client",
    description=(
        "Create a rolling voucher for the client IP taken from the first `X-Forwarded-For` entry. "
        "A client gets at most one voucher while a previously issued one is still valid."
    ),
    operation_id="createRollingVoucher",
    responses={
        200: {"description": "Rolling voucher created"},
        400: {"model": ErrorResponse, "description": "Missing X-Forwarded-For header"},
        403: {"model": ErrorResponse, "description": "Client already received a rolling voucher"},
        **CONTROLLER_ERROR_RESPONSES,
    },
)
async def create_rolling_voucher(app: AppDep, client: ClientInfoDep) -> Voucher:
    if client.ip is None:
        logger.error("rolling_voucher_missing_client_ip", hostname=client.hostname)
        raise ValidationError("X-Forwarded-For header is required")
    logger.info("rolling_voucher_requested", hostname=client.hostname, ip=client.ip)
    return await app.create_rolling_for_ip(client.ip)


@router.post(
    "/vouchers/rolling/rotate",
    summary="Replenish rolling voucher pool",
    description="Create rolling vouchers until the configured minimum of unused ones exists.",
    operation_id="rotateRollingVouchers",
    responses={200: {"description": "Replenishment outcome"}, **CONTROLLER_ERROR_RESPONSES},
)
async def rotate_rolling_vouchers(app: AppDep) -> ReplenishResult:
    return await app.replenish_rolling_pool()
