from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Query

from vouchermanager.core.modules.voucher.models import (
    CreateVoucherRequest,
    CreateVoucherResponse,
    DeleteResponse,
    Voucher,
    VoucherListResponse,
)
from vouchermanager.web.deps import AppDep
from vouchermanager.web.openapi import ErrorResponse

logger = structlog.get_logger(__name__)

router: APIRouter = APIRouter(tags=["vouchers"])

CONTROLLER_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    502: {"model": ErrorResponse, "description": "Controller rejected the request or replied with garbage"},
    504: {"model": ErrorResponse, "description": "Controller is unreachable"},
}


@router.get(
    "/vouchers",
    summary="List vouchers",
    description="Get every voucher the controller knows about. Nothing is cached, each call reads the controller.",
    operation_id="listVouchers",
    responses={200: {"description": "All vouchers"}, **CONTROLLER_ERROR_RESPONSES},
)
async def list_vouchers(app: AppDep) -> VoucherListResponse:
    return VoucherListResponse(data=await app.list_vouchers())


@router.post(
    "/vouchers",
    summary="Create vouchers",
    description="Create `count` vouchers sharing the same note, duration and limits.",
    operation_id="createVouchers",
    responses={200: {"description": "Created vouchers"}, **CONTROLLER_ERROR_RESPONSES},
)
async def create_vouchers(request: CreateVoucherRequest, app: AppDep) -> CreateVoucherResponse:
    return await app.create_voucher(request)


@router.get(
    "/vouchers/details",
    summary="Get voucher details",
    operation_id="getVoucher",
    responses={
        200: {"description": "Voucher details"},
        404: {"model": ErrorResponse, "description": "Voucher not found"},
        **CONTROLLER_ERROR_RESPONSES,
    },
)
async def get_voucher(app: AppDep, id: Annotated[str, Query(min_length=1, description="Voucher ID")]) -> Voucher:
    return await app.get_voucher(id)


@router.get(
    "/vouchers/newest",
    summary="Get newest voucher",
    description="Get the voucher with the latest creation time.",
    operation_id="getNewestVoucher",
    responses={
        200: {"description": "Newest voucher"},
        404: {"model": ErrorResponse, "description": "No vouchers exist"},
        **CONTROLLER_ERROR_RESPONSES,
    },
)
async def get_newest_voucher(app: AppDep) -> Voucher:
    return await app.get_newest_voucher()


@router.delete(
    "/vouchers/expired",
    summary="Delete expired vouchers",
    operation_id="deleteExpiredVouchers",
    responses={200: {"description": "Number of deleted vouchers"}, **CONTROLLER_ERROR_RESPONSES},
)
async def delete_expired(app: AppDep) -> DeleteResponse:
    return await app.delete_expired()


@router.delete(
    "/vouchers/expired/rolling",
    summary="Delete expired rolling vouchers",
    description="Same as the nightly purge: only expired vouchers whose name starts with `[ROLLING]`.",
    operation_id="deleteExpiredRollingVouchers",
    responses={200: {"description": "Number of deleted vouchers"}, **CONTROLLER_ERROR_RESPONSES},
)
async def delete_expired_rolling(app: AppDep) -> DeleteResponse:
    return await app.delete_expired_rolling()


@router.delete(
    "/vouchers/selected",
    summary="Delete selected vouchers",
    description="Delete vouchers by ID. Failed deletions are skipped and left out of the count.",
    operation_id="deleteSelectedVouchers",
    responses={200: {"description": "Number of deleted vouchers"}, **CONTROLLER_ERROR_RESPONSES},
)
async def delete_selected(
    app: AppDep, ids: Annotated[str, Query(description="Comma-separated voucher IDs")]
) -> DeleteResponse:
    voucher_ids = [voucher_id.strip() for voucher_id in ids.split(",")]
    logger.info("delete_selected_requested", count=len(voucher_ids))
    return await app.delete_by_ids(voucher_ids)
