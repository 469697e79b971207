from vouchermanager.web.routers.rolling import router as rolling_router
from vouchermanager.web.routers.vouchers import router as vouchers_router

__all__ = [
    "rolling_router",
    "vouchers_router",
]
