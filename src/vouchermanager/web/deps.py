from typing import Annotated, cast

from fastapi import Depends, Header, Request
from pydantic import BaseModel

from vouchermanager.app import App
from vouchermanager.utils import first_forwarded_ip


class ClientInfo(BaseModel):
    """Caller identity as seen through the reverse proxy."""

    hostname: str
    ip: str | None


async def get_app(request: Request) -> App:
    return cast(App, request.app.state.app)


async def get_client_info(
    host: Annotated[str | None, Header()] = None,
    x_forwarded_for: Annotated[str | None, Header()] = None,
) -> ClientInfo:
    """Read the Host header and the originating client IP from X-Forwarded-For."""
    return ClientInfo(hostname=host or "unknown", ip=first_forwarded_ip(x_forwarded_for))


# Type aliases for dependencies
AppDep = Annotated[App, Depends(get_app)]
ClientInfoDep = Annotated[ClientInfo, Depends(get_client_info)]
