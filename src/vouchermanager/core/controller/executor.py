"""Single entry point for authenticated controller requests."""

from typing import Any

import httpx
import pydantic
import structlog
from pydantic import BaseModel

from vouchermanager.core.controller.session import Authenticator
from vouchermanager.errors import AuthError, ProtocolError, RequestError, TransportError

logger = structlog.get_logger(__name__)

CONNECT_TIMEOUT_SECONDS = 10.0
REQUEST_TIMEOUT_SECONDS = 30.0
HTTP_TIMEOUT = httpx.Timeout(REQUEST_TIMEOUT_SECONDS, connect=CONNECT_TIMEOUT_SECONDS)


class ControllerErrorBody(BaseModel):
    """Error payload of either API generation, only used to enrich logs."""

    message: str | None = None  # integration API
    meta: dict[str, Any] | None = None  # legacy API: {"rc": "error", "msg": "api.err.LoginRequired"}

    @property
    def detail(self) -> str | None:
        if self.message:
            return self.message
        if self.meta:
            return self.meta.get("msg")
        return None


class RequestExecutor:
    """Runs controller requests with authentication and a single retry on 401.

    Each call resolves to the decoded response model or exactly one of
    ``AuthError``, ``TransportError``, ``RequestError`` or ``ProtocolError``.
    """

    def __init__(self, http: httpx.AsyncClient, session: Authenticator) -> None:
        self._http = http
        self._session = session

    async def request[M: BaseModel](
        self,
        method: str,
        url: str,
        response_model: type[M],
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> M:
        response = await self._send(method, url, json, params)

        if response.status_code == httpx.codes.UNAUTHORIZED:
            logger.warning("controller_unauthorized_retrying", method=method, url=url)
            self._session.invalidate()
            response = await self._send(method, url, json, params)
            if response.status_code == httpx.codes.UNAUTHORIZED:
                logger.error("controller_unauthorized_after_reauth", method=method, url=url)
                raise AuthError("Controller rejected the request after re-authentication")

        if not response.is_success:
            self._log_error_response(method, url, response)
            raise RequestError(response.status_code)

        try:
            return response_model.model_validate_json(response.content)
        except pydantic.ValidationError as e:
            logger.error("controller_response_invalid", method=method, url=url, error=str(e))
            logger.debug("controller_response_body", body=response.text)
            raise ProtocolError(f"Unexpected controller response for {method} {url}") from e

    async def _send(self, method: str, url: str, json: Any, params: dict[str, Any] | None) -> httpx.Response:
        await self._session.ensure_authenticated()
        try:
            return await self._http.request(method, url, json=json, params=params)
        except httpx.TransportError as e:
            logger.error("controller_unreachable", method=method, url=url, error=repr(e))
            raise TransportError(f"Controller request {method} {url} failed: {e}", cause=e) from e

    @staticmethod
    def _log_error_response(method: str, url: str, response: httpx.Response) -> None:
        try:
            detail = ControllerErrorBody.model_validate_json(response.content).detail
        except pydantic.ValidationError:
            detail = None
        if detail is None:
            logger.error("controller_request_failed", method=method, url=url, status=response.status_code)
        else:
            logger.error("controller_request_failed", method=method, url=url, status=response.status_code, detail=detail)
