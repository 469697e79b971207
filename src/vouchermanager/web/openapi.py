from typing import Any

from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi
from pydantic import BaseModel, Field


def set_custom_openapi(app: FastAPI) -> None:
    def custom_openapi() -> dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        app.openapi_schema = get_openapi(
            title="Voucher Manager API",
            version="0.1.0",
            summary="Guest WiFi vouchers on top of a network controller, with rolling single-use vouchers",
            routes=app.routes,
        )
        return app.openapi_schema

    app.openapi = custom_openapi  # type: ignore[method-assign]


class ErrorResponse(BaseModel):
    """Standard error response format."""

    message: str = Field(..., description="Human-readable error message")
    type: str = Field(..., description="Machine-readable error type")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"message": "No rolling voucher at index 2", "type": "not_found"},
                {"message": "A rolling voucher was already issued to 10.0.0.5", "type": "forbidden"},
                {"message": "Network controller is unreachable.", "type": "controller_unreachable"},
            ]
        }
    }
