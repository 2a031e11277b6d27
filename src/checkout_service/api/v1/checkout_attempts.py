"""Checkout attempt recording endpoint."""

from typing import Any

import orjson
import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from checkout_service.api.v1.dependencies import get_checkout_attempt_service
from checkout_service.infrastructure.database.models import CheckoutStatus
from checkout_service.infrastructure.database.repository import StorageError
from checkout_service.services.checkout_attempts import CheckoutAttemptService

logger = structlog.get_logger()

router = APIRouter()


# =============================================================================
# Models
# =============================================================================


class CartItem(BaseModel):
    """A cart line as sent by the storefront; extra fields are kept."""

    model_config = ConfigDict(extra="allow")

    id: str | int = Field(..., description="Product identifier")
    quantity: int = Field(1, ge=1, description="Units of the product")
    price: float | str | None = Field(None, description="Unit price")


class CheckoutAttemptPayload(BaseModel):
    """Snapshot of an in-progress checkout.

    Fields beyond the known ones are persisted verbatim in ``extra_data``.
    """

    model_config = ConfigDict(extra="allow")

    guest_session_id: str = Field(..., min_length=1, max_length=255)
    email: str | None = Field(None, description="Shopper email as typed so far")
    contact: dict[str, Any] = Field(default_factory=dict)
    address: dict[str, Any] = Field(default_factory=dict)
    cart: list[CartItem] = Field(default_factory=list)
    status: CheckoutStatus = CheckoutStatus.IN_PROGRESS
    metadata: dict[str, Any] = Field(default_factory=dict)

    def to_attempt(self) -> dict[str, Any]:
        extra = dict(self.model_extra or {})
        attempt = self.model_dump(mode="json", exclude=set(extra))
        attempt["extra_data"] = extra
        return attempt


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _validation_message(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or 'body'}: {err['msg']}"
        for err in exc.errors()
    )


# =============================================================================
# Endpoints
# =============================================================================


@router.post("")
async def record_checkout_attempt(
    request: Request,
    service: CheckoutAttemptService = Depends(get_checkout_attempt_service),
) -> JSONResponse:
    """
    Record a snapshot of an in-progress checkout.

    The storefront posts the form state (debounced) while the shopper types.
    Attempts are upserted by `guest_session_id`. When the snapshot carries a
    valid email and a non-empty cart, an abandoned cart reminder is armed
    for that session.

    **Responses:**
    - `200 {"data": [record]}`
    - `400 {"error": ...}` for malformed JSON or invalid fields
    - `500 {"error": ...}` when the attempt cannot be stored
    """
    body = await request.body()
    try:
        data = orjson.loads(body)
    except orjson.JSONDecodeError as e:
        return _error(400, f"Invalid JSON body: {e}")

    if not isinstance(data, dict):
        return _error(400, "Request body must be a JSON object")

    try:
        payload = CheckoutAttemptPayload.model_validate(data)
    except ValidationError as e:
        return _error(400, _validation_message(e))

    try:
        record = await service.record_attempt(payload.to_attempt())
    except StorageError as e:
        logger.error(
            "Failed to store checkout attempt",
            guest_session_id=payload.guest_session_id,
            error=str(e),
        )
        return _error(500, str(e))

    return JSONResponse(content={"data": [jsonable_encoder(record)]})


@router.api_route(
    "",
    methods=["GET", "HEAD", "OPTIONS", "PUT", "PATCH", "DELETE"],
    include_in_schema=False,
)
async def checkout_attempt_method_not_allowed() -> PlainTextResponse:
    return PlainTextResponse("Method Not Allowed", status_code=405, headers={"Allow": "POST"})
