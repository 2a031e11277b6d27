"""Checkout rule endpoints: coupons, totals and form validation."""

from typing import Any, Literal

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from checkout_service.api.v1.checkout_attempts import CartItem
from checkout_service.config import Settings, get_settings
from checkout_service.services.pricing import (
    Discount,
    InvalidCouponError,
    InvalidPriceError,
    calculate_totals,
    validate_coupon,
)
from checkout_service.services.validation import validate_checkout_form
from shared.constants import SHIPPING_STANDARD

router = APIRouter()


# =============================================================================
# Models
# =============================================================================


class CouponRequest(BaseModel):
    code: str = Field("", description="Coupon code as typed by the shopper")


class DiscountModel(BaseModel):
    type: Literal["percentage", "fixed", "shipping"]
    value: Any


class CouponResponse(BaseModel):
    valid: bool
    discount: DiscountModel | None = None
    message: str | None = None
    error: str | None = None


class TotalsRequest(BaseModel):
    cart: list[CartItem] = Field(default_factory=list)
    coupon_code: str | None = None
    shipping_option: Literal["standard", "express"] = SHIPPING_STANDARD


class TotalsResponse(BaseModel):
    subtotal: str
    discount: str
    shipping: str
    total: str
    currency: str
    coupon: CouponResponse | None = None


class FormValidationRequest(BaseModel):
    contact: dict[str, Any] = Field(default_factory=dict)
    address: dict[str, Any] = Field(default_factory=dict)


class FormValidationResponse(BaseModel):
    valid: bool
    errors: dict[str, str]


def _coupon_response(discount: Discount) -> CouponResponse:
    return CouponResponse(
        valid=True,
        discount=DiscountModel(type=discount.type, value=discount.value),
        message=discount.message,
    )


# =============================================================================
# Endpoints
# =============================================================================


@router.post("/coupons/validate", response_model=CouponResponse)
async def validate_coupon_code(request: CouponRequest) -> CouponResponse:
    """
    Check a coupon code.

    Unknown codes are not an HTTP error: the response carries
    `valid: false` and a message for the shopper.
    """
    try:
        discount = validate_coupon(request.code)
    except InvalidCouponError as e:
        return CouponResponse(valid=False, error=str(e))
    return _coupon_response(discount)


@router.post("/totals", response_model=TotalsResponse)
async def calculate_order_totals(
    request: TotalsRequest,
    settings: Settings = Depends(get_settings),
) -> TotalsResponse:
    """
    Price a cart: subtotal, coupon discount, shipping and total.

    **Shipping options:**
    - `standard`: free
    - `express`: flat rate (4.99 by default)
    """
    discount = None
    coupon = None
    if request.coupon_code:
        try:
            discount = validate_coupon(request.coupon_code)
        except InvalidCouponError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        coupon = _coupon_response(discount)

    cart = [item.model_dump(mode="json") for item in request.cart]
    try:
        totals = calculate_totals(
            cart,
            request.shipping_option,
            express_cost=settings.express_shipping_cost,
            discount=discount,
        )
    except InvalidPriceError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return TotalsResponse(**totals.to_dict(), currency=settings.currency, coupon=coupon)


@router.post("/validate", response_model=FormValidationResponse)
async def validate_checkout_details(request: FormValidationRequest) -> FormValidationResponse:
    """Validate contact and delivery address before payment is attempted."""
    errors = validate_checkout_form(request.contact, request.address)
    return FormValidationResponse(valid=not errors, errors=errors)

