"""Coupon validation and order total calculation."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

import structlog

from shared.constants import COUPONS, PRICE_PREFIXES, SHIPPING_EXPRESS, SHIPPING_STANDARD

logger = structlog.get_logger()

CENT = Decimal("0.01")


class InvalidCouponError(ValueError):
    """Raised for unknown or blank coupon codes."""


class InvalidPriceError(ValueError):
    """Raised for cart prices that are not a finite, non-negative amount."""


@dataclass(frozen=True)
class Discount:
    """A coupon's effect: percentage off, fixed amount off, or free shipping."""

    type: str
    value: Any
    message: str

    @property
    def frees_shipping(self) -> bool:
        return self.type == "shipping"


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    discount: Decimal
    shipping: Decimal
    total: Decimal

    def to_dict(self) -> dict[str, str]:
        return {
            "subtotal": str(self.subtotal),
            "discount": str(self.discount),
            "shipping": str(self.shipping),
            "total": str(self.total),
        }


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _unit_price(value: Any) -> Decimal:
    """Parse a cart price: a number, or a string with an optional currency symbol."""
    raw = value
    if isinstance(value, str):
        value = value.strip().lstrip("".join(PRICE_PREFIXES)).replace(",", "")
    try:
        price = Decimal(str(value or 0))
    except InvalidOperation:
        raise InvalidPriceError(f"Invalid price: {raw!r}") from None
    if not price.is_finite() or price < 0:
        raise InvalidPriceError(f"Invalid price: {raw!r}")
    return price


def validate_coupon(code: str | None) -> Discount:
    """Look up a coupon code, ignoring case and surrounding whitespace."""
    normalized = (code or "").strip().upper()
    if not normalized:
        raise InvalidCouponError("Enter a coupon code")

    coupon = COUPONS.get(normalized)
    if coupon is None:
        logger.info("Rejected coupon code", code=normalized)
        raise InvalidCouponError("Invalid coupon code")

    return Discount(type=coupon["type"], value=coupon["value"], message=coupon["message"])


def cart_subtotal(cart: list[dict[str, Any]]) -> Decimal:
    """Sum of price x quantity over the cart's line items."""
    subtotal = Decimal("0")
    for item in cart:
        price = _unit_price(item.get("price"))
        quantity = int(item.get("quantity") or 1)
        subtotal += price * quantity
    return _money(subtotal)


def discount_amount(subtotal: Decimal, discount: Discount | None) -> Decimal:
    """Amount taken off the subtotal, never more than the subtotal itself."""
    if discount is None:
        return Decimal("0.00")

    if discount.type == "percentage":
        amount = subtotal * Decimal(str(discount.value)) / Decimal("100")
    elif discount.type == "fixed":
        amount = Decimal(str(discount.value))
    else:
        amount = Decimal("0")

    return _money(min(amount, subtotal))


def shipping_cost(option: str, express_cost: Decimal, discount: Discount | None = None) -> Decimal:
    if option not in (SHIPPING_STANDARD, SHIPPING_EXPRESS):
        raise ValueError(f"Unknown shipping option: {option}")
    if discount is not None and discount.frees_shipping:
        return Decimal("0.00")
    if option == SHIPPING_EXPRESS:
        return _money(express_cost)
    return Decimal("0.00")


def calculate_totals(
    cart: list[dict[str, Any]],
    shipping_option: str,
    express_cost: Decimal,
    discount: Discount | None = None,
) -> OrderTotals:
    subtotal = cart_subtotal(cart)
    off = discount_amount(subtotal, discount)
    shipping = shipping_cost(shipping_option, express_cost, discount)
    return OrderTotals(
        subtotal=subtotal,
        discount=off,
        shipping=shipping,
        total=_money(subtotal - off + shipping),
    )
