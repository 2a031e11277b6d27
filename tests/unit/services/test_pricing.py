"""Unit tests for coupons and order totals."""

from decimal import Decimal

import pytest

from checkout_service.services.pricing import (
    Discount,
    InvalidCouponError,
    InvalidPriceError,
    calculate_totals,
    cart_subtotal,
    discount_amount,
    shipping_cost,
    validate_coupon,
)

EXPRESS = Decimal("4.99")


class TestCoupons:
    def test_percentage_coupon(self) -> None:
        discount = validate_coupon(" welcome10 ")
        assert discount.type == "percentage"
        assert discount.value == 10
        assert not discount.frees_shipping

    def test_free_shipping_coupon(self) -> None:
        discount = validate_coupon("FREESHIP")
        assert discount.frees_shipping
        assert discount.message == "Free shipping applied!"

    def test_blank_code(self) -> None:
        with pytest.raises(InvalidCouponError, match="Enter a coupon code"):
            validate_coupon("   ")

    def test_unknown_code(self) -> None:
        with pytest.raises(InvalidCouponError, match="Invalid coupon code"):
            validate_coupon("SAVE50")


class TestTotals:
    def test_subtotal(self) -> None:
        cart = [
            {"id": 1, "price": 45, "quantity": 1},
            {"id": 2, "price": "£12.50", "quantity": 2},
            {"id": 3, "price": "3.335"},
        ]
        assert cart_subtotal(cart) == Decimal("73.34")

    def test_subtotal_empty_cart(self) -> None:
        assert cart_subtotal([]) == Decimal("0.00")

    def test_subtotal_thousands_separator(self) -> None:
        assert cart_subtotal([{"id": 1, "price": "£1,299.00"}]) == Decimal("1299.00")

    @pytest.mark.parametrize("price", ["abc", "12.5.0", "NaN", "-Infinity", -0.01, "£-3"])
    def test_subtotal_rejects_invalid_price(self, price) -> None:
        with pytest.raises(InvalidPriceError, match="Invalid price"):
            cart_subtotal([{"id": 1, "price": price, "quantity": 1}])

    def test_percentage_discount_rounds_half_up(self) -> None:
        assert discount_amount(Decimal("10.05"), validate_coupon("WELCOME10")) == Decimal("1.01")

    def test_fixed_discount_capped_at_subtotal(self) -> None:
        discount = Discount(type="fixed", value=25, message="£25 off")
        assert discount_amount(Decimal("20.00"), discount) == Decimal("20.00")

    def test_shipping(self) -> None:
        assert shipping_cost("standard", EXPRESS) == Decimal("0.00")
        assert shipping_cost("express", EXPRESS) == Decimal("4.99")
        assert shipping_cost("express", EXPRESS, validate_coupon("FREESHIP")) == Decimal("0.00")

    def test_unknown_shipping_option(self) -> None:
        with pytest.raises(ValueError):
            shipping_cost("overnight", EXPRESS)

    def test_calculate_totals(self) -> None:
        cart = [{"id": 1, "price": 45.0, "quantity": 1}, {"id": 2, "price": 12.5, "quantity": 2}]

        totals = calculate_totals(cart, "express", EXPRESS, validate_coupon("WELCOME10"))

        assert totals.to_dict() == {
            "subtotal": "70.00",
            "discount": "7.00",
            "shipping": "4.99",
            "total": "67.99",
        }
