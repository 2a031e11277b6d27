"""Unit tests for coupon, totals and form validation endpoints."""

from typing import Any

import pytest
from fastapi.testclient import TestClient


def test_validate_coupon(client: TestClient) -> None:
    response = client.post("/api/v1/checkout/coupons/validate", json={"code": " welcome10 "})
    assert response.status_code == 200

    data = response.json()
    assert data["valid"] is True
    assert data["discount"] == {"type": "percentage", "value": 10}
    assert data["message"] == "10% discount applied!"


def test_validate_unknown_coupon(client: TestClient) -> None:
    """Test unknown codes are reported in the body, not as an HTTP error."""
    response = client.post("/api/v1/checkout/coupons/validate", json={"code": "BOGUS"})
    assert response.status_code == 200

    data = response.json()
    assert data["valid"] is False
    assert data["error"] == "Invalid coupon code"
    assert data["discount"] is None


def test_totals_with_coupon_and_express(client: TestClient, sample_cart: list[dict]) -> None:
    response = client.post(
        "/api/v1/checkout/totals",
        json={"cart": sample_cart, "coupon_code": "WELCOME10", "shipping_option": "express"},
    )
    assert response.status_code == 200

    data = response.json()
    assert data["subtotal"] == "70.00"
    assert data["discount"] == "7.00"
    assert data["shipping"] == "4.99"
    assert data["total"] == "67.99"
    assert data["currency"] == "GBP"
    assert data["coupon"]["valid"] is True


def test_totals_free_shipping(client: TestClient, sample_cart: list[dict]) -> None:
    response = client.post(
        "/api/v1/checkout/totals",
        json={"cart": sample_cart, "coupon_code": "freeship", "shipping_option": "express"},
    )

    data = response.json()
    assert data["shipping"] == "0.00"
    assert data["discount"] == "0.00"
    assert data["total"] == "70.00"


def test_totals_defaults_to_standard_shipping(client: TestClient) -> None:
    response = client.post(
        "/api/v1/checkout/totals",
        json={"cart": [{"id": 7, "quantity": 3, "price": "£9.99"}]},
    )

    data = response.json()
    assert data["subtotal"] == "29.97"
    assert data["shipping"] == "0.00"
    assert data["total"] == "29.97"
    assert data["coupon"] is None


def test_totals_invalid_coupon(client: TestClient, sample_cart: list[dict]) -> None:
    response = client.post(
        "/api/v1/checkout/totals", json={"cart": sample_cart, "coupon_code": "NOPE"}
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid coupon code"


def test_totals_unknown_shipping_option(client: TestClient, sample_cart: list[dict]) -> None:
    response = client.post(
        "/api/v1/checkout/totals", json={"cart": sample_cart, "shipping_option": "overnight"}
    )
    assert response.status_code == 422


def test_validate_form(client: TestClient) -> None:
    response = client.post(
        "/api/v1/checkout/validate",
        json={
            "contact": {"name": "Ada Lovelace", "email": "ada@example.com"},
            "address": {
                "first_name": "Ada",
                "last_name": "Lovelace",
                "line1": "12 Analytical Row",
                "city": "London",
                "postcode": "SW1A 1AA",
                "phone": "07700 900123",
            },
        },
    )
    assert response.status_code == 200
    assert response.json() == {"valid": True, "errors": {}}


def test_validate_empty_form(client: TestClient) -> None:
    response = client.post("/api/v1/checkout/validate", json={})
    assert response.status_code == 200

    data = response.json()
    assert data["valid"] is False
    assert data["errors"]["name"] == "Name is required"
    assert data["errors"]["email"] == "Enter a valid email"
    assert data["errors"]["postcode"] == "Postcode required"
    assert "phone" not in data["errors"]


@pytest.mark.parametrize("price", ["abc", "NaN", "Infinity", -5, "-1.00"])
def test_totals_invalid_price(client: TestClient, price: Any) -> None:
    """Test unparseable, non-finite and negative prices are rejected."""
    response = client.post(
        "/api/v1/checkout/totals", json={"cart": [{"id": 1, "quantity": 1, "price": price}]}
    )
    assert response.status_code == 400
    assert response.json()["detail"].startswith("Invalid price")


def test_totals_price_with_thousands_separator(client: TestClient) -> None:
    response = client.post(
        "/api/v1/checkout/totals", json={"cart": [{"id": 1, "quantity": 1, "price": "£1,299.00"}]}
    )
    assert response.status_code == 200
    assert response.json()["subtotal"] == "1299.00"
