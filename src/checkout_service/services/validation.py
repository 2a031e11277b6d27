"""Checkout form validation.

Mirrors the rules the storefront applies before payment: contact details,
UK delivery address and an optional phone number. Errors are returned as
a ``{field: message}`` map so a client can highlight each field.
"""

import re
from typing import Any

from shared.constants import EMAIL_PATTERN

_EMAIL_RE = re.compile(EMAIL_PATTERN)
_UK_POSTCODE_RE = re.compile(r"^(GIR 0AA|[A-Z]{1,2}\d[A-Z\d]? ?\d[A-Z]{2})$", re.IGNORECASE)
_PHONE_RE = re.compile(r"^\+?[0-9]{10,14}$")
_WHITESPACE_RE = re.compile(r"\s+")


def is_capturable_email(email: Any) -> bool:
    """True when ``email`` is good enough to send an abandoned cart reminder to."""
    return isinstance(email, str) and bool(_EMAIL_RE.fullmatch(email))


def _text(record: dict[str, Any], field: str) -> str:
    value = record.get(field)
    return value.strip() if isinstance(value, str) else ""


def _require_length(
    errors: dict[str, str], record: dict[str, Any], field: str, minimum: int, message: str
) -> None:
    if len(_text(record, field)) < minimum:
        errors[field] = message


def validate_contact(contact: dict[str, Any]) -> dict[str, str]:
    errors: dict[str, str] = {}
    _require_length(errors, contact, "name", 2, "Name is required")
    if not is_capturable_email(_text(contact, "email")):
        errors["email"] = "Enter a valid email"
    return errors


def validate_postcode(postcode: str) -> str | None:
    """Return an error message for ``postcode`` or None if it is a valid UK postcode."""
    postcode = postcode.strip()
    if len(postcode) < 5:
        return "Postcode required"
    if len(postcode) > 8:
        return "Postcode too long"
    if not _UK_POSTCODE_RE.fullmatch(postcode):
        return "Enter a valid UK postcode (e.g., SW1A 1AA)"
    return None


def validate_phone(phone: str) -> str | None:
    # Optional field
    if not phone:
        return None
    if not _PHONE_RE.fullmatch(_WHITESPACE_RE.sub("", phone)):
        return "Please enter a valid phone number"
    return None


def validate_address(address: dict[str, Any]) -> dict[str, str]:
    errors: dict[str, str] = {}
    _require_length(errors, address, "first_name", 2, "First name is required")
    _require_length(errors, address, "last_name", 2, "Last name is required")
    _require_length(errors, address, "line1", 3, "Address required")
    _require_length(errors, address, "city", 2, "City required")

    postcode_error = validate_postcode(_text(address, "postcode"))
    if postcode_error:
        errors["postcode"] = postcode_error

    phone_error = validate_phone(_text(address, "phone"))
    if phone_error:
        errors["phone"] = phone_error
    return errors


def validate_checkout_form(contact: dict[str, Any], address: dict[str, Any]) -> dict[str, str]:
    """Validate the whole checkout form; an empty map means it can be submitted."""
    return {**validate_contact(contact), **validate_address(address)}


def completed_fields(*records: dict[str, Any]) -> dict[str, bool]:
    """Map of field name -> True for every non-empty field across ``records``."""
    fields: dict[str, bool] = {}
    for record in records:
        for key, value in (record or {}).items():
            if value not in (None, "", [], {}):
                fields[key] = True
    return fields
