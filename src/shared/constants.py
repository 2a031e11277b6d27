"""Shared constants across the application."""

# Email addresses that qualify for abandoned cart follow-up
EMAIL_PATTERN = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

# Metadata keys written on checkout attempts
METADATA_FIELDS_COMPLETED = "fields_completed"
METADATA_CART_ITEMS = "cart_items"
METADATA_EMAIL_VALID = "email_valid"
METADATA_EMAIL_CAPTURED_AT = "email_captured_at"
METADATA_EMAIL_SENT = "abandoned_cart_email_sent"
METADATA_EMAIL_SENT_AT = "abandoned_cart_email_sent_at"

# Reminder skip reasons
SKIP_ORDER_COMPLETED = "order_completed"
SKIP_SESSION_ACTIVE = "session_active"
SKIP_ALREADY_SENT = "already_sent"

# Order status that marks a converted customer
ORDER_STATUS_COMPLETED = "completed"

# Email
ABANDONED_CART_SUBJECT = "You left something in your cart! \U0001f6d2"

# Currency prefixes already present on display prices
PRICE_PREFIXES = ("£", "$", "€")

# Coupons: code -> discount
COUPONS = {
    "WELCOME10": {
        "type": "percentage",
        "value": 10,
        "message": "10% discount applied!",
    },
    "FREESHIP": {
        "type": "shipping",
        "value": "free",
        "message": "Free shipping applied!",
    },
}

# Shipping options
SHIPPING_STANDARD = "standard"
SHIPPING_EXPRESS = "express"
