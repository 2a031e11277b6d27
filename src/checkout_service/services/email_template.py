"""HTML rendering for the abandoned cart reminder email."""

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from html import escape
from typing import Any
from urllib.parse import quote

from checkout_service.config import Settings
from shared.constants import PRICE_PREFIXES

CARD_TEMPLATE = """
    <td class="product-card" style="padding:0 14px 22px 0;text-align:center;vertical-align:top;min-width:150px;">
      <a href="{link}" style="display:inline-block;width:100%;text-decoration:none;color:#222;">
        <div style="background:#fff;border:1px solid #ece7df;border-radius:14px;box-shadow:0 3px 14px #ececec;padding:18px 12px 14px 12px;">
          <img src="{image}" alt="{name}" style="width:120px;height:120px;object-fit:cover;border-radius:9px;border:1.5px solid #f1e9d8;display:block;margin:0 auto 12px;" />
          <div class="product-name" style="font-size:{name_size}px;font-weight:{name_weight};line-height:1.3;max-width:120px;margin:0 auto 4px;">{name}</div>
          {price}
        </div>
      </a>
    </td>"""

PRICE_TEMPLATE = (
    '<div class="product-price" style="font-size:{size}px;color:#bfa054;font-weight:700;margin-top:2px;">'
    "{price}</div>"
)

EMAIL_TEMPLATE = """
  <div style="background:#f4f6fb;padding:0;margin:0;font-family:'Segoe UI',Arial,sans-serif;">
    <div style="max-width:600px;background:#fff;margin:44px auto 0 auto;border-radius:20px;box-shadow:0 8px 36px #e5e5e5;overflow:hidden;">
      <div style="background:#fff;padding:44px 44px 28px 44px;text-align:center;border-bottom:1px solid #eee6dc;">
        <img src="{logo}" alt="{store}" style="width:210px;max-width:90%;margin-bottom:24px;" />
        <h2 style="color:#bfa054;font-size:29px;margin:0 0 6px 0;letter-spacing:0.5px;font-family:'Georgia',serif;">Did you forget something?</h2>
        <p style="color:#222;font-size:19px;margin:0 0 20px 0;">You left these item(s) in your cart:</p>
        <table class="cart-items" width="100%" style="border:none;border-collapse:collapse;margin:0 auto 24px auto;"><tr>{cart_cards}</tr></table>
        <a href="{checkout_url}" style="display:inline-block;background:#bfa054;color:#fff;text-decoration:none;font-size:18px;padding:15px 38px;border-radius:9px;font-weight:700;margin-bottom:18px;">Resume your order</a>
        <p style="font-size:15px;color:#666;margin:18px 0 0 0;">If you have any questions, just reply to this email!</p>
      </div>
      <div style="padding:36px 44px 22px 44px;background:#f7f5f1;">
        <h3 style="font-size:20px;color:#bfa054;margin:0 0 20px 0;text-align:center;font-family:'Georgia',serif;">You may also like</h3>
        {related}
      </div>
      <div style="background:#fff;text-align:center;padding:22px 0 16px 0;font-size:13px;color:#bfa054;letter-spacing:1px;">&copy; {year} {store}</div>
    </div>
  </div>
"""

RELATED_TABLE = (
    '<table class="related-items" width="100%" style="border:none;border-collapse:collapse;'
    'margin:0 auto 10px auto;"><tr>{cards}</tr></table>'
)

NO_RELATED = (
    '<div style="color:#999;text-align:center;font-size:15px;padding:18px 0;">'
    "No related products to show at this time.</div>"
)


def format_price(price: Any, symbol: str = "£") -> str | None:
    """Display price for a product, or None when it has no price.

    Prices already carrying a currency symbol are shown as stored.
    """
    if price is None or price == "":
        return None
    if isinstance(price, str) and price.startswith(PRICE_PREFIXES):
        return price
    try:
        amount = Decimal(str(price))
    except InvalidOperation:
        return f"{symbol}{price}"
    if not amount:
        return None
    return f"{symbol}{amount:.2f}"


class AbandonedCartEmailRenderer:
    """Renders the reminder email from product rows."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def product_url(self, product_id: Any) -> str:
        return f"{self.settings.storefront_base_url}/product/{quote(str(product_id), safe='')}"

    def checkout_url(self, guest_session_id: str) -> str:
        return f"{self.settings.storefront_base_url}/checkout?session={quote(guest_session_id, safe='')}"

    def render_card(self, product: dict[str, Any], related: bool = False) -> str:
        name = product.get("name") or "Product"
        price = format_price(product.get("price"), self.settings.currency_symbol)
        price_html = (
            PRICE_TEMPLATE.format(size=14 if related else 15, price=escape(price)) if price else ""
        )
        return CARD_TEMPLATE.format(
            link=escape(self.product_url(product.get("id"))),
            image=escape(product.get("image_url") or self.settings.placeholder_image_url),
            name=escape(name),
            name_size=15 if related else 16,
            name_weight=500 if related else 600,
            price=price_html,
        )

    def render(
        self,
        cart_products: list[dict[str, Any]],
        related_products: list[dict[str, Any]],
        guest_session_id: str,
        year: int | None = None,
    ) -> str:
        """Render the full email.

        Related products that are also in the cart are dropped here as well
        as in the query.
        """
        cart_ids = {str(p.get("id")) for p in cart_products}
        related_products = [p for p in related_products if str(p.get("id")) not in cart_ids]

        cart_cards = "".join(self.render_card(p) for p in cart_products)
        if related_products:
            related = RELATED_TABLE.format(
                cards="".join(self.render_card(p, related=True) for p in related_products)
            )
        else:
            related = NO_RELATED

        return EMAIL_TEMPLATE.format(
            logo=escape(self.settings.storefront_logo_url),
            store=escape(self.settings.store_name),
            cart_cards=cart_cards,
            checkout_url=escape(self.checkout_url(guest_session_id)),
            related=related,
            year=year or datetime.now(timezone.utc).year,
        )
