# storefront/services/checkout_service.py
from decimal import Decimal
from typing import Dict, Any, List, Tuple

from sqlalchemy.orm import Session

from storefront.data.database import store_call
from storefront.domain import cart_rules
from storefront.domain.errors import EmptyCartError
from storefront.domain.schemas import CreateCheckoutIn
from storefront.repos.cart_repo import CartRepo
from storefront.repos.order_repo import OrderRepo
from storefront.services.stripe_gateway import StripeGateway
from storefront.utils import settings
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def price_breakdown(
    subtotal,
    shipping: Decimal = None,
    tax_rate: Decimal = None,
) -> Tuple[Decimal, Decimal, Decimal, Decimal]:
    """(subtotal, shipping, tax, total) for a cart subtotal."""
    shipping = settings.SHIPPING_FLAT_FEE if shipping is None else shipping
    tax_rate = settings.TAX_RATE if tax_rate is None else tax_rate

    subtotal = cart_rules.money(subtotal)
    shipping = cart_rules.money(shipping)
    tax = cart_rules.money(subtotal * tax_rate)
    return subtotal, shipping, tax, subtotal + shipping + tax


def _line_item(currency: str, name: str, description: str, amount, quantity: int, images=None):
    product_data = {"name": name, "description": description}
    if images:
        product_data["images"] = images
    return {
        "price_data": {
            "currency": currency,
            "product_data": product_data,
            "unit_amount": cart_rules.to_minor_units(amount),
        },
        "quantity": quantity,
    }


class CheckoutService:
    """
    Builds priced line items from the stored cart and asks Stripe for a
    hosted checkout session. The cart session id travels in the session
    metadata; it is the webhook's only way back to the cart.
    """

    def __init__(
        self,
        db: Session,
        gateway: StripeGateway,
        currency: str | None = None,
        shipping: Decimal | None = None,
        tax_rate: Decimal | None = None,
        client_url: str | None = None,
    ):
        self.carts = CartRepo(db)
        self.orders = OrderRepo(db)
        self.gateway = gateway
        self.currency = currency or settings.CURRENCY
        self.shipping = settings.SHIPPING_FLAT_FEE if shipping is None else shipping
        self.tax_rate = settings.TAX_RATE if tax_rate is None else tax_rate
        self.client_url = (client_url or settings.CLIENT_URL).rstrip("/")

    def build_line_items(self, items, base_url: str = "") -> List[Dict[str, Any]]:
        subtotal, _ = cart_rules.compute_totals(items)
        _, shipping, tax, _ = price_breakdown(subtotal, self.shipping, self.tax_rate)

        line_items = []
        for item in items:
            image = item.image
            # relative catalog images are served by this site
            if image.startswith("/") and base_url:
                image = f"{base_url.rstrip('/')}{image}"
            line_items.append(
                _line_item(self.currency, item.name, f"Size: {item.size}", item.price, item.quantity, [image])
            )

        line_items.append(_line_item(self.currency, "Shipping", "Standard shipping", shipping, 1))
        if tax > 0:
            line_items.append(_line_item(self.currency, "Tax", "Sales tax", tax, 1))
        return line_items

    @store_call
    def create_session(self, payload: CreateCheckoutIn, base_url: str = "") -> Dict[str, Any]:
        session_id = cart_rules.validate_session_id(payload.session_id)

        cart = self.carts.find(session_id)
        if not cart or not cart.items:
            logger.info(f"Checkout refused for empty cart {session_id}")
            raise EmptyCartError(session_id)

        params = {
            "payment_method_types": ["card"],
            "line_items": self.build_line_items(cart.items, base_url),
            "mode": "payment",
            "success_url": payload.success_url
            or f"{self.client_url}/checkout/success?session_id={{CHECKOUT_SESSION_ID}}",
            "cancel_url": payload.cancel_url or f"{self.client_url}/cart",
            "metadata": {"cartSessionId": session_id},
            "shipping_address_collection": {"allowed_countries": settings.ALLOWED_SHIPPING_COUNTRIES},
        }
        if payload.email:
            params["customer_email"] = payload.email

        session = self.gateway.create_checkout_session(**params)
        logger.info(f"Checkout session {session.get('id')} created for cart {session_id}")
        return {"success": True, "session_id": session.get("id"), "url": session.get("url")}

    @store_call
    def session_status(self, stripe_session_id: str) -> Dict[str, Any]:
        session = self.gateway.retrieve_session(stripe_session_id)
        order = self.orders.get_by_stripe_session(stripe_session_id)

        amount_total = session.get("amount_total")
        customer_details = session.get("customer_details") or {}
        return {
            "success": True,
            "session": {
                "id": session.get("id"),
                "payment_status": session.get("payment_status"),
                "customer_email": customer_details.get("email") or session.get("customer_email"),
                "amount_total": Decimal(amount_total) / 100 if amount_total is not None else None,
                "currency": session.get("currency"),
            },
            "order": {
                "id": order.id,
                "order_status": order.order_status,
                "payment_status": order.payment_status,
                "total": order.total,
            } if order else None,
        }
