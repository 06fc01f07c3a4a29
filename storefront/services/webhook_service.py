# storefront/services/webhook_service.py
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.data.database import store_call
from storefront.data.models.cart import CartModel
from storefront.data.models.order import OrderModel
from storefront.data.models.order_item import OrderItemModel
from storefront.domain import cart_rules
from storefront.repos.cart_repo import CartRepo
from storefront.repos.order_repo import OrderRepo
from storefront.services.checkout_service import price_breakdown
from storefront.services.event_ledger import EventLedger
from storefront.services.notification_service import NotificationService
from storefront.services.stripe_gateway import StripeGateway
from storefront.utils import settings
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"
PAYMENT_SUCCEEDED = "payment_intent.succeeded"
PAYMENT_FAILED = "payment_intent.payment_failed"


def _shipping_details(session: Dict[str, Any]) -> Dict[str, Any]:
    # newer API versions nest it under collected_information
    return (
        session.get("shipping_details")
        or (session.get("collected_information") or {}).get("shipping_details")
        or {}
    )


class WebhookService:
    """
    Reconciles Stripe events with the store.

    Delivery is at-least-once and unordered, so every branch is safe to
    repeat: a completed checkout creates at most one order (unique
    stripe_session_id) and payment events only touch payment_status.
    """

    def __init__(
        self,
        db: Session,
        gateway: StripeGateway,
        ledger: Optional[EventLedger] = None,
        notifier: Optional[NotificationService] = None,
        shipping: Decimal | None = None,
        tax_rate: Decimal | None = None,
    ):
        self.db = db
        self.carts = CartRepo(db)
        self.orders = OrderRepo(db)
        self.gateway = gateway
        self.ledger = ledger
        self.notifier = notifier or NotificationService()
        self.shipping = settings.SHIPPING_FLAT_FEE if shipping is None else shipping
        self.tax_rate = settings.TAX_RATE if tax_rate is None else tax_rate

    def handle(self, payload: bytes, signature: str | None) -> Dict[str, Any]:
        # raises SignatureVerificationError before anything is read or written
        event = self.gateway.verify_event(payload, signature)

        event_id = event.get("id")
        event_type = event.get("type")
        logger.info(f"Stripe webhook received: {event_type} ({event_id})")

        owner = None
        if self.ledger and event_id:
            owner = self.ledger.claim(event_id)
            if owner is None:
                logger.info(f"Duplicate delivery of {event_id} ignored")
                return {"received": True}

        try:
            self.dispatch(event)
        except Exception:
            if owner:
                self.ledger.release(event_id, owner)
            raise

        if owner:
            self.ledger.complete(event_id, owner)

        return {"received": True}

    def dispatch(self, event: Dict[str, Any]) -> None:
        event_type = event.get("type")
        obj = (event.get("data") or {}).get("object") or {}

        if event_type == CHECKOUT_COMPLETED:
            self.handle_checkout_completed(obj)
        elif event_type == PAYMENT_SUCCEEDED:
            self.update_payment_status(obj, "paid")
        elif event_type == PAYMENT_FAILED:
            self.update_payment_status(obj, "failed")
        else:
            logger.info(f"Unhandled event type {event_type}")

    @store_call
    def handle_checkout_completed(self, session: Dict[str, Any]) -> Optional[OrderModel]:
        stripe_session_id = session.get("id")
        cart_session_id = (session.get("metadata") or {}).get("cartSessionId")
        logger.info(f"Payment successful for session {stripe_session_id}")

        if not cart_session_id:
            logger.warning(f"Checkout session {stripe_session_id} carries no cartSessionId")
            return None

        existing = self.orders.get_by_stripe_session(stripe_session_id)
        if existing:
            # the cart was cleared in the same commit; anything in it now was added later
            logger.info(f"Order {existing.id} already exists for {stripe_session_id}, nothing to do")
            return existing

        cart = self.carts.find(cart_session_id)
        if not cart or not cart.items:
            logger.info(f"Cart {cart_session_id} already empty, nothing to reconcile")
            return None

        full_session = self.gateway.retrieve_session(stripe_session_id, expand=["line_items"])
        order = self._build_order(full_session, cart)

        # order insert and cart clear commit together
        self.orders.add_order(order)
        self._clear(cart)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.info(f"Concurrent delivery already created the order for {stripe_session_id}")
            return self.orders.get_by_stripe_session(stripe_session_id)

        logger.info(f"Order {order.id} created and cart {cart_session_id} cleared")
        self.notifier.send_order_confirmation(order.id, order.customer_email)
        return order

    def _build_order(self, session: Dict[str, Any], cart: CartModel) -> OrderModel:
        subtotal, _ = cart_rules.compute_totals(cart.items)
        subtotal, shipping, tax, total = price_breakdown(subtotal, self.shipping, self.tax_rate)

        customer_details = session.get("customer_details") or {}
        email = customer_details.get("email") or session.get("customer_email")
        details = _shipping_details(session)
        address = details.get("address") or {}

        return OrderModel(
            stripe_session_id=session.get("id"),
            stripe_payment_intent_id=session.get("payment_intent"),
            customer_email=email.strip().lower() if email else None,
            subtotal=subtotal,
            shipping=shipping,
            tax=tax,
            total=total,
            currency=(session.get("currency") or settings.CURRENCY).upper(),
            payment_status="paid" if session.get("payment_status") == "paid" else "pending",
            order_status="pending",
            shipping_name=details.get("name"),
            shipping_line1=address.get("line1"),
            shipping_line2=address.get("line2"),
            shipping_city=address.get("city"),
            shipping_state=address.get("state"),
            shipping_postal_code=address.get("postal_code"),
            shipping_country=address.get("country"),
            items=[
                OrderItemModel(
                    product_id=i.product_id,
                    name=i.name,
                    price=i.price,
                    image=i.image,
                    size=i.size,
                    quantity=i.quantity,
                )
                for i in cart.items
            ],
        )

    def _clear(self, cart: CartModel) -> None:
        self.carts.clear_items(cart)
        self.carts.stamp(cart)

    @store_call
    def update_payment_status(self, payment_intent: Dict[str, Any], payment_status: str) -> Optional[OrderModel]:
        intent_id = payment_intent.get("id")
        logger.info(f"PaymentIntent {intent_id} -> {payment_status}")

        raw_order_id = (payment_intent.get("metadata") or {}).get("orderId")
        if not raw_order_id:
            return None

        try:
            order_id = int(raw_order_id)
        except (TypeError, ValueError):
            logger.warning(f"PaymentIntent {intent_id} carries unusable orderId {raw_order_id!r}")
            return None

        order = self.orders.update_payment_status(order_id, payment_status)
        if not order:
            logger.warning(f"Order {order_id} referenced by {intent_id} not found")
        return order
