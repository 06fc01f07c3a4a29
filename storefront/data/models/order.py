from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, Numeric
from sqlalchemy.orm import relationship

from storefront.data.database import Base

PAYMENT_STATUSES = ("pending", "paid", "failed", "refunded")
ORDER_STATUSES = ("pending", "processing", "shipped", "delivered", "cancelled")


def _now():
    return datetime.now(timezone.utc)


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    # one order per paid checkout session
    stripe_session_id = Column(String(255), nullable=False, unique=True, index=True)
    stripe_payment_intent_id = Column(String(255), nullable=True)
    customer_email = Column(String(255), nullable=True, index=True)

    subtotal = Column(Numeric(10, 2), nullable=False)
    shipping = Column(Numeric(10, 2), nullable=False, default=0)
    tax = Column(Numeric(10, 2), nullable=False, default=0)
    total = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False)

    payment_status = Column(String(20), nullable=False, default="pending", index=True)
    order_status = Column(String(20), nullable=False, default="pending", index=True)

    shipping_name = Column(String(255), nullable=True)
    shipping_line1 = Column(String(255), nullable=True)
    shipping_line2 = Column(String(255), nullable=True)
    shipping_city = Column(String(100), nullable=True)
    shipping_state = Column(String(100), nullable=True)
    shipping_postal_code = Column(String(20), nullable=True)
    shipping_country = Column(String(2), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    # bookkeeping, stamped on every write to the row
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)

    items = relationship(
        "OrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItemModel.id",
    )
