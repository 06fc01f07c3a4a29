# import all models so they register on Base.metadata
from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel
from storefront.data.models.order import OrderModel, PAYMENT_STATUSES, ORDER_STATUSES
from storefront.data.models.order_item import OrderItemModel

__all__ = [
    "CartModel",
    "CartItemModel",
    "OrderModel",
    "OrderItemModel",
    "PAYMENT_STATUSES",
    "ORDER_STATUSES",
]
