from decimal import Decimal
from typing import Dict, Any, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.data.database import store_call
from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel
from storefront.domain import cart_rules
from storefront.domain.errors import NotFoundError
from storefront.domain.schemas import ProductIn
from storefront.repos.cart_repo import CartRepo
from storefront.utils.retry import conflict_retry
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def cart_to_dict(cart: CartModel) -> Dict[str, Any]:
    return {
        "session_id": cart.session_id,
        "items": [
            {
                "product_id": i.product_id,
                "name": i.name,
                "price": i.price,
                "image": i.image,
                "size": i.size,
                "quantity": i.quantity,
                "in_stock": i.in_stock,
            }
            for i in cart.items
        ],
        "total": cart.total,
        "item_count": cart.item_count,
        "last_updated": cart.last_updated,
    }


def empty_cart_dict(session_id: str) -> Dict[str, Any]:
    return {
        "session_id": session_id,
        "items": [],
        "total": Decimal("0.00"),
        "item_count": 0,
        "last_updated": None,
    }


class CartService:
    """
    Use cases of the session cart.
    query (get) reads only, commands (add, update, remove, clear) write
    synchronously and return the cart as stored. No locks: concurrent writes
    to one cart are last-write-wins.
    """

    def __init__(self, db: Session):
        self.repo = CartRepo(db)

    #query
    @store_call
    def get_cart(self, session_id: str) -> Dict[str, Any]:
        cart_rules.validate_session_id(session_id)
        cart = self.repo.find(session_id)
        if not cart:
            return empty_cart_dict(session_id)
        return cart_to_dict(cart)

    #commands
    @store_call
    def add_item(self, session_id: str, product: ProductIn, size: str, quantity: int = 1) -> Dict[str, Any]:
        cart_rules.validate_session_id(session_id)
        cart_rules.check_add_quantity(quantity)
        return self._add_item(session_id, product, size, quantity)

    @conflict_retry()
    def _add_item(self, session_id: str, product: ProductIn, size: str, quantity: int) -> Dict[str, Any]:
        cart = self.repo.find_or_create(session_id)

        existing = cart_rules.find_line(cart.items, product.id, size)
        if existing:
            new_quantity = cart_rules.merged_quantity(existing.quantity, quantity)
            logger.info(
                f"Product {product.id} ({size}) already in cart {session_id}, "
                f"quantity {existing.quantity} -> {new_quantity}"
            )
            existing.quantity = new_quantity
        else:
            logger.info(f"Adding product {product.id} ({size}) x{quantity} to cart {session_id}")
            self.repo.add_item(
                cart,
                CartItemModel(
                    product_id=product.id,
                    name=product.name,
                    price=cart_rules.money(product.price),
                    image=product.image,
                    size=size,
                    quantity=quantity,
                    in_stock=product.in_stock,
                ),
            )

        try:
            self.repo.save(cart)
        except IntegrityError:
            # same line inserted concurrently, retried against the fresh row
            logger.warning(f"Concurrent insert of {product.id} ({size}) in cart {session_id}")
            self.repo.rollback()
            raise

        return cart_to_dict(cart)

    @store_call
    def update_quantity(self, session_id: str, product_id, size: str, quantity: int) -> Tuple[Dict[str, Any], bool]:
        """Returns (cart, applied). A missing line leaves the cart untouched."""
        cart = self._require_cart(session_id)

        item = cart_rules.find_line(cart.items, product_id, size)
        applied = item is not None
        if item:
            item.quantity = cart_rules.clamp_quantity(quantity)
            logger.info(f"Updated {product_id} ({size}) in cart {session_id} to {item.quantity}")
        else:
            logger.warning(
                f"Item not found for update in cart {session_id}: {product_id} ({size}), "
                f"available: {[cart_rules.line_key(i.product_id, i.size) for i in cart.items]}"
            )

        self.repo.save(cart)
        return cart_to_dict(cart), applied

    @store_call
    def remove_item(self, session_id: str, product_id, size: str) -> Tuple[Dict[str, Any], bool]:
        cart = self._require_cart(session_id)

        item = cart_rules.find_line(cart.items, product_id, size)
        if item:
            self.repo.remove_item(cart, item)
            logger.info(f"Removed {product_id} ({size}) from cart {session_id}")

        self.repo.save(cart)
        return cart_to_dict(cart), item is not None

    @store_call
    def clear_cart(self, session_id: str) -> Dict[str, Any]:
        cart = self._require_cart(session_id)
        self.repo.clear_items(cart)
        self.repo.save(cart)
        logger.info(f"Cart {session_id} cleared")
        return cart_to_dict(cart)

    def _require_cart(self, session_id: str) -> CartModel:
        cart_rules.validate_session_id(session_id)
        cart = self.repo.find(session_id)
        if not cart:
            raise NotFoundError("Cart", session_id)
        return cart
