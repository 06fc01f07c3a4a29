# storefront/repos/cart_repo.py
from datetime import datetime, timezone, timedelta

from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel
from storefront.domain.cart_rules import compute_totals
from storefront.utils.settings import CART_TTL_SECONDS


class CartRepo:
    def __init__(self, db: Session, ttl_seconds: int = CART_TTL_SECONDS):
        self.db = db
        self.ttl_seconds = ttl_seconds

    def find(self, session_id: str) -> CartModel | None:
        return self.db.execute(
            select(CartModel)
            .options(selectinload(CartModel.items))
            .where(CartModel.session_id == session_id)
        ).scalar_one_or_none()

    def find_or_create(self, session_id: str) -> CartModel:
        cart = self.find(session_id)
        if cart:
            return cart

        now = datetime.now(timezone.utc)
        cart = CartModel(
            session_id=session_id,
            total=0,
            item_count=0,
            last_updated=now,
            expires_at=now + timedelta(seconds=self.ttl_seconds),
        )
        self.db.add(cart)
        try:
            self.db.commit()
        except IntegrityError:
            # another request created it first
            self.db.rollback()
            return self.find(session_id)
        self.db.refresh(cart)
        return cart

    def add_item(self, cart: CartModel, item: CartItemModel) -> None:
        cart.items.append(item)

    def remove_item(self, cart: CartModel, item: CartItemModel) -> None:
        cart.items.remove(item)

    def clear_items(self, cart: CartModel) -> None:
        cart.items.clear()

    def stamp(self, cart: CartModel) -> None:
        """Recompute totals and push the expiry forward, without committing."""
        cart.total, cart.item_count = compute_totals(cart.items)
        now = datetime.now(timezone.utc)
        cart.last_updated = now
        cart.expires_at = now + timedelta(seconds=self.ttl_seconds)

    def save(self, cart: CartModel) -> CartModel:
        self.stamp(cart)
        self.db.add(cart)
        self.db.commit()
        return cart

    def delete_expired(self, now: datetime) -> int:
        expired = select(CartModel.id).where(CartModel.expires_at < now)
        # bulk delete, items first: sqlite does not cascade without the pragma
        self.db.execute(
            delete(CartItemModel)
            .where(CartItemModel.cart_id.in_(expired))
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(
            delete(CartModel)
            .where(CartModel.expires_at < now)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount

    def rollback(self):
        self.db.rollback()
