# storefront/client/cart_cache.py
from decimal import Decimal
from typing import Any, Callable, Dict, List, Tuple

from storefront.client.api_client import CartApiClient
from storefront.client.local_store import LocalCartStore
from storefront.client.models import CartLine, CartResult, CartSnapshot, Source
from storefront.client.session import SessionContext
from storefront.domain import cart_rules
from storefront.domain.errors import BackendError, StoreUnavailableError
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class CartCache:
    """
    Two-tier cart: the store answers when it can, the local mirror when the
    store is unavailable.

    Every store answer overwrites the mirror. Mutations made while the store
    is down are applied to the mirror with the same rules the server uses and
    flagged dirty; they are never pushed upstream, the next store answer
    replaces them.
    """

    def __init__(self, ctx: SessionContext, api: CartApiClient, local: LocalCartStore):
        self.ctx = ctx
        self.api = api
        self.local = local

    # =====================================================
    # tiers
    # =====================================================
    def _mirror(self, cart: CartSnapshot, applied: bool = True) -> CartResult:
        if self.local.is_dirty(self.ctx.session_id):
            logger.warning(f"Discarding local-only cart edits for {self.ctx.session_id}")
        self.local.save_items(self.ctx.session_id, [i.to_api() for i in cart.items], dirty=False)
        return CartResult(Source.AUTHORITATIVE, cart, applied)

    def _local_lines(self) -> List[CartLine]:
        return [CartLine.from_api(i) for i in self.local.load_items(self.ctx.session_id)]

    def _local_result(self, lines: List[CartLine], applied: bool, dirty: bool) -> CartResult:
        if dirty:
            self.local.save_items(self.ctx.session_id, [i.to_api() for i in lines], dirty=True)
        return CartResult(Source.CACHED, CartSnapshot(self.ctx.session_id, lines), applied)

    def _run(self, remote: Callable[[], Tuple[CartSnapshot, bool]], local: Callable[[List[CartLine]], bool]) -> CartResult:
        try:
            cart, applied = remote()
        except StoreUnavailableError as e:
            logger.warning(f"Cart store unavailable, using local cart for {self.ctx.session_id}: {e}")
            lines = self._local_lines()
            applied = local(lines)
            return self._local_result(lines, applied, dirty=applied)
        return self._mirror(cart, applied)

    # =====================================================
    # operations
    # =====================================================
    def load(self) -> CartResult:
        try:
            cart = self.api.get_cart(self.ctx)
        except (StoreUnavailableError, BackendError) as e:
            logger.warning(f"Error loading cart {self.ctx.session_id}, using local copy: {e}")
            return self._local_result(self._local_lines(), applied=True, dirty=False)
        return self._mirror(cart)

    def add(self, product: Dict[str, Any], size: str, quantity: int = 1) -> CartResult:
        cart_rules.check_add_quantity(quantity)

        def local(lines: List[CartLine]) -> bool:
            existing = cart_rules.find_line(lines, product["id"], size)
            if existing:
                existing.quantity = cart_rules.merged_quantity(existing.quantity, quantity)
            else:
                lines.append(
                    CartLine(
                        product_id=str(product["id"]),
                        name=product["name"],
                        price=cart_rules.money(product["price"]),
                        image=product["image"],
                        size=size,
                        quantity=quantity,
                        in_stock=product.get("inStock", True),
                    )
                )
            return True

        return self._run(lambda: self.api.add_item(self.ctx, product, size, quantity), local)

    def update(self, product_id, size: str, quantity: int) -> CartResult:
        def local(lines: List[CartLine]) -> bool:
            line = cart_rules.find_line(lines, product_id, size)
            if not line:
                return False
            line.quantity = cart_rules.clamp_quantity(quantity)
            return True

        return self._run(lambda: self.api.update_quantity(self.ctx, product_id, size, quantity), local)

    def remove(self, product_id, size: str) -> CartResult:
        def local(lines: List[CartLine]) -> bool:
            line = cart_rules.find_line(lines, product_id, size)
            if not line:
                return False
            lines.remove(line)
            return True

        return self._run(lambda: self.api.remove_item(self.ctx, product_id, size), local)

    def clear(self) -> CartResult:
        def local(lines: List[CartLine]) -> bool:
            lines.clear()
            return True

        return self._run(lambda: self.api.clear_cart(self.ctx), local)

    # =====================================================
    # queries
    # =====================================================
    def has_unsynced_changes(self) -> bool:
        return self.local.is_dirty(self.ctx.session_id)

    def total(self) -> Decimal:
        return cart_rules.compute_totals(self._local_lines())[0]
