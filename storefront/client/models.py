# storefront/client/models.py
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from storefront.domain.cart_rules import compute_totals, money


class Source(str, Enum):
    """Which tier answered a cart call."""

    AUTHORITATIVE = "authoritative"
    CACHED = "cached"


@dataclass
class CartLine:
    product_id: str
    name: str
    price: Decimal
    image: str
    size: str
    quantity: int
    in_stock: bool = True

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "CartLine":
        return cls(
            product_id=str(data["productId"]),
            name=data["name"],
            price=money(data["price"]),
            image=data["image"],
            size=str(data["size"]),
            quantity=int(data["quantity"]),
            in_stock=bool(data.get("inStock", True)),
        )

    def to_api(self) -> Dict[str, Any]:
        return {
            "productId": self.product_id,
            "name": self.name,
            "price": str(self.price),
            "image": self.image,
            "size": self.size,
            "quantity": self.quantity,
            "inStock": self.in_stock,
        }


@dataclass
class CartSnapshot:
    session_id: str
    items: List[CartLine] = field(default_factory=list)
    last_updated: Optional[datetime] = None

    @property
    def total(self) -> Decimal:
        return compute_totals(self.items)[0]

    @property
    def item_count(self) -> int:
        return compute_totals(self.items)[1]

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "CartSnapshot":
        last_updated = data.get("lastUpdated")
        return cls(
            session_id=data["sessionId"],
            items=[CartLine.from_api(i) for i in data.get("items") or []],
            last_updated=datetime.fromisoformat(last_updated) if last_updated else None,
        )


@dataclass
class CartResult:
    """A cart answer tagged with the tier it came from."""

    source: Source
    cart: CartSnapshot
    applied: bool = True

    @property
    def authoritative(self) -> bool:
        return self.source is Source.AUTHORITATIVE


__all__ = ["Source", "CartLine", "CartSnapshot", "CartResult"]
