# storefront/domain/cart_rules.py
"""
Cart line rules used by the server-side cart service and by the client cache.

A "line" is anything with ``product_id``, ``size``, ``price`` and ``quantity``
attributes: ORM rows on the server, ``CartLine`` dataclasses on the client.
Both sides must agree on matching and clamping, so neither re-implements them.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Sequence, Tuple, TypeVar

from storefront.domain.errors import ValidationError

MIN_QUANTITY = 1
MAX_QUANTITY = 10
MAX_SESSION_ID_LENGTH = 100

CENTS = Decimal("0.01")

L = TypeVar("L")


def validate_session_id(session_id) -> str:
    if not isinstance(session_id, str) or not session_id.strip():
        raise ValidationError("Session ID must be a non-empty string")
    if len(session_id) > MAX_SESSION_ID_LENGTH:
        raise ValidationError(
            f"Session ID must be a string with maximum {MAX_SESSION_ID_LENGTH} characters"
        )
    return session_id


def line_key(product_id, size) -> Tuple[str, str]:
    # ids arrive as ints from some clients and as strings from the store
    return str(product_id), str(size)


def find_line(lines: Iterable[L], product_id, size) -> Optional[L]:
    key = line_key(product_id, size)
    for line in lines:
        if line_key(line.product_id, line.size) == key:
            return line
    return None


def clamp_quantity(quantity: int) -> int:
    return max(MIN_QUANTITY, min(int(quantity), MAX_QUANTITY))


def merged_quantity(current: int, added: int) -> int:
    """Quantity after adding to an existing line; excess over the cap is dropped."""
    return min(current + added, MAX_QUANTITY)


def check_add_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("Quantity must be an integer")
    if quantity < MIN_QUANTITY or quantity > MAX_QUANTITY:
        raise ValidationError(f"Quantity must be between {MIN_QUANTITY} and {MAX_QUANTITY}")
    return quantity


def money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def compute_totals(lines: Sequence) -> Tuple[Decimal, int]:
    """Recompute (total, item_count) from scratch."""
    total = sum((money(line.price) * line.quantity for line in lines), Decimal("0.00"))
    count = sum(line.quantity for line in lines)
    return money(total), count


def to_minor_units(amount) -> int:
    """Major currency units to cents, rounded half-up."""
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
