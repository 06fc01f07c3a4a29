# storefront/client/__init__.py
from storefront.client.api_client import CartApiClient
from storefront.client.cart_cache import CartCache
from storefront.client.local_store import LocalCartStore
from storefront.client.models import CartLine, CartResult, CartSnapshot, Source
from storefront.client.session import SessionContext

__all__ = [
    "CartApiClient",
    "CartCache",
    "LocalCartStore",
    "CartLine",
    "CartResult",
    "CartSnapshot",
    "Source",
    "SessionContext",
]
