# storefront/client/api_client.py
from typing import Any, Dict, Optional, Tuple

import requests
from requests import RequestException

from storefront.client.models import CartSnapshot
from storefront.client.session import SessionContext
from storefront.domain.errors import (
    BackendError,
    NotFoundError,
    StoreUnavailableError,
    ValidationError,
)
from storefront.utils.retry import http_retry
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class CartApiClient:
    """HTTP client for the cart endpoints. Short timeouts: a slow store is a down store."""

    def __init__(self, http: Optional[requests.Session] = None, timeout: float = 3):
        self.http = http or requests.Session()
        self.timeout = timeout

    @http_retry()
    def _send(self, method: str, url: str, body: Optional[Dict[str, Any]]) -> requests.Response:
        logger.info(f"CartApiClient {method} {url}")
        return self.http.request(method, url, json=body, timeout=self.timeout)

    def _call(self, ctx: SessionContext, method: str, path: str, body=None) -> Tuple[CartSnapshot, bool]:
        url = f"{ctx.api_base}/cart/{ctx.session_id}{path}"
        try:
            resp = self._send(method, url, body)
        except RequestException as e:
            raise StoreUnavailableError(f"Cart API unreachable: {e}") from e

        try:
            data = resp.json()
        except ValueError:
            data = {}

        message = data.get("message") or resp.reason or ""
        if resp.status_code == 400:
            raise ValidationError(message)
        if resp.status_code == 404:
            raise NotFoundError("Cart", ctx.session_id)
        if resp.status_code == 503:
            raise StoreUnavailableError(message or "Cart store is not reachable")
        if resp.status_code >= 400 or not data.get("success"):
            raise BackendError(resp.status_code, message or f"HTTP error! status: {resp.status_code}")

        applied = data.get("applied")
        return CartSnapshot.from_api(data["data"]), True if applied is None else bool(applied)

    def get_cart(self, ctx: SessionContext) -> CartSnapshot:
        return self._call(ctx, "GET", "")[0]

    def add_item(self, ctx: SessionContext, product: Dict[str, Any], size: str, quantity: int = 1):
        body = {
            "product": {
                "id": product["id"],
                "name": product["name"],
                "price": str(product["price"]),
                "image": product["image"],
                "inStock": product.get("inStock", True),
            },
            "size": size,
            "quantity": quantity,
        }
        return self._call(ctx, "POST", "/add", body)

    def update_quantity(self, ctx: SessionContext, product_id, size: str, quantity: int):
        return self._call(ctx, "PUT", "/update", {"productId": product_id, "size": size, "quantity": quantity})

    def remove_item(self, ctx: SessionContext, product_id, size: str):
        return self._call(ctx, "DELETE", "/remove", {"productId": product_id, "size": size})

    def clear_cart(self, ctx: SessionContext):
        return self._call(ctx, "DELETE", "/clear")
