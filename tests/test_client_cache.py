"""Tests for the client-side two-tier cart."""

from decimal import Decimal
from unittest.mock import patch

import pytest
import requests
from sqlalchemy.exc import OperationalError

from storefront.client import (
    CartApiClient,
    CartCache,
    LocalCartStore,
    SessionContext,
    Source,
)
from storefront.client.session import generate_session_id
from storefront.domain.errors import NotFoundError, ValidationError
from storefront.repos.cart_repo import CartRepo

from conftest import DOUBLE_WAIST, JEANS

API_BASE = "http://testserver/"


class TestClientHttp:
    """requests-shaped adapter over the FastAPI TestClient, with a kill switch."""

    __test__ = False

    def __init__(self, client):
        self.client = client
        self.down = False
        self.calls = 0

    def request(self, method, url, json=None, timeout=None):
        self.calls += 1
        if self.down:
            raise requests.ConnectionError("connection refused")
        r = self.client.request(method, url, json=json)
        resp = requests.Response()
        resp.status_code = r.status_code
        resp.reason = r.reason_phrase
        resp._content = r.content
        return resp


@pytest.fixture
def store(tmp_path):
    return LocalCartStore(tmp_path / "cart.json")


@pytest.fixture
def ctx(store):
    return SessionContext.load_or_create(store, API_BASE)


@pytest.fixture
def http(api_client):
    return TestClientHttp(api_client)


@pytest.fixture
def cache(ctx, http, store):
    return CartCache(ctx, CartApiClient(http=http), store)


def quantities(result):
    return [(line.product_id, line.size, line.quantity) for line in result.cart.items]


class TestSession:
    def test_generated_id_shape(self):
        session_id = generate_session_id()
        prefix, millis, suffix = session_id.split("_")
        assert prefix == "session"
        assert millis.isdigit()
        assert len(suffix) == 9

    def test_id_persists_across_loads(self, store):
        first = SessionContext.load_or_create(store, API_BASE)
        second = SessionContext.load_or_create(store, API_BASE)
        assert first.session_id == second.session_id
        assert first.api_base == "http://testserver"


class TestAuthoritative:
    def test_add_mirrors_locally(self, cache, store, ctx):
        result = cache.add(JEANS, '32"', 2)

        assert result.source is Source.AUTHORITATIVE
        assert result.authoritative
        assert quantities(result) == [("1", '32"', 2)]
        assert result.cart.total == Decimal("139.98")
        assert store.load_items(ctx.session_id)[0]["quantity"] == 2
        assert not cache.has_unsynced_changes()

    def test_update_missing_line_not_applied(self, cache):
        cache.add(JEANS, '32"', 1)
        result = cache.update(JEANS["id"], '40"', 3)

        assert result.authoritative
        assert result.applied is False
        assert quantities(result) == [("1", '32"', 1)]

    def test_validation_error_propagates(self, cache):
        with pytest.raises(ValidationError):
            cache.add(JEANS, '32"', 11)

    def test_remove_from_unknown_cart(self, cache):
        with pytest.raises(NotFoundError):
            cache.remove(JEANS["id"], '32"')

    def test_load_unknown_cart_is_empty(self, cache):
        result = cache.load()
        assert result.authoritative
        assert result.cart.items == []
        assert result.cart.total == Decimal("0.00")


class TestStoreUnavailable:
    def test_add_falls_back_to_local(self, cache, http):
        cache.add(JEANS, '32"', 9)
        http.down = True

        result = cache.add(JEANS, '32"', 5)

        assert result.source is Source.CACHED
        assert quantities(result) == [("1", '32"', 10)]
        assert cache.has_unsynced_changes()
        assert cache.total() == Decimal("699.90")

    def test_local_add_new_line(self, cache, http):
        http.down = True
        result = cache.add(DOUBLE_WAIST, '36"', 1)
        assert result.source is Source.CACHED
        assert quantities(result) == [("2", '36"', 1)]
        assert result.cart.total == Decimal("79.99")

    def test_local_update_clamps(self, cache, http):
        cache.add(JEANS, '32"', 2)
        http.down = True

        assert quantities(cache.update("1", '32"', 50)) == [("1", '32"', 10)]
        assert quantities(cache.update(1, '32"', 0)) == [("1", '32"', 1)]

    def test_local_update_missing_line(self, cache, http):
        cache.add(JEANS, '32"', 2)
        http.down = True

        result = cache.update(JEANS["id"], '40"', 3)

        assert result.source is Source.CACHED
        assert result.applied is False
        assert quantities(result) == [("1", '32"', 2)]
        assert not cache.has_unsynced_changes()

    def test_local_remove_and_clear(self, cache, http):
        cache.add(JEANS, '32"', 1)
        cache.add(DOUBLE_WAIST, '36"', 1)
        http.down = True

        assert quantities(cache.remove(JEANS["id"], '32"')) == [("2", '36"', 1)]
        assert cache.clear().cart.items == []

    def test_invalid_quantity_rejected_before_any_call(self, cache, http):
        http.down = True
        with pytest.raises(ValidationError):
            cache.add(JEANS, '32"', 0)
        assert http.calls == 0

    def test_load_uses_mirror(self, cache, http):
        cache.add(JEANS, '32"', 3)
        http.down = True

        result = cache.load()

        assert result.source is Source.CACHED
        assert quantities(result) == [("1", '32"', 3)]

    def test_database_down_answers_503(self, cache):
        cache.add(JEANS, '32"', 1)
        with patch.object(CartRepo, "find_or_create", side_effect=OperationalError("SELECT", {}, Exception("down"))):
            result = cache.add(JEANS, '32"', 1)

        assert result.source is Source.CACHED
        assert quantities(result) == [("1", '32"', 2)]


class TestReconciliation:
    def test_next_authoritative_answer_discards_local_edits(self, cache, http, store, ctx):
        cache.add(JEANS, '32"', 1)
        http.down = True
        cache.add(DOUBLE_WAIST, '36"', 4)
        assert cache.has_unsynced_changes()

        http.down = False
        result = cache.load()

        assert result.authoritative
        assert quantities(result) == [("1", '32"', 1)]
        assert not cache.has_unsynced_changes()
        assert [i["productId"] for i in store.load_items(ctx.session_id)] == ["1"]
