"""Tests for the cart HTTP endpoints."""

from decimal import Decimal
from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from storefront.repos.cart_repo import CartRepo

from conftest import JEANS, DOUBLE_WAIST

SID = "session_1700000000000_abcdefghi"


def add(api_client, product=JEANS, size='32"', quantity=1, sid=SID):
    return api_client.post(
        f"/cart/{sid}/add",
        json={"product": product, "size": size, "quantity": quantity},
    )


class TestGetCart:
    def test_empty_cart_shape(self, api_client):
        response = api_client.get(f"/cart/{SID}")
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["sessionId"] == SID
        assert body["data"]["items"] == []
        assert Decimal(body["data"]["total"]) == 0
        assert body["data"]["itemCount"] == 0

    def test_session_id_too_long(self, api_client):
        response = api_client.get(f"/cart/{'x' * 101}")
        assert response.status_code == 400
        assert response.json()["success"] is False


class TestAdd:
    def test_add_then_add_again_merges(self, api_client):
        add(api_client, quantity=2)
        response = add(api_client, quantity=3)
        assert response.status_code == 200
        data = response.json()["data"]
        assert len(data["items"]) == 1
        item = data["items"][0]
        assert item["productId"] == "1"
        assert item["size"] == '32"'
        assert item["quantity"] == 5
        assert Decimal(data["total"]) == Decimal("349.95")
        assert data["itemCount"] == 5
        assert data["lastUpdated"] is not None

    def test_cart_survives_reload(self, api_client):
        add(api_client, quantity=2)
        add(api_client, product=DOUBLE_WAIST, size='36"', quantity=1)
        data = api_client.get(f"/cart/{SID}").json()["data"]
        assert [i["productId"] for i in data["items"]] == ["1", "2"]
        assert Decimal(data["total"]) == Decimal("219.97")

    def test_quantity_out_of_range(self, api_client):
        response = add(api_client, quantity=11)
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request data"

    def test_incomplete_product(self, api_client):
        response = api_client.post(
            f"/cart/{SID}/add",
            json={"product": {"id": 1, "name": "Jeans"}, "size": "M", "quantity": 1},
        )
        assert response.status_code == 400

    def test_blank_size(self, api_client):
        response = add(api_client, size="   ")
        assert response.status_code == 400


class TestUpdate:
    def test_clamps_to_bounds(self, api_client):
        add(api_client, quantity=2)
        response = api_client.put(f"/cart/{SID}/update", json={"productId": 1, "size": '32"', "quantity": 0})
        assert response.status_code == 200
        body = response.json()
        assert body["applied"] is True
        assert body["data"]["items"][0]["quantity"] == 1

        body = api_client.put(f"/cart/{SID}/update", json={"productId": "1", "size": '32"', "quantity": 40}).json()
        assert body["data"]["items"][0]["quantity"] == 10

    def test_missing_item_keeps_cart(self, api_client):
        add(api_client, quantity=2)
        response = api_client.put(f"/cart/{SID}/update", json={"productId": 7, "size": '32"', "quantity": 3})
        assert response.status_code == 200
        body = response.json()
        assert body["applied"] is False
        assert body["message"] == "Item not found in cart"
        assert len(body["data"]["items"]) == 1
        assert body["data"]["items"][0]["quantity"] == 2

    def test_unknown_cart(self, api_client):
        response = api_client.put(f"/cart/{SID}/update", json={"productId": 1, "size": "M", "quantity": 3})
        assert response.status_code == 404
        assert response.json()["error"] == "Cart not found"

    def test_missing_fields(self, api_client):
        add(api_client)
        response = api_client.put(f"/cart/{SID}/update", json={"productId": 1})
        assert response.status_code == 400


class TestRemoveAndClear:
    def test_remove(self, api_client):
        add(api_client, quantity=2)
        add(api_client, product=DOUBLE_WAIST, size='36"')
        response = api_client.request("DELETE", f"/cart/{SID}/remove", json={"productId": 1, "size": '32"'})
        assert response.status_code == 200
        body = response.json()
        assert body["applied"] is True
        assert [i["productId"] for i in body["data"]["items"]] == ["2"]

    def test_remove_missing_item_is_noop(self, api_client):
        add(api_client, quantity=2)
        response = api_client.request("DELETE", f"/cart/{SID}/remove", json={"productId": 1, "size": "XL"})
        assert response.status_code == 200
        body = response.json()
        assert body["applied"] is False
        assert body["data"]["itemCount"] == 2

    def test_clear(self, api_client):
        add(api_client, quantity=2)
        response = api_client.delete(f"/cart/{SID}/clear")
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["items"] == []
        assert data["itemCount"] == 0

    def test_clear_unknown_cart(self, api_client):
        assert api_client.delete(f"/cart/{SID}/clear").status_code == 404


class TestStoreUnavailable:
    def test_returns_503(self, api_client):
        error = OperationalError("SELECT 1", {}, Exception("could not connect to server"))
        with patch.object(CartRepo, "find_or_create", side_effect=error):
            response = add(api_client)
        assert response.status_code == 503
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "Database unavailable"


class TestHealth:
    def test_health(self, api_client):
        response = api_client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "database": "connected"}
