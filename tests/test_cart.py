from types import SimpleNamespace

import pytest

import database
from conftest import signup

SHOE = {"productId": "P1", "name": "Shoe", "price": 10, "productImg": "shoe.png"}


def cart_of(users):
    return users.find_one({"Email": "a@x.com"})["addToCart"]


def test_cart_routes_require_auth(client):
    assert client.post("/add-To-Cart", json=SHOE).status_code == 401
    assert client.get("/CartPage").status_code == 401
    assert client.post("/remove-From-Cart", json={"productId": "P1"}).status_code == 401
    assert client.post("/EmptyCart").status_code == 401
    assert client.post("/checkout", json={"cart": []}).status_code == 401


def test_add_same_product_twice_increments(auth_client, users):
    assert auth_client.post("/add-To-Cart", json=SHOE).json() == {"success": True}
    assert auth_client.post("/add-To-Cart", json=SHOE).json() == {"success": True}
    cart = cart_of(users)
    assert len(cart) == 1
    assert cart[0]["productId"] == "P1"
    assert cart[0]["quantity"] == 2
    assert cart[0]["name"] == "Shoe"


def test_client_quantity_is_ignored_on_add(auth_client, users):
    auth_client.post("/add-To-Cart", json={**SHOE, "quantity": 9})
    assert cart_of(users)[0]["quantity"] == 1


def test_product_id_matching_is_exact_type(auth_client, users):
    auth_client.post("/add-To-Cart", json={"productId": 1, "name": "A"})
    auth_client.post("/add-To-Cart", json={"productId": "1", "name": "A"})
    cart = cart_of(users)
    assert [line["productId"] for line in cart] == [1, "1"]
    assert all(line["quantity"] == 1 for line in cart)


def test_cart_page_lists_lines(auth_client):
    auth_client.post("/add-To-Cart", json=SHOE)
    auth_client.post("/add-To-Cart", json={"productId": "P2", "name": "Hat", "price": 5})
    res = auth_client.get("/CartPage")
    assert res.status_code == 200
    assert [line["productId"] for line in res.json()] == ["P1", "P2"]


def test_remove_from_cart(auth_client, users):
    auth_client.post("/add-To-Cart", json=SHOE)
    res = auth_client.post("/remove-From-Cart", json={"productId": "P1"})
    assert res.json() == {"message": "Item removed from cart", "success": True}
    assert cart_of(users) == []


def test_remove_missing_item(auth_client):
    res = auth_client.post("/remove-From-Cart", json={"productId": "nope"})
    assert res.json() == {"message": "Item not found in cart", "success": False}


def test_remove_ignores_client_supplied_username(client, users):
    signup(client, email="victim@x.com", Username="victim")
    client.post("/add-To-Cart", json=SHOE)
    client.cookies.clear()
    signup(client, email="attacker@x.com", Username="attacker")

    res = client.post("/remove-From-Cart", json={"username": "victim", "productId": "P1"})
    assert res.json()["success"] is False
    assert len(users.find_one({"Email": "victim@x.com"})["addToCart"]) == 1


def test_empty_cart(auth_client, users):
    auth_client.post("/add-To-Cart", json=SHOE)
    res = auth_client.post("/EmptyCart")
    assert res.json() == {"message": "Cart Is Empty", "success": True}
    assert cart_of(users) == []


def test_checkout_sets_quantities(auth_client, users):
    auth_client.post("/add-To-Cart", json=SHOE)
    auth_client.post("/add-To-Cart", json={"productId": "P2", "name": "Hat"})
    res = auth_client.post("/checkout", json={"cart": [
        {"productId": "P1", "quantity": 4}, {"productId": "P2", "quantity": 2}]})
    assert res.json() == {"message": "Cart updated successfully", "success": True, "failed": []}
    quantities = {line["productId"]: line["quantity"] for line in cart_of(users)}
    assert quantities == {"P1": 4, "P2": 2}


def test_checkout_reports_unmatched_lines(auth_client, users):
    auth_client.post("/add-To-Cart", json=SHOE)
    res = auth_client.post("/checkout", json={"cart": [
        {"productId": "GONE", "quantity": 3}, {"productId": "P1", "quantity": 5}]})
    body = res.json()
    assert body["success"] is False
    assert body["failed"] == ["GONE"]
    assert cart_of(users)[0]["quantity"] == 5


def test_add_to_cart_for_deleted_account(auth_client, users):
    users.delete_many({})
    res = auth_client.post("/add-To-Cart", json=SHOE)
    assert res.status_code == 404
    assert res.json()["success"] is False


def test_add_cart_item_retries_when_line_appears(users, monkeypatch):
    oid = users.insert_one({"Email": "a@x.com", "addToCart": []}).inserted_id
    real_update_one = users.update_one
    calls = []

    def racing_update_one(filter, update, *args, **kwargs):
        calls.append(update)
        # another request appends the line between our increment and push
        if len(calls) == 2:
            real_update_one({"_id": oid}, {"$push": {"addToCart": {"productId": "P1", "quantity": 1}}})
        return real_update_one(filter, update, *args, **kwargs)

    collection = SimpleNamespace(update_one=racing_update_one, find_one=users.find_one)
    monkeypatch.setattr(database, "users", lambda: collection)

    assert database.add_cart_item(oid, {"productId": "P1", "name": "Shoe"})
    cart = users.find_one({"_id": oid})["addToCart"]
    assert len(cart) == 1
    assert cart[0]["quantity"] == 2


def test_store_failure_is_internal_error(auth_client, monkeypatch):
    from pymongo.errors import ServerSelectionTimeoutError

    def boom(*args, **kwargs):
        raise ServerSelectionTimeoutError("no servers")

    monkeypatch.setattr(database, "get_cart", boom)
    res = auth_client.get("/CartPage")
    assert res.status_code == 500
    assert res.json() == {"success": False, "message": "Internal server error"}


@pytest.mark.parametrize("body", [{}, {"name": "no id"}])
def test_add_to_cart_requires_product_id(auth_client, body):
    assert auth_client.post("/add-To-Cart", json=body).status_code == 400
