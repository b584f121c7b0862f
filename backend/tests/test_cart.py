from fastapi.testclient import TestClient

from storefront.db import SessionLocal, init_db
from storefront.main import app
from storefront.models.product import Product
from storefront.services.cart_service import CartService

client = TestClient(app)


def setup_module(module):
    init_db()
    db = SessionLocal()
    try:
        db.add(Product(product_id="SHIRT-1", title="Linen Shirt", category="Men", image="shirt.png", price=1000, sale_price=800, total_stock=20))
        db.add(Product(product_id="MUG-1", title="Clay Mug", category="Home", price=350, total_stock=20))
        db.add(Product(product_id="GONE-1", title="Discontinued", price=100, total_stock=5))
        db.commit()
    finally:
        db.close()


def _add(owner, product_id, size, quantity):
    return client.post(
        "/api/shop/cart/add",
        json={"ownerId": owner, "productId": product_id, "size": size, "quantity": quantity},
    )


def test_unknown_owner_gets_empty_cart():
    res = client.get("/api/shop/cart/get/nobody")
    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    assert body["data"] == {"items": [], "ownerId": "nobody"}


def test_add_merges_same_product_and_size():
    assert _add("u1", "SHIRT-1", "M", 1).status_code == 200
    res = _add("u1", "SHIRT-1", "M", 2)
    assert res.status_code == 200
    items = res.json()["data"]["items"]
    assert len(items) == 1
    assert items[0]["quantity"] == 3
    # display fields come from the catalog
    assert items[0]["title"] == "Linen Shirt"
    assert items[0]["salePrice"] == 800


def test_sizes_are_separate_lines():
    _add("u2", "SHIRT-1", "M", 1)
    _add("u2", "SHIRT-1", "L", 1)
    res = _add("u2", "MUG-1", None, 2)
    items = res.json()["data"]["items"]
    assert [(it["productId"], it["size"]) for it in items] == [
        ("SHIRT-1", "M"),
        ("SHIRT-1", "L"),
        ("MUG-1", None),
    ]


def test_add_rejects_bad_input():
    assert _add("u3", "SHIRT-1", "M", 0).status_code == 422
    res = _add("u3", "NOPE", "M", 1)
    assert res.status_code == 404
    assert res.json()["detail"] == "Product not found"


def test_update_quantity_and_remove_by_zero():
    _add("u4", "SHIRT-1", "S", 1)
    _add("u4", "MUG-1", None, 1)
    res = client.put(
        "/api/shop/cart/update-cart",
        json={"ownerId": "u4", "productId": "SHIRT-1", "size": "S", "quantity": 5},
    )
    assert res.status_code == 200
    line = res.json()["data"]["items"][0]
    assert line["quantity"] == 5

    res = client.put(
        "/api/shop/cart/update-cart",
        json={"ownerId": "u4", "productId": "SHIRT-1", "size": "S", "quantity": 0},
    )
    assert [it["productId"] for it in res.json()["data"]["items"]] == ["MUG-1"]


def test_update_missing_line_is_404():
    res = client.put(
        "/api/shop/cart/update-cart",
        json={"ownerId": "no-cart", "productId": "MUG-1", "size": None, "quantity": 2},
    )
    assert res.status_code == 404
    assert res.json()["detail"] == "Cart not found!"

    _add("u5", "MUG-1", None, 1)
    res = client.put(
        "/api/shop/cart/update-cart",
        json={"ownerId": "u5", "productId": "SHIRT-1", "size": "XL", "quantity": 2},
    )
    assert res.status_code == 404
    assert res.json()["detail"] == "Cart item not present !"


def test_delete_line_with_and_without_size():
    _add("u6", "SHIRT-1", "M", 1)
    _add("u6", "MUG-1", None, 1)

    res = client.delete("/api/shop/cart/u6/SHIRT-1/M")
    assert res.status_code == 200
    assert [it["productId"] for it in res.json()["data"]["items"]] == ["MUG-1"]

    res = client.delete("/api/shop/cart/u6/MUG-1/_")
    assert res.status_code == 200
    assert res.json()["data"]["items"] == []


def test_lines_of_retired_products_are_pruned():
    _add("u7", "GONE-1", None, 1)
    _add("u7", "MUG-1", None, 1)
    db = SessionLocal()
    try:
        db.query(Product).filter(Product.product_id == "GONE-1").update({"active": False})
        db.commit()
    finally:
        db.close()

    res = client.get("/api/shop/cart/get/u7")
    assert [it["productId"] for it in res.json()["data"]["items"]] == ["MUG-1"]


def test_clear_empties_server_cart():
    _add("u8", "MUG-1", None, 3)
    db = SessionLocal()
    try:
        cart = CartService(db).clear("u8")
        assert cart.items == [] and cart.owner_id == "u8"
    finally:
        db.close()
    assert client.get("/api/shop/cart/get/u8").json()["data"]["items"] == []
