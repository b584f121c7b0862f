from fastapi.testclient import TestClient

from storefront.db import SessionLocal, init_db
from storefront.main import app
from storefront.models.product import Product

client = TestClient(app)


def setup_module(module):
    # Recreate DB fresh
    init_db()

    db = SessionLocal()
    try:
        db.add(Product(product_id="CAT-001", title="Kikoi Shirt", category="Men", price=1500, sale_price=1200, total_stock=10))
        db.add(Product(product_id="CAT-002", title="Kitenge Dress", category="Women", price=2500, total_stock=4))
        db.add(Product(product_id="CAT-003", title="Retired Sandals", category="Men", price=900, total_stock=0, active=False))
        db.commit()
    finally:
        db.close()


def test_list_products():
    res = client.get("/api/shop/products")
    assert res.status_code == 200
    body = res.json()
    ids = [it["productId"] for it in body["items"]]
    assert "CAT-001" in ids and "CAT-002" in ids
    # inactive products are not listed
    assert "CAT-003" not in ids
    assert body["total"] == 2


def test_list_filters():
    res = client.get("/api/shop/products", params={"category": "women"})
    assert [it["productId"] for it in res.json()["items"]] == ["CAT-002"]

    res = client.get("/api/shop/products", params={"onSale": "true"})
    items = res.json()["items"]
    assert [it["productId"] for it in items] == ["CAT-001"]
    assert items[0]["salePrice"] == 1200

    res = client.get("/api/shop/products", params={"q": "kitenge"})
    assert [it["productId"] for it in res.json()["items"]] == ["CAT-002"]


def test_get_product():
    res = client.get("/api/shop/products/CAT-002")
    assert res.status_code == 200
    body = res.json()
    assert body["title"] == "Kitenge Dress"
    assert body["totalStock"] == 4

    assert client.get("/api/shop/products/CAT-003").status_code == 404
    assert client.get("/api/shop/products/NOPE").status_code == 404
