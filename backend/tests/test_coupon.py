from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from storefront.db import SessionLocal, init_db
from storefront.main import app
from storefront.models.coupon import Coupon, CouponType, CustomerType
from storefront.models.order import Order
from storefront.services.coupon_service import CouponException, CouponService
from storefront.utils.clock import utcnow

client = TestClient(app)


def setup_module(module):
    init_db()
    now = utcnow()
    db = SessionLocal()
    try:
        db.add(Coupon(code="SAVE10", name="Ten off", type=CouponType.PERCENTAGE, value=10, valid_until=now + timedelta(days=30)))
        db.add(Coupon(code="FLAT500", name="Flat 500", type=CouponType.FIXED, value=500, minimum_order_amount=2000, valid_until=now + timedelta(days=30)))
        db.add(Coupon(code="OLD", name="Expired", value=10, valid_from=now - timedelta(days=10), valid_until=now - timedelta(days=1)))
        db.add(Coupon(code="MAXED", name="Used up", value=10, usage_limit=1, used_count=1, valid_until=now + timedelta(days=30)))
        db.add(Coupon(code="WELCOME", name="New customers", value=15, customer_type=CustomerType.NEW_CUSTOMER, valid_until=now + timedelta(days=30)))
        db.add(Coupon(code="SHOES", name="Shoes only", value=20, applicable_categories=["Shoes"], valid_until=now + timedelta(days=30)))
        db.add(Coupon(code="NOSALE", name="Not on home", value=20, excluded_categories=["Home"], valid_until=now + timedelta(days=30)))
        db.add(Order(order_number="ORD-PAID", owner_id="regular", contact_email="regular@example.com", status="Delivered", payment_status="Success", subtotal=100, shipping_fee=0, discount=0, total=100))
        db.commit()
    finally:
        db.close()


def _validate(code, amount=1000, owner=None, categories=()):
    return client.post(
        "/api/shop/coupon/validate",
        json={"code": code, "ownerId": owner, "orderAmount": amount, "categories": list(categories)},
    )


def test_percentage_coupon():
    res = _validate("save10", 1500)
    assert res.status_code == 200
    body = res.json()
    assert body["message"] == "Coupon is valid"
    assert body["data"]["coupon"]["code"] == "SAVE10"
    assert body["data"]["discount"]["amount"] == 150
    assert body["data"]["discount"]["finalAmount"] == 1350


def test_fixed_coupon_and_minimum():
    res = _validate("FLAT500", 2500)
    assert res.json()["data"]["discount"]["amount"] == 500
    res = _validate("FLAT500", 1500)
    assert res.status_code == 400
    assert res.json()["detail"] == "Minimum order amount of 2000 required"


def test_rejections():
    assert _validate("").json()["detail"] == "Coupon code is required"
    res = _validate("NOPE")
    assert res.status_code == 404
    assert res.json()["detail"] == "Invalid coupon code"
    assert _validate("OLD").json()["detail"] == "This coupon has expired"
    assert _validate("MAXED").json()["detail"] == "This coupon has reached its usage limit"


def test_new_customer_coupon():
    assert _validate("WELCOME", owner="first-timer").status_code == 200
    res = _validate("WELCOME", owner="regular")
    assert res.status_code == 400
    assert res.json()["detail"] == "You are not eligible for this coupon"


def test_category_rules():
    assert _validate("SHOES", categories=["shoes", "Home"]).status_code == 200
    res = _validate("SHOES", categories=["Home"])
    assert res.json()["detail"] == "This coupon is not applicable to items in your cart"
    res = _validate("NOSALE", categories=["Men", "Home"])
    assert res.json()["detail"] == "This coupon cannot be applied to some items in your cart"


def test_apply_records_usage_per_user():
    db = SessionLocal()
    try:
        svc = CouponService(db)
        assert svc.apply_to_order("SAVE10", "u1", 1, 2000) == 200
        db.commit()
        with pytest.raises(CouponException, match="Coupon already used by this user"):
            svc.apply_to_order("SAVE10", "u1", 2, 2000)
        db.rollback()
    finally:
        db.close()

    res = _validate("SAVE10", 1000, owner="u1")
    assert res.json()["detail"] == "You have already used this coupon"
    assert _validate("SAVE10", 1000, owner="u2").status_code == 200
