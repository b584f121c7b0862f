from datetime import timedelta

import httpx
import pytest
from fastapi.testclient import TestClient

from storefront.adapters.mock_payment import MockPaymentAdapter
from storefront.adapters.shop_api import RemoteCartError, ShopApiClient
from storefront.api.routes_order import get_payment_adapter
from storefront.db import SessionLocal, init_db
from storefront.main import app
from storefront.models.coupon import Coupon, CouponType
from storefront.models.product import Product
from storefront.schemas.cart_schema import ProductSnapshot
from storefront.schemas.checkout_schema import GuestAddress, SavedAddress
from storefront.services.cart_reconciliation import CartReconciliationService
from storefront.services.cart_state import CartState
from storefront.services.checkout import CheckoutAssembly, CheckoutState
from storefront.stores.guest_cart_store import GuestCartStore
from storefront.stores.session_storage import DatabaseSessionStorage
from storefront.utils.clock import utcnow

client = TestClient(app)
api = ShopApiClient(http_client=client)


def setup_module(module):
    init_db()
    db = SessionLocal()
    try:
        db.add(Product(product_id="SHIRT-1", title="Linen Shirt", category="Men", image="shirt.png", price=1000, sale_price=800, total_stock=10))
        db.add(Product(product_id="MUG-1", title="Clay Mug", category="Home", price=350, total_stock=10))
        db.add(Coupon(code="SAVE10", name="Ten off", type=CouponType.PERCENTAGE, value=10, valid_until=utcnow() + timedelta(days=30)))
        db.commit()
    finally:
        db.close()
    app.dependency_overrides[get_payment_adapter] = lambda: MockPaymentAdapter(delay_ms=0)


def teardown_module(module):
    app.dependency_overrides.clear()


def _service(session_id):
    return CartReconciliationService(GuestCartStore(DatabaseSessionStorage(session_id)), api)


def test_client_round_trips_server_cart():
    cart = api.add_to_cart("api-u1", "MUG-1", None, 2)
    assert [(it.product_id, it.quantity, it.title) for it in cart.items] == [("MUG-1", 2, "Clay Mug")]
    cart = api.update_cart_quantity("api-u1", "MUG-1", None, 5)
    assert cart.items[0].quantity == 5
    cart = api.remove_from_cart("api-u1", "MUG-1", None)
    assert cart.items == []
    assert api.fetch_cart("api-u1").owner_id == "api-u1"


def test_server_errors_become_remote_cart_errors():
    with pytest.raises(RemoteCartError) as exc:
        api.add_to_cart("api-u1", "NOPE", None, 1)
    assert exc.value.status_code == 404
    assert str(exc.value) == "Product not found"


def test_transport_errors_become_remote_cart_errors():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    def slow(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with ShopApiClient(http_client=httpx.Client(base_url="http://shop.test", transport=httpx.MockTransport(refuse))) as down:
        with pytest.raises(RemoteCartError):
            down.fetch_cart("u1")
    with ShopApiClient(http_client=httpx.Client(base_url="http://shop.test", transport=httpx.MockTransport(slow))) as stalled:
        with pytest.raises(RemoteCartError, match="timed out"):
            stalled.fetch_cart("u1")


def test_non_json_body_is_an_error():
    def handler(request):
        return httpx.Response(200, text="<html>maintenance</html>")

    with ShopApiClient(http_client=httpx.Client(base_url="http://shop.test", transport=httpx.MockTransport(handler))) as shop:
        with pytest.raises(RemoteCartError, match="Invalid response body") as exc:
            shop.fetch_cart("u1")
    assert exc.value.status_code == 200


def test_unsuccessful_body_is_an_error():
    def handler(request):
        return httpx.Response(200, json={"success": False, "message": "Cart is locked"})

    with ShopApiClient(http_client=httpx.Client(base_url="http://shop.test", transport=httpx.MockTransport(handler))) as shop:
        with pytest.raises(RemoteCartError, match="Cart is locked"):
            shop.fetch_cart("u1")


def test_guest_cart_merges_into_server_cart_on_login():
    api.add_to_cart("api-u2", "SHIRT-1", "M", 1)
    state = CartState(_service("browser-1"))
    state.add("SHIRT-1", "M", 2, ProductSnapshot(title="Linen Shirt", price=1000, sale_price=800))
    state.add("MUG-1", None, 1, ProductSnapshot(title="Clay Mug", price=350))
    assert state.totals().subtotal == 1950

    cart = state.login("api-u2")
    assert [(it.product_id, it.size, it.quantity) for it in cart.items] == [
        ("SHIRT-1", "M", 3),
        ("MUG-1", None, 1),
    ]
    assert GuestCartStore(DatabaseSessionStorage("browser-1")).load().items == []

    # a second login finds nothing left to merge
    assert len(_service("browser-1").merge_on_login("api-u2").items) == 2


def test_guest_checkout_end_to_end():
    svc = _service("browser-2")
    svc.add_item(None, "SHIRT-1", "L", 1, ProductSnapshot(title="Linen Shirt", price=1000, sale_price=800))
    cart = svc.fetch(None)

    coupon = api.validate_coupon("save10", None, 800, ["Men"])
    assert coupon.code == "SAVE10"
    assert coupon.discount_amount == 80

    co = CheckoutAssembly(cart)
    co.set_contact("guest@example.com")
    co.set_guest_address(GuestAddress(full_name="Otieno Guest", address="Box 1", city="Nairobi", phone="0722000000"))
    co.select_shipping("nairobi", "Karen")
    co.apply_coupon(coupon)
    co.validate()
    assert co.totals.total == 800 + 550 - 80

    resp = co.submit(api.create_order)
    assert co.state == CheckoutState.COMPLETED
    assert resp["success"] is True
    assert resp["totals"]["total"] == 1270
    assert resp["approvalURL"]


def test_authenticated_checkout_with_saved_address():
    api.add_to_cart("api-u3", "MUG-1", None, 2)
    home = SavedAddress(address_id="a1", user_name="Wanjiru", address="Ngong Rd", city="Nairobi", phone="0733000000")
    co = CheckoutAssembly(api.fetch_cart("api-u3"), owner_id="api-u3", saved_addresses=[home])
    co.set_contact("wanjiru@example.com")
    co.select_address("a1")
    co.select_shipping("other")
    co.validate()
    resp = co.submit(api.create_order)
    assert resp["totals"] == {"subtotal": 700, "shippingFee": 500, "discount": 0, "total": 1200}
