from typing import Callable, Optional

from storefront.schemas.cart_schema import Cart
from storefront.schemas.checkout_schema import AppliedCoupon, OrderTotals, ShippingSelection
from storefront.services import pricing
from storefront.services.cart_reconciliation import CartReconciliationService
from storefront.utils.log import get_logger

log = get_logger("storefront.cart_state", "CART")


class CartState:
    """
    The cart as currently shown to the shopper.

    ``cart`` only ever changes to the result of a successful operation; a
    failed one leaves the last good cart in place, records ``last_error`` and
    re-raises so the caller can show a notice.
    """

    def __init__(self, service: CartReconciliationService, owner_id: Optional[str] = None):
        self.service = service
        self.owner_id = owner_id
        self.cart = Cart()
        self.is_loading = False
        self.last_error: Optional[Exception] = None

    @property
    def is_guest(self) -> bool:
        return not self.owner_id

    def run(self, operation: Callable[[], Cart]) -> Cart:
        self.is_loading = True
        try:
            cart = operation()
        except Exception as e:
            self.last_error = e
            log.warning("cart operation failed, keeping last cart: %s", e)
            raise
        finally:
            self.is_loading = False
        self.cart = cart
        self.last_error = None
        return cart

    def load(self) -> Cart:
        return self.run(lambda: self.service.fetch(self.owner_id))

    def add(self, product_id, size, quantity, snapshot=None) -> Cart:
        return self.run(
            lambda: self.service.add_item(self.owner_id, product_id, size, quantity, snapshot)
        )

    def set_quantity(self, product_id, size, quantity) -> Cart:
        return self.run(
            lambda: self.service.set_quantity(self.owner_id, product_id, size, quantity)
        )

    def remove(self, product_id, size) -> Cart:
        return self.run(lambda: self.service.remove_item(self.owner_id, product_id, size))

    def login(self, user_id: str) -> Cart:
        cart = self.run(lambda: self.service.merge_on_login(user_id))
        self.owner_id = user_id
        return cart

    def logout(self) -> Cart:
        self.owner_id = None
        return self.load()

    def totals(
        self,
        selection: Optional[ShippingSelection] = None,
        coupon: Optional[AppliedCoupon] = None,
        rates: Optional[pricing.ShippingRates] = None,
    ) -> OrderTotals:
        return pricing.compute_totals(self.cart.items, selection, coupon, rates)
