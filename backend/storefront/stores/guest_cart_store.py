from typing import Optional

from pydantic import ValidationError

from storefront.config import settings
from storefront.schemas.cart_schema import Cart
from storefront.stores.session_storage import SessionStorage
from storefront.utils.log import get_logger

log = get_logger("storefront.guest_cart", "GUEST-CART")


class GuestCartStore:
    """
    The anonymous shopper's cart, kept as one JSON snapshot in session storage.

    Reads never fail: missing or unreadable data is an empty cart. Writes
    never raise: a failed save is logged and the caller's flow carries on.
    """

    def __init__(self, storage: SessionStorage, key: Optional[str] = None):
        self.storage = storage
        self.key = key or settings.GUEST_CART_STORAGE_KEY

    def load(self) -> Cart:
        try:
            raw = self.storage.get_item(self.key)
        except Exception:
            log.exception("reading guest cart from storage failed")
            return Cart()
        if not raw:
            return Cart()
        try:
            cart = Cart.model_validate_json(raw)
        except ValidationError as e:
            log.warning("discarding unreadable guest cart: %s", e.errors()[:1])
            return Cart()
        # guest carts never carry an owner
        cart.owner_id = None
        return cart

    def save(self, cart: Cart) -> None:
        try:
            self.storage.set_item(self.key, cart.model_dump_json(by_alias=True))
        except Exception:
            log.exception("saving guest cart failed (%s lines)", len(cart.items))

    def clear(self) -> None:
        try:
            self.storage.remove_item(self.key)
        except Exception:
            log.exception("clearing guest cart failed")
