import threading
from contextlib import contextmanager
from typing import Iterator, Optional, Tuple

from storefront.adapters.shop_api import ShopApiClient
from storefront.schemas.cart_schema import Cart, ProductSnapshot
from storefront.stores.cart_store import CartStore, LocalCartStore, RemoteCartStore
from storefront.stores.guest_cart_store import GuestCartStore
from storefront.utils.log import get_logger

log = get_logger("storefront.cart", "CART")


class CartOperationInProgress(Exception):
    """A mutation for the same cart line is still waiting on its response."""


class CartReconciliationService:
    """
    Single entry point for cart reads and writes.

    Calls without an owner go to the guest cart in session storage, calls
    with one go to the server cart. ``merge_on_login`` moves the guest cart
    into the server cart once the shopper authenticates.
    """

    def __init__(self, guest_store: GuestCartStore, api: ShopApiClient):
        self.guest_store = guest_store
        self.api = api
        self._lock = threading.Lock()
        self._in_flight = set()

    def store_for(self, owner_id: Optional[str]) -> CartStore:
        if not owner_id:
            return LocalCartStore(self.guest_store)
        return RemoteCartStore(self.api, owner_id)

    @contextmanager
    def _guard(self, key: Tuple, what: str) -> Iterator[None]:
        # rejects, never queues, a duplicate of an outstanding operation
        with self._lock:
            if key in self._in_flight:
                raise CartOperationInProgress(f"{what} is already in progress")
            self._in_flight.add(key)
        try:
            yield
        finally:
            with self._lock:
                self._in_flight.discard(key)

    def _line_guard(self, owner_id: Optional[str], product_id: str, size: Optional[str]):
        return self._guard(
            ("line", owner_id or None, product_id, size),
            f"An update for {product_id} ({size or 'no size'})",
        )

    def add_item(
        self,
        owner_id: Optional[str],
        product_id: str,
        size: Optional[str],
        quantity: int,
        snapshot: Optional[ProductSnapshot] = None,
    ) -> Cart:
        with self._line_guard(owner_id, product_id, size):
            return self.store_for(owner_id).add(product_id, size, quantity, snapshot)

    def set_quantity(
        self, owner_id: Optional[str], product_id: str, size: Optional[str], quantity: int
    ) -> Cart:
        with self._line_guard(owner_id, product_id, size):
            return self.store_for(owner_id).set_quantity(product_id, size, quantity)

    def remove_item(self, owner_id: Optional[str], product_id: str, size: Optional[str]) -> Cart:
        with self._line_guard(owner_id, product_id, size):
            return self.store_for(owner_id).remove(product_id, size)

    def fetch(self, owner_id: Optional[str]) -> Cart:
        return self.store_for(owner_id).fetch()

    def clear_guest_cart(self) -> None:
        self.guest_store.clear()

    def merge_on_login(self, user_id: str) -> Cart:
        """
        Move every guest line into ``user_id``'s server cart, then return the
        merged server cart.

        Lines are added one at a time in guest-cart order. Each line leaves the
        guest cart as soon as the server accepts it, so if a call fails the
        error propagates with only the unmerged lines still pending and a
        later retry does not add them twice. Saving that progress is
        best-effort: when the guest store cannot be written the failure is
        only logged, and a retry after a failed merge re-adds the lines whose
        removal was not saved. Calling this again after a completed merge
        just fetches the server cart.
        """
        if not user_id:
            raise ValueError("user_id is required to merge the guest cart")

        with self._guard(("merge", user_id), "A guest cart merge"):
            return self._merge(user_id)

    def _merge(self, user_id: str) -> Cart:
        pending = self.guest_store.load()
        if pending.is_empty:
            return self.api.fetch_cart(user_id)

        total_lines = len(pending.items)
        log.info("merging %s guest cart lines into cart of %s", total_lines, user_id)
        while pending.items:
            line = pending.items[0]
            try:
                self.api.add_to_cart(user_id, line.product_id, line.size, line.quantity)
            except Exception:
                log.warning(
                    "guest cart merge for %s stopped at %s/%s lines",
                    user_id,
                    total_lines - len(pending.items),
                    total_lines,
                )
                raise
            pending.items.pop(0)
            self.guest_store.save(pending)

        self.guest_store.clear()
        return self.api.fetch_cart(user_id)
