from abc import ABC, abstractmethod
from typing import Optional

from storefront.adapters.shop_api import ShopApiClient
from storefront.schemas.cart_schema import Cart, CartLineItem, ProductSnapshot
from storefront.stores.guest_cart_store import GuestCartStore


class CartStore(ABC):
    """One shopper's cart, wherever it happens to live."""

    @abstractmethod
    def fetch(self) -> Cart:
        ...

    @abstractmethod
    def add(
        self,
        product_id: str,
        size: Optional[str],
        quantity: int,
        snapshot: Optional[ProductSnapshot] = None,
    ) -> Cart:
        ...

    @abstractmethod
    def set_quantity(self, product_id: str, size: Optional[str], quantity: int) -> Cart:
        ...

    @abstractmethod
    def remove(self, product_id: str, size: Optional[str]) -> Cart:
        ...


class LocalCartStore(CartStore):
    """Guest cart in session storage; each mutation is load, change, save."""

    def __init__(self, guest_store: GuestCartStore):
        self.guest_store = guest_store

    def fetch(self) -> Cart:
        return self.guest_store.load()

    def add(self, product_id, size, quantity, snapshot=None) -> Cart:
        cart = self.guest_store.load()
        if quantity <= 0:
            return cart
        line = cart.find(product_id, size)
        if line is not None:
            line.quantity += quantity
        else:
            snapshot = snapshot or ProductSnapshot()
            cart.items.append(
                CartLineItem(
                    product_id=product_id,
                    size=size,
                    quantity=quantity,
                    title=snapshot.title,
                    image=snapshot.image,
                    category=snapshot.category,
                    price=snapshot.price,
                    sale_price=snapshot.sale_price,
                )
            )
        self.guest_store.save(cart)
        return cart

    def set_quantity(self, product_id, size, quantity) -> Cart:
        cart = self.guest_store.load()
        line = cart.find(product_id, size)
        if line is not None:
            if quantity <= 0:
                cart.items.remove(line)
            else:
                line.quantity = quantity
        self.guest_store.save(cart)
        return cart

    def remove(self, product_id, size) -> Cart:
        cart = self.guest_store.load()
        cart.items = [it for it in cart.items if it.key != (product_id, size)]
        self.guest_store.save(cart)
        return cart


class RemoteCartStore(CartStore):
    """Server-side cart of an authenticated user."""

    def __init__(self, api: ShopApiClient, owner_id: str):
        self.api = api
        self.owner_id = owner_id

    def fetch(self) -> Cart:
        return self.api.fetch_cart(self.owner_id)

    def add(self, product_id, size, quantity, snapshot=None) -> Cart:
        # the server hydrates display fields from its catalog
        return self.api.add_to_cart(self.owner_id, product_id, size, quantity)

    def set_quantity(self, product_id, size, quantity) -> Cart:
        return self.api.update_cart_quantity(self.owner_id, product_id, size, quantity)

    def remove(self, product_id, size) -> Cart:
        return self.api.remove_from_cart(self.owner_id, product_id, size)
