from contextlib import contextmanager
from typing import Optional

from sqlalchemy.orm import Session

from storefront.models.cart import Cart as CartRow
from storefront.repositories.cart_repo import CartRepository
from storefront.repositories.product_repo import ProductRepository
from storefront.schemas.cart_schema import Cart, CartLineItem
from storefront.utils.log import get_logger

log = get_logger("storefront.cart_service", "CART")


class CartServiceException(Exception):
    pass


class CartNotFound(CartServiceException):
    pass


class ProductNotFound(CartServiceException):
    pass


class CartService:
    """Server-side carts of authenticated users, keyed by owner id."""

    def __init__(self, db: Session):
        self.db = db
        self.cart_repo = CartRepository(db)
        self.product_repo = ProductRepository(db)

    @contextmanager
    def _writing(self):
        try:
            yield
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def _hydrate(self, owner_id: str, row: Optional[CartRow]) -> Cart:
        """Render a cart with display fields and prices from the current catalog."""
        if row is None:
            return Cart(owner_id=owner_id)
        products = self.product_repo.get_many(it.product_id for it in row.items)
        items = []
        for it in row.items:
            p = products.get(it.product_id)
            if p is None:
                continue
            items.append(
                CartLineItem(
                    product_id=it.product_id,
                    size=it.size,
                    quantity=it.quantity,
                    title=p.title,
                    image=p.image,
                    category=p.category,
                    price=p.price,
                    sale_price=p.sale_price,
                )
            )
        return Cart(owner_id=owner_id, items=items)

    def add_item(self, owner_id: str, product_id: str, size: Optional[str], qty: int) -> Cart:
        if not owner_id or not product_id:
            raise CartServiceException("Invalid data provided!")
        if qty <= 0:
            raise CartServiceException("Quantity must be positive")
        if self.product_repo.get(product_id) is None:
            raise ProductNotFound("Product not found")
        with self._writing():
            cart = self.cart_repo.get_or_create(owner_id)
            self.cart_repo.add_or_increment(cart, product_id, size, qty)
        return self._hydrate(owner_id, cart)

    def fetch(self, owner_id: str) -> Cart:
        """
        Current cart of ``owner_id``; an owner without a cart gets an empty one.
        Lines whose product left the catalog are dropped from the stored cart.
        """
        if not owner_id:
            raise CartServiceException("Owner id is mandatory!")
        cart = self.cart_repo.get_by_owner(owner_id)
        if cart is None:
            return Cart(owner_id=owner_id)
        known = self.product_repo.get_many(it.product_id for it in cart.items)
        missing = {it.product_id for it in cart.items} - set(known)
        if missing:
            with self._writing():
                pruned = self.cart_repo.prune_products(cart, missing)
            log.info("pruned %s stale lines from cart of %s", pruned, owner_id)
        return self._hydrate(owner_id, cart)

    def update_quantity(self, owner_id: str, product_id: str, size: Optional[str], qty: int) -> Cart:
        if not owner_id or not product_id:
            raise CartServiceException("Invalid data provided!")
        cart = self.cart_repo.get_by_owner(owner_id)
        if cart is None:
            raise CartNotFound("Cart not found!")
        item = self.cart_repo.find_line(cart, product_id, size)
        if item is None:
            raise CartNotFound("Cart item not present !")
        with self._writing():
            self.cart_repo.set_quantity(cart, item, qty)
        return self._hydrate(owner_id, cart)

    def remove_item(self, owner_id: str, product_id: str, size: Optional[str]) -> Cart:
        if not owner_id or not product_id:
            raise CartServiceException("Invalid data provided!")
        cart = self.cart_repo.get_by_owner(owner_id)
        if cart is None:
            raise CartNotFound("Cart not found!")
        item = self.cart_repo.find_line(cart, product_id, size)
        if item is not None:
            with self._writing():
                self.cart_repo.remove_line(cart, item)
        return self._hydrate(owner_id, cart)

    def clear(self, owner_id: str) -> Cart:
        cart = self.cart_repo.get_by_owner(owner_id)
        if cart is not None:
            with self._writing():
                self.cart_repo.clear(cart)
        return Cart(owner_id=owner_id)
