from typing import Optional

from sqlalchemy.orm import Session

from storefront.models.cart import Cart
from storefront.models.cart_item import CartItem


class CartRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_owner(self, owner_id: str) -> Optional[Cart]:
        return self.db.query(Cart).filter(Cart.owner_id == owner_id).first()

    def get_or_create(self, owner_id: str) -> Cart:
        c = self.get_by_owner(owner_id)
        if c is None:
            c = Cart(owner_id=owner_id)
            self.db.add(c)
            self.db.flush()
        return c

    def find_line(self, cart: Cart, product_id: str, size: Optional[str]) -> Optional[CartItem]:
        return next(
            (it for it in cart.items if it.product_id == product_id and it.size == size),
            None,
        )

    def add_or_increment(self, cart: Cart, product_id: str, size: Optional[str], qty: int) -> CartItem:
        item = self.find_line(cart, product_id, size)
        if item:
            item.quantity += qty
        else:
            item = CartItem(cart_id=cart.id, product_id=product_id, size=size, quantity=qty)
            self.db.add(item)
            cart.items.append(item)
        self.db.flush()
        return item

    def set_quantity(self, cart: Cart, item: CartItem, qty: int):
        if qty <= 0:
            self.remove_line(cart, item)
        else:
            item.quantity = qty
            self.db.flush()

    def remove_line(self, cart: Cart, item: CartItem):
        cart.items.remove(item)
        self.db.flush()

    def prune_products(self, cart: Cart, missing_product_ids) -> int:
        stale = [it for it in cart.items if it.product_id in missing_product_ids]
        for it in stale:
            cart.items.remove(it)
        if stale:
            self.db.flush()
        return len(stale)

    def clear(self, cart: Cart):
        cart.items.clear()
        self.db.flush()
