from sqlalchemy import Column, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from storefront.db import Base


class CartItem(Base):
    __tablename__ = "cart_items"
    __table_args__ = (
        UniqueConstraint("cart_id", "product_id", "size", name="uq_cart_line"),
    )
    id = Column(Integer, primary_key=True, index=True)
    cart_id = Column(
        Integer, ForeignKey("carts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id = Column(String(64), nullable=False, index=True)
    size = Column(String(32), nullable=True)  # variant discriminator, part of line identity
    quantity = Column(Integer, nullable=False, default=1)

    cart = relationship("Cart", back_populates="items")
