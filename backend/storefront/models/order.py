from sqlalchemy import JSON, Column, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from storefront.db import Base
from storefront.utils.clock import utcnow

ORDER_STATUSES = ("Pending", "Processing", "Shipped", "Delivered", "Cancelled", "Failed")


class Order(Base):
    __tablename__ = "orders"
    id = Column(Integer, primary_key=True, autoincrement=True)
    order_number = Column(String(32), unique=True, nullable=False, index=True)
    owner_id = Column(String(64), nullable=True, index=True)  # NULL for guest checkout
    status = Column(String(32), nullable=False, default="Pending")
    payment_status = Column(String(32), nullable=False, default="Pending")
    payment_reference = Column(String(128), nullable=True)
    contact_email = Column(String(256), nullable=False)
    customer_name = Column(String(256), nullable=True)
    address_info = Column(JSON, nullable=True)
    shipping_label = Column(String(256), nullable=True)
    subtotal = Column(Float, nullable=False, default=0)
    shipping_fee = Column(Float, nullable=False, default=0)
    discount = Column(Float, nullable=False, default=0)
    total = Column(Float, nullable=False, default=0)
    coupon_code = Column(String(64), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    lines = relationship(
        "OrderLine", back_populates="order", cascade="all, delete-orphan"
    )


class OrderLine(Base):
    __tablename__ = "order_lines"
    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    product_id = Column(String(64), nullable=False)
    title = Column(String(256), nullable=True)
    image = Column(String(512), nullable=True)
    size = Column(String(32), nullable=True)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Float, nullable=False)  # effective price charged per unit

    order = relationship("Order", back_populates="lines")
