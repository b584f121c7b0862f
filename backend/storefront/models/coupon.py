import enum

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from storefront.db import Base
from storefront.utils.clock import utcnow


class CouponType(enum.Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class CustomerType(enum.Enum):
    GENERAL = "general"
    NEW_CUSTOMER = "new_customer"
    SUBSCRIBER = "subscriber"
    TOP_BUYER = "top_buyer"


class Coupon(Base):
    __tablename__ = "coupons"
    id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column(String(64), unique=True, nullable=False, index=True)  # stored upper-case
    name = Column(String(128), nullable=False)
    description = Column(Text, nullable=True)
    type = Column(Enum(CouponType), nullable=False, default=CouponType.PERCENTAGE)
    value = Column(Float, nullable=False, default=0)
    customer_type = Column(
        Enum(CustomerType), nullable=False, default=CustomerType.GENERAL
    )
    usage_limit = Column(Integer, nullable=True)  # NULL = unlimited
    used_count = Column(Integer, nullable=False, default=0)
    per_user_limit = Column(Integer, nullable=False, default=1)
    minimum_order_amount = Column(Float, nullable=False, default=0)
    valid_from = Column(DateTime, nullable=False, default=utcnow)
    valid_until = Column(DateTime, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    applicable_categories = Column(JSON, nullable=False, default=list)
    excluded_categories = Column(JSON, nullable=False, default=list)

    usages = relationship(
        "CouponUsage", back_populates="coupon", cascade="all, delete-orphan"
    )

    @property
    def is_expired(self) -> bool:
        return utcnow() > self.valid_until

    @property
    def is_valid(self) -> bool:
        return (
            bool(self.is_active)
            and not self.is_expired
            and utcnow() >= self.valid_from
            and (self.usage_limit is None or (self.used_count or 0) < self.usage_limit)
        )

    def can_user_use(self, user_id: str) -> bool:
        if not self.is_valid:
            return False
        used = [u for u in self.usages if u.user_id and u.user_id == str(user_id)]
        return len(used) < (self.per_user_limit or 1)

    def calculate_discount(self, order_amount: float) -> float:
        if order_amount < (self.minimum_order_amount or 0):
            return 0
        if self.type == CouponType.PERCENTAGE:
            return round(min(order_amount * (self.value / 100), order_amount), 2)
        return round(min(self.value, order_amount), 2)


class CouponUsage(Base):
    __tablename__ = "coupon_usages"
    id = Column(Integer, primary_key=True, autoincrement=True)
    coupon_id = Column(Integer, ForeignKey("coupons.id"), nullable=False, index=True)
    user_id = Column(String(64), nullable=True, index=True)
    order_id = Column(Integer, nullable=True)
    discount_amount = Column(Float, nullable=False, default=0)
    used_at = Column(DateTime, nullable=False, default=utcnow)

    coupon = relationship("Coupon", back_populates="usages")
