from typing import Dict, Iterable, Optional

from sqlalchemy.orm import Session

from storefront.models.coupon import Coupon, CouponType, CouponUsage, CustomerType
from storefront.models.order import Order
from storefront.utils.log import get_logger

log = get_logger("storefront.coupon", "COUPON")


class CouponException(Exception):
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class CouponService:
    def __init__(self, db: Session):
        self.db = db

    def _find(self, code: str) -> Optional[Coupon]:
        return (
            self.db.query(Coupon)
            .filter(Coupon.code == (code or "").strip().upper(), Coupon.is_active == True)  # noqa: E712
            .first()
        )

    def _is_eligible(self, owner_id: str, customer_type: CustomerType) -> bool:
        if customer_type == CustomerType.GENERAL:
            return True
        if customer_type == CustomerType.NEW_CUSTOMER:
            paid = (
                self.db.query(Order)
                .filter(Order.owner_id == owner_id, Order.payment_status == "Success")
                .count()
            )
            return paid == 0
        # subscriber / top buyer targeting needs newsletter and sales analytics data
        return False

    def validate(
        self,
        code: str,
        owner_id: Optional[str],
        order_amount: float,
        categories: Iterable[str] = (),
    ) -> Dict:
        """
        Check ``code`` against ``order_amount`` and the cart's categories.
        Returns the coupon summary and the discount it would grant; raises
        CouponException with a shopper-facing message otherwise.
        """
        if not code or not code.strip():
            raise CouponException("Coupon code is required")
        coupon = self._find(code)
        if coupon is None:
            raise CouponException("Invalid coupon code", status_code=404)
        if coupon.is_expired:
            raise CouponException("This coupon has expired")
        if coupon.usage_limit is not None and (coupon.used_count or 0) >= coupon.usage_limit:
            raise CouponException("This coupon has reached its usage limit")
        if order_amount < (coupon.minimum_order_amount or 0):
            raise CouponException(
                f"Minimum order amount of {coupon.minimum_order_amount:g} required"
            )
        if owner_id:
            if not coupon.can_user_use(owner_id):
                raise CouponException("You have already used this coupon")
            if not self._is_eligible(owner_id, coupon.customer_type):
                raise CouponException("You are not eligible for this coupon")

        cart_categories = {c.lower() for c in categories if c}
        applicable = [c.lower() for c in coupon.applicable_categories or []]
        excluded = [c.lower() for c in coupon.excluded_categories or []]
        if applicable and not cart_categories.intersection(applicable):
            raise CouponException("This coupon is not applicable to items in your cart")
        if excluded and cart_categories.intersection(excluded):
            raise CouponException("This coupon cannot be applied to some items in your cart")

        amount = coupon.calculate_discount(order_amount)
        return {
            "coupon": {
                "id": coupon.id,
                "code": coupon.code,
                "name": coupon.name,
                "type": coupon.type.value,
                "value": coupon.value,
                "description": coupon.description,
            },
            "discount": {
                "amount": amount,
                "percentage": coupon.value
                if coupon.type == CouponType.PERCENTAGE
                else (amount / order_amount * 100 if order_amount else 0),
                "originalAmount": order_amount,
                "finalAmount": order_amount - amount,
            },
        }

    def apply_to_order(
        self, code: str, owner_id: Optional[str], order_id: int, order_amount: float
    ) -> float:
        """Record one use of ``code`` against an order and return the discount granted."""
        coupon = self._find(code)
        if coupon is None or not coupon.is_valid:
            raise CouponException("Invalid or expired coupon")
        if owner_id and not coupon.can_user_use(owner_id):
            raise CouponException("Coupon already used by this user")
        amount = coupon.calculate_discount(order_amount)
        coupon.used_count = (coupon.used_count or 0) + 1
        coupon.usages.append(
            CouponUsage(user_id=owner_id, order_id=order_id, discount_amount=amount)
        )
        self.db.flush()
        log.info("coupon %s applied to order %s: -%s", coupon.code, order_id, amount)
        return amount
