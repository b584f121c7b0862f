from typing import Dict, List, Optional
from uuid import uuid4

from sqlalchemy.orm import Session

from storefront.adapters.mock_payment import MockPaymentAdapter, PaymentDeclined
from storefront.models.order import ORDER_STATUSES, Order, OrderLine
from storefront.repositories.cart_repo import CartRepository
from storefront.repositories.product_repo import ProductRepository
from storefront.schemas.cart_schema import CartLineItem
from storefront.schemas.checkout_schema import OrderPayload
from storefront.services import pricing
from storefront.services.coupon_service import CouponException, CouponService
from storefront.utils.log import get_logger
from storefront.utils.transactions import smart_transaction

log = get_logger("storefront.orders", "ORDER")


class OrderServiceException(Exception):
    pass


class OrderNotFound(OrderServiceException):
    pass


class OrderService:
    def __init__(
        self,
        db: Session,
        payment_adapter: Optional[MockPaymentAdapter] = None,
        rates: Optional[pricing.ShippingRates] = None,
    ):
        self.db = db
        self.products = ProductRepository(db)
        self.coupons = CouponService(db)
        self.payment_adapter = payment_adapter or MockPaymentAdapter()
        self.rates = rates or pricing.ShippingRates.from_settings()

    def _gen_order_number(self) -> str:
        return f"ORD-{uuid4().hex[:10].upper()}"

    def _price_lines(self, payload: OrderPayload) -> List[CartLineItem]:
        """Re-price the submitted lines from the catalog; client prices are not trusted."""
        catalog = self.products.get_many(li.product_id for li in payload.line_items)
        priced = []
        for li in payload.line_items:
            prod = catalog.get(li.product_id)
            if prod is None:
                raise OrderServiceException(f"Product not found: {li.product_id}")
            if (prod.total_stock or 0) < li.quantity:
                raise OrderServiceException(f"Not enough stock for product: {prod.title}")
            priced.append(
                CartLineItem(
                    product_id=prod.product_id,
                    size=li.size,
                    quantity=li.quantity,
                    title=prod.title,
                    image=prod.image,
                    category=prod.category,
                    price=prod.price,
                    sale_price=prod.sale_price,
                )
            )
        return priced

    def create_order(self, payload: OrderPayload) -> Dict:
        """
        Persist a Pending order and start its payment.

        Totals are recomputed here: catalog prices, the shipping selection and
        the coupon as validated now. A coupon that no longer applies is
        dropped and the order proceeds at full price. Returns
        {success, approvalURL, orderId, orderNumber, totals}.
        """
        selection = payload.shipping_selection
        if selection is None or not selection.city_tier:
            raise OrderServiceException("Shipping selection is required")
        if pricing.requires_sub_location(selection.city_tier, self.rates) and not pricing.is_valid_sub_location(
            selection.city_tier, selection.sub_location, self.rates
        ):
            raise OrderServiceException("Shipping area is not valid for the selected region")

        lines = self._price_lines(payload)
        sub = pricing.subtotal(lines)
        ship = pricing.shipping_fee(selection, self.rates)

        try:
            with smart_transaction(self.db):
                order = Order(
                    order_number=self._gen_order_number(),
                    owner_id=payload.owner_id,
                    status="Pending",
                    payment_status="Pending",
                    contact_email=payload.contact_email,
                    customer_name=payload.customer_display_name,
                    address_info=payload.address_info.model_dump(by_alias=True),
                    shipping_label=pricing.shipping_label(selection, self.rates),
                    subtotal=round(sub, 2),
                    shipping_fee=round(ship, 2),
                )
                self.db.add(order)
                self.db.flush()
                for it in lines:
                    order.lines.append(
                        OrderLine(
                            product_id=it.product_id,
                            title=it.title,
                            image=it.image,
                            size=it.size,
                            quantity=it.quantity,
                            unit_price=pricing.effective_unit_price(it),
                        )
                    )

                disc = 0
                if payload.coupon_code:
                    try:
                        disc = self.coupons.apply_to_order(
                            payload.coupon_code, payload.owner_id, order.id, sub
                        )
                        order.coupon_code = payload.coupon_code.strip().upper()
                    except CouponException as e:
                        log.warning("coupon %s not applied to %s: %s", payload.coupon_code, order.order_number, e)
                order.discount = round(disc, 2)
                order.total = round(pricing.total(sub, ship, disc), 2)

                if abs(order.total - payload.totals.total) > 0.01:
                    log.warning(
                        "client total %s differs from server total %s for %s",
                        payload.totals.total,
                        order.total,
                        order.order_number,
                    )

                approval_url = None
                if order.total > 0:
                    payment = self.payment_adapter.initiate(
                        order.order_number, order.total, payload.contact_email
                    )
                    order.payment_reference = payment["reference"]
                    approval_url = payment["approval_url"]
                else:
                    # fully discounted; nothing to collect
                    self._fulfil(order)
        except PaymentDeclined as e:
            raise OrderServiceException("Payment declined: " + str(e))
        self.db.commit()

        log.info("order %s created: total %s", order.order_number, order.total)
        return {
            "success": True,
            "approvalURL": approval_url,
            "orderId": order.id,
            "orderNumber": order.order_number,
            "totals": {
                "subtotal": order.subtotal,
                "shippingFee": order.shipping_fee,
                "discount": order.discount,
                "total": order.total,
            },
        }

    def _get(self, order_id: int) -> Order:
        order = self.db.get(Order, order_id)
        if order is None:
            raise OrderNotFound("Order not found!")
        return order

    def _fulfil(self, order: Order) -> None:
        """Take stock for each line, mark the order paid and empty the owner's cart."""
        catalog = self.products.get_many(l.product_id for l in order.lines)
        for l in order.lines:
            prod = catalog.get(l.product_id)
            if prod is None:
                raise OrderNotFound(f"Product with ID {l.product_id} not found")
            if (prod.total_stock or 0) < l.quantity:
                raise OrderServiceException(f"Not enough stock for product: {prod.title}")
        for l in order.lines:
            catalog[l.product_id].total_stock -= l.quantity
        order.status = "Processing"
        order.payment_status = "Success"
        if order.owner_id:
            carts = CartRepository(self.db)
            cart = carts.get_by_owner(order.owner_id)
            if cart is not None:
                carts.clear(cart)

    def capture_payment(self, order_id: int, payment_id: Optional[str] = None) -> Dict:
        """
        Confirm payment of an order: take stock for each line and empty the
        owner's cart. A failed verification marks the order Failed.
        """
        verified = True
        with smart_transaction(self.db):
            order = self._get(order_id)
            if order.payment_status == "Success":
                return self.to_dict(order)
            reference = payment_id or order.payment_reference
            if not self.payment_adapter.verify(reference):
                order.status = "Failed"
                order.payment_status = "Failed"
                verified = False
            else:
                order.payment_reference = reference
                self._fulfil(order)
        self.db.commit()
        if not verified:
            raise OrderServiceException("Payment verification failed.")
        log.info("order %s paid", order.order_number)
        return self.to_dict(order)

    def list_orders(self, owner_id: str) -> List[Dict]:
        orders = (
            self.db.query(Order)
            .filter(Order.owner_id == owner_id)
            .order_by(Order.created_at.desc())
            .all()
        )
        return [self.to_dict(o) for o in orders]

    def get_order(self, order_id: int) -> Dict:
        return self.to_dict(self._get(order_id))

    def update_status(self, order_id: int, status: str) -> Dict:
        if status not in ORDER_STATUSES:
            raise OrderServiceException(f"Unknown order status: {status}")
        with smart_transaction(self.db):
            order = self._get(order_id)
            order.status = status
        self.db.commit()
        return self.to_dict(order)

    @staticmethod
    def to_dict(order: Order) -> Dict:
        return {
            "orderId": order.id,
            "orderNumber": order.order_number,
            "ownerId": order.owner_id,
            "status": order.status,
            "paymentStatus": order.payment_status,
            "paymentReference": order.payment_reference,
            "contactEmail": order.contact_email,
            "customerName": order.customer_name,
            "addressInfo": order.address_info,
            "shippingLabel": order.shipping_label,
            "couponCode": order.coupon_code,
            "totals": {
                "subtotal": order.subtotal,
                "shippingFee": order.shipping_fee,
                "discount": order.discount,
                "total": order.total,
            },
            "lineItems": [
                {
                    "productId": l.product_id,
                    "title": l.title,
                    "image": l.image,
                    "size": l.size,
                    "quantity": l.quantity,
                    "price": l.unit_price,
                }
                for l in order.lines
            ],
            "createdAt": order.created_at.isoformat() if order.created_at else None,
        }
