from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from storefront.adapters.mock_payment import MockPaymentAdapter
from storefront.db import get_db
from storefront.schemas.checkout_schema import CapturePaymentIn, OrderPayload, OrderStatusIn
from storefront.services import pricing
from storefront.services.order_service import OrderNotFound, OrderService, OrderServiceException
from storefront.utils.log import get_logger

router = APIRouter(prefix="/api/shop/order", tags=["orders"])
log = get_logger("storefront.api.orders", "ORDER")


def get_payment_adapter() -> MockPaymentAdapter:
    return MockPaymentAdapter()


def _raise_http(e: OrderServiceException):
    if isinstance(e, OrderNotFound):
        raise HTTPException(status_code=404, detail=str(e))
    raise HTTPException(status_code=400, detail=str(e))


@router.post("/create", summary="Create order and start payment", status_code=201)
def create_order(
    payload: OrderPayload,
    db: Session = Depends(get_db),
    payments: MockPaymentAdapter = Depends(get_payment_adapter),
):
    svc = OrderService(db, payment_adapter=payments)
    try:
        return svc.create_order(payload)
    except OrderServiceException as e:
        _raise_http(e)
    except Exception as e:
        log.exception("order creation crashed")
        raise HTTPException(status_code=500, detail=f"Internal server error: {type(e).__name__}")


@router.post("/capture", summary="Confirm payment of an order")
def capture_payment(
    payload: CapturePaymentIn,
    db: Session = Depends(get_db),
    payments: MockPaymentAdapter = Depends(get_payment_adapter),
):
    svc = OrderService(db, payment_adapter=payments)
    try:
        data = svc.capture_payment(payload.order_id, payload.payment_id)
    except OrderServiceException as e:
        _raise_http(e)
    return {"success": True, "message": "Order and payment confirmed successfully", "data": data}


@router.get("/list/{owner_id}", summary="Orders of a user")
def list_orders(owner_id: str, db: Session = Depends(get_db)):
    orders = OrderService(db).list_orders(owner_id)
    if not orders:
        raise HTTPException(status_code=404, detail="No orders found!")
    return {"success": True, "data": orders}


@router.get("/details/{order_id}", summary="Order details")
def order_details(order_id: int, db: Session = Depends(get_db)):
    try:
        return {"success": True, "data": OrderService(db).get_order(order_id)}
    except OrderServiceException as e:
        _raise_http(e)


@router.put("/status/{order_id}", summary="Move an order along its workflow")
def update_order_status(order_id: int, payload: OrderStatusIn, db: Session = Depends(get_db)):
    try:
        return {"success": True, "data": OrderService(db).update_status(order_id, payload.status)}
    except OrderServiceException as e:
        _raise_http(e)


@router.get("/shipping-rates", summary="Delivery regions and fees")
def shipping_rates():
    return {"success": True, "data": pricing.fee_table()}
