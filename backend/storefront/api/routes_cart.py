from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from storefront.db import get_db
from storefront.schemas.cart_schema import AddToCartIn, UpdateCartIn, segment_to_size
from storefront.services.cart_service import (
    CartNotFound,
    CartService,
    CartServiceException,
    ProductNotFound,
)

router = APIRouter(prefix="/api/shop/cart", tags=["cart"])


def _raise_http(e: CartServiceException):
    if isinstance(e, (CartNotFound, ProductNotFound)):
        raise HTTPException(status_code=404, detail=str(e))
    raise HTTPException(status_code=400, detail=str(e))


@router.post("/add", summary="Add item to cart")
def add_to_cart(payload: AddToCartIn, db: Session = Depends(get_db)):
    svc = CartService(db)
    try:
        cart = svc.add_item(payload.owner_id, payload.product_id, payload.size, payload.quantity)
    except CartServiceException as e:
        _raise_http(e)
    return {"success": True, "data": cart.to_wire()}


@router.get("/get/{owner_id}", summary="Get cart")
def fetch_cart(owner_id: str, db: Session = Depends(get_db)):
    svc = CartService(db)
    try:
        cart = svc.fetch(owner_id)
    except CartServiceException as e:
        _raise_http(e)
    return {"success": True, "data": cart.to_wire()}


@router.put("/update-cart", summary="Set line quantity (0 or below removes the line)")
def update_cart_quantity(payload: UpdateCartIn, db: Session = Depends(get_db)):
    svc = CartService(db)
    try:
        cart = svc.update_quantity(
            payload.owner_id, payload.product_id, payload.size, payload.quantity
        )
    except CartServiceException as e:
        _raise_http(e)
    return {"success": True, "data": cart.to_wire()}


@router.delete("/{owner_id}/{product_id}/{size}", summary="Remove line")
def delete_cart_item(owner_id: str, product_id: str, size: str, db: Session = Depends(get_db)):
    svc = CartService(db)
    try:
        cart = svc.remove_item(owner_id, product_id, segment_to_size(size))
    except CartServiceException as e:
        _raise_http(e)
    return {"success": True, "data": cart.to_wire()}
