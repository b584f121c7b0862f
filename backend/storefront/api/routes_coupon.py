from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from storefront.db import get_db
from storefront.schemas.checkout_schema import ValidateCouponIn
from storefront.services.coupon_service import CouponException, CouponService

router = APIRouter(prefix="/api/shop/coupon", tags=["coupons"])


@router.post("/validate", summary="Check a coupon against the current order amount")
def validate_coupon(payload: ValidateCouponIn, db: Session = Depends(get_db)):
    svc = CouponService(db)
    try:
        data = svc.validate(payload.code, payload.owner_id, payload.order_amount, payload.categories)
    except CouponException as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return {"success": True, "message": "Coupon is valid", "data": data}
