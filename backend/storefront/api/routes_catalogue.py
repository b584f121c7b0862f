from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Optional
from sqlalchemy.orm import Session
from storefront.db import get_db
from storefront.repositories.product_repo import ProductRepository
from storefront.schemas.product_schema import ProductOut

router = APIRouter(prefix="/api/shop/products", tags=["catalogue"])

def _out(p) -> dict:
    return ProductOut.model_validate(p).model_dump(by_alias=True)

@router.get("", summary="List products")
def list_products(
    q: Optional[str] = Query(None, description="search term"),
    category: Optional[str] = Query(None),
    on_sale: bool = Query(False, alias="onSale"),
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=200),
    db: Session = Depends(get_db),
):
    repo = ProductRepository(db)
    items, total = repo.list(q=q, category=category, on_sale=on_sale, page=page, size=size)
    return {"items": [_out(p) for p in items], "total": total}

@router.get("/{product_id}", summary="Get product")
def get_product(product_id: str, db: Session = Depends(get_db)):
    p = ProductRepository(db).get(product_id)
    if not p:
        raise HTTPException(status_code=404, detail="Product not found")
    return _out(p)
