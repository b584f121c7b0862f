from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from storefront.models.product import Product


class ProductRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, product_id: str, active_only: bool = True) -> Optional[Product]:
        qry = self.db.query(Product).filter(Product.product_id == product_id)
        if active_only:
            qry = qry.filter(Product.active == True)  # noqa: E712
        return qry.first()

    def get_many(self, product_ids: Iterable[str]) -> Dict[str, Product]:
        ids = list(set(product_ids))
        if not ids:
            return {}
        rows = (
            self.db.query(Product)
            .filter(Product.product_id.in_(ids), Product.active == True)  # noqa: E712
            .all()
        )
        return {p.product_id: p for p in rows}

    def list(
        self,
        q: Optional[str] = None,
        category: Optional[str] = None,
        on_sale: bool = False,
        page: int = 1,
        size: int = 20,
    ) -> Tuple[List[Product], int]:
        query = self.db.query(Product).filter(Product.active == True)  # noqa: E712
        if q:
            like = f"%{q}%"
            query = query.filter(
                (Product.title.ilike(like)) | (Product.description.ilike(like))
            )
        if category:
            query = query.filter(func.lower(Product.category) == category.lower())
        if on_sale:
            query = query.filter(Product.sale_price > 0)
        total = query.with_entities(func.count()).scalar() or 0
        items = query.order_by(Product.title).offset((page - 1) * size).limit(size).all()
        return items, total
