from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String, Text, func

from storefront.db import Base


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(String(64), unique=True, index=True, nullable=False)
    title = Column(String(256), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(128), nullable=True)
    brand = Column(String(128), nullable=True)
    image = Column(String(512), nullable=True)
    price = Column(Float, nullable=False, default=0)
    sale_price = Column(Float, nullable=True)  # 0/NULL means not on sale
    total_stock = Column(Integer, default=0, nullable=False)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Product product_id={self.product_id} title={self.title}>"
