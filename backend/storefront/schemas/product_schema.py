from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

class ProductOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)
    product_id: str = Field(..., serialization_alias="productId")
    title: str
    description: Optional[str] = None
    category: Optional[str] = None
    brand: Optional[str] = None
    image: Optional[str] = None
    price: float
    sale_price: Optional[float] = Field(None, serialization_alias="salePrice")
    total_stock: int = Field(..., serialization_alias="totalStock")
    active: bool
