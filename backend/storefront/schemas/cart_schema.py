from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

# path segment standing in for a line without a size variant
NO_SIZE_SEGMENT = "_"


class ProductSnapshot(BaseModel):
    """Display data captured when a guest adds a product."""

    model_config = ConfigDict(populate_by_name=True)
    title: str = "Product"
    image: str = ""
    category: str = "General Product"
    price: float = 0
    sale_price: float = Field(0, alias="salePrice")


class CartLineItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    product_id: str = Field(..., alias="productId")
    size: Optional[str] = None
    quantity: int = Field(..., ge=1)
    title: Optional[str] = None
    image: Optional[str] = None
    category: Optional[str] = None
    price: Optional[float] = None
    sale_price: Optional[float] = Field(None, alias="salePrice")

    @property
    def key(self) -> Tuple[str, Optional[str]]:
        return (self.product_id, self.size)


class Cart(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    items: List[CartLineItem] = []
    owner_id: Optional[str] = Field(None, alias="ownerId")

    @property
    def is_empty(self) -> bool:
        return not self.items

    def find(self, product_id: str, size: Optional[str]) -> Optional[CartLineItem]:
        return next((it for it in self.items if it.key == (product_id, size)), None)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class AddToCartIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    owner_id: str = Field(..., alias="ownerId", min_length=1)
    product_id: str = Field(..., alias="productId", min_length=1)
    size: Optional[str] = None
    quantity: int = Field(..., gt=0)


class UpdateCartIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    owner_id: str = Field(..., alias="ownerId", min_length=1)
    product_id: str = Field(..., alias="productId", min_length=1)
    size: Optional[str] = None
    quantity: int


def size_to_segment(size: Optional[str]) -> str:
    return size if size else NO_SIZE_SEGMENT


def segment_to_size(segment: str) -> Optional[str]:
    return None if segment == NO_SIZE_SEGMENT else segment
