from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ShippingSelection(_CamelModel):
    city_tier: Optional[str] = Field(None, alias="cityTier")
    sub_location: Optional[str] = Field(None, alias="subLocation")


class AppliedCoupon(_CamelModel):
    code: str
    discount_amount: float = Field(0, alias="discountAmount")


class OrderTotals(_CamelModel):
    subtotal: float = 0
    shipping_fee: float = Field(0, alias="shippingFee")
    discount: float = 0
    total: float = 0


class ContactInfo(_CamelModel):
    email: str = ""
    name: str = ""


class SavedAddress(_CamelModel):
    """An address from an authenticated user's address book."""

    address_id: str = Field(..., alias="addressId")
    user_name: Optional[str] = Field(None, alias="userName")
    address: str
    city: str
    pincode: Optional[str] = None
    phone: str
    notes: Optional[str] = None


class GuestAddress(_CamelModel):
    full_name: str = Field("", alias="fullName")
    address: str = ""
    city: str = ""
    phone: str = ""
    pincode: Optional[str] = None
    notes: Optional[str] = None


class AddressInfo(_CamelModel):
    address_id: Optional[str] = Field(None, alias="addressId")
    address: str
    city: str
    pincode: Optional[str] = None
    phone: str
    notes: Optional[str] = None


class OrderLineItem(_CamelModel):
    product_id: str = Field(..., alias="productId")
    size: Optional[str] = None
    title: Optional[str] = None
    image: Optional[str] = None
    quantity: int = Field(..., ge=1)
    price: float = 0  # effective unit price at checkout


class OrderPayload(_CamelModel):
    owner_id: Optional[str] = Field(None, alias="ownerId")
    line_items: List[OrderLineItem] = Field(..., alias="lineItems", min_length=1)
    address_info: AddressInfo = Field(..., alias="addressInfo")
    shipping_label: str = Field(..., alias="shippingLabel")
    shipping_selection: Optional[ShippingSelection] = Field(
        None, alias="shippingSelection"
    )
    totals: OrderTotals
    contact_email: str = Field(..., alias="contactEmail")
    customer_display_name: Optional[str] = Field(None, alias="customerDisplayName")
    coupon_code: Optional[str] = Field(None, alias="couponCode")

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class ValidateCouponIn(_CamelModel):
    code: str = ""
    owner_id: Optional[str] = Field(None, alias="ownerId")
    order_amount: float = Field(0, alias="orderAmount")
    categories: List[str] = []


class CapturePaymentIn(_CamelModel):
    order_id: int = Field(..., alias="orderId")
    payment_id: Optional[str] = Field(None, alias="paymentId")


class OrderStatusIn(_CamelModel):
    status: str
