import enum
import re
from typing import Callable, Iterable, Optional

from storefront.schemas.cart_schema import Cart
from storefront.schemas.checkout_schema import (
    AddressInfo,
    AppliedCoupon,
    ContactInfo,
    GuestAddress,
    OrderLineItem,
    OrderPayload,
    OrderTotals,
    SavedAddress,
    ShippingSelection,
)
from storefront.services import pricing
from storefront.utils.log import get_logger

log = get_logger("storefront.checkout", "CHECKOUT")

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_NAME_LENGTH = 2
MIN_PHONE_LENGTH = 10


class CheckoutState(str, enum.Enum):
    COLLECTING = "collecting"
    VALIDATED = "validated"
    SUBMITTING = "submitting"
    COMPLETED = "completed"


class CheckoutValidationError(Exception):
    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


class CheckoutStateError(Exception):
    pass


class CheckoutAssembly:
    """
    Collects contact, address and shipping details for one checkout, gates
    progression to payment, and builds the order handed to the order API.

    Any edit sends the checkout back to COLLECTING, so a payload can only be
    built from details that passed ``validate()`` as they currently stand.
    """

    def __init__(
        self,
        cart: Cart,
        owner_id: Optional[str] = None,
        saved_addresses: Iterable[SavedAddress] = (),
        rates: Optional[pricing.ShippingRates] = None,
    ):
        self.cart = cart
        self.owner_id = owner_id
        self.saved_addresses = list(saved_addresses)
        self.rates = rates or pricing.ShippingRates.from_settings()
        self.contact = ContactInfo()
        self.selected_address: Optional[SavedAddress] = None
        self.guest_address = GuestAddress()
        self.shipping = ShippingSelection()
        self.coupon: Optional[AppliedCoupon] = None
        self.state = CheckoutState.COLLECTING
        self.last_error: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.owner_id)

    def _edited(self):
        if self.state == CheckoutState.SUBMITTING:
            raise CheckoutStateError("Checkout cannot be edited while the order is being submitted")
        self.state = CheckoutState.COLLECTING

    # ---- edits -----------------------------------------------------------

    def set_contact(self, email: str, name: str = ""):
        self._edited()
        self.contact = ContactInfo(email=email or "", name=name or "")

    def select_address(self, address_id: str):
        self._edited()
        self.selected_address = next(
            (a for a in self.saved_addresses if a.address_id == address_id), None
        )
        if self.selected_address is None:
            raise CheckoutValidationError("address", "Selected address was not found")

    def set_guest_address(self, address: GuestAddress):
        self._edited()
        self.guest_address = address

    def select_shipping(self, city_tier: Optional[str], sub_location: Optional[str] = None):
        self._edited()
        if city_tier == pricing.OTHER_TIER:
            sub_location = None
        self.shipping = ShippingSelection(city_tier=city_tier, sub_location=sub_location)

    def apply_coupon(self, coupon: Optional[AppliedCoupon]):
        self._edited()
        self.coupon = coupon

    def update_cart(self, cart: Cart):
        self._edited()
        self.cart = cart

    # ---- derived ---------------------------------------------------------

    @property
    def totals(self) -> OrderTotals:
        return pricing.compute_totals(self.cart.items, self.shipping, self.coupon, self.rates)

    @property
    def customer_display_name(self) -> str:
        if self.contact.name.strip():
            return self.contact.name.strip()
        if self.is_authenticated and self.selected_address and self.selected_address.user_name:
            return self.selected_address.user_name
        if not self.is_authenticated and self.guest_address.full_name.strip():
            return self.guest_address.full_name.strip()
        return self.contact.email.split("@")[0]

    # ---- validation ------------------------------------------------------

    def _fail(self, field: str, message: str):
        log.info("checkout validation failed on %s: %s", field, message)
        raise CheckoutValidationError(field, message)

    def _check_email(self):
        email = (self.contact.email or "").strip()
        if not email or not EMAIL_RE.match(email):
            self._fail("email", "Enter a valid email address")

    def _check_address(self):
        if self.is_authenticated:
            if self.selected_address is None:
                self._fail("address", "Please select a delivery address to proceed")
            return
        addr = self.guest_address
        if len(addr.full_name.strip()) < MIN_NAME_LENGTH:
            self._fail("fullName", "Enter your full name (min 2 characters)")
        if not addr.address.strip():
            self._fail("address", "Enter your delivery address")
        if not addr.city.strip():
            self._fail("city", "Enter your city or town")
        if len(addr.phone.strip()) < MIN_PHONE_LENGTH:
            self._fail("phone", "Enter a valid phone number (min 10 digits)")

    def _check_shipping(self):
        tier = self.shipping.city_tier
        if not tier or tier not in self.rates.tiers:
            self._fail("cityTier", "Please select a delivery region")
        if pricing.requires_sub_location(tier, self.rates) and not pricing.is_valid_sub_location(
            tier, self.shipping.sub_location, self.rates
        ):
            label = self.rates.labels.get(tier, tier)
            self._fail("subLocation", f"Please select a delivery area within {label}")

    def _check_cart(self):
        if self.cart.is_empty:
            self._fail("cart", "Your cart is empty")

    def validate(self) -> None:
        """Run the checks in order; the first failing one raises CheckoutValidationError."""
        if self.state == CheckoutState.SUBMITTING:
            raise CheckoutStateError("Order is already being submitted")
        self.state = CheckoutState.COLLECTING
        self._check_email()
        self._check_address()
        self._check_shipping()
        self._check_cart()
        self.state = CheckoutState.VALIDATED

    # ---- payload & submission --------------------------------------------

    def _address_info(self) -> AddressInfo:
        if self.is_authenticated:
            a = self.selected_address
            return AddressInfo(
                address_id=a.address_id,
                address=a.address,
                city=a.city,
                pincode=a.pincode,
                phone=a.phone,
                notes=a.notes,
            )
        g = self.guest_address
        return AddressInfo(
            address=g.address.strip(),
            city=g.city.strip(),
            pincode=g.pincode,
            phone=g.phone.strip(),
            notes=g.notes,
        )

    def build_order_payload(self) -> OrderPayload:
        if self.state != CheckoutState.VALIDATED:
            raise CheckoutStateError("Checkout details must be validated before building the order")
        return OrderPayload(
            owner_id=self.owner_id or None,
            line_items=[
                OrderLineItem(
                    product_id=it.product_id,
                    size=it.size,
                    title=it.title,
                    image=it.image,
                    quantity=it.quantity,
                    price=pricing.effective_unit_price(it),
                )
                for it in self.cart.items
            ],
            address_info=self._address_info(),
            shipping_label=pricing.shipping_label(self.shipping, self.rates),
            shipping_selection=self.shipping,
            totals=self.totals,
            contact_email=self.contact.email.strip(),
            customer_display_name=self.customer_display_name,
            coupon_code=self.coupon.code if self.coupon else None,
        )

    def submit(self, initiate_payment: Callable[[OrderPayload], dict]) -> dict:
        """
        Hand the order to the payment-initiation collaborator.

        Success moves to COMPLETED and returns its response (e.g. the approval
        URL). Failure returns to COLLECTING with ``last_error`` set and
        re-raises; nothing is retried.
        """
        payload = self.build_order_payload()
        self.state = CheckoutState.SUBMITTING
        try:
            response = initiate_payment(payload)
        except Exception as e:
            self.state = CheckoutState.COLLECTING
            self.last_error = str(e) or "Order could not be placed"
            log.warning("order submission failed: %s", self.last_error)
            raise
        self.state = CheckoutState.COMPLETED
        self.last_error = None
        return response
