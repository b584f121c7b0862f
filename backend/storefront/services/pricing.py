"""
Order pricing.

Pure functions from cart lines, a shipping selection and an applied coupon to
``OrderTotals``. Nothing here touches storage or the network, so callers can
recompute totals whenever the cart changes.
"""
from dataclasses import dataclass, field
from typing import Dict, Iterable, Mapping, Optional

from storefront.config import settings
from storefront.schemas.cart_schema import CartLineItem
from storefront.schemas.checkout_schema import AppliedCoupon, OrderTotals, ShippingSelection

OTHER_TIER = "other"


@dataclass(frozen=True)
class ShippingRates:
    base_fees: Mapping[str, float] = field(default_factory=dict)
    surcharges: Mapping[str, Mapping[str, float]] = field(default_factory=dict)
    other_flat_fee: float = 0
    labels: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_settings(cls) -> "ShippingRates":
        return cls(
            base_fees=dict(settings.SHIPPING_BASE_FEES),
            surcharges={k: dict(v) for k, v in settings.SHIPPING_SUBLOCATION_SURCHARGES.items()},
            other_flat_fee=settings.SHIPPING_OTHER_FLAT_FEE,
            labels=dict(settings.SHIPPING_TIER_LABELS),
        )

    @property
    def tiers(self):
        return list(self.base_fees) + [OTHER_TIER]


def _num(value) -> float:
    # missing or non-numeric terms count as 0 rather than poisoning the total
    if value is None or isinstance(value, bool):
        return 0
    try:
        n = float(value)
    except (TypeError, ValueError):
        return 0
    return 0 if n != n else n


def effective_unit_price(item: CartLineItem) -> float:
    """Sale price when it is set and positive, otherwise the base price."""
    sale = _num(getattr(item, "sale_price", None))
    if sale > 0:
        return sale
    return _num(getattr(item, "price", None))


def line_total(item: CartLineItem) -> float:
    return effective_unit_price(item) * _num(getattr(item, "quantity", None))


def subtotal(items: Iterable[CartLineItem]) -> float:
    return sum((line_total(it) for it in items or ()), 0)


def requires_sub_location(city_tier: Optional[str], rates: ShippingRates) -> bool:
    return bool(city_tier) and city_tier != OTHER_TIER and bool(rates.surcharges.get(city_tier))


def is_valid_sub_location(
    city_tier: Optional[str], sub_location: Optional[str], rates: ShippingRates
) -> bool:
    return sub_location in rates.surcharges.get(city_tier, {})


def shipping_fee(selection: Optional[ShippingSelection], rates: Optional[ShippingRates] = None) -> float:
    rates = rates or ShippingRates.from_settings()
    if selection is None or not selection.city_tier:
        return 0
    tier = selection.city_tier
    if tier == OTHER_TIER:
        return _num(rates.other_flat_fee)
    if tier not in rates.base_fees:
        return 0
    surcharge = rates.surcharges.get(tier, {}).get(selection.sub_location, 0)
    return _num(rates.base_fees[tier]) + _num(surcharge)


def shipping_label(selection: Optional[ShippingSelection], rates: Optional[ShippingRates] = None) -> str:
    rates = rates or ShippingRates.from_settings()
    if selection is None or not selection.city_tier:
        return ""
    label = rates.labels.get(selection.city_tier, selection.city_tier)
    if selection.city_tier != OTHER_TIER and selection.sub_location:
        return f"{label} - {selection.sub_location}"
    return label


def discount(coupon: Optional[AppliedCoupon]) -> float:
    if coupon is None:
        return 0
    return _num(coupon.discount_amount)


def total(subtotal_amount: float, shipping_amount: float, discount_amount: float) -> float:
    return max(0, _num(subtotal_amount) + _num(shipping_amount) - _num(discount_amount))


def compute_totals(
    items: Iterable[CartLineItem],
    selection: Optional[ShippingSelection] = None,
    coupon: Optional[AppliedCoupon] = None,
    rates: Optional[ShippingRates] = None,
) -> OrderTotals:
    sub = subtotal(items)
    ship = shipping_fee(selection, rates)
    disc = discount(coupon)
    return OrderTotals(
        subtotal=round(sub, 2),
        shipping_fee=round(ship, 2),
        discount=round(disc, 2),
        total=round(total(sub, ship, disc), 2),
    )


def fee_table(rates: Optional[ShippingRates] = None) -> Dict[str, Dict]:
    """Tier → {label, base, subLocations} for rendering a shipping picker."""
    rates = rates or ShippingRates.from_settings()
    table = {
        tier: {
            "label": rates.labels.get(tier, tier),
            "base": rates.base_fees[tier],
            "subLocations": dict(rates.surcharges.get(tier, {})),
        }
        for tier in rates.base_fees
    }
    table[OTHER_TIER] = {
        "label": rates.labels.get(OTHER_TIER, OTHER_TIER),
        "base": rates.other_flat_fee,
        "subLocations": {},
    }
    return table
