"""Discount Resolver — which discount a buyer's trade role earns on a listing.

Rule table (audience → roles that receive a discount):
  VENDORS   → COMPANY, FREELANCER get the vendor discount
  CONSUMER  → BUYER gets the consumer discount
  EVERYONE  → COMPANY, FREELANCER get the vendor discount; BUYER the consumer one
Anything else gets no discount. Pure functions, no I/O.
"""

from dataclasses import dataclass
from decimal import Decimal

from src.mk_common.enums import AudienceType, BuyerType, DiscountType, TradeRole
from src.mk_common.money import ZERO, percent_of, to_decimal
from src.mk_pricing.domain.models import PricedEntry

VENDOR_ROLES = frozenset({TradeRole.COMPANY.value, TradeRole.FREELANCER.value})
CONSUMER_ROLES = frozenset({TradeRole.BUYER.value})


@dataclass(frozen=True)
class DiscountOutcome:
    unit_price: Decimal
    discount_per_unit: Decimal
    purchase_price: Decimal         # unit_price - discount_per_unit, never negative
    applied: bool

    def total_discount(self, quantity: int) -> Decimal:
        return self.discount_per_unit * quantity


def buyer_type_for(trade_role: str | None) -> BuyerType:
    return BuyerType.VENDOR if trade_role in VENDOR_ROLES else BuyerType.CONSUMER


def discount_amount(
    unit_price: Decimal, discount_type: str | None, discount_value: Decimal | None
) -> Decimal | None:
    """Per-unit discount for one discount configuration, or None if not applicable.

    The result is clamped to [0, unit_price] so the purchase price can
    never go below zero.
    """
    value = to_decimal(discount_value)
    if discount_type == DiscountType.FLAT.value:
        amount = value
    elif discount_type == DiscountType.PERCENTAGE.value:
        amount = percent_of(unit_price, value)
    else:
        return None
    return min(max(amount, ZERO), unit_price)


def _pick_terms(
    trade_role: str | None, entry: PricedEntry
) -> tuple[str | None, Decimal | None] | None:
    audience = entry.audience_type
    vendor = (entry.vendor_discount_type, entry.vendor_discount)
    consumer = (entry.consumer_discount_type, entry.consumer_discount)

    if audience == AudienceType.VENDORS.value:
        return vendor if trade_role in VENDOR_ROLES else None
    if audience == AudienceType.CONSUMER.value:
        return consumer if trade_role in CONSUMER_ROLES else None
    if audience == AudienceType.EVERYONE.value:
        if trade_role in VENDOR_ROLES:
            return vendor
        if trade_role in CONSUMER_ROLES:
            return consumer
    return None


def resolve_discount(trade_role: str | None, entry: PricedEntry) -> DiscountOutcome:
    unit_price = to_decimal(entry.offer_price)
    terms = _pick_terms(trade_role, entry)
    amount = discount_amount(unit_price, *terms) if terms else None
    if amount is None:
        return DiscountOutcome(
            unit_price=unit_price,
            discount_per_unit=ZERO,
            purchase_price=unit_price,
            applied=False,
        )
    return DiscountOutcome(
        unit_price=unit_price,
        discount_per_unit=amount,
        purchase_price=unit_price - amount,
        applied=True,
    )
