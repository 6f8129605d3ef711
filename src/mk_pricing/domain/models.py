"""Domain models for mk_pricing — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal

from src.mk_common.datetime_utils import combine_date_time


@dataclass(frozen=True)
class Location:
    country_id: int | None = None
    state_id: int | None = None
    city_id: int | None = None

    def matches(self, other: "Location | None") -> bool:
        """Exact country/state/city match; a missing location never matches."""
        if other is None:
            return False
        return (
            self.country_id == other.country_id
            and self.state_id == other.state_id
            and self.city_id == other.city_id
        )


@dataclass
class PricedEntry:
    """A seller's price/stock listing for a catalog item."""

    id: int
    product_id: int
    seller_id: str
    product_price: Decimal          # list price
    offer_price: Decimal            # price the buyer is actually offered, per unit
    stock: int
    audience_type: str              # AudienceType value
    fee_category_id: int | None = None
    vendor_discount_type: str | None = None
    vendor_discount: Decimal = Decimal("0")
    consumer_discount_type: str | None = None
    consumer_discount: Decimal = Decimal("0")
    sell_type: str = "NORMALSELL"
    status: str = "ACTIVE"
    location: Location = field(default_factory=Location)
    date_close: date | None = None
    end_time: str | None = None     # "HH:MM", paired with date_close

    @property
    def sale_ends_at(self) -> datetime | None:
        return combine_date_time(self.date_close, self.end_time)


@dataclass(frozen=True)
class VendorFeeTerms:
    """Seller-side fee schedule."""

    percentage: Decimal
    max_cap: Decimal
    vat_percent: Decimal = Decimal("0")
    gateway_percent: Decimal = Decimal("0")
    fixed_fee: Decimal = Decimal("0")
    location: Location | None = None


@dataclass(frozen=True)
class ConsumerFeeTerms:
    """Buyer-side fee schedule."""

    percentage: Decimal
    max_cap: Decimal
    location: Location | None = None


@dataclass
class FeeConfiguration:
    id: int
    fee_category_id: int
    fee_type: str                   # FeeType value
    vendor_terms: list[VendorFeeTerms] = field(default_factory=list)
    consumer_terms: list[ConsumerFeeTerms] = field(default_factory=list)
