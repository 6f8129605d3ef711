"""Order domain models — pure dataclasses, no SQLAlchemy dependency."""
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from src.mk_common.enums import LineItemStatus, ShipmentStatus
from src.mk_common.money import ZERO


# ---------------------------------------------------------------------------
# Cart side (read-only input, owned by the shopping-cart service)
# ---------------------------------------------------------------------------


@dataclass
class CartFeature:
    service_feature_id: int
    name: str
    cost: Decimal
    cost_type: str                  # ServiceCostType value
    quantity: int
    booking_date_time: datetime | None = None


@dataclass
class CartLine:
    id: int
    user_id: str
    quantity: int
    priced_entry_id: int | None = None   # product lines
    product_id: int | None = None
    service_id: int | None = None        # service lines
    object: dict[str, Any] | None = None
    features: list[CartFeature] = field(default_factory=list)


@dataclass(frozen=True)
class CartLink:
    """cart_product_services row: ties a product cart line to a service cart line."""

    cart_id: int
    related_cart_id: int | None
    product_id: int | None
    service_id: int | None
    link_type: str | None


@dataclass
class ServiceInfo:
    id: int
    seller_id: str
    each_customer_time: Decimal | None
    confirm_type: str               # ServiceConfirmType value


@dataclass
class ShippingPlan:
    seller_id: str
    shipping_type: str | None = None
    service_id: int | None = None
    shipping_date: date | None = None
    from_time: datetime | None = None
    to_time: datetime | None = None
    shipping_charge: Decimal = ZERO


# ---------------------------------------------------------------------------
# Pricing output
# ---------------------------------------------------------------------------


@dataclass
class ComputedLine:
    """One priced, purchasable line. Unit prices are per unit; *_total per line."""

    line_type: str                  # LineItemType value
    cart_id: int | None
    seller_id: str
    quantity: int
    sale_price: Decimal             # listed unit price
    purchase_price: Decimal         # discount-applied unit price
    listed_total: Decimal
    purchased_total: Decimal
    customer_pay: Decimal
    seller_receives: Decimal
    platform_fee: Decimal = ZERO
    cashback: Decimal = ZERO
    discount_per_unit: Decimal = ZERO
    total_discount: Decimal = ZERO
    discount_applied: bool = False
    priced_entry_id: int | None = None
    product_id: int | None = None
    service_id: int | None = None
    breakdown: dict[str, Any] = field(default_factory=dict)
    object: dict[str, Any] | None = None
    status: str = LineItemStatus.PLACED.value


@dataclass(frozen=True)
class RejectedLine:
    cart_id: int | None
    reason: str
    product_id: int | None = None
    priced_entry_id: int | None = None
    service_id: int | None = None


@dataclass
class OrderTotals:
    total_price: Decimal = ZERO
    total_purchased: Decimal = ZERO
    total_discount: Decimal = ZERO
    total_customer_pay: Decimal = ZERO
    total_platform_fee: Decimal = ZERO
    total_cashback: Decimal = ZERO

    def add(self, line: ComputedLine) -> None:
        self.total_price += line.listed_total
        self.total_purchased += line.purchased_total
        self.total_discount += line.total_discount
        self.total_customer_pay += line.customer_pay
        self.total_platform_fee += line.platform_fee
        self.total_cashback += line.cashback

    @classmethod
    def from_lines(cls, lines: list[ComputedLine]) -> "OrderTotals":
        totals = cls()
        for line in lines:
            totals.add(line)
        return totals


# ---------------------------------------------------------------------------
# Persisted aggregate
# ---------------------------------------------------------------------------


@dataclass
class Order:
    id: str
    order_no: str
    buyer_id: str
    total_price: Decimal
    total_purchased: Decimal
    total_discount: Decimal
    total_customer_pay: Decimal
    total_platform_fee: Decimal
    total_cashback: Decimal
    payment_method: str             # PaymentMethod value
    payment_type: str = "DIRECT"
    delivery_charge: Decimal | None = None
    advance_amount: Decimal | None = None
    due_amount: Decimal | None = None
    # At most one of the two payment references is ever set
    transaction_id: str | None = None
    wallet_transaction_id: str | None = None
    rfq_quotes_user_id: int | None = None
    created_at: datetime | None = None

    @property
    def paid_from_wallet(self) -> bool:
        return self.wallet_transaction_id is not None


@dataclass
class SubOrder:
    id: str
    order_id: str
    seller_order_no: str
    seller_id: str
    amount: Decimal                 # gross, listed prices
    purchased_amount: Decimal       # net of discounts


@dataclass
class Shipment:
    id: str
    order_id: str
    seller_id: str
    shipping_type: str | None = None
    service_id: int | None = None
    shipping_date: date | None = None
    from_time: datetime | None = None
    to_time: datetime | None = None
    shipping_charge: Decimal = ZERO
    status: str = ShipmentStatus.PENDING.value
    receipt: str | None = None


@dataclass
class OrderLineItem:
    id: str
    order_id: str
    sub_order_id: str
    buyer_id: str
    seller_id: str
    line_type: str
    quantity: int
    sale_price: Decimal
    purchase_price: Decimal
    customer_pay: Decimal
    seller_receives: Decimal
    platform_fee: Decimal = ZERO
    cashback: Decimal = ZERO
    priced_entry_id: int | None = None
    product_id: int | None = None
    service_id: int | None = None
    breakdown: dict[str, Any] = field(default_factory=dict)
    object: dict[str, Any] | None = None
    shipment_id: str | None = None
    status: str = LineItemStatus.PLACED.value
    cancel_reason: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def refund_amount(self) -> Decimal:
        """What the buyer was charged for this line."""
        if self.customer_pay:
            return self.customer_pay
        return self.sale_price * self.quantity


@dataclass(frozen=True)
class LineItemLink:
    id: str
    line_item_id: str
    related_line_item_id: str | None
    product_id: int | None
    service_id: int | None
    link_type: str | None


@dataclass
class OrderAddress:
    id: str
    order_id: str
    address_type: str               # AddressType value
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    cc: str | None = None
    phone: str | None = None
    address: str | None = None
    city: str | None = None
    province: str | None = None
    country: str | None = None
    post_code: str | None = None
    country_id: int | None = None
    state_id: int | None = None
    city_id: int | None = None
    town: str | None = None


@dataclass
class OrderEmi:
    id: str
    order_id: str
    installment_count: int
    installment_amount: Decimal
    start_date: date
    next_due_date: date
    installments_paid: int = 1
    status: str = "ONGOING"


@dataclass
class PaymentTransaction:
    """Gateway payment placeholder, completed later by the gateway callback."""

    id: str
    order_id: str
    buyer_id: str
    amount: Decimal
    transaction_type: str           # PaymentType value
    status: str = "PENDING"


# ---------------------------------------------------------------------------
# Quote (RFQ) side
# ---------------------------------------------------------------------------


@dataclass
class QuoteProduct:
    id: int
    product_id: int
    quantity: int
    offer_price: Decimal


@dataclass
class QuoteResponse:
    """A seller's accepted response to a buyer's request for quote."""

    id: int
    rfq_quote_id: int
    buyer_id: str
    seller_id: str
    offer_price: Decimal | None
    status: str
    products: list[QuoteProduct] = field(default_factory=list)


@dataclass
class SuggestedProduct:
    id: int
    rfq_quotes_user_id: int
    product_id: int
    vendor_id: str
    quantity: int
    offer_price: Decimal
    is_selected_by_buyer: bool
    status: str
