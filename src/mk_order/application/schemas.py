# src/mk_order/application/schemas.py
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from src.mk_common.money import money_to_display, round_money
from src.mk_order.domain.models import (
    ComputedLine,
    Order,
    OrderLineItem,
    OrderTotals,
    RejectedLine,
    Shipment,
    SubOrder,
)

# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class AddressInput(BaseModel):
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


class ShippingInput(BaseModel):
    seller_id: str
    shipping_type: str | None = None
    service_id: int | None = None
    shipping_date: date | None = None
    from_time: datetime | None = None
    to_time: datetime | None = None
    shipping_charge: Decimal = Decimal("0")


class PreviewOrderRequest(BaseModel):
    cart_ids: list[int] = Field(default_factory=list)
    service_cart_ids: list[int] = Field(default_factory=list)
    user_address_id: int | None = None

    @field_validator("cart_ids", "service_cart_ids")
    @classmethod
    def drop_repeated_ids(cls, v: list[int]) -> list[int]:
        return list(dict.fromkeys(v))

    @model_validator(mode="after")
    def has_lines(self) -> "PreviewOrderRequest":
        if not self.cart_ids and not self.service_cart_ids:
            raise ValueError("cart_ids or service_cart_ids must not be empty")
        return self


class CreateOrderRequest(PreviewOrderRequest):
    payment_method: Literal["GATEWAY", "WALLET"] = "GATEWAY"
    payment_type: Literal["DIRECT", "ADVANCE", "EMI"] = "DIRECT"
    advance_amount: Decimal | None = None
    due_amount: Decimal | None = None
    emi_installment_count: int | None = None
    emi_installment_amount: Decimal | None = None
    delivery_charge: Decimal | None = None
    shipping: list[ShippingInput] = Field(default_factory=list)
    billing_address: AddressInput = Field(default_factory=AddressInput)
    shipping_address: AddressInput = Field(default_factory=AddressInput)

    @model_validator(mode="after")
    def payment_terms_complete(self) -> "CreateOrderRequest":
        if self.payment_type == "ADVANCE" and self.advance_amount is None:
            raise ValueError("advance_amount is required for ADVANCE payments")
        if self.payment_type == "EMI" and (
            not self.emi_installment_count or self.emi_installment_amount is None
        ):
            raise ValueError("emi_installment_count and emi_installment_amount are required for EMI")
        return self


class QuoteItemInput(BaseModel):
    """A quoted or suggested product picked by the buyer; price and quantity come from the quote."""
    id: int


class QuoteOrderRequest(BaseModel):
    rfq_quotes_user_id: int
    quote_products: list[QuoteItemInput] = Field(default_factory=list)
    suggested_products: list[QuoteItemInput] = Field(default_factory=list)
    delivery_charge: Decimal = Decimal("0")
    payment_method: Literal["GATEWAY", "WALLET"] = "GATEWAY"
    billing_address: AddressInput | None = None
    shipping_address: AddressInput | None = None


class StatusUpdateRequest(BaseModel):
    status: Literal["PLACED", "CONFIRMED", "SHIPPED", "DELIVERED", "CANCELLED"]
    note: str | None = None


class SellerStatusUpdateRequest(BaseModel):
    status: str
    note: str | None = None

    @field_validator("status")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("status must not be blank")
        return v


class CancelReasonRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=2000)


class TrackingRequest(BaseModel):
    tracking_number: str = Field(min_length=1)
    carrier: str = Field(min_length=1)
    notes: str | None = None


class ShipmentReceiptRequest(BaseModel):
    receipt: str = Field(min_length=1, max_length=500)


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class ComputedLineResponse(BaseModel):
    cart_id: int | None
    line_type: str
    seller_id: str
    priced_entry_id: int | None
    product_id: int | None
    service_id: int | None
    quantity: int
    sale_price: Decimal
    purchase_price: Decimal
    discount_applied: bool
    discount_per_unit: Decimal
    total_discount: Decimal
    customer_pay: Decimal
    seller_receives: Decimal
    platform_fee: Decimal
    cashback: Decimal
    status: str
    breakdown: dict[str, Any]

    @classmethod
    def from_domain(cls, line: ComputedLine) -> "ComputedLineResponse":
        return cls(
            cart_id=line.cart_id,
            line_type=line.line_type,
            seller_id=line.seller_id,
            priced_entry_id=line.priced_entry_id,
            product_id=line.product_id,
            service_id=line.service_id,
            quantity=line.quantity,
            sale_price=round_money(line.sale_price),
            purchase_price=round_money(line.purchase_price),
            discount_applied=line.discount_applied,
            discount_per_unit=round_money(line.discount_per_unit),
            total_discount=round_money(line.total_discount),
            customer_pay=round_money(line.customer_pay),
            seller_receives=round_money(line.seller_receives),
            platform_fee=round_money(line.platform_fee),
            cashback=round_money(line.cashback),
            status=line.status,
            breakdown=line.breakdown,
        )


class RejectedLineResponse(BaseModel):
    cart_id: int | None
    product_id: int | None
    priced_entry_id: int | None
    service_id: int | None
    reason: str

    @classmethod
    def from_domain(cls, r: RejectedLine) -> "RejectedLineResponse":
        return cls(
            cart_id=r.cart_id,
            product_id=r.product_id,
            priced_entry_id=r.priced_entry_id,
            service_id=r.service_id,
            reason=r.reason,
        )


class OrderTotalsResponse(BaseModel):
    total_price: Decimal
    total_purchased: Decimal
    total_discount: Decimal
    total_customer_pay: Decimal
    total_customer_pay_display: str
    total_platform_fee: Decimal
    total_cashback: Decimal

    @classmethod
    def from_domain(cls, t: OrderTotals) -> "OrderTotalsResponse":
        return cls(
            total_price=round_money(t.total_price),
            total_purchased=round_money(t.total_purchased),
            total_discount=round_money(t.total_discount),
            total_customer_pay=round_money(t.total_customer_pay),
            total_customer_pay_display=money_to_display(t.total_customer_pay),
            total_platform_fee=round_money(t.total_platform_fee),
            total_cashback=round_money(t.total_cashback),
        )


class SubOrderResponse(BaseModel):
    id: str
    seller_order_no: str
    seller_id: str
    amount: Decimal
    purchased_amount: Decimal

    @classmethod
    def from_domain(cls, s: SubOrder) -> "SubOrderResponse":
        return cls(
            id=s.id,
            seller_order_no=s.seller_order_no,
            seller_id=s.seller_id,
            amount=round_money(s.amount),
            purchased_amount=round_money(s.purchased_amount),
        )


class OrderSummary(BaseModel):
    id: str
    order_no: str
    buyer_id: str
    payment_method: str
    payment_type: str
    transaction_id: str | None
    wallet_transaction_id: str | None
    total_price: Decimal
    total_customer_pay: Decimal
    delivery_charge: Decimal | None
    created_at: datetime | None = None

    @classmethod
    def from_domain(cls, o: Order) -> "OrderSummary":
        return cls(
            id=o.id,
            order_no=o.order_no,
            buyer_id=o.buyer_id,
            payment_method=o.payment_method,
            payment_type=o.payment_type,
            transaction_id=o.transaction_id,
            wallet_transaction_id=o.wallet_transaction_id,
            total_price=round_money(o.total_price),
            total_customer_pay=round_money(o.total_customer_pay),
            delivery_charge=o.delivery_charge,
            created_at=o.created_at,
        )


class PendingTransactionResponse(BaseModel):
    id: str
    amount: Decimal
    transaction_type: str
    status: str


class OrderCreatedResponse(BaseModel):
    order: OrderSummary
    sub_orders: list[SubOrderResponse]
    lines: list[ComputedLineResponse]
    rejected: list[RejectedLineResponse]
    totals: OrderTotalsResponse
    pending_transaction: PendingTransactionResponse | None = None


class OrderPreviewResponse(BaseModel):
    lines: list[ComputedLineResponse]
    rejected: list[RejectedLineResponse]
    totals: OrderTotalsResponse


class LineItemResponse(BaseModel):
    id: str
    order_id: str
    sub_order_id: str
    buyer_id: str
    seller_id: str
    line_type: str
    priced_entry_id: int | None
    product_id: int | None
    service_id: int | None
    quantity: int
    sale_price: Decimal
    purchase_price: Decimal
    customer_pay: Decimal
    status: str
    cancel_reason: str | None
    shipment_id: str | None
    breakdown: dict[str, Any]
    updated_at: datetime | None = None

    @classmethod
    def from_domain(cls, i: OrderLineItem) -> "LineItemResponse":
        return cls(
            id=i.id,
            order_id=i.order_id,
            sub_order_id=i.sub_order_id,
            buyer_id=i.buyer_id,
            seller_id=i.seller_id,
            line_type=i.line_type,
            priced_entry_id=i.priced_entry_id,
            product_id=i.product_id,
            service_id=i.service_id,
            quantity=i.quantity,
            sale_price=round_money(i.sale_price),
            purchase_price=round_money(i.purchase_price),
            customer_pay=round_money(i.customer_pay),
            status=i.status,
            cancel_reason=i.cancel_reason,
            shipment_id=i.shipment_id,
            breakdown=i.breakdown,
            updated_at=i.updated_at,
        )


class ShipmentResponse(BaseModel):
    id: str
    order_id: str
    seller_id: str
    shipping_type: str | None
    shipping_date: date | None
    shipping_charge: Decimal
    status: str
    receipt: str | None

    @classmethod
    def from_domain(cls, s: Shipment) -> "ShipmentResponse":
        return cls(
            id=s.id,
            order_id=s.order_id,
            seller_id=s.seller_id,
            shipping_type=s.shipping_type,
            shipping_date=s.shipping_date,
            shipping_charge=s.shipping_charge,
            status=s.status,
            receipt=s.receipt,
        )


class OrderDetailResponse(BaseModel):
    order: OrderSummary
    sub_orders: list[SubOrderResponse]
    line_items: list[LineItemResponse]
    shipments: list[ShipmentResponse]
