"""Fee Resolution Engine — pure Decimal fee math over a resolved fee schedule.

Given a FeeConfiguration, a purchased amount (discount-adjusted unit price
× quantity) and, for location-scoped configurations, the seller's and the
buyer's locations, produce either a FeeBreakdown or a FeeRejection.

All intermediate values stay at full Decimal precision; only
FeeBreakdown.to_document() rounds (2 dp, half-up) for display.
"""

from dataclasses import dataclass
from decimal import Decimal

from src.mk_common.enums import FeeType
from src.mk_common.money import percent_of, round_money, to_decimal
from src.mk_pricing.domain.models import (
    ConsumerFeeTerms,
    FeeConfiguration,
    Location,
    VendorFeeTerms,
)

REASON_NOT_APPLICABLE = "Fee configuration not applicable"
REASON_UNIFORM_INCOMPLETE = "Fee schedule is incomplete"
REASON_VENDOR_MISSING = "Vendor fees not found for the product location"
REASON_CONSUMER_MISSING = "Customer fees not found for the buyer location"
REASON_BOTH_MISSING = "Both vendor and customer fees are missing for the provided location"


@dataclass(frozen=True)
class FeeSchedule:
    vendor: VendorFeeTerms
    consumer: ConsumerFeeTerms


@dataclass(frozen=True)
class FeeRejection:
    reason: str

    @property
    def is_valid(self) -> bool:
        return False


@dataclass(frozen=True)
class FeeBreakdown:
    purchased_amount: Decimal
    buyer_type: str
    fee_type: str
    # buyer side
    consumer_percentage: Decimal
    raw_consumer_fee: Decimal
    charged_consumer_fee: Decimal
    cashback: Decimal
    customer_pay: Decimal
    # seller side
    vendor_percentage: Decimal
    vendor_fee: Decimal
    vat_amount: Decimal
    gateway_fee: Decimal
    fixed_fee: Decimal
    seller_payout: Decimal
    # platform
    platform_margin: Decimal

    @property
    def is_valid(self) -> bool:
        return True

    def to_document(self) -> dict:
        """Structured, display-rounded breakdown persisted on the line item."""
        return {
            "buyerType": self.buyer_type,
            "feeType": self.fee_type,
            "customer": {
                "purchasedPrice": str(round_money(self.purchased_amount)),
                "customerPercentage": str(self.consumer_percentage),
                "rawCustomerFee": str(round_money(self.raw_consumer_fee)),
                "chargedFee": str(round_money(self.charged_consumer_fee)),
                "cashback": str(round_money(self.cashback)),
                "totalPay": str(round_money(self.customer_pay)),
            },
            "vendor": {
                "vendorPercentage": str(self.vendor_percentage),
                "vendorFee": str(round_money(self.vendor_fee)),
                "vatAmount": str(round_money(self.vat_amount)),
                "gatewayFee": str(round_money(self.gateway_fee)),
                "fixFee": str(round_money(self.fixed_fee)),
                "payout": str(round_money(self.seller_payout)),
            },
            "platform": {
                "profit": str(round_money(self.platform_margin)),
            },
        }


def _match_vendor(
    terms: list[VendorFeeTerms], location: Location | None
) -> VendorFeeTerms | None:
    for t in terms:
        if t.location is not None and t.location.matches(location):
            return t
    return None


def _match_consumer(
    terms: list[ConsumerFeeTerms], location: Location | None
) -> ConsumerFeeTerms | None:
    for t in terms:
        if t.location is not None and t.location.matches(location):
            return t
    return None


def select_schedule(
    config: FeeConfiguration | None,
    seller_location: Location | None = None,
    buyer_location: Location | None = None,
) -> FeeSchedule | FeeRejection:
    """Pick the vendor/consumer terms that apply to this sale."""
    if config is None:
        return FeeRejection(REASON_NOT_APPLICABLE)

    if config.fee_type == FeeType.UNIFORM.value:
        if not config.vendor_terms or not config.consumer_terms:
            return FeeRejection(REASON_UNIFORM_INCOMPLETE)
        return FeeSchedule(vendor=config.vendor_terms[0], consumer=config.consumer_terms[0])

    if config.fee_type == FeeType.LOCATION.value:
        vendor = _match_vendor(config.vendor_terms, seller_location)
        consumer = _match_consumer(config.consumer_terms, buyer_location)
        if vendor is None and consumer is None:
            return FeeRejection(REASON_BOTH_MISSING)
        if vendor is None:
            return FeeRejection(REASON_VENDOR_MISSING)
        if consumer is None:
            return FeeRejection(REASON_CONSUMER_MISSING)
        return FeeSchedule(vendor=vendor, consumer=consumer)

    return FeeRejection(REASON_NOT_APPLICABLE)


def compute_fees(
    schedule: FeeSchedule,
    purchased_amount: Decimal,
    buyer_type: str,
    fee_type: str,
) -> FeeBreakdown:
    amount = to_decimal(purchased_amount)
    consumer = schedule.consumer
    vendor = schedule.vendor

    raw_consumer_fee = percent_of(amount, to_decimal(consumer.percentage))
    charged_consumer_fee = min(raw_consumer_fee, to_decimal(consumer.max_cap))
    cashback = raw_consumer_fee - charged_consumer_fee
    customer_pay = amount + charged_consumer_fee

    raw_vendor_fee = percent_of(amount, to_decimal(vendor.percentage))
    vendor_fee = min(raw_vendor_fee, to_decimal(vendor.max_cap))
    vat_amount = percent_of(amount, to_decimal(vendor.vat_percent))
    gateway_fee = percent_of(amount, to_decimal(vendor.gateway_percent))
    fixed_fee = to_decimal(vendor.fixed_fee)
    seller_payout = amount - (vendor_fee + vat_amount + gateway_fee + fixed_fee)

    platform_margin = customer_pay - seller_payout - cashback

    return FeeBreakdown(
        purchased_amount=amount,
        buyer_type=buyer_type,
        fee_type=fee_type,
        consumer_percentage=to_decimal(consumer.percentage),
        raw_consumer_fee=raw_consumer_fee,
        charged_consumer_fee=charged_consumer_fee,
        cashback=cashback,
        customer_pay=customer_pay,
        vendor_percentage=to_decimal(vendor.percentage),
        vendor_fee=vendor_fee,
        vat_amount=vat_amount,
        gateway_fee=gateway_fee,
        fixed_fee=fixed_fee,
        seller_payout=seller_payout,
        platform_margin=platform_margin,
    )


def resolve_fees(
    config: FeeConfiguration | None,
    purchased_amount: Decimal,
    buyer_type: str,
    seller_location: Location | None = None,
    buyer_location: Location | None = None,
) -> FeeBreakdown | FeeRejection:
    schedule = select_schedule(config, seller_location, buyer_location)
    if isinstance(schedule, FeeRejection):
        return schedule
    return compute_fees(schedule, purchased_amount, buyer_type, config.fee_type)
