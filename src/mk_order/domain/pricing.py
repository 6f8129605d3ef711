"""Pure line pricing used by order creation and order preview.

Product lines combine the discount outcome with the fee breakdown;
service lines aggregate their selected features. Neither function does I/O.
"""

from collections import OrderedDict
from decimal import Decimal

from src.mk_common.enums import (
    LineItemStatus,
    LineItemType,
    ServiceConfirmType,
    ServiceCostType,
)
from src.mk_common.money import ZERO, round_money, to_decimal
from src.mk_order.domain.models import CartLine, ComputedLine, ServiceInfo
from src.mk_pricing.domain.discount import DiscountOutcome
from src.mk_pricing.domain.fee import FeeBreakdown
from src.mk_pricing.domain.models import PricedEntry

_ONE = Decimal("1")


def build_product_line(
    cart: CartLine,
    entry: PricedEntry,
    discount: DiscountOutcome,
    fee: FeeBreakdown,
) -> ComputedLine:
    quantity = cart.quantity
    return ComputedLine(
        line_type=LineItemType.PRODUCT.value,
        cart_id=cart.id,
        seller_id=entry.seller_id,
        quantity=quantity,
        sale_price=discount.unit_price,
        purchase_price=discount.purchase_price,
        listed_total=discount.unit_price * quantity,
        purchased_total=discount.purchase_price * quantity,
        customer_pay=fee.customer_pay,
        seller_receives=fee.seller_payout,
        platform_fee=fee.platform_margin,
        cashback=fee.cashback,
        discount_per_unit=discount.discount_per_unit,
        total_discount=discount.total_discount(quantity),
        discount_applied=discount.applied,
        priced_entry_id=entry.id,
        product_id=entry.product_id,
        breakdown=fee.to_document(),
        object=cart.object,
    )


def price_service_line(cart: CartLine, service: ServiceInfo) -> ComputedLine:
    """Sum a service cart line's features.

    FLAT features add their cost once and their quantity to the line quantity.
    HOURLY features cost rate × hours × quantity, where hours is the
    service's per-customer duration (1 when unset), and set the line
    quantity to their own quantity.
    """
    total = ZERO
    quantity = 0
    features = []
    hours = to_decimal(service.each_customer_time) or _ONE

    for f in cart.features:
        cost = to_decimal(f.cost)
        booking = f.booking_date_time.isoformat() if f.booking_date_time else None
        if f.cost_type == ServiceCostType.FLAT.value:
            total += cost
            quantity += f.quantity
            features.append({
                "id": f.service_feature_id,
                "name": f.name,
                "cost": str(cost),
                "costType": f.cost_type,
                "quantity": f.quantity,
                "bookingDateTime": booking,
            })
        elif f.cost_type == ServiceCostType.HOURLY.value:
            total += cost * hours * f.quantity
            quantity = f.quantity
            features.append({
                "id": f.service_feature_id,
                "name": f.name,
                "cost": str(cost * hours),
                "costType": f.cost_type,
                "hours": str(hours),
                "quantity": f.quantity,
                "bookingDateTime": booking,
            })

    unit_price = round_money(total / quantity) if quantity else total
    status = (
        LineItemStatus.CONFIRMED.value
        if service.confirm_type == ServiceConfirmType.AUTO.value
        else LineItemStatus.PLACED.value
    )
    return ComputedLine(
        line_type=LineItemType.SERVICE.value,
        cart_id=cart.id,
        seller_id=service.seller_id,
        quantity=quantity,
        sale_price=unit_price,
        purchase_price=unit_price,
        listed_total=total,
        purchased_total=total,
        customer_pay=total,
        seller_receives=total,
        service_id=service.id,
        breakdown={"serviceFeatures": features},
        object=cart.object,
        status=status,
    )


def partition_by_seller(lines: list[ComputedLine]) -> "OrderedDict[str, list[ComputedLine]]":
    """Group lines per seller, keeping first-seen seller order."""
    groups: OrderedDict[str, list[ComputedLine]] = OrderedDict()
    for line in lines:
        groups.setdefault(line.seller_id, []).append(line)
    return groups


def find_shipping_mismatch(shipping_seller_ids: list[str], lines: list[ComputedLine]) -> list[str]:
    """Shipping seller ids that sell none of the surviving lines."""
    sellers = {line.seller_id for line in lines}
    mismatched: list[str] = []
    for seller_id in shipping_seller_ids:
        if seller_id not in sellers and seller_id not in mismatched:
            mismatched.append(seller_id)
    return mismatched
