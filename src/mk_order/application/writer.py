"""OrderWriter — persists the order aggregate for both order-creation variants.

Never commits: the orchestrator owns the unit of work. Order and
sub-order numbers are inserted inside a SAVEPOINT and retried with a fresh
random suffix when the unique index rejects a collision.
"""
import logging
from collections.abc import Awaitable, Callable
from datetime import timedelta
from decimal import Decimal
from typing import TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.mk_common.datetime_utils import utc_now
from src.mk_common.enums import AddressType, PaymentMethod, PaymentType
from src.mk_common.errors import AppError, InternalError, OrderNumberExhaustedError
from src.mk_common.id_generator import (
    ORDER_NO_PREFIX,
    SELLER_ORDER_NO_PREFIX,
    generate_id,
    generate_order_no,
)
from src.mk_common.result import Err, Ok, Result
from src.mk_notification.application.dispatcher import NotificationDispatcher
from src.mk_notification.domain.events import NotificationEvent
from src.mk_order.application.schemas import AddressInput
from src.mk_order.domain.models import (
    CartLink,
    ComputedLine,
    LineItemLink,
    Order,
    OrderAddress,
    OrderEmi,
    OrderLineItem,
    PaymentTransaction,
    Shipment,
    ShippingPlan,
    SubOrder,
)
from src.mk_order.domain.pricing import partition_by_seller
from src.mk_order.domain.repository import OrderRepositoryProtocol
from src.mk_wallet.application.coordinator import PaymentCompensationCoordinator

logger = logging.getLogger(__name__)

_ORDER_NO_CONSTRAINT = "uq_orders_order_no"
_SELLER_ORDER_NO_CONSTRAINT = "uq_sub_orders_seller_order_no"
_EMI_INTERVAL = timedelta(days=30)

T = TypeVar("T")


async def run_in_transaction(
    db: AsyncSession,
    dispatcher: NotificationDispatcher,
    work: Callable[[], Awaitable[tuple[T, list[NotificationEvent]]]],
    label: str,
) -> Result[T, AppError]:
    """Run one order-creation unit of work: commit on success, roll back on any failure.

    Notifications are emitted only after the commit succeeds.
    """
    try:
        value, events = await work()
        await db.commit()
    except AppError as e:
        await db.rollback()
        logger.info("%s aborted: [%d] %s", label, e.code, e.message)
        return Err(e)
    except Exception as e:
        logger.exception("%s failed", label)
        await db.rollback()
        return Err(InternalError(str(e)))
    dispatcher.emit_all(events)
    return Ok(value)


class OrderWriter:
    def __init__(
        self,
        repo: OrderRepositoryProtocol,
        coordinator: PaymentCompensationCoordinator,
        max_attempts: int | None = None,
    ) -> None:
        self._repo = repo
        self._coordinator = coordinator
        self._max_attempts = max_attempts or settings.ORDER_NO_MAX_ATTEMPTS

    async def _insert_numbered(
        self,
        db: AsyncSession,
        constraint: str,
        renumber: Callable[[], None],
        insert: Callable[[], Awaitable[None]],
    ) -> None:
        for attempt in range(1, self._max_attempts + 1):
            renumber()
            try:
                async with db.begin_nested():
                    await insert()
                return
            except IntegrityError as e:
                if constraint not in str(e.orig):
                    raise
                logger.warning("%s collision (attempt %d), retrying", constraint, attempt)
        raise OrderNumberExhaustedError()

    async def insert_order(self, db: AsyncSession, order: Order) -> None:
        def renumber() -> None:
            order.order_no = generate_order_no(ORDER_NO_PREFIX, settings.ORDER_NO_LENGTH)

        await self._insert_numbered(
            db, _ORDER_NO_CONSTRAINT, renumber, lambda: self._repo.insert_order(db, order)
        )

    async def insert_sub_order(self, db: AsyncSession, sub_order: SubOrder) -> None:
        def renumber() -> None:
            sub_order.seller_order_no = generate_order_no(
                SELLER_ORDER_NO_PREFIX, settings.ORDER_NO_LENGTH
            )

        await self._insert_numbered(
            db,
            _SELLER_ORDER_NO_CONSTRAINT,
            renumber,
            lambda: self._repo.insert_sub_order(db, sub_order),
        )

    async def write_sellers(
        self,
        db: AsyncSession,
        order: Order,
        lines: list[ComputedLine],
        shipping: dict[str, ShippingPlan] | None = None,
    ) -> tuple[list[SubOrder], dict[int, OrderLineItem]]:
        """One SubOrder (+ optional Shipment) per seller, then that seller's line items.

        Returns the sub-orders and a cart id → line item map for link carry-over.
        """
        sub_orders: list[SubOrder] = []
        by_cart: dict[int, OrderLineItem] = {}
        for seller_id, seller_lines in partition_by_seller(lines).items():
            sub_order = SubOrder(
                id=generate_id(),
                order_id=order.id,
                seller_order_no="",
                seller_id=seller_id,
                amount=sum((ln.listed_total for ln in seller_lines), Decimal("0")),
                purchased_amount=sum((ln.purchased_total for ln in seller_lines), Decimal("0")),
            )
            await self.insert_sub_order(db, sub_order)
            sub_orders.append(sub_order)

            shipment_id = None
            plan = (shipping or {}).get(seller_id)
            if plan is not None:
                shipment = Shipment(
                    id=generate_id(),
                    order_id=order.id,
                    seller_id=seller_id,
                    shipping_type=plan.shipping_type,
                    service_id=plan.service_id,
                    shipping_date=plan.shipping_date,
                    from_time=plan.from_time,
                    to_time=plan.to_time,
                    shipping_charge=plan.shipping_charge,
                )
                await self._repo.insert_shipment(db, shipment)
                shipment_id = shipment.id

            items = [
                _line_to_item(ln, order, sub_order.id, shipment_id) for ln in seller_lines
            ]
            await self._repo.insert_line_items(db, items)
            for ln, item in zip(seller_lines, items):
                if ln.cart_id is not None:
                    by_cart[ln.cart_id] = item
        return sub_orders, by_cart

    async def write_links(
        self, db: AsyncSession, links: list[CartLink], by_cart: dict[int, OrderLineItem]
    ) -> int:
        rows = []
        for link in links:
            item = by_cart.get(link.cart_id)
            if item is None:
                continue
            related = by_cart.get(link.related_cart_id) if link.related_cart_id else None
            rows.append(
                LineItemLink(
                    id=generate_id(),
                    line_item_id=item.id,
                    related_line_item_id=related.id if related else None,
                    product_id=link.product_id,
                    service_id=link.service_id,
                    link_type=link.link_type,
                )
            )
        await self._repo.insert_links(db, rows)
        return len(rows)

    async def write_addresses(
        self,
        db: AsyncSession,
        order_id: str,
        billing: AddressInput | None,
        shipping: AddressInput | None,
    ) -> None:
        rows = []
        if billing is not None:
            rows.append(_address(order_id, AddressType.BILLING.value, billing))
        if shipping is not None:
            rows.append(_address(order_id, AddressType.SHIPPING.value, shipping))
        await self._repo.insert_addresses(db, rows)

    async def write_emi(
        self, db: AsyncSession, order_id: str, installment_count: int, installment_amount: Decimal
    ) -> OrderEmi:
        today = utc_now().date()
        emi = OrderEmi(
            id=generate_id(),
            order_id=order_id,
            installment_count=installment_count,
            installment_amount=installment_amount,
            start_date=today,
            next_due_date=today + _EMI_INTERVAL,
        )
        await self._repo.insert_emi(db, emi)
        return emi

    async def pay_from_wallet(
        self, db: AsyncSession, order: Order, user_account_id: str | None
    ) -> None:
        """Debit the buyer's wallet; raises the coordinator's error on failure."""
        paid = await self._coordinator.pay_for_order(
            db, order.buyer_id, order.total_customer_pay, order.id, user_account_id
        )
        if isinstance(paid, Err):
            raise paid.error
        await self._repo.attach_wallet_transaction(db, order.id, paid.value.id)
        order.wallet_transaction_id = paid.value.id
        order.payment_method = PaymentMethod.WALLET.value

    async def open_gateway_transaction(
        self, db: AsyncSession, order: Order, advance_amount: Decimal | None = None
    ) -> PaymentTransaction:
        amount = (
            advance_amount
            if order.payment_type == PaymentType.ADVANCE.value and advance_amount is not None
            else order.total_customer_pay
        )
        txn = PaymentTransaction(
            id=generate_id(),
            order_id=order.id,
            buyer_id=order.buyer_id,
            amount=amount,
            transaction_type=order.payment_type,
        )
        await self._repo.insert_payment_transaction(db, txn)
        await self._repo.attach_gateway_transaction(db, order.id, txn.id)
        order.transaction_id = txn.id
        return txn


def _line_to_item(
    line: ComputedLine, order: Order, sub_order_id: str, shipment_id: str | None
) -> OrderLineItem:
    return OrderLineItem(
        id=generate_id(),
        order_id=order.id,
        sub_order_id=sub_order_id,
        buyer_id=order.buyer_id,
        seller_id=line.seller_id,
        line_type=line.line_type,
        quantity=line.quantity,
        sale_price=line.sale_price,
        purchase_price=line.purchase_price,
        customer_pay=line.customer_pay,
        seller_receives=line.seller_receives,
        platform_fee=line.platform_fee,
        cashback=line.cashback,
        priced_entry_id=line.priced_entry_id,
        product_id=line.product_id,
        service_id=line.service_id,
        breakdown=line.breakdown,
        object=line.object,
        shipment_id=shipment_id,
        status=line.status,
    )


def _address(order_id: str, address_type: str, a: AddressInput) -> OrderAddress:
    return OrderAddress(
        id=generate_id(),
        order_id=order_id,
        address_type=address_type,
        first_name=a.first_name,
        last_name=a.last_name,
        email=a.email,
        cc=a.cc,
        phone=a.phone,
        address=a.address,
        city=a.city,
        province=a.province,
        country=a.country,
        post_code=a.post_code,
        country_id=a.country_id,
        state_id=a.state_id,
        city_id=a.city_id,
        town=a.town,
    )
