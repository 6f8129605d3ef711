"""OrderOrchestrator — turns a buyer's cart into a multi-seller order.

One call is one unit of work:

  collect   batch-load cart lines, priced entries, services, fee configs
  price     discount → stock reservation → fees, per product line;
            feature aggregation per service line; bad lines are rejected
            with a reason, never fatal on their own
  persist   Order (+ wallet debit), then per seller SubOrder, Shipment and
            line items, cross-reference links, addresses, gateway placeholder
  settle    clear the buyer's cart, commit, emit notifications

Any AppError after collection rolls back the whole transaction, including
stock already reserved and a wallet debit already taken.
"""
import logging
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_common.datetime_utils import utc_now
from src.mk_common.enums import PaymentMethod, PaymentType
from src.mk_common.errors import (
    AppError,
    BuyerAddressNotFoundError,
    BuyerNotFoundError,
    EmptyOrderError,
    NotOrderParticipantError,
    OrderNotFoundError,
    SellerShippingMismatchError,
)
from src.mk_common.id_generator import generate_id
from src.mk_common.result import Err, Ok, Result
from src.mk_gateway.auth.dependencies import AuthenticatedUser
from src.mk_gateway.user.models import BuyerProfile
from src.mk_gateway.user.repository import UserDirectory
from src.mk_notification.application.dispatcher import (
    NotificationDispatcher,
    get_notification_dispatcher,
)
from src.mk_notification.domain.events import NotificationEvent
from src.mk_order.application.schemas import (
    ComputedLineResponse,
    CreateOrderRequest,
    LineItemResponse,
    OrderCreatedResponse,
    OrderDetailResponse,
    OrderPreviewResponse,
    OrderSummary,
    OrderTotalsResponse,
    PendingTransactionResponse,
    PreviewOrderRequest,
    RejectedLineResponse,
    ShipmentResponse,
    SubOrderResponse,
)
from src.mk_order.application.writer import OrderWriter, run_in_transaction
from src.mk_order.domain.models import (
    ComputedLine,
    Order,
    OrderTotals,
    RejectedLine,
    ShippingPlan,
    SubOrder,
)
from src.mk_order.domain.pricing import (
    build_product_line,
    find_shipping_mismatch,
    price_service_line,
)
from src.mk_order.domain.repository import CartRepositoryProtocol, OrderRepositoryProtocol
from src.mk_order.infrastructure.cart_repository import CartRepository
from src.mk_order.infrastructure.persistence import OrderRepository
from src.mk_pricing.application.fee_service import FeeResolutionEngine
from src.mk_pricing.application.reservation import ReservationFailure, StockReservation
from src.mk_pricing.domain.discount import buyer_type_for, resolve_discount
from src.mk_pricing.domain.models import Location
from src.mk_pricing.domain.repository import PricedEntryRepositoryProtocol
from src.mk_pricing.infrastructure.persistence import PricedEntryRepository
from src.mk_wallet.application.coordinator import PaymentCompensationCoordinator

logger = logging.getLogger(__name__)

REASON_CART_NOT_FOUND = "Cart Item Not Found"
REASON_SERVICE_NOT_FOUND = "Service Not Found"
REASON_NO_FEATURES = "No Service Features Selected"


@dataclass
class PricedCart:
    lines: list[ComputedLine] = field(default_factory=list)
    rejected: list[RejectedLine] = field(default_factory=list)

    @property
    def totals(self) -> OrderTotals:
        return OrderTotals.from_lines(self.lines)


class OrderOrchestrator:
    def __init__(
        self,
        orders: OrderRepositoryProtocol | None = None,
        carts: CartRepositoryProtocol | None = None,
        entries: PricedEntryRepositoryProtocol | None = None,
        reservation: StockReservation | None = None,
        fees: FeeResolutionEngine | None = None,
        users: UserDirectory | None = None,
        payments: PaymentCompensationCoordinator | None = None,
        dispatcher: NotificationDispatcher | None = None,
    ) -> None:
        self._orders: OrderRepositoryProtocol = orders or OrderRepository()
        self._carts: CartRepositoryProtocol = carts or CartRepository()
        self._entries: PricedEntryRepositoryProtocol = entries or PricedEntryRepository()
        self._reservation = reservation or StockReservation(self._entries)
        self._fees = fees or FeeResolutionEngine()
        self._users = users or UserDirectory()
        self._dispatcher = dispatcher or get_notification_dispatcher()
        self._writer = OrderWriter(
            self._orders, payments or PaymentCompensationCoordinator()
        )

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def create_order(
        self, db: AsyncSession, user: AuthenticatedUser, req: CreateOrderRequest
    ) -> Result[OrderCreatedResponse, AppError]:
        return await run_in_transaction(
            db,
            self._dispatcher,
            lambda: self._create(db, user, req),
            f"Order creation for buyer {user.id}",
        )

    async def preview_order(
        self, db: AsyncSession, user: AuthenticatedUser, req: PreviewOrderRequest
    ) -> Result[OrderPreviewResponse, AppError]:
        """Price the selected cart lines without reserving stock or writing anything."""
        try:
            buyer, location = await self._load_buyer(db, user.id, req.user_address_id)
            priced = await self._price_cart(db, buyer, location, req, reserve=False)
        except AppError as e:
            return Err(e)
        return Ok(
            OrderPreviewResponse(
                lines=[ComputedLineResponse.from_domain(ln) for ln in priced.lines],
                rejected=[RejectedLineResponse.from_domain(r) for r in priced.rejected],
                totals=OrderTotalsResponse.from_domain(priced.totals),
            )
        )

    async def get_order_detail(
        self, db: AsyncSession, user: AuthenticatedUser, order_id: str
    ) -> OrderDetailResponse:
        order = await self._orders.get_order(db, order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        items = await self._orders.list_line_items(db, order_id)
        if order.buyer_id != user.id:
            account = await self._users.resolve_owning_account(db, user.id)
            if not any(i.seller_id == account for i in items):
                raise NotOrderParticipantError()
        sub_orders = await self._orders.list_sub_orders(db, order_id)
        shipments = await self._orders.list_shipments(db, order_id)
        return OrderDetailResponse(
            order=OrderSummary.from_domain(order),
            sub_orders=[SubOrderResponse.from_domain(s) for s in sub_orders],
            line_items=[LineItemResponse.from_domain(i) for i in items],
            shipments=[ShipmentResponse.from_domain(s) for s in shipments],
        )

    # ------------------------------------------------------------------
    # Creation flow
    # ------------------------------------------------------------------

    async def _create(
        self, db: AsyncSession, user: AuthenticatedUser, req: CreateOrderRequest
    ) -> tuple[OrderCreatedResponse, list[NotificationEvent]]:
        buyer, location = await self._load_buyer(db, user.id, req.user_address_id)
        priced = await self._price_cart(db, buyer, location, req, reserve=True)
        if not priced.lines:
            raise EmptyOrderError([r.reason for r in priced.rejected])

        mismatched = find_shipping_mismatch([s.seller_id for s in req.shipping], priced.lines)
        if mismatched:
            raise SellerShippingMismatchError(mismatched)

        totals = priced.totals
        order = Order(
            id=generate_id(),
            order_no="",
            buyer_id=buyer.id,
            total_price=totals.total_price,
            total_purchased=totals.total_purchased,
            total_discount=totals.total_discount,
            total_customer_pay=totals.total_customer_pay,
            total_platform_fee=totals.total_platform_fee,
            total_cashback=totals.total_cashback,
            payment_method=req.payment_method,
            payment_type=req.payment_type,
            delivery_charge=req.delivery_charge,
            advance_amount=req.advance_amount,
            due_amount=req.due_amount,
            created_at=utc_now(),
        )
        await self._writer.insert_order(db, order)

        if req.payment_method == PaymentMethod.WALLET.value:
            await self._writer.pay_from_wallet(db, order, user.user_account_id)
        if req.payment_type == PaymentType.EMI.value:
            await self._writer.write_emi(
                db, order.id, req.emi_installment_count, req.emi_installment_amount
            )

        plans = {s.seller_id: ShippingPlan(**s.model_dump()) for s in req.shipping}
        sub_orders, by_cart = await self._writer.write_sellers(db, order, priced.lines, plans)

        links = await self._carts.list_links(db, list(by_cart))
        await self._writer.write_links(db, links, by_cart)
        await self._writer.write_addresses(
            db, order.id, req.billing_address, req.shipping_address
        )

        pending = None
        if not order.paid_from_wallet:
            txn = await self._writer.open_gateway_transaction(db, order, req.advance_amount)
            pending = PendingTransactionResponse(
                id=txn.id, amount=txn.amount, transaction_type=txn.transaction_type,
                status=txn.status,
            )

        cleared = await self._carts.clear_for_user(db, buyer.id)
        logger.info(
            "Order %s (%s) placed by %s: %d lines, %d rejected, %d sellers, %d cart rows cleared",
            order.id, order.order_no, buyer.id, len(priced.lines), len(priced.rejected),
            len(sub_orders), cleared,
        )

        created = OrderCreatedResponse(
            order=OrderSummary.from_domain(order),
            sub_orders=[SubOrderResponse.from_domain(s) for s in sub_orders],
            lines=[ComputedLineResponse.from_domain(ln) for ln in priced.lines],
            rejected=[RejectedLineResponse.from_domain(r) for r in priced.rejected],
            totals=OrderTotalsResponse.from_domain(totals),
            pending_transaction=pending,
        )
        return created, order_placed_events(order, sub_orders, buyer)

    async def _load_buyer(
        self, db: AsyncSession, user_id: str, address_id: int | None
    ) -> tuple[BuyerProfile, Location | None]:
        buyer = await self._users.get_buyer(db, user_id)
        if buyer is None:
            raise BuyerNotFoundError(user_id)
        if address_id is None:
            return buyer, None
        address = await self._users.get_address(db, user_id, address_id)
        if address is None:
            raise BuyerAddressNotFoundError(address_id)
        return buyer, address.location

    async def _price_cart(
        self,
        db: AsyncSession,
        buyer: BuyerProfile,
        location: Location | None,
        req: PreviewOrderRequest,
        reserve: bool,
    ) -> PricedCart:
        priced = PricedCart()
        if req.cart_ids:
            await self._price_products(db, buyer, location, req.cart_ids, reserve, priced)
        if req.service_cart_ids:
            await self._price_services(db, buyer, req.service_cart_ids, priced)
        return priced

    async def _price_products(
        self,
        db: AsyncSession,
        buyer: BuyerProfile,
        location: Location | None,
        cart_ids: list[int],
        reserve: bool,
        priced: PricedCart,
    ) -> None:
        carts = await self._carts.list_product_lines(db, buyer.id, cart_ids)
        entry_ids = [c.priced_entry_id for c in carts.values() if c.priced_entry_id is not None]
        entries = await self._entries.get_many(db, entry_ids)
        configs = await self._fees.load_configurations(db, list(entries.values()))
        buyer_type = buyer_type_for(buyer.trade_role).value

        for cart_id in cart_ids:
            cart = carts.get(cart_id)
            if cart is None:
                priced.rejected.append(RejectedLine(cart_id=cart_id, reason=REASON_CART_NOT_FOUND))
                continue
            entry = entries.get(cart.priced_entry_id) if cart.priced_entry_id else None
            if entry is None:
                priced.rejected.append(RejectedLine(
                    cart_id=cart_id,
                    reason=ReservationFailure.PRODUCT_NOT_FOUND.value,
                    product_id=cart.product_id,
                    priced_entry_id=cart.priced_entry_id,
                ))
                continue

            discount = resolve_discount(buyer.trade_role, entry)
            if reserve:
                failure = await self._reservation.reserve(db, entry.id, cart.quantity)
            else:
                failure = _check_stock(entry.stock, cart.quantity)
            if failure is not None:
                priced.rejected.append(RejectedLine(
                    cart_id=cart_id, reason=failure.value,
                    product_id=entry.product_id, priced_entry_id=entry.id,
                ))
                continue

            fee = self._fees.resolve(
                configs, entry, discount.purchase_price * cart.quantity, buyer_type, location
            )
            if not fee.is_valid:
                if reserve:
                    await self._reservation.release(db, entry.id, cart.quantity)
                priced.rejected.append(RejectedLine(
                    cart_id=cart_id, reason=fee.reason,
                    product_id=entry.product_id, priced_entry_id=entry.id,
                ))
                continue

            priced.lines.append(build_product_line(cart, entry, discount, fee))

    async def _price_services(
        self, db: AsyncSession, buyer: BuyerProfile, cart_ids: list[int], priced: PricedCart
    ) -> None:
        carts = await self._carts.list_service_lines(db, buyer.id, cart_ids)
        service_ids = sorted({c.service_id for c in carts.values() if c.service_id is not None})
        services = await self._carts.get_services(db, service_ids)

        for cart_id in cart_ids:
            cart = carts.get(cart_id)
            if cart is None:
                priced.rejected.append(RejectedLine(cart_id=cart_id, reason=REASON_CART_NOT_FOUND))
                continue
            service = services.get(cart.service_id) if cart.service_id else None
            if service is None:
                priced.rejected.append(RejectedLine(
                    cart_id=cart_id, reason=REASON_SERVICE_NOT_FOUND, service_id=cart.service_id,
                ))
                continue
            if not cart.features:
                priced.rejected.append(RejectedLine(
                    cart_id=cart_id, reason=REASON_NO_FEATURES, service_id=service.id,
                ))
                continue
            priced.lines.append(price_service_line(cart, service))


def _check_stock(stock: int, quantity: int) -> ReservationFailure | None:
    if quantity <= 0:
        return ReservationFailure.INVALID_QUANTITY
    if stock < quantity:
        return ReservationFailure.OUT_OF_STOCK
    return None


def order_placed_events(
    order: Order, sub_orders: list[SubOrder], buyer: BuyerProfile
) -> list[NotificationEvent]:
    """One ORDER_RECEIVED per seller plus one ORDER_PLACED for the buyer."""
    events = [
        NotificationEvent(
            user_id=s.seller_id,
            kind="ORDER_RECEIVED",
            title="New Order Received",
            message=f"{buyer.display_name} placed order {s.seller_order_no}",
            data={"orderId": order.id, "subOrderId": s.id, "sellerOrderNo": s.seller_order_no},
            link=f"/seller-orders/{s.id}",
        )
        for s in sub_orders
    ]
    events.append(
        NotificationEvent(
            user_id=order.buyer_id,
            kind="ORDER_PLACED",
            title="Order Placed Successfully",
            message=f"Your order {order.order_no} has been placed",
            data={"orderId": order.id, "orderNo": order.order_no},
            link=f"/my-orders/{order.id}",
        )
    )
    return events
