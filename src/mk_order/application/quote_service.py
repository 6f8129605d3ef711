"""QuoteOrderService — order creation from an accepted request-for-quote.

The negotiated offer price is final: no discount or fee resolution runs and
no stock is reserved. Quote lines are stamped with the quoting seller's
owning account; buyer-selected suggested substitutions are stamped with the
suggesting vendor's owning account.
"""
import logging
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_common.datetime_utils import utc_now
from src.mk_common.enums import LineItemType, PaymentMethod, PaymentType, RecordStatus
from src.mk_common.errors import (
    AppError,
    BuyerNotFoundError,
    EmptyOrderError,
    QuoteNotActiveError,
    QuoteNotFoundError,
)
from src.mk_common.id_generator import generate_id
from src.mk_common.money import ZERO, to_decimal
from src.mk_common.result import Result
from src.mk_gateway.auth.dependencies import AuthenticatedUser
from src.mk_gateway.user.repository import UserDirectory
from src.mk_notification.application.dispatcher import (
    NotificationDispatcher,
    get_notification_dispatcher,
)
from src.mk_notification.domain.events import NotificationEvent
from src.mk_order.application.schemas import (
    ComputedLineResponse,
    OrderCreatedResponse,
    OrderSummary,
    OrderTotalsResponse,
    PendingTransactionResponse,
    QuoteItemInput,
    QuoteOrderRequest,
    RejectedLineResponse,
    SubOrderResponse,
)
from src.mk_order.application.service import order_placed_events
from src.mk_order.application.writer import OrderWriter, run_in_transaction
from src.mk_order.domain.models import (
    ComputedLine,
    Order,
    OrderTotals,
    QuoteResponse,
    RejectedLine,
)
from src.mk_order.domain.repository import OrderRepositoryProtocol, QuoteRepositoryProtocol
from src.mk_order.infrastructure.persistence import OrderRepository
from src.mk_order.infrastructure.quote_repository import QuoteRepository
from src.mk_wallet.application.coordinator import PaymentCompensationCoordinator

logger = logging.getLogger(__name__)

REASON_QUOTE_PRODUCT_NOT_FOUND = "Quote Product Not Found"
REASON_SUGGESTION_UNAVAILABLE = "Suggested Product Not Available"


def _quoted_line(
    seller_id: str,
    product_id: int,
    quantity: int,
    price: Decimal,
    source: dict,
) -> ComputedLine:
    total = price * quantity
    return ComputedLine(
        line_type=LineItemType.PRODUCT.value,
        cart_id=None,
        seller_id=seller_id,
        quantity=quantity,
        sale_price=price,
        purchase_price=price,
        listed_total=total,
        purchased_total=total,
        customer_pay=total,
        seller_receives=total,
        product_id=product_id,
        breakdown=source,
    )


class QuoteOrderService:
    def __init__(
        self,
        orders: OrderRepositoryProtocol | None = None,
        quotes: QuoteRepositoryProtocol | None = None,
        users: UserDirectory | None = None,
        payments: PaymentCompensationCoordinator | None = None,
        dispatcher: NotificationDispatcher | None = None,
    ) -> None:
        self._orders: OrderRepositoryProtocol = orders or OrderRepository()
        self._quotes: QuoteRepositoryProtocol = quotes or QuoteRepository()
        self._users = users or UserDirectory()
        self._dispatcher = dispatcher or get_notification_dispatcher()
        self._writer = OrderWriter(self._orders, payments or PaymentCompensationCoordinator())

    async def create_from_quote(
        self, db: AsyncSession, user: AuthenticatedUser, req: QuoteOrderRequest
    ) -> Result[OrderCreatedResponse, AppError]:
        return await run_in_transaction(
            db,
            self._dispatcher,
            lambda: self._create(db, user, req),
            f"Quote order {req.rfq_quotes_user_id} for buyer {user.id}",
        )

    async def _create(
        self, db: AsyncSession, user: AuthenticatedUser, req: QuoteOrderRequest
    ) -> tuple[OrderCreatedResponse, list[NotificationEvent]]:
        quote = await self._quotes.get_quote_response(db, req.rfq_quotes_user_id)
        if quote is None or quote.buyer_id != user.id:
            raise QuoteNotFoundError(req.rfq_quotes_user_id)
        if quote.status != RecordStatus.ACTIVE.value:
            raise QuoteNotActiveError(quote.id, quote.status)
        buyer = await self._users.get_buyer(db, user.id)
        if buyer is None:
            raise BuyerNotFoundError(user.id)

        lines: list[ComputedLine] = []
        rejected: list[RejectedLine] = []
        await self._quote_lines(db, quote, req.quote_products, lines, rejected)
        await self._suggested_lines(db, quote, req.suggested_products, lines, rejected)
        if not lines:
            raise EmptyOrderError([r.reason for r in rejected])

        totals = OrderTotals.from_lines(lines)
        delivery = to_decimal(req.delivery_charge)
        order = Order(
            id=generate_id(),
            order_no="",
            buyer_id=buyer.id,
            total_price=totals.total_price,
            total_purchased=totals.total_purchased,
            total_discount=ZERO,
            total_customer_pay=totals.total_customer_pay + delivery,
            total_platform_fee=ZERO,
            total_cashback=ZERO,
            payment_method=req.payment_method,
            payment_type=PaymentType.DIRECT.value,
            delivery_charge=delivery,
            rfq_quotes_user_id=quote.id,
            created_at=utc_now(),
        )
        await self._writer.insert_order(db, order)

        pending = None
        if req.payment_method == PaymentMethod.WALLET.value:
            await self._writer.pay_from_wallet(db, order, user.user_account_id)
        else:
            txn = await self._writer.open_gateway_transaction(db, order)
            pending = PendingTransactionResponse(
                id=txn.id, amount=txn.amount, transaction_type=txn.transaction_type,
                status=txn.status,
            )

        sub_orders, _ = await self._writer.write_sellers(db, order, lines)
        await self._writer.write_addresses(
            db, order.id, req.billing_address or req.shipping_address, req.shipping_address
        )
        logger.info(
            "Order %s (%s) created from quote %s: %d lines, %d rejected",
            order.id, order.order_no, quote.id, len(lines), len(rejected),
        )

        created = OrderCreatedResponse(
            order=OrderSummary.from_domain(order),
            sub_orders=[SubOrderResponse.from_domain(s) for s in sub_orders],
            lines=[ComputedLineResponse.from_domain(ln) for ln in lines],
            rejected=[RejectedLineResponse.from_domain(r) for r in rejected],
            totals=OrderTotalsResponse.from_domain(totals),
            pending_transaction=pending,
        )
        return created, order_placed_events(order, sub_orders, buyer)

    async def _quote_lines(
        self,
        db: AsyncSession,
        quote: QuoteResponse,
        items: list[QuoteItemInput],
        lines: list[ComputedLine],
        rejected: list[RejectedLine],
    ) -> None:
        if not items:
            return
        seller_id = await self._users.resolve_owning_account(db, quote.seller_id)
        quoted = {p.id: p for p in quote.products}
        for item in items:
            product = quoted.get(item.id)
            if product is None:
                rejected.append(RejectedLine(cart_id=None, reason=REASON_QUOTE_PRODUCT_NOT_FOUND))
                continue
            lines.append(_quoted_line(
                seller_id,
                product.product_id,
                product.quantity or 1,
                to_decimal(product.offer_price),
                {"source": "RFQ", "rfqQuoteProductId": product.id},
            ))

    async def _suggested_lines(
        self,
        db: AsyncSession,
        quote: QuoteResponse,
        items: list[QuoteItemInput],
        lines: list[ComputedLine],
        rejected: list[RejectedLine],
    ) -> None:
        if not items:
            return
        suggestions = await self._quotes.get_suggested_products(db, [i.id for i in items])
        statuses = await self._quotes.get_product_statuses(
            db, [s.product_id for s in suggestions.values()]
        )
        for item in items:
            s = suggestions.get(item.id)
            if (
                s is None
                or not s.is_selected_by_buyer
                or s.status != RecordStatus.ACTIVE.value
                or s.rfq_quotes_user_id != quote.id
                or statuses.get(s.product_id) != RecordStatus.ACTIVE.value
            ):
                rejected.append(RejectedLine(
                    cart_id=None,
                    reason=REASON_SUGGESTION_UNAVAILABLE,
                    product_id=s.product_id if s else None,
                ))
                continue
            seller_id = await self._users.resolve_owning_account(db, s.vendor_id)
            lines.append(_quoted_line(
                seller_id,
                s.product_id,
                s.quantity or 1,
                to_decimal(s.offer_price),
                {"source": "RFQ_SUGGESTION", "rfqSuggestedProductId": s.id},
            ))
