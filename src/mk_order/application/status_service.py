"""OrderStatusService — line-item status transitions and seller-side updates.

A transition locks the line item (SELECT ... FOR UPDATE), checks that the
caller takes part in it, applies the state machine and commits. Side
effects that must never undo a committed transition run afterwards:
the wallet refund for a cancelled line (own transaction, idempotent per
order) and the buyer notification.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_common.datetime_utils import utc_now
from src.mk_common.enums import LineItemStatus, ShipmentStatus
from src.mk_common.errors import (
    NotOrderParticipantError,
    OrderLineItemNotFoundError,
    ShipmentNotFoundError,
)
from src.mk_gateway.auth.dependencies import AuthenticatedUser
from src.mk_gateway.user.repository import UserDirectory
from src.mk_notification.application.dispatcher import (
    NotificationDispatcher,
    get_notification_dispatcher,
)
from src.mk_notification.domain.events import NotificationEvent
from src.mk_order.application.schemas import (
    LineItemResponse,
    SellerStatusUpdateRequest,
    ShipmentResponse,
    StatusUpdateRequest,
    TrackingRequest,
)
from src.mk_order.domain.models import OrderLineItem
from src.mk_order.domain.repository import OrderRepositoryProtocol
from src.mk_order.domain.status import ensure_transition, normalize_seller_status
from src.mk_order.infrastructure.persistence import OrderRepository
from src.mk_wallet.application.coordinator import PaymentCompensationCoordinator

logger = logging.getLogger(__name__)


class OrderStatusService:
    def __init__(
        self,
        orders: OrderRepositoryProtocol | None = None,
        users: UserDirectory | None = None,
        payments: PaymentCompensationCoordinator | None = None,
        dispatcher: NotificationDispatcher | None = None,
    ) -> None:
        self._orders: OrderRepositoryProtocol = orders or OrderRepository()
        self._users = users or UserDirectory()
        self._payments = payments or PaymentCompensationCoordinator()
        self._dispatcher = dispatcher or get_notification_dispatcher()

    async def transition(
        self, db: AsyncSession, user: AuthenticatedUser, line_item_id: str, req: StatusUpdateRequest
    ) -> LineItemResponse:
        item = await self._lock_item(db, line_item_id)
        if item.buyer_id != user.id and not await self._is_seller(db, user, item):
            raise NotOrderParticipantError()
        return await self._apply(db, item, req.status, req.note)

    async def seller_transition(
        self,
        db: AsyncSession,
        user: AuthenticatedUser,
        line_item_id: str,
        req: SellerStatusUpdateRequest,
    ) -> LineItemResponse:
        target = normalize_seller_status(req.status)
        item = await self._lock_item(db, line_item_id)
        if not await self._is_seller(db, user, item):
            raise NotOrderParticipantError()
        return await self._apply(db, item, target.value, req.note)

    async def set_cancel_reason(
        self, db: AsyncSession, user: AuthenticatedUser, line_item_id: str, reason: str
    ) -> LineItemResponse:
        item = await self._lock_item(db, line_item_id)
        if item.buyer_id != user.id:
            raise NotOrderParticipantError()
        await self._orders.set_cancel_reason(db, item.id, reason)
        await db.commit()
        item.cancel_reason = reason
        return LineItemResponse.from_domain(item)

    async def add_tracking(
        self, db: AsyncSession, user: AuthenticatedUser, line_item_id: str, req: TrackingRequest
    ) -> LineItemResponse:
        item = await self._lock_item(db, line_item_id)
        if not await self._is_seller(db, user, item):
            raise NotOrderParticipantError()
        tracking = {
            "trackingNumber": req.tracking_number,
            "carrier": req.carrier,
            "notes": req.notes,
            "updatedAt": utc_now().isoformat(),
        }
        await self._orders.set_tracking(db, item.id, tracking)
        await db.commit()
        item.breakdown = {**item.breakdown, "tracking": tracking}
        logger.info("Tracking %s (%s) added to line item %s", req.tracking_number, req.carrier, item.id)
        return LineItemResponse.from_domain(item)

    async def attach_shipment_receipt(
        self, db: AsyncSession, user: AuthenticatedUser, shipment_id: str, receipt: str
    ) -> ShipmentResponse:
        shipment = await self._orders.get_shipment(db, shipment_id)
        if shipment is None:
            raise ShipmentNotFoundError(shipment_id)
        account = await self._users.resolve_owning_account(db, user.id)
        if account != shipment.seller_id:
            raise NotOrderParticipantError()
        await self._orders.set_shipment_receipt(db, shipment_id, receipt)
        await db.commit()
        shipment.receipt = receipt
        return ShipmentResponse.from_domain(shipment)

    # ------------------------------------------------------------------

    async def _lock_item(self, db: AsyncSession, line_item_id: str) -> OrderLineItem:
        item = await self._orders.get_line_item(db, line_item_id, for_update=True)
        if item is None:
            raise OrderLineItemNotFoundError(line_item_id)
        return item

    async def _is_seller(self, db: AsyncSession, user: AuthenticatedUser, item: OrderLineItem) -> bool:
        if user.id == item.seller_id:
            return True
        return await self._users.resolve_owning_account(db, user.id) == item.seller_id

    async def _apply(
        self, db: AsyncSession, item: OrderLineItem, target: str, note: str | None
    ) -> LineItemResponse:
        previous = item.status
        ensure_transition(previous, target)
        cancelling = target == LineItemStatus.CANCELLED.value

        await self._orders.update_line_item_status(
            db, item.id, target, cancel_reason=note if cancelling else None
        )
        if target == LineItemStatus.SHIPPED.value and item.shipment_id:
            await self._orders.update_shipment_status(
                db, item.shipment_id, ShipmentStatus.SHIPPED.value
            )
        await db.commit()
        item.status = target
        if cancelling and note:
            item.cancel_reason = note
        logger.info("Line item %s: %s -> %s", item.id, previous, target)

        if cancelling:
            await self._refund(db, item)
        self._dispatcher.emit(
            NotificationEvent(
                user_id=item.buyer_id,
                kind="ORDER_STATUS",
                title="Order Status Updated",
                message=f"Your order item is now {target.lower()}",
                data={"orderId": item.order_id, "lineItemId": item.id, "status": target},
                link=f"/my-orders/{item.order_id}",
            )
        )
        return LineItemResponse.from_domain(item)

    async def _refund(self, db: AsyncSession, item: OrderLineItem) -> None:
        """Credit a cancelled wallet-paid line. Failures are logged, never raised."""
        try:
            order = await self._orders.get_order(db, item.order_id)
            if order is None or not order.paid_from_wallet:
                return
            refund = await self._payments.refund_order_line(
                db, order.id, order.wallet_transaction_id, item.refund_amount, item.id
            )
            await db.commit()
            if refund is not None:
                logger.info("Refunded %s for cancelled line item %s", refund.amount, item.id)
        except Exception:
            logger.exception("Refund for cancelled line item %s failed", item.id)
            await db.rollback()
