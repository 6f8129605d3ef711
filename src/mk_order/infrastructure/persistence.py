# src/mk_order/infrastructure/persistence.py
"""OrderRepository — raw SQL persistence for the order aggregate.

orders.order_no and sub_orders.seller_order_no carry unique indexes
(uq_orders_order_no / uq_sub_orders_seller_order_no); a collision surfaces
as IntegrityError and the caller retries with a fresh number.

Transaction ownership stays with the caller.
"""
import json
from typing import Any

from sqlalchemy import bindparam, text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_common.enums import LineItemStatus
from src.mk_order.domain.models import (
    LineItemLink,
    Order,
    OrderAddress,
    OrderEmi,
    OrderLineItem,
    PaymentTransaction,
    Shipment,
    SubOrder,
)
from src.mk_order.domain.status import ACTIVE_STATUSES

# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

_INSERT_ORDER_SQL = text("""
    INSERT INTO orders (id, order_no, buyer_id,
        total_price, total_purchased, total_discount, total_customer_pay,
        total_platform_fee, total_cashback,
        payment_method, payment_type, delivery_charge, advance_amount, due_amount,
        rfq_quotes_user_id)
    VALUES (:id, :order_no, :buyer_id,
        :total_price, :total_purchased, :total_discount, :total_customer_pay,
        :total_platform_fee, :total_cashback,
        :payment_method, :payment_type, :delivery_charge, :advance_amount, :due_amount,
        :rfq_quotes_user_id)
""")

_INSERT_SUB_ORDER_SQL = text("""
    INSERT INTO sub_orders (id, order_id, seller_order_no, seller_id, amount, purchased_amount)
    VALUES (:id, :order_id, :seller_order_no, :seller_id, :amount, :purchased_amount)
""")

_INSERT_SHIPMENT_SQL = text("""
    INSERT INTO shipments (id, order_id, seller_id, shipping_type, service_id,
        shipping_date, from_time, to_time, shipping_charge, status)
    VALUES (:id, :order_id, :seller_id, :shipping_type, :service_id,
        :shipping_date, :from_time, :to_time, :shipping_charge, :status)
""")

_INSERT_LINE_ITEM_SQL = text("""
    INSERT INTO order_line_items (id, order_id, sub_order_id, buyer_id, seller_id,
        line_type, priced_entry_id, product_id, service_id, quantity,
        sale_price, purchase_price, customer_pay, seller_receives, platform_fee, cashback,
        breakdown, object, shipment_id, status)
    VALUES (:id, :order_id, :sub_order_id, :buyer_id, :seller_id,
        :line_type, :priced_entry_id, :product_id, :service_id, :quantity,
        :sale_price, :purchase_price, :customer_pay, :seller_receives, :platform_fee, :cashback,
        CAST(:breakdown AS JSONB), CAST(:object AS JSONB), :shipment_id, :status)
""")

_INSERT_LINK_SQL = text("""
    INSERT INTO order_line_item_links (id, line_item_id, related_line_item_id,
        product_id, service_id, link_type)
    VALUES (:id, :line_item_id, :related_line_item_id, :product_id, :service_id, :link_type)
""")

_INSERT_ADDRESS_SQL = text("""
    INSERT INTO order_addresses (id, order_id, address_type, first_name, last_name,
        email, cc, phone, address, city, province, country, post_code,
        country_id, state_id, city_id, town)
    VALUES (:id, :order_id, :address_type, :first_name, :last_name,
        :email, :cc, :phone, :address, :city, :province, :country, :post_code,
        :country_id, :state_id, :city_id, :town)
""")

_INSERT_EMI_SQL = text("""
    INSERT INTO order_emis (id, order_id, installment_count, installment_amount,
        start_date, installments_paid, status, next_due_date)
    VALUES (:id, :order_id, :installment_count, :installment_amount,
        :start_date, :installments_paid, :status, :next_due_date)
""")

_INSERT_PAYMENT_TXN_SQL = text("""
    INSERT INTO payment_transactions (id, order_id, buyer_id, amount, transaction_type, status)
    VALUES (:id, :order_id, :buyer_id, :amount, :transaction_type, :status)
""")

# Both attach statements refuse to set a second payment reference
_ATTACH_WALLET_TXN_SQL = text("""
    UPDATE orders
    SET wallet_transaction_id = :txn_id, payment_method = 'WALLET', updated_at = NOW()
    WHERE id = :id AND transaction_id IS NULL
""")

_ATTACH_GATEWAY_TXN_SQL = text("""
    UPDATE orders
    SET transaction_id = :txn_id, updated_at = NOW()
    WHERE id = :id AND wallet_transaction_id IS NULL
""")

_ORDER_COLUMNS = """
    id, order_no, buyer_id, total_price, total_purchased, total_discount,
    total_customer_pay, total_platform_fee, total_cashback,
    payment_method, payment_type, delivery_charge, advance_amount, due_amount,
    transaction_id, wallet_transaction_id, rfq_quotes_user_id, created_at
"""

_GET_ORDER_SQL = text(f"SELECT {_ORDER_COLUMNS} FROM orders WHERE id = :id")

_LIST_SUB_ORDERS_SQL = text("""
    SELECT id, order_id, seller_order_no, seller_id, amount, purchased_amount
    FROM sub_orders WHERE order_id = :order_id ORDER BY created_at, id
""")

_LINE_ITEM_COLUMNS = """
    id, order_id, sub_order_id, buyer_id, seller_id, line_type,
    priced_entry_id, product_id, service_id, quantity,
    sale_price, purchase_price, customer_pay, seller_receives, platform_fee, cashback,
    breakdown, object, shipment_id, status, cancel_reason, created_at, updated_at
"""

_LIST_LINE_ITEMS_SQL = text(f"""
    SELECT {_LINE_ITEM_COLUMNS}
    FROM order_line_items WHERE order_id = :order_id ORDER BY created_at, id
""")

_GET_LINE_ITEM_SQL = text(f"SELECT {_LINE_ITEM_COLUMNS} FROM order_line_items WHERE id = :id")

_GET_LINE_ITEM_FOR_UPDATE_SQL = text(f"""
    SELECT {_LINE_ITEM_COLUMNS} FROM order_line_items WHERE id = :id FOR UPDATE
""")

_UPDATE_LINE_ITEM_STATUS_SQL = text("""
    UPDATE order_line_items
    SET status = :status,
        cancel_reason = COALESCE(:cancel_reason, cancel_reason),
        updated_at = NOW()
    WHERE id = :id
""")

_SET_CANCEL_REASON_SQL = text("""
    UPDATE order_line_items SET cancel_reason = :reason, updated_at = NOW() WHERE id = :id
""")

_SET_TRACKING_SQL = text("""
    UPDATE order_line_items
    SET breakdown = jsonb_set(COALESCE(breakdown, '{}'::jsonb), '{tracking}',
                              CAST(:tracking AS JSONB), true),
        updated_at = NOW()
    WHERE id = :id
""")

_SHIPMENT_COLUMNS = """
    id, order_id, seller_id, shipping_type, service_id, shipping_date,
    from_time, to_time, shipping_charge, status, receipt
"""

_GET_SHIPMENT_SQL = text(f"SELECT {_SHIPMENT_COLUMNS} FROM shipments WHERE id = :id")

_LIST_SHIPMENTS_SQL = text(f"""
    SELECT {_SHIPMENT_COLUMNS} FROM shipments WHERE order_id = :order_id ORDER BY id
""")

_UPDATE_SHIPMENT_STATUS_SQL = text("""
    UPDATE shipments SET status = :status, updated_at = NOW() WHERE id = :id
""")

_SET_SHIPMENT_RECEIPT_SQL = text("""
    UPDATE shipments SET receipt = :receipt, updated_at = NOW() WHERE id = :id
""")

_SUM_ACTIVE_QUANTITY_SQL = text("""
    SELECT COALESCE(SUM(quantity), 0) AS total
    FROM order_line_items
    WHERE priced_entry_id = :priced_entry_id AND status IN :statuses
""").bindparams(bindparam("statuses", expanding=True))

_CONFIRM_PLACED_SQL = text("""
    UPDATE order_line_items
    SET status = :confirmed, updated_at = NOW()
    WHERE priced_entry_id = :priced_entry_id AND status = :placed
""")


# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _json(value: Any) -> Any:
    if isinstance(value, str):
        return json.loads(value)
    return value


def _dumps(value: Any) -> str | None:
    if value is None:
        return None
    return json.dumps(value, default=str)


def _row_to_order(row: Any) -> Order:
    return Order(
        id=row.id,
        order_no=row.order_no,
        buyer_id=row.buyer_id,
        total_price=row.total_price,
        total_purchased=row.total_purchased,
        total_discount=row.total_discount,
        total_customer_pay=row.total_customer_pay,
        total_platform_fee=row.total_platform_fee,
        total_cashback=row.total_cashback,
        payment_method=row.payment_method,
        payment_type=row.payment_type,
        delivery_charge=row.delivery_charge,
        advance_amount=row.advance_amount,
        due_amount=row.due_amount,
        transaction_id=row.transaction_id,
        wallet_transaction_id=row.wallet_transaction_id,
        rfq_quotes_user_id=row.rfq_quotes_user_id,
        created_at=row.created_at,
    )


def _row_to_line_item(row: Any) -> OrderLineItem:
    return OrderLineItem(
        id=row.id,
        order_id=row.order_id,
        sub_order_id=row.sub_order_id,
        buyer_id=row.buyer_id,
        seller_id=row.seller_id,
        line_type=row.line_type,
        priced_entry_id=row.priced_entry_id,
        product_id=row.product_id,
        service_id=row.service_id,
        quantity=row.quantity,
        sale_price=row.sale_price,
        purchase_price=row.purchase_price,
        customer_pay=row.customer_pay,
        seller_receives=row.seller_receives,
        platform_fee=row.platform_fee,
        cashback=row.cashback,
        breakdown=_json(row.breakdown) or {},
        object=_json(row.object),
        shipment_id=row.shipment_id,
        status=row.status,
        cancel_reason=row.cancel_reason,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_shipment(row: Any) -> Shipment:
    return Shipment(
        id=row.id,
        order_id=row.order_id,
        seller_id=row.seller_id,
        shipping_type=row.shipping_type,
        service_id=row.service_id,
        shipping_date=row.shipping_date,
        from_time=row.from_time,
        to_time=row.to_time,
        shipping_charge=row.shipping_charge,
        status=row.status,
        receipt=row.receipt,
    )


def _line_item_params(item: OrderLineItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "order_id": item.order_id,
        "sub_order_id": item.sub_order_id,
        "buyer_id": item.buyer_id,
        "seller_id": item.seller_id,
        "line_type": item.line_type,
        "priced_entry_id": item.priced_entry_id,
        "product_id": item.product_id,
        "service_id": item.service_id,
        "quantity": item.quantity,
        "sale_price": item.sale_price,
        "purchase_price": item.purchase_price,
        "customer_pay": item.customer_pay,
        "seller_receives": item.seller_receives,
        "platform_fee": item.platform_fee,
        "cashback": item.cashback,
        "breakdown": _dumps(item.breakdown or {}),
        "object": _dumps(item.object),
        "shipment_id": item.shipment_id,
        "status": item.status,
    }


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class OrderRepository:
    """Concrete implementation of OrderRepositoryProtocol using raw SQL."""

    async def insert_order(self, db: AsyncSession, order: Order) -> None:
        await db.execute(
            _INSERT_ORDER_SQL,
            {
                "id": order.id,
                "order_no": order.order_no,
                "buyer_id": order.buyer_id,
                "total_price": order.total_price,
                "total_purchased": order.total_purchased,
                "total_discount": order.total_discount,
                "total_customer_pay": order.total_customer_pay,
                "total_platform_fee": order.total_platform_fee,
                "total_cashback": order.total_cashback,
                "payment_method": order.payment_method,
                "payment_type": order.payment_type,
                "delivery_charge": order.delivery_charge,
                "advance_amount": order.advance_amount,
                "due_amount": order.due_amount,
                "rfq_quotes_user_id": order.rfq_quotes_user_id,
            },
        )

    async def insert_sub_order(self, db: AsyncSession, sub_order: SubOrder) -> None:
        await db.execute(
            _INSERT_SUB_ORDER_SQL,
            {
                "id": sub_order.id,
                "order_id": sub_order.order_id,
                "seller_order_no": sub_order.seller_order_no,
                "seller_id": sub_order.seller_id,
                "amount": sub_order.amount,
                "purchased_amount": sub_order.purchased_amount,
            },
        )

    async def insert_shipment(self, db: AsyncSession, shipment: Shipment) -> None:
        await db.execute(
            _INSERT_SHIPMENT_SQL,
            {
                "id": shipment.id,
                "order_id": shipment.order_id,
                "seller_id": shipment.seller_id,
                "shipping_type": shipment.shipping_type,
                "service_id": shipment.service_id,
                "shipping_date": shipment.shipping_date,
                "from_time": shipment.from_time,
                "to_time": shipment.to_time,
                "shipping_charge": shipment.shipping_charge,
                "status": shipment.status,
            },
        )

    async def insert_line_items(self, db: AsyncSession, items: list[OrderLineItem]) -> None:
        if not items:
            return
        await db.execute(_INSERT_LINE_ITEM_SQL, [_line_item_params(i) for i in items])

    async def insert_links(self, db: AsyncSession, links: list[LineItemLink]) -> None:
        if not links:
            return
        await db.execute(
            _INSERT_LINK_SQL,
            [
                {
                    "id": link.id,
                    "line_item_id": link.line_item_id,
                    "related_line_item_id": link.related_line_item_id,
                    "product_id": link.product_id,
                    "service_id": link.service_id,
                    "link_type": link.link_type,
                }
                for link in links
            ],
        )

    async def insert_addresses(self, db: AsyncSession, addresses: list[OrderAddress]) -> None:
        if not addresses:
            return
        await db.execute(
            _INSERT_ADDRESS_SQL,
            [
                {
                    "id": a.id,
                    "order_id": a.order_id,
                    "address_type": a.address_type,
                    "first_name": a.first_name,
                    "last_name": a.last_name,
                    "email": a.email,
                    "cc": a.cc,
                    "phone": a.phone,
                    "address": a.address,
                    "city": a.city,
                    "province": a.province,
                    "country": a.country,
                    "post_code": a.post_code,
                    "country_id": a.country_id,
                    "state_id": a.state_id,
                    "city_id": a.city_id,
                    "town": a.town,
                }
                for a in addresses
            ],
        )

    async def insert_emi(self, db: AsyncSession, emi: OrderEmi) -> None:
        await db.execute(
            _INSERT_EMI_SQL,
            {
                "id": emi.id,
                "order_id": emi.order_id,
                "installment_count": emi.installment_count,
                "installment_amount": emi.installment_amount,
                "start_date": emi.start_date,
                "installments_paid": emi.installments_paid,
                "status": emi.status,
                "next_due_date": emi.next_due_date,
            },
        )

    async def insert_payment_transaction(
        self, db: AsyncSession, txn: PaymentTransaction
    ) -> None:
        await db.execute(
            _INSERT_PAYMENT_TXN_SQL,
            {
                "id": txn.id,
                "order_id": txn.order_id,
                "buyer_id": txn.buyer_id,
                "amount": txn.amount,
                "transaction_type": txn.transaction_type,
                "status": txn.status,
            },
        )

    async def attach_wallet_transaction(
        self, db: AsyncSession, order_id: str, wallet_transaction_id: str
    ) -> None:
        await db.execute(_ATTACH_WALLET_TXN_SQL, {"id": order_id, "txn_id": wallet_transaction_id})

    async def attach_gateway_transaction(
        self, db: AsyncSession, order_id: str, transaction_id: str
    ) -> None:
        await db.execute(_ATTACH_GATEWAY_TXN_SQL, {"id": order_id, "txn_id": transaction_id})

    async def get_order(self, db: AsyncSession, order_id: str) -> Order | None:
        result = await db.execute(_GET_ORDER_SQL, {"id": order_id})
        row = result.fetchone()
        return _row_to_order(row) if row is not None else None

    async def list_sub_orders(self, db: AsyncSession, order_id: str) -> list[SubOrder]:
        result = await db.execute(_LIST_SUB_ORDERS_SQL, {"order_id": order_id})
        return [
            SubOrder(
                id=row.id,
                order_id=row.order_id,
                seller_order_no=row.seller_order_no,
                seller_id=row.seller_id,
                amount=row.amount,
                purchased_amount=row.purchased_amount,
            )
            for row in result.fetchall()
        ]

    async def list_line_items(self, db: AsyncSession, order_id: str) -> list[OrderLineItem]:
        result = await db.execute(_LIST_LINE_ITEMS_SQL, {"order_id": order_id})
        return [_row_to_line_item(row) for row in result.fetchall()]

    async def list_shipments(self, db: AsyncSession, order_id: str) -> list[Shipment]:
        result = await db.execute(_LIST_SHIPMENTS_SQL, {"order_id": order_id})
        return [_row_to_shipment(row) for row in result.fetchall()]

    async def get_line_item(
        self, db: AsyncSession, line_item_id: str, for_update: bool = False
    ) -> OrderLineItem | None:
        sql = _GET_LINE_ITEM_FOR_UPDATE_SQL if for_update else _GET_LINE_ITEM_SQL
        result = await db.execute(sql, {"id": line_item_id})
        row = result.fetchone()
        return _row_to_line_item(row) if row is not None else None

    async def update_line_item_status(
        self, db: AsyncSession, line_item_id: str, status: str, cancel_reason: str | None = None
    ) -> None:
        await db.execute(
            _UPDATE_LINE_ITEM_STATUS_SQL,
            {"id": line_item_id, "status": status, "cancel_reason": cancel_reason},
        )

    async def set_cancel_reason(self, db: AsyncSession, line_item_id: str, reason: str) -> None:
        await db.execute(_SET_CANCEL_REASON_SQL, {"id": line_item_id, "reason": reason})

    async def set_tracking(
        self, db: AsyncSession, line_item_id: str, tracking: dict[str, Any]
    ) -> None:
        await db.execute(_SET_TRACKING_SQL, {"id": line_item_id, "tracking": _dumps(tracking)})

    async def get_shipment(self, db: AsyncSession, shipment_id: str) -> Shipment | None:
        result = await db.execute(_GET_SHIPMENT_SQL, {"id": shipment_id})
        row = result.fetchone()
        return _row_to_shipment(row) if row is not None else None

    async def update_shipment_status(self, db: AsyncSession, shipment_id: str, status: str) -> None:
        await db.execute(_UPDATE_SHIPMENT_STATUS_SQL, {"id": shipment_id, "status": status})

    async def set_shipment_receipt(self, db: AsyncSession, shipment_id: str, receipt: str) -> None:
        await db.execute(_SET_SHIPMENT_RECEIPT_SQL, {"id": shipment_id, "receipt": receipt})

    async def sum_active_quantity(self, db: AsyncSession, priced_entry_id: int) -> int:
        result = await db.execute(
            _SUM_ACTIVE_QUANTITY_SQL,
            {
                "priced_entry_id": priced_entry_id,
                "statuses": [s.value for s in ACTIVE_STATUSES],
            },
        )
        return int(result.scalar_one())

    async def confirm_placed_for_entry(self, db: AsyncSession, priced_entry_id: int) -> int:
        result = await db.execute(
            _CONFIRM_PLACED_SQL,
            {
                "priced_entry_id": priced_entry_id,
                "confirmed": LineItemStatus.CONFIRMED.value,
                "placed": LineItemStatus.PLACED.value,
            },
        )
        return result.rowcount or 0
