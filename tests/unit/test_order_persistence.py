# tests/unit/test_order_persistence.py
"""Unit tests for OrderRepository using MagicMock AsyncSession."""
import json
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from unittest.mock import AsyncMock, MagicMock

from src.mk_order.domain.models import OrderLineItem
from src.mk_order.infrastructure.persistence import OrderRepository


def _make_line_row(**kwargs: Any) -> MagicMock:
    row = MagicMock()
    row.id = kwargs.get("id", "line-1")
    row.order_id = kwargs.get("order_id", "order-1")
    row.sub_order_id = kwargs.get("sub_order_id", "sub-1")
    row.buyer_id = kwargs.get("buyer_id", "buyer-1")
    row.seller_id = kwargs.get("seller_id", "seller-1")
    row.line_type = kwargs.get("line_type", "PRODUCT")
    row.priced_entry_id = kwargs.get("priced_entry_id", 11)
    row.product_id = kwargs.get("product_id", 110)
    row.service_id = kwargs.get("service_id")
    row.quantity = kwargs.get("quantity", 2)
    row.sale_price = kwargs.get("sale_price", Decimal("50.0000"))
    row.purchase_price = kwargs.get("purchase_price", Decimal("45.0000"))
    row.customer_pay = kwargs.get("customer_pay", Decimal("94.5000"))
    row.seller_receives = kwargs.get("seller_receives", Decimal("87.3000"))
    row.platform_fee = kwargs.get("platform_fee", Decimal("7.2000"))
    row.cashback = kwargs.get("cashback", Decimal("0"))
    row.breakdown = kwargs.get("breakdown", {"customer": {"totalPay": "94.50"}})
    row.object = kwargs.get("object")
    row.shipment_id = kwargs.get("shipment_id")
    row.status = kwargs.get("status", "PLACED")
    row.cancel_reason = kwargs.get("cancel_reason")
    row.created_at = kwargs.get("created_at", datetime.now(UTC))
    row.updated_at = kwargs.get("updated_at", datetime.now(UTC))
    return row


def _make_item(**kwargs: Any) -> OrderLineItem:
    return OrderLineItem(
        id=kwargs.get("id", "line-1"),
        order_id="order-1",
        sub_order_id="sub-1",
        buyer_id="buyer-1",
        seller_id="seller-1",
        line_type="PRODUCT",
        quantity=2,
        sale_price=Decimal("50"),
        purchase_price=Decimal("45"),
        customer_pay=Decimal("94.50"),
        seller_receives=Decimal("87.30"),
        breakdown=kwargs.get("breakdown", {"source": "RFQ"}),
    )


def _result(one: Any = None, many: list[Any] | None = None) -> MagicMock:
    result = MagicMock()
    result.fetchone.return_value = one
    result.fetchall.return_value = many or []
    return result


class TestLineItems:
    async def test_insert_many_in_one_execute(self) -> None:
        db = AsyncMock()

        await OrderRepository().insert_line_items(db, [_make_item(), _make_item(id="line-2")])

        db.execute.assert_awaited_once()
        params = db.execute.call_args[0][1]
        assert [p["id"] for p in params] == ["line-1", "line-2"]
        assert json.loads(params[0]["breakdown"]) == {"source": "RFQ"}
        assert params[0]["object"] is None

    async def test_insert_nothing_skips_execute(self) -> None:
        db = AsyncMock()
        await OrderRepository().insert_line_items(db, [])
        db.execute.assert_not_awaited()

    async def test_get_for_update_uses_locking_query(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _result(one=_make_line_row())

        item = await OrderRepository().get_line_item(db, "line-1", for_update=True)

        assert item is not None
        assert "FOR UPDATE" in str(db.execute.call_args[0][0])
        assert item.customer_pay == Decimal("94.5000")
        assert item.breakdown["customer"]["totalPay"] == "94.50"

    async def test_breakdown_stored_as_text_is_decoded(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _result(one=_make_line_row(breakdown='{"a": 1}', object="null"))

        item = await OrderRepository().get_line_item(db, "line-1")

        assert item.breakdown == {"a": 1}
        assert item.object is None

    async def test_missing_line_item(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _result(one=None)
        assert await OrderRepository().get_line_item(db, "nope") is None

    async def test_list_line_items(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _result(many=[_make_line_row(), _make_line_row(id="line-2")])

        items = await OrderRepository().list_line_items(db, "order-1")

        assert [i.id for i in items] == ["line-1", "line-2"]


class TestStatusUpdates:
    async def test_update_status_passes_cancel_reason(self) -> None:
        db = AsyncMock()

        await OrderRepository().update_line_item_status(db, "line-1", "CANCELLED", "late")

        params = db.execute.call_args[0][1]
        assert params == {"id": "line-1", "status": "CANCELLED", "cancel_reason": "late"}

    async def test_tracking_serialised(self) -> None:
        db = AsyncMock()

        await OrderRepository().set_tracking(db, "line-1", {"carrier": "UPS"})

        assert json.loads(db.execute.call_args[0][1]["tracking"]) == {"carrier": "UPS"}


class TestGroupBuyQueries:
    async def test_sum_active_quantity_excludes_delivered(self) -> None:
        db = AsyncMock()
        result = MagicMock()
        result.scalar_one.return_value = 7
        db.execute.return_value = result

        total = await OrderRepository().sum_active_quantity(db, 11)

        assert total == 7
        statuses = db.execute.call_args[0][1]["statuses"]
        assert set(statuses) == {"PLACED", "CONFIRMED", "SHIPPED"}

    async def test_confirm_placed_returns_rowcount(self) -> None:
        db = AsyncMock()
        result = MagicMock()
        result.rowcount = 3
        db.execute.return_value = result

        assert await OrderRepository().confirm_placed_for_entry(db, 11) == 3
