"""Tests for OrderWriter: numbering retries, seller split, links, payments."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError

from src.mk_common.errors import (
    AppError,
    InternalError,
    OrderNumberExhaustedError,
    WalletNotActiveError,
)
from src.mk_common.result import Err, Ok
from src.mk_order.application.schemas import AddressInput
from src.mk_order.application.writer import OrderWriter, run_in_transaction
from src.mk_order.domain.models import CartLink, ComputedLine, Order


def _db() -> AsyncMock:
    db = AsyncMock()
    db.begin_nested = MagicMock(return_value=AsyncMock())
    return db


def _collision(constraint: str) -> IntegrityError:
    return IntegrityError(
        "INSERT ...", {}, Exception(f'duplicate key value violates unique constraint "{constraint}"')
    )


def _order(payment_type: str = "DIRECT") -> Order:
    return Order(
        id="order-1", order_no="", buyer_id="buyer-1",
        total_price=Decimal("150"), total_purchased=Decimal("150"), total_discount=Decimal("0"),
        total_customer_pay=Decimal("157.50"), total_platform_fee=Decimal("4"),
        total_cashback=Decimal("0"), payment_method="GATEWAY", payment_type=payment_type,
    )


def _line(cart_id: int | None, seller_id: str, listed: str, purchased: str) -> ComputedLine:
    return ComputedLine(
        line_type="PRODUCT", cart_id=cart_id, seller_id=seller_id, quantity=1,
        sale_price=Decimal(listed), purchase_price=Decimal(purchased),
        listed_total=Decimal(listed), purchased_total=Decimal(purchased),
        customer_pay=Decimal(purchased), seller_receives=Decimal(purchased),
    )


class TestOrderNumbers:
    async def test_retries_after_collision(self) -> None:
        repo = AsyncMock()
        repo.insert_order.side_effect = [_collision("uq_orders_order_no"), None]
        order = _order()

        await OrderWriter(repo, AsyncMock()).insert_order(_db(), order)

        assert repo.insert_order.await_count == 2
        assert order.order_no.startswith("Ord_")

    async def test_gives_up_after_max_attempts(self) -> None:
        repo = AsyncMock()
        repo.insert_order.side_effect = _collision("uq_orders_order_no")

        with pytest.raises(OrderNumberExhaustedError):
            await OrderWriter(repo, AsyncMock(), max_attempts=3).insert_order(_db(), _order())
        assert repo.insert_order.await_count == 3

    async def test_other_integrity_errors_propagate(self) -> None:
        repo = AsyncMock()
        repo.insert_order.side_effect = _collision("fk_orders_buyer")

        with pytest.raises(IntegrityError):
            await OrderWriter(repo, AsyncMock()).insert_order(_db(), _order())
        assert repo.insert_order.await_count == 1

    async def test_sub_order_numbers_use_seller_prefix(self) -> None:
        repo = AsyncMock()
        repo.insert_sub_order.side_effect = [_collision("uq_sub_orders_seller_order_no"), None]

        subs, _ = await OrderWriter(repo, AsyncMock()).write_sellers(
            _db(), _order(), [_line(1, "seller-a", "100", "90")]
        )

        assert subs[0].seller_order_no.startswith("Ords_")
        assert repo.insert_sub_order.await_count == 2


class TestWriteSellers:
    async def test_amounts_per_seller(self) -> None:
        repo = AsyncMock()
        lines = [
            _line(1, "seller-a", "100", "90"),
            _line(2, "seller-b", "30", "30"),
            _line(3, "seller-a", "20", "20"),
        ]

        subs, by_cart = await OrderWriter(repo, AsyncMock()).write_sellers(_db(), _order(), lines)

        assert [s.seller_id for s in subs] == ["seller-a", "seller-b"]
        assert subs[0].amount == Decimal("120")
        assert subs[0].purchased_amount == Decimal("110")
        assert sum(s.amount for s in subs) == Decimal("150")
        assert set(by_cart) == {1, 2, 3}
        assert by_cart[3].sub_order_id == subs[0].id
        assert by_cart[2].buyer_id == "buyer-1"

    async def test_quote_lines_have_no_cart_mapping(self) -> None:
        _, by_cart = await OrderWriter(AsyncMock(), AsyncMock()).write_sellers(
            _db(), _order(), [_line(None, "seller-a", "10", "10")]
        )
        assert by_cart == {}


class TestWriteLinks:
    async def test_links_resolve_to_line_items(self) -> None:
        repo = AsyncMock()
        writer = OrderWriter(repo, AsyncMock())
        _, by_cart = await writer.write_sellers(
            _db(), _order(), [_line(1, "a", "10", "10"), _line(2, "a", "5", "5")]
        )
        links = [
            CartLink(cart_id=1, related_cart_id=2, product_id=10, service_id=3, link_type="SERVICE"),
            CartLink(cart_id=77, related_cart_id=None, product_id=1, service_id=None, link_type=None),
        ]

        written = await writer.write_links(_db(), links, by_cart)

        assert written == 1
        row = repo.insert_links.call_args[0][1][0]
        assert row.line_item_id == by_cart[1].id
        assert row.related_line_item_id == by_cart[2].id


class TestWriteAddresses:
    async def test_billing_then_shipping(self) -> None:
        repo = AsyncMock()

        await OrderWriter(repo, AsyncMock()).write_addresses(
            _db(), "order-1", AddressInput(city="Lyon"), AddressInput(city="Paris")
        )

        rows = repo.insert_addresses.call_args[0][1]
        assert [(r.address_type, r.city) for r in rows] == [("BILLING", "Lyon"), ("SHIPPING", "Paris")]

    async def test_missing_billing_skipped(self) -> None:
        repo = AsyncMock()

        await OrderWriter(repo, AsyncMock()).write_addresses(
            _db(), "order-1", None, AddressInput(city="Paris")
        )

        rows = repo.insert_addresses.call_args[0][1]
        assert [r.address_type for r in rows] == ["SHIPPING"]


class TestPayments:
    async def test_wallet_refusal_raises(self) -> None:
        coordinator = AsyncMock()
        coordinator.pay_for_order.return_value = Err(WalletNotActiveError("buyer-1"))
        repo = AsyncMock()

        with pytest.raises(WalletNotActiveError):
            await OrderWriter(repo, coordinator).pay_from_wallet(_db(), _order(), None)
        repo.attach_wallet_transaction.assert_not_awaited()

    async def test_advance_payment_uses_advance_amount(self) -> None:
        repo = AsyncMock()
        order = _order("ADVANCE")

        txn = await OrderWriter(repo, AsyncMock()).open_gateway_transaction(
            _db(), order, Decimal("50")
        )

        assert txn.amount == Decimal("50")
        assert txn.transaction_type == "ADVANCE"
        assert order.transaction_id == txn.id
        repo.attach_gateway_transaction.assert_awaited_once()

    async def test_direct_payment_uses_customer_pay(self) -> None:
        txn = await OrderWriter(AsyncMock(), AsyncMock()).open_gateway_transaction(
            _db(), _order(), Decimal("50")
        )
        assert txn.amount == Decimal("157.50")


class TestRunInTransaction:
    async def test_commit_then_emit(self) -> None:
        db = AsyncMock()
        dispatcher = MagicMock()

        async def work():
            return "done", ["event"]

        result = await run_in_transaction(db, dispatcher, work, "test")

        assert result == Ok("done")
        db.commit.assert_awaited_once()
        dispatcher.emit_all.assert_called_once_with(["event"])

    async def test_app_error_rolls_back(self) -> None:
        db = AsyncMock()
        dispatcher = MagicMock()

        async def work():
            raise AppError(4999, "nope", 422)

        result = await run_in_transaction(db, dispatcher, work, "test")

        assert isinstance(result, Err)
        assert result.error.code == 4999
        db.rollback.assert_awaited_once()
        db.commit.assert_not_awaited()
        dispatcher.emit_all.assert_not_called()

    async def test_unexpected_error_becomes_internal(self) -> None:
        db = AsyncMock()

        async def work():
            raise RuntimeError("boom")

        result = await run_in_transaction(db, MagicMock(), work, "test")

        assert isinstance(result.error, InternalError)
        assert result.error.message == "boom"
        db.rollback.assert_awaited_once()
