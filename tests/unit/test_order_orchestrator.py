"""Tests for OrderOrchestrator: cart → multi-seller order, all repositories mocked."""

from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.mk_common.errors import (
    EmptyOrderError,
    InsufficientWalletBalanceError,
    NotOrderParticipantError,
    OrderNotFoundError,
)
from src.mk_common.result import Err, Ok
from src.mk_gateway.auth.dependencies import AuthenticatedUser
from src.mk_gateway.user.models import BuyerAddress, BuyerProfile
from src.mk_order.application.schemas import (
    CreateOrderRequest,
    PreviewOrderRequest,
    ShippingInput,
)
from src.mk_order.application.service import OrderOrchestrator
from src.mk_order.domain.models import (
    CartFeature,
    CartLine,
    Order,
    OrderLineItem,
    ServiceInfo,
)
from src.mk_pricing.application.fee_service import FeeResolutionEngine
from src.mk_pricing.domain.models import (
    ConsumerFeeTerms,
    FeeConfiguration,
    Location,
    PricedEntry,
    VendorFeeTerms,
)
from src.mk_wallet.domain.models import WalletTransaction

BUYER = BuyerProfile(
    id="buyer-1", email="ana@example.com", first_name="Ana", last_name="Lee", trade_role="BUYER"
)
USER = AuthenticatedUser(id="buyer-1", trade_role="BUYER")
FEE_CONFIG = FeeConfiguration(
    id=1,
    fee_category_id=7,
    fee_type="UNIFORM",
    vendor_terms=[VendorFeeTerms(Decimal("3"), Decimal("50"))],
    consumer_terms=[ConsumerFeeTerms(Decimal("5"), Decimal("20"))],
)


def _entry(entry_id: int, seller_id: str, price: str = "100", stock: int = 10) -> PricedEntry:
    return PricedEntry(
        id=entry_id,
        product_id=entry_id * 10,
        seller_id=seller_id,
        product_price=Decimal(price),
        offer_price=Decimal(price),
        stock=stock,
        audience_type="EVERYONE",
        fee_category_id=7,
    )


def _cart(cart_id: int, entry_id: int, quantity: int) -> CartLine:
    return CartLine(
        id=cart_id, user_id="buyer-1", quantity=quantity,
        priced_entry_id=entry_id, product_id=entry_id * 10,
    )


class Harness:
    """An orchestrator wired to mocks, preloaded with a two-seller cart."""

    def __init__(self) -> None:
        self.db = AsyncMock()
        self.db.begin_nested = MagicMock(return_value=AsyncMock())
        self.orders = AsyncMock()
        self.carts = AsyncMock()
        self.entries = AsyncMock()
        self.fee_repo = AsyncMock()
        self.users = AsyncMock()
        self.payments = AsyncMock()
        self.dispatcher = MagicMock()

        self.carts.list_product_lines.return_value = {1: _cart(1, 11, 2), 2: _cart(2, 22, 1)}
        self.carts.list_links.return_value = []
        self.carts.clear_for_user.return_value = 2
        self.entries.get_many.return_value = {
            11: _entry(11, "seller-a", "100"),
            22: _entry(22, "seller-b", "50"),
        }
        self.entries.reserve_stock.return_value = 5
        self.entries.exists.return_value = True
        self.fee_repo.list_by_categories.return_value = {7: FEE_CONFIG}
        self.users.get_buyer.return_value = BUYER
        self.users.resolve_owning_account.return_value = "buyer-1"

        self.orchestrator = OrderOrchestrator(
            orders=self.orders,
            carts=self.carts,
            entries=self.entries,
            fees=FeeResolutionEngine(self.fee_repo),
            users=self.users,
            payments=self.payments,
            dispatcher=self.dispatcher,
        )

    async def create(self, **overrides) -> Ok | Err:
        body = {"cart_ids": [1, 2], **overrides}
        return await self.orchestrator.create_order(self.db, USER, CreateOrderRequest(**body))


@pytest.fixture
def h() -> Harness:
    return Harness()


class TestCreateOrder:
    async def test_two_sellers_two_sub_orders(self, h: Harness) -> None:
        result = await h.create()

        assert isinstance(result, Ok)
        created = result.value
        assert len(created.sub_orders) == 2
        assert {s.seller_id for s in created.sub_orders} == {"seller-a", "seller-b"}
        assert sum(s.amount for s in created.sub_orders) == created.order.total_price
        assert created.order.total_price == Decimal("250.00")
        assert created.order.order_no.startswith("Ord_")
        assert h.orders.insert_line_items.await_count == 2
        h.db.commit.assert_awaited_once()
        h.db.rollback.assert_not_awaited()

    async def test_customer_pay_includes_consumer_fee(self, h: Harness) -> None:
        result = await h.create()

        totals = result.value.totals
        # 5% of 200 = 10 and 5% of 50 = 2.50
        assert totals.total_customer_pay == Decimal("262.50")
        assert totals.total_customer_pay_display == "262.50"

    async def test_gateway_order_opens_pending_transaction(self, h: Harness) -> None:
        result = await h.create()

        pending = result.value.pending_transaction
        assert pending is not None
        assert pending.amount == result.value.order.total_customer_pay
        assert pending.status == "PENDING"
        h.orders.insert_payment_transaction.assert_awaited_once()
        h.payments.pay_for_order.assert_not_awaited()

    async def test_cart_cleared_and_notifications_after_commit(self, h: Harness) -> None:
        await h.create()

        h.carts.clear_for_user.assert_awaited_once_with(h.db, "buyer-1")
        events = h.dispatcher.emit_all.call_args[0][0]
        kinds = [e.kind for e in events]
        assert kinds.count("ORDER_RECEIVED") == 2
        assert kinds[-1] == "ORDER_PLACED"
        assert events[-1].user_id == "buyer-1"

    async def test_out_of_stock_line_rejected_order_still_placed(self, h: Harness) -> None:
        h.entries.reserve_stock.side_effect = [5, None]

        result = await h.create()

        assert isinstance(result, Ok)
        assert [r.reason for r in result.value.rejected] == ["Out Of Stock"]
        assert result.value.rejected[0].cart_id == 2
        assert len(result.value.sub_orders) == 1

    async def test_repeated_cart_id_reserves_once(self, h: Harness) -> None:
        result = await h.create(cart_ids=[1, 1, 2, 1])

        assert len(result.value.lines) == 2
        assert result.value.order.total_price == Decimal("250.00")
        assert h.entries.reserve_stock.await_count == 2
        assert h.carts.list_product_lines.call_args[0][2] == [1, 2]

    async def test_missing_cart_row_rejected(self, h: Harness) -> None:
        result = await h.create(cart_ids=[1, 2, 99])

        assert [(r.cart_id, r.reason) for r in result.value.rejected] == [
            (99, "Cart Item Not Found")
        ]

    async def test_everything_rejected_is_empty_order(self, h: Harness) -> None:
        h.carts.list_product_lines.return_value = {}

        result = await h.create()

        assert isinstance(result, Err)
        assert isinstance(result.error, EmptyOrderError)
        assert result.error.reasons == ["Cart Item Not Found", "Cart Item Not Found"]
        h.orders.insert_order.assert_not_awaited()
        h.db.rollback.assert_awaited_once()

    async def test_fee_rejection_releases_reserved_stock(self, h: Harness) -> None:
        h.fee_repo.list_by_categories.return_value = {}

        result = await h.create(cart_ids=[1])

        assert isinstance(result, Err)
        h.entries.release_stock.assert_awaited_once_with(h.db, 11, 2)

    async def test_wallet_failure_rolls_back_everything(self, h: Harness) -> None:
        h.payments.pay_for_order.return_value = Err(
            InsufficientWalletBalanceError(Decimal("262.50"), Decimal("10"))
        )

        result = await h.create(payment_method="WALLET")

        assert isinstance(result, Err)
        assert result.error.code == 2001
        h.db.rollback.assert_awaited_once()
        h.db.commit.assert_not_awaited()
        h.dispatcher.emit_all.assert_not_called()
        h.carts.clear_for_user.assert_not_awaited()

    async def test_wallet_success_skips_gateway(self, h: Harness) -> None:
        h.payments.pay_for_order.return_value = Ok(WalletTransaction(
            id="wtxn-1", wallet_id="w-1", transaction_type="PAYMENT",
            amount=Decimal("262.50"), balance_before=Decimal("300"), balance_after=Decimal("37.50"),
        ))

        result = await h.create(payment_method="WALLET")

        order = result.value.order
        assert order.wallet_transaction_id == "wtxn-1"
        assert order.transaction_id is None
        assert result.value.pending_transaction is None
        amount = h.payments.pay_for_order.call_args[0][2]
        assert amount == Decimal("262.50")
        h.orders.insert_payment_transaction.assert_not_awaited()

    async def test_shipping_for_unknown_seller_rejected(self, h: Harness) -> None:
        result = await h.create(shipping=[ShippingInput(seller_id="ghost")])

        assert isinstance(result, Err)
        assert result.error.code == 4001
        assert "ghost" in result.error.message

    async def test_shipping_plan_creates_shipment(self, h: Harness) -> None:
        result = await h.create(
            shipping=[ShippingInput(seller_id="seller-a", shipping_charge=Decimal("7"))]
        )

        assert isinstance(result, Ok)
        h.orders.insert_shipment.assert_awaited_once()
        shipment = h.orders.insert_shipment.call_args[0][1]
        assert shipment.seller_id == "seller-a"
        assert shipment.shipping_charge == Decimal("7")

    async def test_emi_schedule_written(self, h: Harness) -> None:
        await h.create(
            payment_type="EMI", emi_installment_count=3, emi_installment_amount=Decimal("90")
        )

        emi = h.orders.insert_emi.call_args[0][1]
        assert emi.installment_count == 3
        assert (emi.next_due_date - emi.start_date).days == 30

    async def test_unknown_buyer(self, h: Harness) -> None:
        h.users.get_buyer.return_value = None

        result = await h.create()

        assert isinstance(result, Err)
        assert result.error.code == 1010

    async def test_address_location_feeds_fee_resolution(self, h: Harness) -> None:
        h.users.get_address.return_value = BuyerAddress(
            id=4, user_id="buyer-1", address="1 Main St", location=Location(1, 2, 3)
        )

        result = await h.create(user_address_id=4)

        assert isinstance(result, Ok)
        h.users.get_address.assert_awaited_once_with(h.db, "buyer-1", 4)

    async def test_service_line_with_auto_confirm(self, h: Harness) -> None:
        h.carts.list_service_lines.return_value = {
            5: CartLine(
                id=5, user_id="buyer-1", quantity=1, service_id=3,
                features=[CartFeature(1, "Setup", Decimal("40"), "FLAT", 1,
                                      datetime(2026, 11, 2, 9, tzinfo=UTC))],
            ),
            6: CartLine(id=6, user_id="buyer-1", quantity=1, service_id=3),
        }
        h.carts.get_services.return_value = {
            3: ServiceInfo(id=3, seller_id="seller-s", each_customer_time=None, confirm_type="AUTO")
        }

        result = await h.create(cart_ids=[], service_cart_ids=[5, 6])

        assert isinstance(result, Ok)
        assert [ln.status for ln in result.value.lines] == ["CONFIRMED"]
        assert [r.reason for r in result.value.rejected] == ["No Service Features Selected"]


class TestPreviewOrder:
    async def test_preview_does_not_reserve_or_write(self, h: Harness) -> None:
        result = await h.orchestrator.preview_order(
            h.db, USER, PreviewOrderRequest(cart_ids=[1, 2])
        )

        assert isinstance(result, Ok)
        assert result.value.totals.total_price == Decimal("250.00")
        h.entries.reserve_stock.assert_not_awaited()
        h.orders.insert_order.assert_not_awaited()
        h.db.commit.assert_not_awaited()

    async def test_preview_flags_insufficient_stock(self, h: Harness) -> None:
        h.entries.get_many.return_value = {
            11: _entry(11, "seller-a", stock=1),
            22: _entry(22, "seller-b", "50"),
        }

        result = await h.orchestrator.preview_order(
            h.db, USER, PreviewOrderRequest(cart_ids=[1, 2])
        )

        assert [r.reason for r in result.value.rejected] == ["Out Of Stock"]


def _order() -> Order:
    return Order(
        id="order-1", order_no="ORD000000000001", buyer_id="buyer-1",
        total_price=Decimal("100"), total_purchased=Decimal("100"), total_discount=Decimal("0"),
        total_customer_pay=Decimal("105"), total_platform_fee=Decimal("2"),
        total_cashback=Decimal("0"), payment_method="GATEWAY",
    )


def _item(seller_id: str = "seller-a") -> OrderLineItem:
    return OrderLineItem(
        id="line-1", order_id="order-1", sub_order_id="sub-1", buyer_id="buyer-1",
        seller_id=seller_id, line_type="PRODUCT", quantity=1, sale_price=Decimal("100"),
        purchase_price=Decimal("100"), customer_pay=Decimal("105"),
        seller_receives=Decimal("97"),
    )


class TestOrderDetail:
    async def test_buyer_sees_order(self, h: Harness) -> None:
        h.orders.get_order.return_value = _order()
        h.orders.list_line_items.return_value = [_item()]
        h.orders.list_sub_orders.return_value = []
        h.orders.list_shipments.return_value = []

        detail = await h.orchestrator.get_order_detail(h.db, USER, "order-1")

        assert detail.order.id == "order-1"
        assert len(detail.line_items) == 1

    async def test_seller_of_a_line_sees_order(self, h: Harness) -> None:
        h.orders.get_order.return_value = _order()
        h.orders.list_line_items.return_value = [_item("acct-9")]
        h.orders.list_sub_orders.return_value = []
        h.orders.list_shipments.return_value = []
        h.users.resolve_owning_account.return_value = "acct-9"

        detail = await h.orchestrator.get_order_detail(
            h.db, AuthenticatedUser(id="member-3"), "order-1"
        )

        assert detail.line_items[0].seller_id == "acct-9"

    async def test_stranger_refused(self, h: Harness) -> None:
        h.orders.get_order.return_value = _order()
        h.orders.list_line_items.return_value = [_item()]
        h.users.resolve_owning_account.return_value = "someone"

        with pytest.raises(NotOrderParticipantError):
            await h.orchestrator.get_order_detail(h.db, AuthenticatedUser(id="someone"), "order-1")

    async def test_missing_order(self, h: Harness) -> None:
        h.orders.get_order.return_value = None

        with pytest.raises(OrderNotFoundError):
            await h.orchestrator.get_order_detail(h.db, USER, "nope")
