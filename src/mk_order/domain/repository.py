"""Repository Protocols for mk_order — interface contracts for persistence."""
from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_order.domain.models import (
    CartLine,
    CartLink,
    LineItemLink,
    Order,
    OrderAddress,
    OrderEmi,
    OrderLineItem,
    PaymentTransaction,
    QuoteResponse,
    ServiceInfo,
    Shipment,
    SubOrder,
    SuggestedProduct,
)


class OrderRepositoryProtocol(Protocol):
    async def insert_order(self, db: AsyncSession, order: Order) -> None: ...

    async def insert_sub_order(self, db: AsyncSession, sub_order: SubOrder) -> None: ...

    async def insert_shipment(self, db: AsyncSession, shipment: Shipment) -> None: ...

    async def insert_line_items(self, db: AsyncSession, items: list[OrderLineItem]) -> None: ...

    async def insert_links(self, db: AsyncSession, links: list[LineItemLink]) -> None: ...

    async def insert_addresses(self, db: AsyncSession, addresses: list[OrderAddress]) -> None: ...

    async def insert_emi(self, db: AsyncSession, emi: OrderEmi) -> None: ...

    async def insert_payment_transaction(
        self, db: AsyncSession, txn: PaymentTransaction
    ) -> None: ...

    async def attach_wallet_transaction(
        self, db: AsyncSession, order_id: str, wallet_transaction_id: str
    ) -> None: ...

    async def attach_gateway_transaction(
        self, db: AsyncSession, order_id: str, transaction_id: str
    ) -> None: ...

    async def get_order(self, db: AsyncSession, order_id: str) -> Order | None: ...

    async def list_sub_orders(self, db: AsyncSession, order_id: str) -> list[SubOrder]: ...

    async def list_line_items(self, db: AsyncSession, order_id: str) -> list[OrderLineItem]: ...

    async def list_shipments(self, db: AsyncSession, order_id: str) -> list[Shipment]: ...

    async def get_line_item(
        self, db: AsyncSession, line_item_id: str, for_update: bool = False
    ) -> OrderLineItem | None: ...

    async def update_line_item_status(
        self, db: AsyncSession, line_item_id: str, status: str, cancel_reason: str | None = None
    ) -> None: ...

    async def set_cancel_reason(self, db: AsyncSession, line_item_id: str, reason: str) -> None: ...

    async def set_tracking(
        self, db: AsyncSession, line_item_id: str, tracking: dict[str, Any]
    ) -> None: ...

    async def get_shipment(self, db: AsyncSession, shipment_id: str) -> Shipment | None: ...

    async def update_shipment_status(self, db: AsyncSession, shipment_id: str, status: str) -> None: ...

    async def set_shipment_receipt(self, db: AsyncSession, shipment_id: str, receipt: str) -> None: ...

    async def sum_active_quantity(self, db: AsyncSession, priced_entry_id: int) -> int: ...

    async def confirm_placed_for_entry(self, db: AsyncSession, priced_entry_id: int) -> int: ...


class CartRepositoryProtocol(Protocol):
    async def list_product_lines(
        self, db: AsyncSession, user_id: str, cart_ids: list[int]
    ) -> dict[int, CartLine]: ...

    async def list_service_lines(
        self, db: AsyncSession, user_id: str, cart_ids: list[int]
    ) -> dict[int, CartLine]: ...

    async def get_services(self, db: AsyncSession, service_ids: list[int]) -> dict[int, ServiceInfo]: ...

    async def list_links(self, db: AsyncSession, cart_ids: list[int]) -> list[CartLink]: ...

    async def clear_for_user(self, db: AsyncSession, user_id: str) -> int: ...


class QuoteRepositoryProtocol(Protocol):
    async def get_quote_response(
        self, db: AsyncSession, quote_user_id: int
    ) -> QuoteResponse | None: ...

    async def get_suggested_products(
        self, db: AsyncSession, suggestion_ids: list[int]
    ) -> dict[int, SuggestedProduct]: ...

    async def get_product_statuses(
        self, db: AsyncSession, product_ids: list[int]
    ) -> dict[int, str]: ...
