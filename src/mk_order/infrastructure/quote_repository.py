"""QuoteRepository — read access to accepted RFQ quotes and suggested substitutions."""
from typing import Any

from sqlalchemy import bindparam, text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_order.domain.models import QuoteProduct, QuoteResponse, SuggestedProduct

_GET_QUOTE_USER_SQL = text("""
    SELECT id, rfq_quote_id, buyer_id, seller_id, offer_price, status
    FROM rfq_quotes_users
    WHERE id = :id
""")

_LIST_QUOTE_PRODUCTS_SQL = text("""
    SELECT id, product_id, quantity, offer_price
    FROM rfq_quote_products
    WHERE rfq_quote_id = :rfq_quote_id
    ORDER BY id
""")

_GET_SUGGESTED_SQL = text("""
    SELECT id, rfq_quotes_user_id, suggested_product_id, vendor_id, quantity,
           offer_price, is_selected_by_buyer, status
    FROM rfq_suggested_products
    WHERE id IN :ids
""").bindparams(bindparam("ids", expanding=True))

_GET_PRODUCT_STATUSES_SQL = text("""
    SELECT id, status FROM products WHERE id IN :ids
""").bindparams(bindparam("ids", expanding=True))


def _row_to_suggested(row: Any) -> SuggestedProduct:
    return SuggestedProduct(
        id=row.id,
        rfq_quotes_user_id=row.rfq_quotes_user_id,
        product_id=row.suggested_product_id,
        vendor_id=row.vendor_id,
        quantity=row.quantity,
        offer_price=row.offer_price,
        is_selected_by_buyer=row.is_selected_by_buyer,
        status=row.status,
    )


class QuoteRepository:
    async def get_quote_response(
        self, db: AsyncSession, quote_user_id: int
    ) -> QuoteResponse | None:
        result = await db.execute(_GET_QUOTE_USER_SQL, {"id": quote_user_id})
        row = result.fetchone()
        if row is None:
            return None
        quote = QuoteResponse(
            id=row.id,
            rfq_quote_id=row.rfq_quote_id,
            buyer_id=row.buyer_id,
            seller_id=row.seller_id,
            offer_price=row.offer_price,
            status=row.status,
        )
        products = await db.execute(_LIST_QUOTE_PRODUCTS_SQL, {"rfq_quote_id": quote.rfq_quote_id})
        quote.products = [
            QuoteProduct(
                id=p.id, product_id=p.product_id, quantity=p.quantity, offer_price=p.offer_price
            )
            for p in products.fetchall()
        ]
        return quote

    async def get_suggested_products(
        self, db: AsyncSession, suggestion_ids: list[int]
    ) -> dict[int, SuggestedProduct]:
        if not suggestion_ids:
            return {}
        result = await db.execute(_GET_SUGGESTED_SQL, {"ids": list(set(suggestion_ids))})
        return {row.id: _row_to_suggested(row) for row in result.fetchall()}

    async def get_product_statuses(
        self, db: AsyncSession, product_ids: list[int]
    ) -> dict[int, str]:
        if not product_ids:
            return {}
        result = await db.execute(_GET_PRODUCT_STATUSES_SQL, {"ids": list(set(product_ids))})
        return {row.id: row.status for row in result.fetchall()}
