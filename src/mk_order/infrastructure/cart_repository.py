"""CartRepository — reads the buyer's cart and clears it once an order lands.

The cart tables belong to the shopping-cart service; order creation only
reads selected lines and, on success, deletes every cart row of the buyer
together with its feature selections and cross-references.
"""
from typing import Any

from sqlalchemy import bindparam, text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_common.enums import LineItemType
from src.mk_order.domain.models import CartFeature, CartLine, CartLink, ServiceInfo

_LIST_CART_LINES_SQL = text("""
    SELECT id, user_id, priced_entry_id, product_id, service_id, quantity, object
    FROM carts
    WHERE user_id = :user_id AND cart_type = :cart_type AND id IN :ids
""").bindparams(bindparam("ids", expanding=True))

_LIST_CART_FEATURES_SQL = text("""
    SELECT csf.cart_id, sf.id AS service_feature_id, sf.name, sf.cost, sf.cost_type,
           csf.quantity, csf.booking_date_time
    FROM cart_service_features csf
    JOIN service_features sf ON sf.id = csf.service_feature_id
    WHERE csf.cart_id IN :ids
    ORDER BY csf.id
""").bindparams(bindparam("ids", expanding=True))

_GET_SERVICES_SQL = text("""
    SELECT id, seller_id, each_customer_time, confirm_type
    FROM services
    WHERE id IN :ids
""").bindparams(bindparam("ids", expanding=True))

_LIST_LINKS_SQL = text("""
    SELECT cart_id, related_cart_id, product_id, service_id, cart_type
    FROM cart_product_services
    WHERE cart_id IN :ids OR related_cart_id IN :ids
    ORDER BY id
""").bindparams(bindparam("ids", expanding=True))

_DELETE_FEATURES_SQL = text("""
    DELETE FROM cart_service_features
    WHERE cart_id IN (SELECT id FROM carts WHERE user_id = :user_id)
""")

_DELETE_LINKS_SQL = text("""
    DELETE FROM cart_product_services
    WHERE cart_id IN (SELECT id FROM carts WHERE user_id = :user_id)
       OR related_cart_id IN (SELECT id FROM carts WHERE user_id = :user_id)
""")

_DELETE_CARTS_SQL = text("DELETE FROM carts WHERE user_id = :user_id")


def _row_to_cart_line(row: Any) -> CartLine:
    return CartLine(
        id=row.id,
        user_id=row.user_id,
        quantity=row.quantity,
        priced_entry_id=row.priced_entry_id,
        product_id=row.product_id,
        service_id=row.service_id,
        object=row.object,
    )


class CartRepository:
    async def _list_lines(
        self, db: AsyncSession, user_id: str, cart_ids: list[int], cart_type: str
    ) -> dict[int, CartLine]:
        if not cart_ids:
            return {}
        result = await db.execute(
            _LIST_CART_LINES_SQL,
            {"user_id": user_id, "cart_type": cart_type, "ids": list(set(cart_ids))},
        )
        return {row.id: _row_to_cart_line(row) for row in result.fetchall()}

    async def list_product_lines(
        self, db: AsyncSession, user_id: str, cart_ids: list[int]
    ) -> dict[int, CartLine]:
        return await self._list_lines(db, user_id, cart_ids, LineItemType.PRODUCT.value)

    async def list_service_lines(
        self, db: AsyncSession, user_id: str, cart_ids: list[int]
    ) -> dict[int, CartLine]:
        lines = await self._list_lines(db, user_id, cart_ids, LineItemType.SERVICE.value)
        if not lines:
            return lines
        result = await db.execute(_LIST_CART_FEATURES_SQL, {"ids": list(lines)})
        for row in result.fetchall():
            lines[row.cart_id].features.append(
                CartFeature(
                    service_feature_id=row.service_feature_id,
                    name=row.name,
                    cost=row.cost,
                    cost_type=row.cost_type,
                    quantity=row.quantity,
                    booking_date_time=row.booking_date_time,
                )
            )
        return lines

    async def get_services(self, db: AsyncSession, service_ids: list[int]) -> dict[int, ServiceInfo]:
        ids = [s for s in set(service_ids) if s is not None]
        if not ids:
            return {}
        result = await db.execute(_GET_SERVICES_SQL, {"ids": ids})
        return {
            row.id: ServiceInfo(
                id=row.id,
                seller_id=row.seller_id,
                each_customer_time=row.each_customer_time,
                confirm_type=row.confirm_type,
            )
            for row in result.fetchall()
        }

    async def list_links(self, db: AsyncSession, cart_ids: list[int]) -> list[CartLink]:
        if not cart_ids:
            return []
        result = await db.execute(_LIST_LINKS_SQL, {"ids": list(set(cart_ids))})
        return [
            CartLink(
                cart_id=row.cart_id,
                related_cart_id=row.related_cart_id,
                product_id=row.product_id,
                service_id=row.service_id,
                link_type=row.cart_type,
            )
            for row in result.fetchall()
        ]

    async def clear_for_user(self, db: AsyncSession, user_id: str) -> int:
        """Delete all of the buyer's cart rows, children first. Returns carts deleted."""
        params = {"user_id": user_id}
        await db.execute(_DELETE_FEATURES_SQL, params)
        await db.execute(_DELETE_LINKS_SQL, params)
        result = await db.execute(_DELETE_CARTS_SQL, params)
        return result.rowcount or 0
