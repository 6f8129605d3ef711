"""Direct-SQL seeding of rows owned by neighbouring services."""

import uuid
from decimal import Decimal

from sqlalchemy import text

from src.mk_common.database import async_session_factory


class Seed:
    """Inserts the rows owned by neighbouring services (users, catalog, cart)."""

    async def execute(self, sql: str, **params: object) -> object:
        async with async_session_factory() as db:
            result = await db.execute(text(sql), params)
            await db.commit()
            return result

    async def scalar(self, sql: str, **params: object) -> object:
        async with async_session_factory() as db:
            return (await db.execute(text(sql), params)).scalar_one()

    async def user(self, trade_role: str = "BUYER") -> str:
        user_id = f"it_{uuid.uuid4().hex[:12]}"
        await self.execute(
            "INSERT INTO users (id, email, first_name, trade_role) "
            "VALUES (:id, :email, 'Test', :role)",
            id=user_id, email=f"{user_id}@example.com", role=trade_role,
        )
        return user_id

    async def fee_category(self) -> int:
        category_id = int(uuid.uuid4().int % 1_000_000_000)
        config_id = await self.scalar(
            "INSERT INTO fee_configurations (fee_category_id, fee_type) "
            "VALUES (:cat, 'UNIFORM') RETURNING id",
            cat=category_id,
        )
        await self.execute(
            "INSERT INTO fee_schedules (fee_configuration_id, side, percentage, max_cap) "
            "VALUES (:cfg, 'VENDOR', 3, 50), (:cfg, 'CONSUMER', 5, 20)",
            cfg=config_id,
        )
        return category_id

    async def priced_entry(self, seller_id: str, price: Decimal, stock: int) -> int:
        category_id = await self.fee_category()
        product_id = await self.scalar(
            "INSERT INTO products (name, fee_category_id) VALUES ('Widget', :cat) RETURNING id",
            cat=category_id,
        )
        return int(await self.scalar(
            "INSERT INTO priced_entries (product_id, seller_id, product_price, offer_price, "
            "stock, audience_type) VALUES (:pid, :seller, :price, :price, :stock, 'EVERYONE') "
            "RETURNING id",
            pid=product_id, seller=seller_id, price=price, stock=stock,
        ))

    async def cart_line(self, user_id: str, entry_id: int, quantity: int) -> int:
        return int(await self.scalar(
            "INSERT INTO carts (user_id, cart_type, priced_entry_id, product_id, quantity) "
            "SELECT :uid, 'PRODUCT', id, product_id, :qty FROM priced_entries WHERE id = :eid "
            "RETURNING id",
            uid=user_id, eid=entry_id, qty=quantity,
        ))

    async def wallet(self, user_id: str, balance: Decimal) -> None:
        await self.execute(
            "INSERT INTO wallets (id, user_id, balance) VALUES (:id, :uid, :balance)",
            id=f"w_{user_id}", uid=user_id, balance=balance,
        )

