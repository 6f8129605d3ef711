"""Repository Protocols for mk_pricing."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_pricing.domain.models import FeeConfiguration, PricedEntry


class PricedEntryRepositoryProtocol(Protocol):
    async def get_many(self, db: AsyncSession, entry_ids: list[int]) -> dict[int, PricedEntry]: ...

    async def reserve_stock(self, db: AsyncSession, entry_id: int, quantity: int) -> int | None:
        """Conditionally decrement stock. Returns the new stock, or None if refused."""
        ...

    async def release_stock(self, db: AsyncSession, entry_id: int, quantity: int) -> None: ...

    async def exists(self, db: AsyncSession, entry_id: int) -> bool: ...

    async def list_open_group_buys(self, db: AsyncSession) -> list[PricedEntry]: ...


class FeeConfigurationRepositoryProtocol(Protocol):
    async def list_by_categories(
        self, db: AsyncSession, category_ids: list[int]
    ) -> dict[int, FeeConfiguration]: ...
