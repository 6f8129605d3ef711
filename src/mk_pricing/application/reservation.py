"""StockReservation — fail-closed inventory decrement for a single line."""

import logging
from enum import Enum

from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_pricing.domain.repository import PricedEntryRepositoryProtocol
from src.mk_pricing.infrastructure.persistence import PricedEntryRepository

logger = logging.getLogger(__name__)


class ReservationFailure(str, Enum):
    OUT_OF_STOCK = "Out Of Stock"
    PRODUCT_NOT_FOUND = "Product Not Found"
    INVALID_QUANTITY = "Invalid Quantity"


class StockReservation:
    def __init__(self, repo: PricedEntryRepositoryProtocol | None = None) -> None:
        self._repo: PricedEntryRepositoryProtocol = repo or PricedEntryRepository()

    async def reserve(
        self, db: AsyncSession, entry_id: int, quantity: int
    ) -> ReservationFailure | None:
        """Decrement stock by quantity. Returns None on success, else the failure.

        On failure stock is left unchanged; the caller drops the line.
        """
        if quantity <= 0:
            return ReservationFailure.INVALID_QUANTITY
        remaining = await self._repo.reserve_stock(db, entry_id, quantity)
        if remaining is not None:
            logger.debug("Reserved %d of priced entry %s, %d left", quantity, entry_id, remaining)
            return None
        if not await self._repo.exists(db, entry_id):
            return ReservationFailure.PRODUCT_NOT_FOUND
        return ReservationFailure.OUT_OF_STOCK

    async def release(self, db: AsyncSession, entry_id: int, quantity: int) -> None:
        await self._repo.release_stock(db, entry_id, quantity)
        logger.info("Released %d reserved units of priced entry %s", quantity, entry_id)
