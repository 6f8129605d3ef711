"""GroupBuyReconciler — auto-confirms group-buy orders once demand meets stock.

Every sweep looks at each ACTIVE BUYGROUP priced entry whose sale window is
still open. When the quantity ordered in PLACED/CONFIRMED/SHIPPED lines
reaches the remaining stock, every PLACED line of that entry moves to
CONFIRMED in one UPDATE. Closed windows are left for manual reconciliation.

Each entry is its own short transaction; a failing entry is rolled back,
logged and retried on the next sweep.
"""
import asyncio
import logging
from collections.abc import Callable
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.mk_common.database import async_session_factory
from src.mk_common.datetime_utils import utc_now
from src.mk_order.domain.repository import OrderRepositoryProtocol
from src.mk_order.infrastructure.persistence import OrderRepository
from src.mk_pricing.domain.models import PricedEntry
from src.mk_pricing.domain.repository import PricedEntryRepositoryProtocol
from src.mk_pricing.infrastructure.persistence import PricedEntryRepository

logger = logging.getLogger(__name__)


def demand_meets_stock(ordered: int, stock: int) -> bool:
    return ordered > 0 and ordered >= stock


class GroupBuyReconciler:
    def __init__(
        self,
        orders: OrderRepositoryProtocol | None = None,
        entries: PricedEntryRepositoryProtocol | None = None,
        session_factory: Callable[[], AsyncSession] | None = None,
    ) -> None:
        self._orders: OrderRepositoryProtocol = orders or OrderRepository()
        self._entries: PricedEntryRepositoryProtocol = entries or PricedEntryRepository()
        self._session_factory = session_factory or async_session_factory

    async def run_once(self, db: AsyncSession, now: datetime | None = None) -> int:
        """One sweep. Returns the number of line items promoted to CONFIRMED."""
        now = now or utc_now()
        entries = await self._entries.list_open_group_buys(db)
        await db.commit()

        promoted = 0
        for entry in entries:
            ends_at = entry.sale_ends_at
            if ends_at is not None and ends_at <= now:
                continue
            try:
                promoted += await self._reconcile_entry(db, entry)
                await db.commit()
            except Exception:
                logger.exception("Group-buy reconcile failed for priced entry %s", entry.id)
                await db.rollback()
        if promoted:
            logger.info("Group-buy sweep confirmed %d line items", promoted)
        return promoted

    async def _reconcile_entry(self, db: AsyncSession, entry: PricedEntry) -> int:
        ordered = await self._orders.sum_active_quantity(db, entry.id)
        if not demand_meets_stock(ordered, entry.stock):
            return 0
        confirmed = await self._orders.confirm_placed_for_entry(db, entry.id)
        logger.info(
            "Priced entry %s sold out (%d ordered, stock %d): %d line items confirmed",
            entry.id, ordered, entry.stock, confirmed,
        )
        return confirmed

    async def run_forever(self, stop_event: asyncio.Event, interval: float | None = None) -> None:
        """Sweep every `interval` seconds until stop_event is set."""
        interval = interval if interval is not None else settings.GROUP_BUY_SWEEP_INTERVAL_SECONDS
        logger.info("Group-buy reconciler started (interval %.0fs)", interval)
        while not stop_event.is_set():
            try:
                async with self._session_factory() as db:
                    await self.run_once(db)
            except Exception:
                logger.exception("Group-buy sweep failed, retrying next tick")
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass
        logger.info("Group-buy reconciler stopped")
