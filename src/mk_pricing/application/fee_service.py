"""FeeResolutionEngine — batch-loads fee configurations, then resolves per line.

Loading happens once per checkout (one query for every fee category in the
cart); resolution itself is the pure function in domain/fee.py.
"""

from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_pricing.domain.fee import FeeBreakdown, FeeRejection, resolve_fees
from src.mk_pricing.domain.models import FeeConfiguration, Location, PricedEntry
from src.mk_pricing.domain.repository import FeeConfigurationRepositoryProtocol
from src.mk_pricing.infrastructure.persistence import FeeConfigurationRepository


class FeeResolutionEngine:
    def __init__(self, repo: FeeConfigurationRepositoryProtocol | None = None) -> None:
        self._repo: FeeConfigurationRepositoryProtocol = repo or FeeConfigurationRepository()

    async def load_configurations(
        self, db: AsyncSession, entries: list[PricedEntry]
    ) -> dict[int, FeeConfiguration]:
        category_ids = [e.fee_category_id for e in entries if e.fee_category_id is not None]
        return await self._repo.list_by_categories(db, category_ids)

    def resolve(
        self,
        configs: dict[int, FeeConfiguration],
        entry: PricedEntry,
        purchased_amount: Decimal,
        buyer_type: str,
        buyer_location: Location | None,
    ) -> FeeBreakdown | FeeRejection:
        config = configs.get(entry.fee_category_id) if entry.fee_category_id is not None else None
        return resolve_fees(
            config,
            purchased_amount,
            buyer_type,
            seller_location=entry.location,
            buyer_location=buyer_location,
        )
