"""Pricing repositories — PricedEntryRepository and FeeConfigurationRepository.

Stock mutations are single conditional UPDATE ... RETURNING statements, so
two concurrent reservations against the last unit cannot both succeed.
Transaction ownership stays with the caller.
"""

from sqlalchemy import bindparam, text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_common.enums import FeeSide, RecordStatus, SellType
from src.mk_pricing.domain.models import (
    ConsumerFeeTerms,
    FeeConfiguration,
    Location,
    PricedEntry,
    VendorFeeTerms,
)

_ENTRY_COLUMNS = """
    pe.id, pe.product_id, pe.seller_id, pe.product_price, pe.offer_price,
    pe.stock, pe.audience_type, p.fee_category_id,
    pe.vendor_discount_type, pe.vendor_discount,
    pe.consumer_discount_type, pe.consumer_discount,
    pe.sell_type, pe.status, pe.country_id, pe.state_id, pe.city_id,
    pe.date_close, pe.end_time
"""

_GET_MANY_SQL = text(f"""
    SELECT {_ENTRY_COLUMNS}
    FROM priced_entries pe
    JOIN products p ON p.id = pe.product_id
    WHERE pe.id IN :ids
""").bindparams(bindparam("ids", expanding=True))

_RESERVE_SQL = text("""
    UPDATE priced_entries
    SET stock = stock - :quantity,
        updated_at = NOW()
    WHERE id = :id AND stock >= :quantity
    RETURNING stock
""")

_RELEASE_SQL = text("""
    UPDATE priced_entries
    SET stock = stock + :quantity,
        updated_at = NOW()
    WHERE id = :id
""")

_EXISTS_SQL = text("SELECT 1 FROM priced_entries WHERE id = :id")

_LIST_GROUP_BUYS_SQL = text(f"""
    SELECT {_ENTRY_COLUMNS}
    FROM priced_entries pe
    JOIN products p ON p.id = pe.product_id
    WHERE pe.sell_type = :sell_type
      AND pe.status = :status
      AND (pe.date_close IS NULL OR pe.date_close >= CURRENT_DATE)
    ORDER BY pe.id
""")

_LIST_FEE_CONFIGS_SQL = text("""
    WITH chosen AS (
        SELECT DISTINCT ON (fee_category_id) id, fee_category_id, fee_type
        FROM fee_configurations
        WHERE fee_category_id IN :category_ids
          AND status = :status
        ORDER BY fee_category_id, id DESC
    )
    SELECT fc.id AS config_id, fc.fee_category_id, fc.fee_type,
           fs.side, fs.percentage, fs.max_cap, fs.vat_percent,
           fs.gateway_percent, fs.fixed_fee,
           fs.country_id, fs.state_id, fs.city_id
    FROM chosen fc
    LEFT JOIN fee_schedules fs
           ON fs.fee_configuration_id = fc.id AND fs.status = :status
    ORDER BY fc.fee_category_id, fs.id
""").bindparams(bindparam("category_ids", expanding=True))


def _row_to_entry(row: object) -> PricedEntry:
    return PricedEntry(
        id=row.id,  # type: ignore[attr-defined]
        product_id=row.product_id,  # type: ignore[attr-defined]
        seller_id=row.seller_id,  # type: ignore[attr-defined]
        product_price=row.product_price,  # type: ignore[attr-defined]
        offer_price=row.offer_price,  # type: ignore[attr-defined]
        stock=row.stock,  # type: ignore[attr-defined]
        audience_type=row.audience_type,  # type: ignore[attr-defined]
        fee_category_id=row.fee_category_id,  # type: ignore[attr-defined]
        vendor_discount_type=row.vendor_discount_type,  # type: ignore[attr-defined]
        vendor_discount=row.vendor_discount,  # type: ignore[attr-defined]
        consumer_discount_type=row.consumer_discount_type,  # type: ignore[attr-defined]
        consumer_discount=row.consumer_discount,  # type: ignore[attr-defined]
        sell_type=row.sell_type,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        location=Location(
            country_id=row.country_id,  # type: ignore[attr-defined]
            state_id=row.state_id,  # type: ignore[attr-defined]
            city_id=row.city_id,  # type: ignore[attr-defined]
        ),
        date_close=row.date_close,  # type: ignore[attr-defined]
        end_time=row.end_time,  # type: ignore[attr-defined]
    )


def _row_location(row: object) -> Location:
    return Location(
        country_id=row.country_id,  # type: ignore[attr-defined]
        state_id=row.state_id,  # type: ignore[attr-defined]
        city_id=row.city_id,  # type: ignore[attr-defined]
    )


class PricedEntryRepository:
    """Concrete repository for priced_entries."""

    async def get_many(self, db: AsyncSession, entry_ids: list[int]) -> dict[int, PricedEntry]:
        if not entry_ids:
            return {}
        result = await db.execute(_GET_MANY_SQL, {"ids": list(set(entry_ids))})
        return {row.id: _row_to_entry(row) for row in result.fetchall()}

    async def reserve_stock(self, db: AsyncSession, entry_id: int, quantity: int) -> int | None:
        result = await db.execute(_RESERVE_SQL, {"id": entry_id, "quantity": quantity})
        row = result.fetchone()
        return None if row is None else row.stock

    async def release_stock(self, db: AsyncSession, entry_id: int, quantity: int) -> None:
        await db.execute(_RELEASE_SQL, {"id": entry_id, "quantity": quantity})

    async def exists(self, db: AsyncSession, entry_id: int) -> bool:
        result = await db.execute(_EXISTS_SQL, {"id": entry_id})
        return result.fetchone() is not None

    async def list_open_group_buys(self, db: AsyncSession) -> list[PricedEntry]:
        """ACTIVE group-buy entries whose close date is today or later.

        The finer HH:MM end-of-sale cut is applied by the caller via
        PricedEntry.sale_ends_at.
        """
        result = await db.execute(
            _LIST_GROUP_BUYS_SQL,
            {"sell_type": SellType.BUYGROUP.value, "status": RecordStatus.ACTIVE.value},
        )
        return [_row_to_entry(row) for row in result.fetchall()]


class FeeConfigurationRepository:
    """Reads fee_configurations with their ACTIVE fee_schedules, one query per batch.

    A category resolves to a single ACTIVE configuration, the newest one.
    """

    async def list_by_categories(
        self, db: AsyncSession, category_ids: list[int]
    ) -> dict[int, FeeConfiguration]:
        ids = [c for c in set(category_ids) if c is not None]
        if not ids:
            return {}
        result = await db.execute(
            _LIST_FEE_CONFIGS_SQL,
            {"category_ids": ids, "status": RecordStatus.ACTIVE.value},
        )
        configs: dict[int, FeeConfiguration] = {}
        for row in result.fetchall():
            config = configs.get(row.fee_category_id)
            if config is None:
                config = FeeConfiguration(
                    id=row.config_id,
                    fee_category_id=row.fee_category_id,
                    fee_type=row.fee_type,
                )
                configs[row.fee_category_id] = config
            elif config.id != row.config_id:
                continue
            if row.side == FeeSide.VENDOR.value:
                config.vendor_terms.append(
                    VendorFeeTerms(
                        percentage=row.percentage,
                        max_cap=row.max_cap,
                        vat_percent=row.vat_percent,
                        gateway_percent=row.gateway_percent,
                        fixed_fee=row.fixed_fee,
                        location=_row_location(row),
                    )
                )
            elif row.side == FeeSide.CONSUMER.value:
                config.consumer_terms.append(
                    ConsumerFeeTerms(
                        percentage=row.percentage,
                        max_cap=row.max_cap,
                        location=_row_location(row),
                    )
                )
        return configs
