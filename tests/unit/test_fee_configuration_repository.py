# tests/unit/test_fee_configuration_repository.py
"""Unit tests for FeeConfigurationRepository using MagicMock AsyncSession."""
from decimal import Decimal
from typing import Any
from unittest.mock import AsyncMock, MagicMock

from src.mk_pricing.infrastructure.persistence import FeeConfigurationRepository


def _make_row(**kwargs: Any) -> MagicMock:
    row = MagicMock()
    row.config_id = kwargs.get("config_id", 5)
    row.fee_category_id = kwargs.get("fee_category_id", 7)
    row.fee_type = kwargs.get("fee_type", "UNIFORM")
    row.side = kwargs.get("side", "VENDOR")
    row.percentage = kwargs.get("percentage", Decimal("3"))
    row.max_cap = kwargs.get("max_cap", Decimal("50"))
    row.vat_percent = Decimal("0")
    row.gateway_percent = Decimal("0")
    row.fixed_fee = Decimal("0")
    row.country_id = None
    row.state_id = None
    row.city_id = None
    return row


def _db(rows: list[MagicMock]) -> AsyncMock:
    db = AsyncMock()
    result = MagicMock()
    result.fetchall.return_value = rows
    db.execute.return_value = result
    return db


class TestListByCategories:
    async def test_one_active_configuration_per_category(self) -> None:
        db = _db([])

        await FeeConfigurationRepository().list_by_categories(db, [7, 7, 8])

        sql = str(db.execute.call_args[0][0])
        assert "DISTINCT ON (fee_category_id)" in sql
        params = db.execute.call_args[0][1]
        assert sorted(params["category_ids"]) == [7, 8]
        assert params["status"] == "ACTIVE"

    async def test_rows_from_a_second_configuration_are_ignored(self) -> None:
        db = _db([
            _make_row(config_id=5, side="VENDOR"),
            _make_row(config_id=5, side="CONSUMER", percentage=Decimal("2")),
            _make_row(config_id=4, side="VENDOR", percentage=Decimal("90")),
        ])

        configs = await FeeConfigurationRepository().list_by_categories(db, [7])

        config = configs[7]
        assert config.id == 5
        assert [t.percentage for t in config.vendor_terms] == [Decimal("3")]
        assert [t.percentage for t in config.consumer_terms] == [Decimal("2")]

    async def test_configuration_without_schedules(self) -> None:
        db = _db([_make_row(side=None)])

        configs = await FeeConfigurationRepository().list_by_categories(db, [7])

        assert configs[7].vendor_terms == []
        assert configs[7].consumer_terms == []

    async def test_no_categories_skips_query(self) -> None:
        db = AsyncMock()

        assert await FeeConfigurationRepository().list_by_categories(db, [None]) == {}
        db.execute.assert_not_awaited()
