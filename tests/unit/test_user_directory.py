"""Tests for UserDirectory with a mocked AsyncSession."""

from unittest.mock import AsyncMock, MagicMock

from src.mk_gateway.user.db_models import UserAddressORM, UserORM
from src.mk_gateway.user.repository import UserDirectory


def _db_returning(*objs: object) -> AsyncMock:
    db = AsyncMock()
    results = []
    for obj in objs:
        result = MagicMock()
        result.scalar_one_or_none.return_value = obj
        results.append(result)
    db.execute.side_effect = results
    return db


def _user(user_id: str, trade_role: str = "BUYER", added_by: str | None = None) -> UserORM:
    return UserORM(
        id=user_id, email=f"{user_id}@example.com", first_name="Sam", last_name=None,
        trade_role=trade_role, added_by=added_by, status="ACTIVE",
    )


class TestGetBuyer:
    async def test_maps_profile(self) -> None:
        buyer = await UserDirectory().get_buyer(_db_returning(_user("u-1")), "u-1")

        assert buyer is not None
        assert buyer.trade_role == "BUYER"
        assert buyer.display_name == "Sam"

    async def test_unknown(self) -> None:
        assert await UserDirectory().get_buyer(_db_returning(None), "u-404") is None


class TestGetAddress:
    async def test_location(self) -> None:
        row = UserAddressORM(
            id=3, user_id="u-1", address="1 Main St", country_id=1, state_id=2, city_id=3
        )

        address = await UserDirectory().get_address(_db_returning(row), "u-1", 3)

        assert address.location.matches(address.location)
        assert address.location.city_id == 3


class TestOwningAccount:
    async def test_member_maps_to_owner(self) -> None:
        db = _db_returning(_user("m-1", "MEMBER", added_by="acct-1"))
        assert await UserDirectory().resolve_owning_account(db, "m-1") == "acct-1"

    async def test_company_maps_to_itself(self) -> None:
        db = _db_returning(_user("acct-1", "COMPANY"))
        assert await UserDirectory().resolve_owning_account(db, "acct-1") == "acct-1"

    async def test_unknown_user_maps_to_itself(self) -> None:
        assert await UserDirectory().resolve_owning_account(_db_returning(None), "x") == "x"
