"""UserDirectory — read access to users / user_addresses.

The account service owns these tables; this service never writes them.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_common.enums import TradeRole
from src.mk_gateway.user.db_models import UserAddressORM, UserORM
from src.mk_gateway.user.models import BuyerAddress, BuyerProfile
from src.mk_pricing.domain.models import Location


def _to_buyer(user: UserORM) -> BuyerProfile:
    return BuyerProfile(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        trade_role=user.trade_role,
        added_by=user.added_by,
        status=user.status,
    )


class UserDirectory:
    async def get_buyer(self, db: AsyncSession, user_id: str) -> BuyerProfile | None:
        result = await db.execute(select(UserORM).where(UserORM.id == user_id))
        user = result.scalar_one_or_none()
        return _to_buyer(user) if user is not None else None

    async def get_address(
        self, db: AsyncSession, user_id: str, address_id: int
    ) -> BuyerAddress | None:
        """Address lookup scoped to its owner; another user's address is not found."""
        result = await db.execute(
            select(UserAddressORM).where(
                UserAddressORM.id == address_id, UserAddressORM.user_id == user_id
            )
        )
        address = result.scalar_one_or_none()
        if address is None:
            return None
        return BuyerAddress(
            id=address.id,
            user_id=address.user_id,
            address=address.address,
            location=Location(
                country_id=address.country_id,
                state_id=address.state_id,
                city_id=address.city_id,
            ),
        )

    async def resolve_owning_account(self, db: AsyncSession, user_id: str) -> str:
        """Map a team member to the account that owns them; others map to themselves."""
        user = await self.get_buyer(db, user_id)
        if user is not None and user.trade_role == TradeRole.MEMBER.value and user.added_by:
            return user.added_by
        return user_id
