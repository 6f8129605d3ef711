"""Repository Protocol for mk_wallet."""

from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_wallet.domain.models import Wallet, WalletTransaction


class WalletLedgerProtocol(Protocol):
    async def get_or_create_wallet(
        self, db: AsyncSession, user_id: str, user_account_id: str | None
    ) -> Wallet: ...

    async def debit(self, db: AsyncSession, wallet_id: str, amount: Decimal) -> Decimal | None:
        """Conditional decrement. Returns the new balance, or None if refused."""
        ...

    async def credit(self, db: AsyncSession, wallet_id: str, amount: Decimal) -> Decimal: ...

    async def insert_transaction(
        self, db: AsyncSession, txn: WalletTransaction, metadata: dict | None = None
    ) -> WalletTransaction: ...

    async def insert_refund_once(
        self, db: AsyncSession, txn: WalletTransaction, metadata: dict | None = None
    ) -> bool:
        """Insert a REFUND row unless one already exists for txn.reference_id."""
        ...

    async def set_balances(
        self, db: AsyncSession, txn_id: str, balance_before: Decimal, balance_after: Decimal
    ) -> None: ...

    async def get_transaction(self, db: AsyncSession, txn_id: str) -> WalletTransaction | None: ...

    async def has_refund(self, db: AsyncSession, reference_id: str) -> bool: ...
