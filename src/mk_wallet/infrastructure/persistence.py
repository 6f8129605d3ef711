"""WalletLedger — concrete implementation of WalletLedgerProtocol.

Balance mutations are atomic PostgreSQL UPDATE ... RETURNING. A debit that
returns no row means the wallet is inactive or the balance is insufficient.

Refund idempotency is enforced by the partial unique index
uq_wallet_txn_refund_reference (reference_id WHERE transaction_type =
'REFUND'): the guarded insert returns no row when a refund already exists.

Transaction ownership: the CALLER commits or rolls back.
"""

import json
from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_common.enums import WalletStatus
from src.mk_common.id_generator import generate_id
from src.mk_wallet.domain.models import Wallet, WalletTransaction

_WALLET_COLUMNS = "id, user_id, user_account_id, balance, status, updated_at"

_INSERT_WALLET_SQL = text("""
    INSERT INTO wallets (id, user_id, user_account_id, balance, status)
    VALUES (:id, :user_id, :user_account_id, 0, :status)
    ON CONFLICT (user_id, (COALESCE(user_account_id, ''))) DO NOTHING
""")

_GET_WALLET_BY_OWNER_SQL = text(f"""
    SELECT {_WALLET_COLUMNS}
    FROM wallets
    WHERE user_id = :user_id
      AND COALESCE(user_account_id, '') = COALESCE(:user_account_id, '')
""")

_DEBIT_SQL = text("""
    UPDATE wallets
    SET balance = balance - :amount,
        updated_at = NOW()
    WHERE id = :id AND status = :status AND balance >= :amount
    RETURNING balance
""")

_CREDIT_SQL = text("""
    UPDATE wallets
    SET balance = balance + :amount,
        updated_at = NOW()
    WHERE id = :id
    RETURNING balance
""")

_TXN_COLUMNS = """
    id, wallet_id, transaction_type, amount, balance_before, balance_after,
    reference_type, reference_id, description, created_at
"""

_INSERT_TXN_SQL = text(f"""
    INSERT INTO wallet_transactions
        (id, wallet_id, transaction_type, amount, balance_before, balance_after,
         reference_type, reference_id, description, status, metadata)
    VALUES
        (:id, :wallet_id, :transaction_type, :amount, :balance_before, :balance_after,
         :reference_type, :reference_id, :description, 'COMPLETED', CAST(:metadata AS JSONB))
    RETURNING {_TXN_COLUMNS}
""")

_INSERT_REFUND_ONCE_SQL = text("""
    INSERT INTO wallet_transactions
        (id, wallet_id, transaction_type, amount, balance_before, balance_after,
         reference_type, reference_id, description, status, metadata)
    VALUES
        (:id, :wallet_id, :transaction_type, :amount, :balance_before, :balance_after,
         :reference_type, :reference_id, :description, 'COMPLETED', CAST(:metadata AS JSONB))
    ON CONFLICT (reference_id) WHERE transaction_type = 'REFUND' DO NOTHING
    RETURNING id
""")

_SET_BALANCES_SQL = text("""
    UPDATE wallet_transactions
    SET balance_before = :balance_before,
        balance_after = :balance_after
    WHERE id = :id
""")

_GET_TXN_SQL = text(f"SELECT {_TXN_COLUMNS} FROM wallet_transactions WHERE id = :id")

_HAS_REFUND_SQL = text("""
    SELECT 1 FROM wallet_transactions
    WHERE reference_id = :reference_id AND transaction_type = 'REFUND'
    LIMIT 1
""")


def _row_to_wallet(row: object) -> Wallet:
    return Wallet(
        id=row.id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        user_account_id=row.user_account_id,  # type: ignore[attr-defined]
        balance=row.balance,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_txn(row: object) -> WalletTransaction:
    return WalletTransaction(
        id=row.id,  # type: ignore[attr-defined]
        wallet_id=row.wallet_id,  # type: ignore[attr-defined]
        transaction_type=row.transaction_type,  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        balance_before=row.balance_before,  # type: ignore[attr-defined]
        balance_after=row.balance_after,  # type: ignore[attr-defined]
        reference_type=row.reference_type,  # type: ignore[attr-defined]
        reference_id=row.reference_id,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


def _txn_params(txn: WalletTransaction, metadata: dict | None) -> dict:
    return {
        "id": txn.id,
        "wallet_id": txn.wallet_id,
        "transaction_type": txn.transaction_type,
        "amount": txn.amount,
        "balance_before": txn.balance_before,
        "balance_after": txn.balance_after,
        "reference_type": txn.reference_type,
        "reference_id": txn.reference_id,
        "description": txn.description,
        "metadata": json.dumps(metadata or {}),
    }


class WalletLedger:
    """Concrete ledger — all balance operations atomic at the SQL level."""

    async def get_or_create_wallet(
        self, db: AsyncSession, user_id: str, user_account_id: str | None
    ) -> Wallet:
        params = {"user_id": user_id, "user_account_id": user_account_id}
        result = await db.execute(_GET_WALLET_BY_OWNER_SQL, params)
        row = result.fetchone()
        if row is not None:
            return _row_to_wallet(row)
        await db.execute(
            _INSERT_WALLET_SQL,
            {**params, "id": generate_id(), "status": WalletStatus.ACTIVE.value},
        )
        result = await db.execute(_GET_WALLET_BY_OWNER_SQL, params)
        return _row_to_wallet(result.fetchone())

    async def debit(self, db: AsyncSession, wallet_id: str, amount: Decimal) -> Decimal | None:
        result = await db.execute(
            _DEBIT_SQL,
            {"id": wallet_id, "amount": amount, "status": WalletStatus.ACTIVE.value},
        )
        row = result.fetchone()
        return None if row is None else row.balance

    async def credit(self, db: AsyncSession, wallet_id: str, amount: Decimal) -> Decimal:
        result = await db.execute(_CREDIT_SQL, {"id": wallet_id, "amount": amount})
        return result.fetchone().balance

    async def insert_transaction(
        self, db: AsyncSession, txn: WalletTransaction, metadata: dict | None = None
    ) -> WalletTransaction:
        result = await db.execute(_INSERT_TXN_SQL, _txn_params(txn, metadata))
        return _row_to_txn(result.fetchone())

    async def insert_refund_once(
        self, db: AsyncSession, txn: WalletTransaction, metadata: dict | None = None
    ) -> bool:
        result = await db.execute(_INSERT_REFUND_ONCE_SQL, _txn_params(txn, metadata))
        return result.fetchone() is not None

    async def set_balances(
        self, db: AsyncSession, txn_id: str, balance_before: Decimal, balance_after: Decimal
    ) -> None:
        await db.execute(
            _SET_BALANCES_SQL,
            {"id": txn_id, "balance_before": balance_before, "balance_after": balance_after},
        )

    async def get_transaction(self, db: AsyncSession, txn_id: str) -> WalletTransaction | None:
        result = await db.execute(_GET_TXN_SQL, {"id": txn_id})
        row = result.fetchone()
        return _row_to_txn(row) if row is not None else None

    async def has_refund(self, db: AsyncSession, reference_id: str) -> bool:
        result = await db.execute(_HAS_REFUND_SQL, {"reference_id": reference_id})
        return result.fetchone() is not None
