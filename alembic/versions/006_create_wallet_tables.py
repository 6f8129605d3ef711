"""006: create wallets and wallet_transactions

Revision ID: 006
Revises: 005
Create Date: 2026-10-01
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE wallets (
            id              VARCHAR(64)     PRIMARY KEY,
            user_id         VARCHAR(64)     NOT NULL,
            user_account_id VARCHAR(64),
            balance         NUMERIC(18, 4)  NOT NULL DEFAULT 0,
            status          VARCHAR(20)     NOT NULL DEFAULT 'ACTIVE',
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_wallets_balance_gte_0 CHECK (balance >= 0),
            CONSTRAINT ck_wallets_status CHECK (status IN ('ACTIVE', 'FROZEN', 'CLOSED'))
        );
    """)
    # One wallet per (user, sub-account); NULL sub-account counts as one value
    op.execute("""
        CREATE UNIQUE INDEX uq_wallets_owner
        ON wallets (user_id, (COALESCE(user_account_id, '')));
    """)
    op.execute("""
        CREATE TRIGGER trg_wallets_updated_at
            BEFORE UPDATE ON wallets
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute("""
        CREATE TABLE wallet_transactions (
            id                  VARCHAR(64)     PRIMARY KEY,
            wallet_id           VARCHAR(64)     NOT NULL REFERENCES wallets(id),
            transaction_type    VARCHAR(20)     NOT NULL,
            amount              NUMERIC(18, 4)  NOT NULL,
            balance_before      NUMERIC(18, 4)  NOT NULL,
            balance_after       NUMERIC(18, 4)  NOT NULL,
            reference_type      VARCHAR(20),
            reference_id        VARCHAR(64),
            description         VARCHAR(500),
            status              VARCHAR(20)     NOT NULL DEFAULT 'COMPLETED',
            metadata            JSONB           NOT NULL DEFAULT '{}'::jsonb,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_wallet_transactions_type CHECK (transaction_type IN ('PAYMENT', 'REFUND')),
            CONSTRAINT ck_wallet_transactions_amount_gte_0 CHECK (amount >= 0)
        );
    """)
    op.execute("""
        CREATE INDEX idx_wallet_transactions_wallet
        ON wallet_transactions (wallet_id, created_at DESC);
    """)
    # At most one refund per order id
    op.execute("""
        CREATE UNIQUE INDEX uq_wallet_txn_refund_reference
        ON wallet_transactions (reference_id)
        WHERE transaction_type = 'REFUND';
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS wallet_transactions;")
    op.execute("DROP TABLE IF EXISTS wallets;")
