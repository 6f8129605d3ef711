"""002: create users and user_addresses (owned by the account service)

Revision ID: 002
Revises: 001
Create Date: 2026-10-01
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE users (
            id              VARCHAR(64)     PRIMARY KEY,
            email           VARCHAR(255),
            first_name      VARCHAR(100),
            last_name       VARCHAR(100),
            trade_role      VARCHAR(20),
            added_by        VARCHAR(64),
            status          VARCHAR(20)     NOT NULL DEFAULT 'ACTIVE',
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_users_trade_role CHECK (
                trade_role IS NULL OR trade_role IN ('BUYER', 'COMPANY', 'FREELANCER', 'MEMBER')
            )
        );
    """)
    op.execute("""
        CREATE TABLE user_addresses (
            id              BIGSERIAL       PRIMARY KEY,
            user_id         VARCHAR(64)     NOT NULL REFERENCES users(id),
            address         TEXT,
            country_id      INT,
            state_id        INT,
            city_id         INT
        );
    """)
    op.execute("CREATE INDEX idx_user_addresses_user ON user_addresses (user_id);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS user_addresses;")
    op.execute("DROP TABLE IF EXISTS users;")
