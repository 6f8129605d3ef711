"""005: create request-for-quote tables (owned by the RFQ service)

Revision ID: 005
Revises: 004
Create Date: 2026-10-01
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE rfq_quotes_users (
            id              BIGSERIAL       PRIMARY KEY,
            rfq_quote_id    BIGINT          NOT NULL,
            buyer_id        VARCHAR(64)     NOT NULL,
            seller_id       VARCHAR(64)     NOT NULL,
            offer_price     NUMERIC(18, 4),
            status          VARCHAR(20)     NOT NULL DEFAULT 'ACTIVE'
        );
    """)
    op.execute("""
        CREATE TABLE rfq_quote_products (
            id              BIGSERIAL       PRIMARY KEY,
            rfq_quote_id    BIGINT          NOT NULL,
            product_id      BIGINT          NOT NULL,
            quantity        INT             NOT NULL DEFAULT 1,
            offer_price     NUMERIC(18, 4)  NOT NULL DEFAULT 0
        );
    """)
    op.execute("CREATE INDEX idx_rfq_quote_products_quote ON rfq_quote_products (rfq_quote_id);")
    op.execute("""
        CREATE TABLE rfq_suggested_products (
            id                      BIGSERIAL       PRIMARY KEY,
            rfq_quotes_user_id      BIGINT          NOT NULL REFERENCES rfq_quotes_users(id),
            suggested_product_id    BIGINT          NOT NULL,
            vendor_id               VARCHAR(64)     NOT NULL,
            quantity                INT             NOT NULL DEFAULT 1,
            offer_price             NUMERIC(18, 4)  NOT NULL DEFAULT 0,
            is_selected_by_buyer    BOOLEAN         NOT NULL DEFAULT FALSE,
            status                  VARCHAR(20)     NOT NULL DEFAULT 'ACTIVE'
        );
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS rfq_suggested_products;")
    op.execute("DROP TABLE IF EXISTS rfq_quote_products;")
    op.execute("DROP TABLE IF EXISTS rfq_quotes_users;")
