"""003: create products, priced_entries and fee configuration tables

Revision ID: 003
Revises: 002
Create Date: 2026-10-01
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE products (
            id              BIGSERIAL       PRIMARY KEY,
            name            VARCHAR(255)    NOT NULL,
            fee_category_id INT,
            status          VARCHAR(20)     NOT NULL DEFAULT 'ACTIVE',
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_products_status CHECK (status IN ('ACTIVE', 'INACTIVE', 'DELETE'))
        );
    """)
    op.execute("""
        CREATE TABLE priced_entries (
            id                      BIGSERIAL       PRIMARY KEY,
            product_id              BIGINT          NOT NULL REFERENCES products(id),
            seller_id               VARCHAR(64)     NOT NULL,
            product_price           NUMERIC(18, 4)  NOT NULL,
            offer_price             NUMERIC(18, 4)  NOT NULL,
            stock                   INT             NOT NULL DEFAULT 0,
            audience_type           VARCHAR(20)     NOT NULL,
            vendor_discount_type    VARCHAR(20),
            vendor_discount         NUMERIC(18, 4)  NOT NULL DEFAULT 0,
            consumer_discount_type  VARCHAR(20),
            consumer_discount       NUMERIC(18, 4)  NOT NULL DEFAULT 0,
            sell_type               VARCHAR(20)     NOT NULL DEFAULT 'NORMALSELL',
            status                  VARCHAR(20)     NOT NULL DEFAULT 'ACTIVE',
            country_id              INT,
            state_id                INT,
            city_id                 INT,
            date_close              DATE,
            end_time                VARCHAR(5),
            created_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_priced_entries_stock_gte_0 CHECK (stock >= 0),
            CONSTRAINT ck_priced_entries_audience CHECK (
                audience_type IN ('CONSUMER', 'VENDORS', 'EVERYONE')
            ),
            CONSTRAINT ck_priced_entries_sell_type CHECK (sell_type IN ('NORMALSELL', 'BUYGROUP'))
        );
    """)
    op.execute("""
        CREATE INDEX idx_priced_entries_group_buy
        ON priced_entries (date_close)
        WHERE sell_type = 'BUYGROUP' AND status = 'ACTIVE';
    """)
    op.execute("""
        CREATE TRIGGER trg_priced_entries_updated_at
            BEFORE UPDATE ON priced_entries
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute("""
        CREATE TABLE fee_configurations (
            id              BIGSERIAL       PRIMARY KEY,
            fee_category_id INT             NOT NULL,
            fee_type        VARCHAR(20)     NOT NULL,
            status          VARCHAR(20)     NOT NULL DEFAULT 'ACTIVE',
            CONSTRAINT ck_fee_configurations_type CHECK (fee_type IN ('UNIFORM', 'LOCATION'))
        );
    """)
    op.execute("""
        CREATE UNIQUE INDEX uq_fee_configurations_active_category
            ON fee_configurations (fee_category_id) WHERE status = 'ACTIVE';
    """)
    op.execute("""
        CREATE TABLE fee_schedules (
            id                      BIGSERIAL       PRIMARY KEY,
            fee_configuration_id    BIGINT          NOT NULL REFERENCES fee_configurations(id),
            side                    VARCHAR(10)     NOT NULL,
            percentage              NUMERIC(9, 4)   NOT NULL DEFAULT 0,
            max_cap                 NUMERIC(18, 4)  NOT NULL DEFAULT 0,
            vat_percent             NUMERIC(9, 4)   NOT NULL DEFAULT 0,
            gateway_percent         NUMERIC(9, 4)   NOT NULL DEFAULT 0,
            fixed_fee               NUMERIC(18, 4)  NOT NULL DEFAULT 0,
            country_id              INT,
            state_id                INT,
            city_id                 INT,
            status                  VARCHAR(20)     NOT NULL DEFAULT 'ACTIVE',
            CONSTRAINT ck_fee_schedules_side CHECK (side IN ('VENDOR', 'CONSUMER'))
        );
    """)
    op.execute(
        "CREATE INDEX idx_fee_schedules_config ON fee_schedules (fee_configuration_id, side);"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS fee_schedules;")
    op.execute("DROP TABLE IF EXISTS fee_configurations;")
    op.execute("DROP TABLE IF EXISTS priced_entries;")
    op.execute("DROP TABLE IF EXISTS products;")
