"""004: create services and cart tables (owned by the shopping-cart service)

Revision ID: 004
Revises: 003
Create Date: 2026-10-01
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE services (
            id                  BIGSERIAL       PRIMARY KEY,
            seller_id           VARCHAR(64)     NOT NULL,
            each_customer_time  NUMERIC(9, 2),
            confirm_type        VARCHAR(10)     NOT NULL DEFAULT 'MANUAL',
            status              VARCHAR(20)     NOT NULL DEFAULT 'ACTIVE',
            CONSTRAINT ck_services_confirm_type CHECK (confirm_type IN ('AUTO', 'MANUAL'))
        );
    """)
    op.execute("""
        CREATE TABLE service_features (
            id          BIGSERIAL       PRIMARY KEY,
            service_id  BIGINT          NOT NULL REFERENCES services(id),
            name        VARCHAR(255)    NOT NULL,
            cost        NUMERIC(18, 4)  NOT NULL,
            cost_type   VARCHAR(10)     NOT NULL,
            CONSTRAINT ck_service_features_cost_type CHECK (cost_type IN ('FLAT', 'HOURLY'))
        );
    """)
    op.execute("""
        CREATE TABLE carts (
            id              BIGSERIAL       PRIMARY KEY,
            user_id         VARCHAR(64)     NOT NULL,
            cart_type       VARCHAR(10)     NOT NULL,
            priced_entry_id BIGINT,
            product_id      BIGINT,
            service_id      BIGINT,
            quantity        INT             NOT NULL DEFAULT 1,
            object          JSONB,
            CONSTRAINT ck_carts_type CHECK (cart_type IN ('PRODUCT', 'SERVICE'))
        );
    """)
    op.execute("CREATE INDEX idx_carts_user ON carts (user_id, cart_type);")
    op.execute("""
        CREATE TABLE cart_service_features (
            id                  BIGSERIAL       PRIMARY KEY,
            cart_id             BIGINT          NOT NULL,
            service_feature_id  BIGINT          NOT NULL,
            quantity            INT             NOT NULL DEFAULT 1,
            booking_date_time   TIMESTAMPTZ
        );
    """)
    op.execute("CREATE INDEX idx_cart_service_features_cart ON cart_service_features (cart_id);")
    op.execute("""
        CREATE TABLE cart_product_services (
            id              BIGSERIAL       PRIMARY KEY,
            cart_id         BIGINT          NOT NULL,
            related_cart_id BIGINT,
            product_id      BIGINT,
            service_id      BIGINT,
            cart_type       VARCHAR(10)
        );
    """)
    op.execute("CREATE INDEX idx_cart_product_services_cart ON cart_product_services (cart_id);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS cart_product_services;")
    op.execute("DROP TABLE IF EXISTS cart_service_features;")
    op.execute("DROP TABLE IF EXISTS carts;")
    op.execute("DROP TABLE IF EXISTS service_features;")
    op.execute("DROP TABLE IF EXISTS services;")
