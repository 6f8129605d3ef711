"""007: create the order aggregate tables

Revision ID: 007
Revises: 006
Create Date: 2026-10-01
"""
from typing import Sequence, Union
from alembic import op

revision: str = "007"
down_revision: Union[str, None] = "006"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE orders (
            id                      VARCHAR(64)     PRIMARY KEY,
            order_no                VARCHAR(32)     NOT NULL,
            buyer_id                VARCHAR(64)     NOT NULL,
            total_price             NUMERIC         NOT NULL,
            total_purchased         NUMERIC         NOT NULL,
            total_discount          NUMERIC         NOT NULL,
            total_customer_pay      NUMERIC         NOT NULL,
            total_platform_fee      NUMERIC         NOT NULL,
            total_cashback          NUMERIC         NOT NULL,
            payment_method          VARCHAR(20)     NOT NULL,
            payment_type            VARCHAR(20)     NOT NULL DEFAULT 'DIRECT',
            delivery_charge         NUMERIC,
            advance_amount          NUMERIC,
            due_amount              NUMERIC,
            transaction_id          VARCHAR(64),
            wallet_transaction_id   VARCHAR(64),
            rfq_quotes_user_id      BIGINT,
            created_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_orders_order_no           UNIQUE (order_no),
            CONSTRAINT ck_orders_payment_method     CHECK (payment_method IN ('GATEWAY', 'WALLET')),
            CONSTRAINT ck_orders_payment_type       CHECK (payment_type IN ('DIRECT', 'ADVANCE', 'EMI')),
            CONSTRAINT ck_orders_single_payment_ref CHECK (
                transaction_id IS NULL OR wallet_transaction_id IS NULL
            )
        );
    """)
    op.execute("CREATE INDEX idx_orders_buyer ON orders (buyer_id, created_at DESC);")
    op.execute("""
        CREATE TRIGGER trg_orders_updated_at
            BEFORE UPDATE ON orders
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)

    op.execute("""
        CREATE TABLE sub_orders (
            id                  VARCHAR(64)     PRIMARY KEY,
            order_id            VARCHAR(64)     NOT NULL REFERENCES orders(id) ON DELETE CASCADE,
            seller_order_no     VARCHAR(32)     NOT NULL,
            seller_id           VARCHAR(64)     NOT NULL,
            amount              NUMERIC         NOT NULL,
            purchased_amount    NUMERIC         NOT NULL,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_sub_orders_seller_order_no UNIQUE (seller_order_no)
        );
    """)
    op.execute("CREATE INDEX idx_sub_orders_order ON sub_orders (order_id);")
    op.execute("CREATE INDEX idx_sub_orders_seller ON sub_orders (seller_id, created_at DESC);")

    op.execute("""
        CREATE TABLE shipments (
            id              VARCHAR(64)     PRIMARY KEY,
            order_id        VARCHAR(64)     NOT NULL REFERENCES orders(id) ON DELETE CASCADE,
            seller_id       VARCHAR(64)     NOT NULL,
            shipping_type   VARCHAR(30),
            service_id      BIGINT,
            shipping_date   DATE,
            from_time       TIMESTAMPTZ,
            to_time         TIMESTAMPTZ,
            shipping_charge NUMERIC(18, 4)  NOT NULL DEFAULT 0,
            status          VARCHAR(20)     NOT NULL DEFAULT 'PENDING',
            receipt         VARCHAR(500),
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_shipments_status CHECK (status IN ('PENDING', 'SHIPPED'))
        );
    """)
    op.execute("CREATE INDEX idx_shipments_order ON shipments (order_id);")

    op.execute("""
        CREATE TABLE order_line_items (
            id              VARCHAR(64)     PRIMARY KEY,
            order_id        VARCHAR(64)     NOT NULL REFERENCES orders(id) ON DELETE CASCADE,
            sub_order_id    VARCHAR(64)     NOT NULL REFERENCES sub_orders(id) ON DELETE CASCADE,
            buyer_id        VARCHAR(64)     NOT NULL,
            seller_id       VARCHAR(64)     NOT NULL,
            line_type       VARCHAR(10)     NOT NULL,
            priced_entry_id BIGINT,
            product_id      BIGINT,
            service_id      BIGINT,
            quantity        INT             NOT NULL,
            sale_price      NUMERIC         NOT NULL,
            purchase_price  NUMERIC         NOT NULL,
            customer_pay    NUMERIC         NOT NULL,
            seller_receives NUMERIC         NOT NULL,
            platform_fee    NUMERIC         NOT NULL DEFAULT 0,
            cashback        NUMERIC         NOT NULL DEFAULT 0,
            breakdown       JSONB           NOT NULL DEFAULT '{}'::jsonb,
            object          JSONB,
            shipment_id     VARCHAR(64)     REFERENCES shipments(id),
            status          VARCHAR(20)     NOT NULL DEFAULT 'PLACED',
            cancel_reason   TEXT,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_order_line_items_type     CHECK (line_type IN ('PRODUCT', 'SERVICE')),
            CONSTRAINT ck_order_line_items_quantity CHECK (quantity >= 0),
            CONSTRAINT ck_order_line_items_status   CHECK (
                status IN ('PLACED', 'CONFIRMED', 'SHIPPED', 'DELIVERED', 'CANCELLED')
            )
        );
    """)
    op.execute("CREATE INDEX idx_order_line_items_order ON order_line_items (order_id);")
    op.execute("CREATE INDEX idx_order_line_items_seller ON order_line_items (seller_id, status);")
    op.execute("""
        CREATE INDEX idx_order_line_items_entry_active
        ON order_line_items (priced_entry_id, status)
        WHERE status IN ('PLACED', 'CONFIRMED', 'SHIPPED');
    """)
    op.execute("""
        CREATE TRIGGER trg_order_line_items_updated_at
            BEFORE UPDATE ON order_line_items
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)

    op.execute("""
        CREATE TABLE order_line_item_links (
            id                      VARCHAR(64)     PRIMARY KEY,
            line_item_id            VARCHAR(64)     NOT NULL REFERENCES order_line_items(id) ON DELETE CASCADE,
            related_line_item_id    VARCHAR(64)     REFERENCES order_line_items(id) ON DELETE CASCADE,
            product_id              BIGINT,
            service_id              BIGINT,
            link_type               VARCHAR(20)
        );
    """)

    op.execute("""
        CREATE TABLE order_addresses (
            id              VARCHAR(64)     PRIMARY KEY,
            order_id        VARCHAR(64)     NOT NULL REFERENCES orders(id) ON DELETE CASCADE,
            address_type    VARCHAR(10)     NOT NULL,
            first_name      VARCHAR(100),
            last_name       VARCHAR(100),
            email           VARCHAR(255),
            cc              VARCHAR(10),
            phone           VARCHAR(30),
            address         TEXT,
            city            VARCHAR(100),
            province        VARCHAR(100),
            country         VARCHAR(100),
            post_code       VARCHAR(20),
            country_id      INT,
            state_id        INT,
            city_id         INT,
            town            VARCHAR(100),
            CONSTRAINT ck_order_addresses_type CHECK (address_type IN ('BILLING', 'SHIPPING'))
        );
    """)
    op.execute("CREATE INDEX idx_order_addresses_order ON order_addresses (order_id);")

    op.execute("""
        CREATE TABLE order_emis (
            id                  VARCHAR(64)     PRIMARY KEY,
            order_id            VARCHAR(64)     NOT NULL REFERENCES orders(id) ON DELETE CASCADE,
            installment_count   INT             NOT NULL,
            installment_amount  NUMERIC(18, 4)  NOT NULL,
            start_date          DATE            NOT NULL,
            installments_paid   INT             NOT NULL DEFAULT 1,
            status              VARCHAR(20)     NOT NULL DEFAULT 'ONGOING',
            next_due_date       DATE            NOT NULL,
            CONSTRAINT ck_order_emis_count CHECK (installment_count > 0)
        );
    """)

    op.execute("""
        CREATE TABLE payment_transactions (
            id                  VARCHAR(64)     PRIMARY KEY,
            order_id            VARCHAR(64)     NOT NULL REFERENCES orders(id) ON DELETE CASCADE,
            buyer_id            VARCHAR(64)     NOT NULL,
            amount              NUMERIC         NOT NULL,
            transaction_type    VARCHAR(20)     NOT NULL,
            status              VARCHAR(20)     NOT NULL DEFAULT 'PENDING',
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_payment_transactions_status CHECK (status IN ('PENDING', 'SUCCESS', 'FAILED'))
        );
    """)
    op.execute("CREATE INDEX idx_payment_transactions_order ON payment_transactions (order_id);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS payment_transactions;")
    op.execute("DROP TABLE IF EXISTS order_emis;")
    op.execute("DROP TABLE IF EXISTS order_addresses;")
    op.execute("DROP TABLE IF EXISTS order_line_item_links;")
    op.execute("DROP TABLE IF EXISTS order_line_items;")
    op.execute("DROP TABLE IF EXISTS shipments;")
    op.execute("DROP TABLE IF EXISTS sub_orders;")
    op.execute("DROP TABLE IF EXISTS orders;")
