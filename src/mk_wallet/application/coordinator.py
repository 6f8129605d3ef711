"""PaymentCompensationCoordinator — stored-balance debits and refunds for orders.

Debit (pay_for_order) runs inside a SAVEPOINT on the caller's order
transaction. A failed debit leaves nothing behind in the savepoint and is
returned as Err; the Order Orchestrator then rolls back the whole unit of
work, so the just-created order row disappears with it. There is no
partially-paid order state.

Refund (refund_order_line) is the mirror operation, called after a line
item is cancelled. At most one REFUND transaction exists per order id: a
cheap probe skips the common case, and the partial unique index makes the
insert itself the atomic guard under concurrent cancellations.
"""

import logging
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_common.enums import WalletStatus, WalletTransactionType
from src.mk_common.errors import (
    AppError,
    InsufficientWalletBalanceError,
    WalletNotActiveError,
    WalletPaymentFailedError,
)
from src.mk_common.id_generator import generate_id
from src.mk_common.money import ZERO
from src.mk_common.result import Err, Ok, Result
from src.mk_wallet.domain.models import WalletTransaction
from src.mk_wallet.domain.repository import WalletLedgerProtocol
from src.mk_wallet.infrastructure.persistence import WalletLedger

logger = logging.getLogger(__name__)

_REFERENCE_TYPE_ORDER = "ORDER"


class PaymentCompensationCoordinator:
    def __init__(self, ledger: WalletLedgerProtocol | None = None) -> None:
        self._ledger: WalletLedgerProtocol = ledger or WalletLedger()

    async def pay_for_order(
        self,
        db: AsyncSession,
        buyer_id: str,
        amount: Decimal,
        order_id: str,
        user_account_id: str | None = None,
    ) -> Result[WalletTransaction, AppError]:
        """Debit the buyer's wallet for an order. Never commits."""
        try:
            async with db.begin_nested():
                wallet = await self._ledger.get_or_create_wallet(db, buyer_id, user_account_id)
                if wallet.status != WalletStatus.ACTIVE.value:
                    raise WalletNotActiveError(buyer_id)
                balance_after = await self._ledger.debit(db, wallet.id, amount)
                if balance_after is None:
                    raise InsufficientWalletBalanceError(amount, wallet.balance)
                txn = await self._ledger.insert_transaction(
                    db,
                    WalletTransaction(
                        id=generate_id(),
                        wallet_id=wallet.id,
                        transaction_type=WalletTransactionType.PAYMENT.value,
                        amount=amount,
                        balance_before=balance_after + amount,
                        balance_after=balance_after,
                        reference_type=_REFERENCE_TYPE_ORDER,
                        reference_id=order_id,
                        description=f"Payment for order #{order_id}",
                    ),
                    metadata={"orderId": order_id, "paymentType": "WALLET"},
                )
        except AppError as e:
            logger.info("Wallet debit refused for order %s: %s", order_id, e.message)
            return Err(e)
        except Exception as e:
            logger.exception("Wallet debit failed for order %s", order_id)
            return Err(WalletPaymentFailedError(str(e)))

        logger.info(
            "Wallet debit %s for order %s: amount=%s balance_after=%s",
            txn.id, order_id, amount, txn.balance_after,
        )
        return Ok(txn)

    async def refund_order_line(
        self,
        db: AsyncSession,
        order_id: str,
        payment_transaction_id: str,
        amount: Decimal,
        line_item_id: str | None = None,
    ) -> WalletTransaction | None:
        """Credit a cancelled line back to the wallet that paid for the order.

        Returns the refund transaction, or None when no refund was issued
        (already refunded, zero amount, or original payment missing).
        Never commits.
        """
        if amount <= ZERO:
            return None
        if await self._ledger.has_refund(db, order_id):
            logger.info("Refund for order %s already issued, skipping", order_id)
            return None

        payment = await self._ledger.get_transaction(db, payment_transaction_id)
        if payment is None:
            logger.warning(
                "Order %s references missing wallet transaction %s, no refund",
                order_id, payment_transaction_id,
            )
            return None

        txn = WalletTransaction(
            id=generate_id(),
            wallet_id=payment.wallet_id,
            transaction_type=WalletTransactionType.REFUND.value,
            amount=amount,
            balance_before=ZERO,
            balance_after=ZERO,
            reference_type=_REFERENCE_TYPE_ORDER,
            reference_id=order_id,
            description=f"Refund for order #{order_id}",
        )
        inserted = await self._ledger.insert_refund_once(
            db, txn, metadata={"orderId": order_id, "lineItemId": line_item_id,
                               "refundType": "ORDER_REFUND"},
        )
        if not inserted:
            logger.info("Concurrent refund for order %s won the race, skipping", order_id)
            return None

        balance_after = await self._ledger.credit(db, payment.wallet_id, amount)
        txn.balance_before = balance_after - amount
        txn.balance_after = balance_after
        await self._ledger.set_balances(db, txn.id, txn.balance_before, txn.balance_after)
        logger.info(
            "Refunded %s to wallet %s for order %s (txn %s)",
            amount, payment.wallet_id, order_id, txn.id,
        )
        return txn
