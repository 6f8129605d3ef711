"""Tests for PaymentCompensationCoordinator with a mocked wallet ledger."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

from src.mk_common.errors import WalletNotActiveError, WalletPaymentFailedError
from src.mk_common.result import Err, Ok
from src.mk_wallet.application.coordinator import PaymentCompensationCoordinator
from src.mk_wallet.domain.models import Wallet, WalletTransaction


def _db() -> AsyncMock:
    db = AsyncMock()
    db.begin_nested = MagicMock(return_value=AsyncMock())
    return db


def _wallet(status: str = "ACTIVE", balance: str = "100") -> Wallet:
    return Wallet(id="w-1", user_id="buyer-1", user_account_id=None,
                  balance=Decimal(balance), status=status)


def _ledger(wallet: Wallet) -> AsyncMock:
    ledger = AsyncMock()
    ledger.get_or_create_wallet.return_value = wallet
    ledger.insert_transaction.side_effect = lambda db, txn, metadata=None: txn
    return ledger


class TestPayForOrder:
    async def test_success_records_balances(self) -> None:
        ledger = _ledger(_wallet())
        ledger.debit.return_value = Decimal("60")

        result = await PaymentCompensationCoordinator(ledger).pay_for_order(
            _db(), "buyer-1", Decimal("40"), "order-1"
        )

        assert isinstance(result, Ok)
        txn = result.value
        assert txn.transaction_type == "PAYMENT"
        assert txn.balance_before == Decimal("100")
        assert txn.balance_after == Decimal("60")
        assert txn.reference_id == "order-1"
        ledger.debit.assert_awaited_once()

    async def test_insufficient_balance_is_err(self) -> None:
        ledger = _ledger(_wallet(balance="10"))
        ledger.debit.return_value = None

        result = await PaymentCompensationCoordinator(ledger).pay_for_order(
            _db(), "buyer-1", Decimal("40"), "order-1"
        )

        assert isinstance(result, Err)
        assert result.error.code == 2001
        ledger.insert_transaction.assert_not_awaited()

    async def test_inactive_wallet_is_err(self) -> None:
        ledger = _ledger(_wallet(status="FROZEN"))

        result = await PaymentCompensationCoordinator(ledger).pay_for_order(
            _db(), "buyer-1", Decimal("40"), "order-1"
        )

        assert isinstance(result, Err)
        assert isinstance(result.error, WalletNotActiveError)
        ledger.debit.assert_not_awaited()

    async def test_unexpected_failure_is_wrapped(self) -> None:
        ledger = _ledger(_wallet())
        ledger.debit.side_effect = RuntimeError("connection reset")

        result = await PaymentCompensationCoordinator(ledger).pay_for_order(
            _db(), "buyer-1", Decimal("40"), "order-1"
        )

        assert isinstance(result, Err)
        assert isinstance(result.error, WalletPaymentFailedError)
        assert "connection reset" in result.error.message


class TestRefundOrderLine:
    def _payment(self) -> WalletTransaction:
        return WalletTransaction(
            id="txn-1", wallet_id="w-1", transaction_type="PAYMENT",
            amount=Decimal("40"), balance_before=Decimal("100"), balance_after=Decimal("60"),
        )

    async def test_refund_credits_wallet(self) -> None:
        ledger = AsyncMock()
        ledger.has_refund.return_value = False
        ledger.get_transaction.return_value = self._payment()
        ledger.insert_refund_once.return_value = True
        ledger.credit.return_value = Decimal("85")

        refund = await PaymentCompensationCoordinator(ledger).refund_order_line(
            AsyncMock(), "order-1", "txn-1", Decimal("25"), "line-1"
        )

        assert refund is not None
        assert refund.transaction_type == "REFUND"
        assert refund.balance_before == Decimal("60")
        assert refund.balance_after == Decimal("85")
        ledger.credit.assert_awaited_once()
        ledger.set_balances.assert_awaited_once()

    async def test_already_refunded_skips(self) -> None:
        ledger = AsyncMock()
        ledger.has_refund.return_value = True

        refund = await PaymentCompensationCoordinator(ledger).refund_order_line(
            AsyncMock(), "order-1", "txn-1", Decimal("25")
        )

        assert refund is None
        ledger.credit.assert_not_awaited()

    async def test_lost_race_skips_credit(self) -> None:
        ledger = AsyncMock()
        ledger.has_refund.return_value = False
        ledger.get_transaction.return_value = self._payment()
        ledger.insert_refund_once.return_value = False

        refund = await PaymentCompensationCoordinator(ledger).refund_order_line(
            AsyncMock(), "order-1", "txn-1", Decimal("25")
        )

        assert refund is None
        ledger.credit.assert_not_awaited()

    async def test_zero_amount_skips(self) -> None:
        ledger = AsyncMock()

        refund = await PaymentCompensationCoordinator(ledger).refund_order_line(
            AsyncMock(), "order-1", "txn-1", Decimal("0")
        )

        assert refund is None
        ledger.has_refund.assert_not_awaited()

    async def test_missing_payment_skips(self) -> None:
        ledger = AsyncMock()
        ledger.has_refund.return_value = False
        ledger.get_transaction.return_value = None

        refund = await PaymentCompensationCoordinator(ledger).refund_order_line(
            AsyncMock(), "order-1", "txn-404", Decimal("25")
        )

        assert refund is None
        ledger.insert_refund_once.assert_not_awaited()
