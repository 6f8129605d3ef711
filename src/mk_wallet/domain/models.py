"""Domain models for mk_wallet — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass
class Wallet:
    id: str
    user_id: str
    user_account_id: str | None
    balance: Decimal
    status: str
    updated_at: datetime | None = None


@dataclass
class WalletTransaction:
    id: str
    wallet_id: str
    transaction_type: str       # WalletTransactionType value
    amount: Decimal
    balance_before: Decimal
    balance_after: Decimal
    reference_type: str | None = None
    reference_id: str | None = None
    description: str | None = None
    created_at: datetime | None = None
