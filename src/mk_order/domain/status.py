"""Line-item status state machine.

    PLACED → CONFIRMED → SHIPPED → DELIVERED
       └──────────┴──────────┴──→ CANCELLED

DELIVERED and CANCELLED are terminal. Moves are one step forward only;
CANCELLED is reachable from every non-terminal state.
"""

from src.mk_common.enums import LineItemStatus
from src.mk_common.errors import InvalidStatusTransitionError, UnknownStatusError

_NEXT: dict[LineItemStatus, LineItemStatus] = {
    LineItemStatus.PLACED: LineItemStatus.CONFIRMED,
    LineItemStatus.CONFIRMED: LineItemStatus.SHIPPED,
    LineItemStatus.SHIPPED: LineItemStatus.DELIVERED,
}

TERMINAL_STATUSES = frozenset({LineItemStatus.DELIVERED, LineItemStatus.CANCELLED})

# Statuses counted as open demand by the group-buy reconciler
ACTIVE_STATUSES = (
    LineItemStatus.PLACED,
    LineItemStatus.CONFIRMED,
    LineItemStatus.SHIPPED,
)

# Seller dashboard vocabulary
SELLER_STATUS_ALIASES: dict[str, LineItemStatus] = {
    "pending": LineItemStatus.PLACED,
    "processing": LineItemStatus.CONFIRMED,
    "shipped": LineItemStatus.SHIPPED,
    "delivered": LineItemStatus.DELIVERED,
    "cancelled": LineItemStatus.CANCELLED,
    "refunded": LineItemStatus.CANCELLED,
}


def can_transition(current: str, target: str) -> bool:
    try:
        src = LineItemStatus(current)
        dst = LineItemStatus(target)
    except ValueError:
        return False
    if src in TERMINAL_STATUSES:
        return False
    if dst == LineItemStatus.CANCELLED:
        return True
    return _NEXT.get(src) == dst


def ensure_transition(current: str, target: str) -> None:
    if not can_transition(current, target):
        raise InvalidStatusTransitionError(current, target)


def normalize_seller_status(value: str) -> LineItemStatus:
    """Accept either a dashboard alias or a canonical status name."""
    alias = SELLER_STATUS_ALIASES.get(value.strip().lower())
    if alias is not None:
        return alias
    try:
        return LineItemStatus(value.strip().upper())
    except ValueError:
        raise UnknownStatusError(value) from None
