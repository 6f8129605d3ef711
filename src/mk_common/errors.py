"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth/User
  2xxx: Wallet
  3xxx: Pricing
  4xxx: Order
  9xxx: System
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Auth/User ---

class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Invalid or expired token", 401)


class BuyerNotFoundError(AppError):
    def __init__(self, user_id: str) -> None:
        super().__init__(1010, f"User not found: {user_id}", 404)


class BuyerAddressNotFoundError(AppError):
    def __init__(self, address_id: int) -> None:
        super().__init__(1011, f"Buyer address not found: {address_id}", 404)


# --- 2xxx: Wallet ---

class InsufficientWalletBalanceError(AppError):
    def __init__(self, required: object, available: object) -> None:
        super().__init__(
            2001,
            f"Insufficient wallet balance: required {required}, available {available}",
            422,
        )


class WalletNotActiveError(AppError):
    def __init__(self, user_id: str) -> None:
        super().__init__(2002, f"Wallet is not active for user {user_id}", 422)


class WalletPaymentFailedError(AppError):
    def __init__(self, reason: str) -> None:
        super().__init__(2003, f"Wallet payment failed: {reason}", 402)


# --- 4xxx: Order ---

class SellerShippingMismatchError(AppError):
    def __init__(self, seller_ids: list[str]) -> None:
        self.seller_ids = seller_ids
        super().__init__(
            4001,
            "Shipping sellerId does not match any product seller: " + ", ".join(seller_ids),
            422,
        )


class EmptyOrderError(AppError):
    def __init__(self, reasons: list[str] | None = None) -> None:
        self.reasons = reasons or []
        message = "No purchasable items in the order"
        if self.reasons:
            message += ": " + "; ".join(self.reasons)
        super().__init__(4002, message, 422)


class OrderNumberExhaustedError(AppError):
    def __init__(self) -> None:
        super().__init__(4003, "Could not allocate a unique order number", 500)


class OrderNotFoundError(AppError):
    def __init__(self, order_id: str) -> None:
        super().__init__(4004, f"Order not found: {order_id}", 404)


class OrderLineItemNotFoundError(AppError):
    def __init__(self, line_item_id: str) -> None:
        super().__init__(4005, f"Order line item not found: {line_item_id}", 404)


class InvalidStatusTransitionError(AppError):
    def __init__(self, current: str, target: str) -> None:
        super().__init__(
            4006, f"Cannot move line item from {current} to {target}", 422
        )


class NotOrderParticipantError(AppError):
    def __init__(self) -> None:
        super().__init__(
            4007, "You do not have permission to update this order item", 403
        )


class QuoteNotFoundError(AppError):
    def __init__(self, quote_user_id: int) -> None:
        super().__init__(4008, f"RFQ quote not found: {quote_user_id}", 404)


class ShipmentNotFoundError(AppError):
    def __init__(self, shipment_id: str) -> None:
        super().__init__(4009, f"Shipment not found: {shipment_id}", 404)


class UnknownStatusError(AppError):
    def __init__(self, value: str) -> None:
        super().__init__(4010, f"Unknown order item status: {value}", 422)


class QuoteNotActiveError(AppError):
    def __init__(self, quote_user_id: int, status: str) -> None:
        super().__init__(4011, f"RFQ quote {quote_user_id} is not active: {status}", 422)


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
