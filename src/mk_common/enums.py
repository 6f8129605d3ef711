"""Global enums — must match DB CHECK constraints exactly."""

from enum import Enum


class TradeRole(str, Enum):
    BUYER = "BUYER"
    COMPANY = "COMPANY"
    FREELANCER = "FREELANCER"
    MEMBER = "MEMBER"


class BuyerType(str, Enum):
    """Fee/discount audience a buyer falls into, derived from TradeRole."""
    VENDOR = "VENDOR"
    CONSUMER = "CONSUMER"


class AudienceType(str, Enum):
    """Who a PricedEntry's discount configuration targets."""
    CONSUMER = "CONSUMER"
    VENDORS = "VENDORS"
    EVERYONE = "EVERYONE"


class DiscountType(str, Enum):
    FLAT = "FLAT"
    PERCENTAGE = "PERCENTAGE"


class SellType(str, Enum):
    NORMALSELL = "NORMALSELL"
    BUYGROUP = "BUYGROUP"


class FeeType(str, Enum):
    UNIFORM = "UNIFORM"
    LOCATION = "LOCATION"


class FeeSide(str, Enum):
    VENDOR = "VENDOR"
    CONSUMER = "CONSUMER"


class LineItemType(str, Enum):
    PRODUCT = "PRODUCT"
    SERVICE = "SERVICE"


class ServiceCostType(str, Enum):
    FLAT = "FLAT"
    HOURLY = "HOURLY"


class ServiceConfirmType(str, Enum):
    AUTO = "AUTO"
    MANUAL = "MANUAL"


class LineItemStatus(str, Enum):
    PLACED = "PLACED"
    CONFIRMED = "CONFIRMED"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class ShipmentStatus(str, Enum):
    PENDING = "PENDING"
    SHIPPED = "SHIPPED"


class PaymentMethod(str, Enum):
    GATEWAY = "GATEWAY"
    WALLET = "WALLET"


class PaymentType(str, Enum):
    DIRECT = "DIRECT"
    ADVANCE = "ADVANCE"
    EMI = "EMI"


class AddressType(str, Enum):
    BILLING = "BILLING"
    SHIPPING = "SHIPPING"


class GatewayTransactionStatus(str, Enum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class WalletStatus(str, Enum):
    ACTIVE = "ACTIVE"
    FROZEN = "FROZEN"
    CLOSED = "CLOSED"


class WalletTransactionType(str, Enum):
    PAYMENT = "PAYMENT"
    REFUND = "REFUND"


class RecordStatus(str, Enum):
    """Soft status shared by catalog-owned rows (products, fee schedules, quotes)."""
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    DELETE = "DELETE"
