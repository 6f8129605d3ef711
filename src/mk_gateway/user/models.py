"""Read-side views of buyer accounts and addresses owned by the account service."""

from dataclasses import dataclass

from src.mk_pricing.domain.models import Location


@dataclass
class BuyerProfile:
    id: str
    email: str | None
    first_name: str | None
    last_name: str | None
    trade_role: str | None
    added_by: str | None = None     # owning account when trade_role == MEMBER
    status: str = "ACTIVE"

    @property
    def display_name(self) -> str:
        if not self.first_name:
            return "A customer"
        return f"{self.first_name} {self.last_name or ''}".strip()


@dataclass
class BuyerAddress:
    id: int
    user_id: str
    address: str | None
    location: Location
