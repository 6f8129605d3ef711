"""Notification events emitted after order transactions commit."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Protocol

from src.mk_common.datetime_utils import utc_now


@dataclass(frozen=True)
class NotificationEvent:
    user_id: str
    kind: str                       # e.g. ORDER_PLACED, ORDER_RECEIVED, ORDER_STATUS
    title: str
    message: str
    data: dict[str, Any] = field(default_factory=dict)
    link: str | None = None
    created_at: datetime = field(default_factory=utc_now)

    def to_payload(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["created_at"] = self.created_at.isoformat()
        return payload


class Notifier(Protocol):
    async def notify(self, event: NotificationEvent) -> None: ...
