"""RedisNotifier — publishes notification events to a Redis pub/sub channel.

Delivery (in-app feed, push, email) is owned by the notification service
subscribed to the channel.
"""

import json

from config.settings import settings
from src.mk_common.redis_client import get_redis
from src.mk_notification.domain.events import NotificationEvent


class RedisNotifier:
    def __init__(self, channel: str | None = None) -> None:
        self._channel = channel or settings.NOTIFICATION_CHANNEL

    async def notify(self, event: NotificationEvent) -> None:
        redis = await get_redis()
        await redis.publish(self._channel, json.dumps(event.to_payload(), default=str))
