# cardshop/services/change_feed.py
import json
from typing import Any, Dict, List, Optional

import redis
from pydantic import ValidationError
from redis.exceptions import RedisError

from cardshop.domain.schemas import ChangeEvent
from cardshop.utils.retry import redis_retry
from cardshop.utils.settings import REDIS_URL
from cardshop.utils.logging import get_logger

logger = get_logger(__name__)

CHANNEL_PREFIX = "realtime"


def channel_for(table: str) -> str:
    return f"{CHANNEL_PREFIX}:{table}"


class Subscription:
    """
    One table's change feed, optionally narrowed to rows matching `filters`
    (column equality, e.g. {"user_id": "..."}).
    Messages are drained with poll(); nothing is delivered in the background.
    """

    def __init__(self, pubsub, table: str, filters: Optional[Dict[str, Any]] = None):
        self.pubsub = pubsub
        self.table = table
        self.filters = dict(filters or {})
        self.closed = False

    def _matches(self, event: ChangeEvent) -> bool:
        return all(event.row.get(k) == v for k, v in self.filters.items())

    def poll(self) -> List[ChangeEvent]:
        if self.closed:
            return []

        events = []
        while True:
            try:
                message = self.pubsub.get_message(ignore_subscribe_messages=True, timeout=0)
            except RedisError as e:
                # delivery failures are dropped, the mirror just goes stale
                logger.warning(f"Feed {self.table} delivery failed: {e}")
                break
            if message is None:
                break
            if message.get("type") != "message":
                continue

            try:
                event = ChangeEvent.model_validate_json(message["data"])
            except (ValidationError, ValueError, TypeError) as e:
                logger.warning(f"Dropping malformed event on {self.table}: {e}")
                continue

            if event.table == self.table and self._matches(event):
                events.append(event)
        return events

    def close(self):
        if self.closed:
            return
        self.closed = True
        try:
            self.pubsub.unsubscribe()
            self.pubsub.close()
        except RedisError as e:
            logger.warning(f"Error unsubscribing from {self.table}: {e}")


class ChangeFeed:
    """
    -publikacja zmian wierszy na kanal tabeli (realtime:<table>)
    -subskrypcja kanalu z opcjonalnym filtrem wlasciciela
    """

    def __init__(self, url: str | None = None, client=None):
        self.redis = client or redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )

    @redis_retry()
    def _publish(self, channel: str, payload: str) -> int:
        return self.redis.publish(channel, payload)

    def publish(self, event: ChangeEvent) -> int:
        """Publish an event; returns the number of receivers, 0 if it was lost."""
        try:
            return self._publish(channel_for(event.table), event.model_dump_json())
        except RedisError as e:
            logger.warning(f"Change event {event.op} on {event.table} not published: {e}")
            return 0

    def subscribe(self, table: str, filters: Optional[Dict[str, Any]] = None) -> Subscription:
        pubsub = self.redis.pubsub(ignore_subscribe_messages=True)
        pubsub.subscribe(channel_for(table))
        logger.info(f"Subscribed to {channel_for(table)} filters={json.dumps(filters or {})}")
        return Subscription(pubsub, table, filters)
