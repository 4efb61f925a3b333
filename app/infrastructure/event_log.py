import json
import logging
from typing import Dict, List, Optional

import redis
from redis.exceptions import RedisError

from app.core.config import settings
from app.domain.schemas import LifecycleEvent
from app.interfaces.INotificationDispatcher import INotificationDispatcher

logger = logging.getLogger(__name__)

MAX_EVENTS_PER_ORDER = 100


class RedisEventLog(INotificationDispatcher):
    """
    Keeps the lifecycle history of each order in a Redis list.
    Falls back to process memory when Redis is not configured or goes away.
    """

    def __init__(self, redis_url: Optional[str] = None, ttl: int = settings.EVENT_TTL_SECONDS, client=None):
        self.ttl = ttl
        self.redis = client
        self.redis_available = False
        self._memory_store: Dict[str, List[str]] = {}

        # 1. Primary store (Redis)
        if self.redis is None and redis_url:
            try:
                self.redis = redis.from_url(
                    redis_url,
                    decode_responses=True,
                    socket_connect_timeout=1  # fail fast if Redis is down
                )
            except (RedisError, ValueError) as e:
                logger.warning(f"EventLog: invalid Redis URL ({e}). Using RAM fallback.")
                self.redis = None

        if self.redis is not None:
            try:
                self.redis.ping()
                self.redis_available = True
                logger.info("EventLog: connected to Redis.")
            except RedisError as e:
                logger.warning(f"EventLog: Redis unreachable ({e}). Using RAM fallback.")

    def publish(self, event: LifecycleEvent) -> None:
        key = self._key(event.order_id)
        payload = event.model_dump_json()

        if self.redis_available:
            try:
                pipe = self.redis.pipeline()
                pipe.rpush(key, payload)
                pipe.ltrim(key, -MAX_EVENTS_PER_ORDER, -1)
                pipe.expire(key, self.ttl)
                pipe.execute()
                return
            except RedisError as e:
                self._handle_redis_error(e)

        events = self._memory_store.setdefault(key, [])
        events.append(payload)
        del events[:-MAX_EVENTS_PER_ORDER]

    def history(self, order_id: int) -> List[LifecycleEvent]:
        """Events for one order, oldest first."""
        key = self._key(order_id)
        raw: List[str] = []

        if self.redis_available:
            try:
                raw = self.redis.lrange(key, 0, -1)
            except RedisError as e:
                self._handle_redis_error(e)
                raw = []

        if not raw:
            raw = self._memory_store.get(key, [])
        return [LifecycleEvent.model_validate(json.loads(item)) for item in raw]

    @staticmethod
    def _key(order_id: int) -> str:
        return f"order:{order_id}:events"

    def _handle_redis_error(self, e):
        """Log error and stop using Redis until the process restarts."""
        logger.error(f"Redis Error: {e}. Switching to RAM mode.")
        self.redis_available = False
