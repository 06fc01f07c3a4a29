import uuid

import redis
from redis.exceptions import RedisError

from storefront.utils.retry import redis_retry
from storefront.utils.settings import (
    REDIS_URL,
    WEBHOOK_EVENT_TTL_SECONDS,
    WEBHOOK_PROCESSING_TTL_SECONDS,
)
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

DONE = "done"

# compare and delete in one step, only the claimer may release
RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""

# compare and set: only the claimer may mark the event done
COMPLETE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('SET', KEYS[1], ARGV[2], 'EX', ARGV[3])
else
    return 0
end
"""


class EventLedger:
    """
    Marks webhook events as seen so redeliveries are skipped early.
    -claim: SET NX with a short processing TTL, value is a per-claim owner token
    -complete: owner swaps its token for "done" with the long TTL
    -release: owner drops the claim when processing failed, so the retry runs
    A claim abandoned by a dead worker expires after the processing TTL.
    The unique order constraint stays the real guard; when redis is down
    every event is processed.
    """

    def __init__(
        self,
        url: str | None = None,
        ttl: int = WEBHOOK_EVENT_TTL_SECONDS,
        processing_ttl: int = WEBHOOK_PROCESSING_TTL_SECONDS,
        client=None,
    ):
        self.redis = client or redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
            socket_timeout=2,
            socket_connect_timeout=2,
        )
        self.ttl = ttl
        self.processing_ttl = processing_ttl

    @staticmethod
    def _key(event_id: str) -> str:
        return f"stripe:event:{event_id}"

    @redis_retry()
    def _set(self, event_id: str, owner: str) -> bool:
        return bool(self.redis.set(name=self._key(event_id), value=owner, nx=True, ex=self.processing_ttl))

    @redis_retry()
    def _complete(self, event_id: str, owner: str) -> bool:
        return bool(self.redis.eval(COMPLETE_LUA, 1, self._key(event_id), owner, DONE, self.ttl))

    @redis_retry()
    def _release(self, event_id: str, owner: str) -> bool:
        return bool(self.redis.eval(RELEASE_LUA, 1, self._key(event_id), owner))

    def claim(self, event_id: str) -> str | None:
        """Owner token when this caller should process the event, None for a duplicate."""
        owner = uuid.uuid4().hex
        try:
            claimed = self._set(event_id, owner)
        except RedisError as e:
            logger.warning(f"Event ledger unavailable, processing {event_id} anyway: {e}")
            return owner
        if not claimed:
            logger.info(f"Event {event_id} already claimed")
            return None
        return owner

    def complete(self, event_id: str, owner: str) -> None:
        try:
            if not self._complete(event_id, owner):
                logger.warning(f"Claim on {event_id} lapsed before processing finished")
        except RedisError as e:
            logger.warning(f"Failed to mark event {event_id} done: {e}")

    def release(self, event_id: str, owner: str) -> None:
        try:
            self._release(event_id, owner)
        except RedisError as e:
            logger.warning(f"Failed to release event {event_id}: {e}")
