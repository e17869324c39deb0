import uuid

import redis

from campus_market.utils.retry import lock_retry
from campus_market.utils.settings import REDIS_URL, CHECKOUT_LOCK_TTL_SECONDS
from campus_market.utils.logging import get_logger

logger = get_logger(__name__)

# compare-and-delete; a lock that expired and was re-taken is left alone
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""


class LockService:
    """
    Per-buyer checkout lock.
    -acquire: SET NX EX with a random token
    -release: only by the holder of the token (Lua, atomic)
    """

    def __init__(self, url: str | None = None, ttl: int = CHECKOUT_LOCK_TTL_SECONDS):
        self.redis = redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )
        self.ttl = ttl

    @staticmethod
    def _key(buyer_id: int) -> str:
        return f"checkout:{buyer_id}:lock"

    @lock_retry()
    def acquire_checkout_lock(self, buyer_id: int) -> str | None:
        """Returns the lock token, or None when another checkout holds the lock."""
        key = self._key(buyer_id)
        token = uuid.uuid4().hex
        logger.info(f"Acquire lock {key}")
        # SET checkout:7:lock <token> NX EX 30 -- expires on its own if we crash
        acquired = self.redis.set(name=key, value=token, nx=True, ex=self.ttl)
        return token if acquired else None

    @lock_retry()
    def release_checkout_lock(self, buyer_id: int, token: str) -> bool:
        key = self._key(buyer_id)
        logger.info(f"Release lock {key}")
        res = self.redis.eval(_RELEASE_LUA, 1, key, token)
        return bool(res)
