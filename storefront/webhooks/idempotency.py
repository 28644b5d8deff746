"""Webhook idempotency: one fulfillment per checkout session.

Contract:
- claim() is an atomic check-and-mark; True means "first time, go ahead"
- Claims expire after a TTL (default 24h), well past Stripe's retry window
- release() gives a claim back when fulfillment could not be applied
- Redis errors propagate; the webhook then fails with 500 and Stripe retries
- Key pattern: webhook:fulfilled:{key}
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Protocol

import redis

logger = logging.getLogger(__name__)

_DEDUP_TTL_SECONDS = 86400  # 24 hours

_KEY_PREFIX = "webhook:fulfilled"


class EventLedger(Protocol):
    def claim(self, key: str) -> bool: ...

    def release(self, key: str) -> None: ...


class InMemoryEventLedger:
    """Process-local ledger. Lost on restart."""

    def __init__(self, ttl_seconds: int = _DEDUP_TTL_SECONDS):
        self._ttl_seconds = ttl_seconds
        self._seen: dict[str, float] = {}  # key -> expiry timestamp
        self._lock = threading.Lock()

    def claim(self, key: str) -> bool:
        now = time.time()
        with self._lock:
            self._purge(now)
            if key in self._seen:
                logger.info("Duplicate fulfillment rejected: %s", key)
                return False
            self._seen[key] = now + self._ttl_seconds
            return True

    def release(self, key: str) -> None:
        with self._lock:
            self._seen.pop(key, None)

    def _purge(self, now: float) -> None:
        expired = [k for k, exp in self._seen.items() if exp <= now]
        for k in expired:
            del self._seen[k]


class RedisEventLedger:
    """Redis-backed ledger shared across processes (SET NX EX)."""

    def __init__(self, client: redis.Redis, ttl_seconds: int = _DEDUP_TTL_SECONDS):
        self._redis = client
        self._ttl_seconds = ttl_seconds

    @classmethod
    def from_url(cls, redis_url: str, ttl_seconds: int = _DEDUP_TTL_SECONDS) -> RedisEventLedger:
        return cls(redis.from_url(redis_url, decode_responses=True), ttl_seconds=ttl_seconds)

    def claim(self, key: str) -> bool:
        # SET NX returns True if the key was set (new), None if it already existed
        was_set = self._redis.set(f"{_KEY_PREFIX}:{key}", "1", nx=True, ex=self._ttl_seconds)
        if not was_set:
            logger.info("Duplicate fulfillment rejected: %s", key)
            return False
        return True

    def release(self, key: str) -> None:
        self._redis.delete(f"{_KEY_PREFIX}:{key}")


def build_ledger(redis_url: str = "") -> EventLedger:
    if redis_url:
        logger.info("Webhook dedup ledger: redis")
        return RedisEventLedger.from_url(redis_url)
    logger.info("Webhook dedup ledger: in-memory")
    return InMemoryEventLedger()
