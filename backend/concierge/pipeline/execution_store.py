"""
Execution Record Store - Redis-backed storage for dispatch execution records.

Stores ExecutionRecord objects in Redis with automatic expiration.
Falls back to in-memory storage if Redis is unavailable or not configured.
The in-memory store honours the same TTL: expired records are purged on
every save and are never returned by load.
"""

import asyncio
import json
import logging
import time
from typing import List, Optional, Tuple

import redis
import redis.asyncio as aioredis

from concierge.config import EXECUTION_RECORD_TTL, REDIS_URL
from concierge.pipeline.execution_record import ExecutionRecord

logger = logging.getLogger(__name__)


class ExecutionRecordNotFound(Exception):
    """Raised when an execution record is not found."""
    pass


class ExecutionStore:
    """Redis-backed record store with automatic expiration.

    Pass redis_url=None to use the in-memory store only.
    """

    def __init__(self, redis_url: Optional[str] = REDIS_URL, ttl: int = EXECUTION_RECORD_TTL):
        self.ttl = ttl
        self._redis: Optional[aioredis.Redis] = None
        self._redis_url = redis_url
        # run_id -> (record, monotonic expiry)
        self._fallback_store: dict[str, Tuple[ExecutionRecord, float]] = {}
        self._use_fallback = redis_url is None
        self._connect_lock = asyncio.Lock()

    async def _get_redis(self) -> Optional[aioredis.Redis]:
        """Lazy initialization of Redis connection, attempted once."""
        if self._use_fallback:
            return None
        if self._redis is not None:
            return self._redis

        async with self._connect_lock:
            # Another dispatch may have connected (or given up) while we waited
            if self._use_fallback or self._redis is not None:
                return self._redis

            client = aioredis.from_url(
                self._redis_url,
                decode_responses=True,
                socket_connect_timeout=5
            )
            try:
                # Test connection
                await client.ping()
            except (redis.ConnectionError, redis.TimeoutError) as e:
                logger.warning(f"Redis unavailable, using in-memory fallback: {e}")
                self._use_fallback = True
                return None
            self._redis = client
            logger.info(f"Connected to Redis at {self._redis_url}")
        return self._redis

    def _key(self, run_id: str) -> str:
        """Generate Redis key for a run_id."""
        return f"dispatch:run:{run_id}"

    # -------------------------------------------------------------------------
    # in-memory fallback
    # -------------------------------------------------------------------------

    def _remember(self, record: ExecutionRecord) -> None:
        now = time.monotonic()
        expired = [run_id for run_id, (_, expires_at) in self._fallback_store.items() if expires_at <= now]
        for run_id in expired:
            del self._fallback_store[run_id]
        self._fallback_store[record.run_id] = (record, now + self.ttl)

    def _recall(self, run_id: str) -> ExecutionRecord:
        entry = self._fallback_store.get(run_id)
        if entry is None:
            raise ExecutionRecordNotFound(run_id)
        record, expires_at = entry
        if expires_at <= time.monotonic():
            del self._fallback_store[run_id]
            raise ExecutionRecordNotFound(run_id)
        return record

    def memory_records(self) -> List[ExecutionRecord]:
        """Unexpired records held in memory, in insertion order."""
        now = time.monotonic()
        return [record for record, expires_at in self._fallback_store.values() if expires_at > now]

    # -------------------------------------------------------------------------
    # public interface
    # -------------------------------------------------------------------------

    async def save(self, record: ExecutionRecord) -> None:
        """Save (or overwrite) an execution record with TTL."""
        r = await self._get_redis()

        if r is None:
            self._remember(record)
            logger.debug(f"Saved record {record.run_id} to in-memory store (status={record.status.value})")
            return

        try:
            await r.setex(self._key(record.run_id), self.ttl, json.dumps(record.to_dict()))
            logger.debug(f"Saved record {record.run_id} to Redis with TTL {self.ttl}s (status={record.status.value})")
        except redis.RedisError as e:
            logger.error(f"Redis save failed, using fallback: {e}")
            self._remember(record)

    async def load(self, run_id: str) -> ExecutionRecord:
        """Load an execution record. Raises ExecutionRecordNotFound."""
        r = await self._get_redis()

        if r is None:
            return self._recall(run_id)

        try:
            data = await r.get(self._key(run_id))
            if data is None:
                logger.info(f"Record not found in Redis: {run_id}")
                raise ExecutionRecordNotFound(run_id)
            return ExecutionRecord.from_dict(json.loads(data))
        except redis.RedisError as e:
            logger.error(f"Redis load failed, checking fallback: {e}")
            return self._recall(run_id)

    async def delete(self, run_id: str) -> None:
        """Delete an execution record."""
        r = await self._get_redis()

        if r is None:
            self._fallback_store.pop(run_id, None)
            return

        try:
            await r.delete(self._key(run_id))
            logger.info(f"Deleted record {run_id}")
        except redis.RedisError as e:
            logger.error(f"Redis delete failed: {e}")
            self._fallback_store.pop(run_id, None)


# Singleton instance
_store: Optional[ExecutionStore] = None


def get_execution_store() -> ExecutionStore:
    """Process-wide store, created on first use."""
    global _store
    if _store is None:
        _store = ExecutionStore()
    return _store
