"""
Paste store backends: Redis with an in-memory fallback for development.
Handles paste creation, the atomic consume-on-read transaction, stats,
deletion, listing and cleanup of dead pastes.
"""
import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Protocol

from redis import Redis
from redis.exceptions import ConnectionError, RedisError, WatchError

from pastestore.config import Settings, settings
from pastestore.errors import DuplicateKey, StoreError
from pastestore.policy import Availability, availability, check_limits, expiry_for, is_consumable
from pastestore.records import Paste, PasteMeta, PasteRecord

logger = logging.getLogger(__name__)

META_FIELDS = ("created_at", "expires_at", "remaining_views")

# Paste ids hash onto a fixed set of locks, so the lock table never grows.
LOCK_STRIPES = 64


class PasteStore(Protocol):
    """Operations every backend provides."""

    using_fallback: bool

    def create(
        self,
        paste_id: str,
        content: str,
        now_ms: int,
        ttl_seconds: Optional[int] = None,
        max_views: Optional[int] = None,
    ) -> PasteRecord: ...

    def consume(self, paste_id: str, now_ms: int) -> Optional[Paste]: ...

    def stats(self, paste_id: str) -> Optional[PasteMeta]: ...

    def delete(self, paste_id: str) -> bool: ...

    def list_all(self, limit: Optional[int] = None) -> List[PasteMeta]: ...

    def purge(self, now_ms: int) -> int: ...

    def ping(self) -> bool: ...

    def close(self) -> None: ...


def _new_record(paste_id, content, now_ms, ttl_seconds, max_views) -> PasteRecord:
    check_limits(ttl_seconds, max_views)
    return PasteRecord(
        id=paste_id,
        content=content,
        created_at=now_ms,
        expires_at=expiry_for(now_ms, ttl_seconds),
        remaining_views=max_views,
    )


def _newest_first(metas: List[PasteMeta], limit: Optional[int]) -> List[PasteMeta]:
    # Ties on created_at fall back to the id, matching a Redis ZREVRANGE.
    ordered = sorted(metas, key=lambda m: (m.created_at, m.id), reverse=True)
    return ordered if limit is None else ordered[:max(limit, 0)]


class _Transaction:
    """Working copy of one record inside a MemoryPasteStore transaction."""

    def __init__(self, record: Optional[PasteRecord]):
        self.record = record
        self.dirty = False

    def write(self, record: Optional[PasteRecord]) -> None:
        self.record = record
        self.dirty = True


class MemoryPasteStore:
    """In-process store for development/testing (when Redis unavailable)."""

    def __init__(self, using_fallback: bool = False, stripes: int = LOCK_STRIPES):
        self.using_fallback = using_fallback
        self._records: Dict[str, PasteRecord] = {}
        self._locks: List[threading.Lock] = [threading.Lock() for _ in range(stripes)]
        self._registry_lock = threading.Lock()

    def _lock_for(self, paste_id: str) -> threading.Lock:
        return self._locks[hash(paste_id) % len(self._locks)]

    @contextmanager
    def _transaction(self, paste_id: str) -> Iterator[_Transaction]:
        """
        Hold the id's lock stripe around a working copy of the record.

        Changes made through the transaction are committed only when the block
        exits normally; an exception discards them.
        """
        with self._lock_for(paste_id):
            with self._registry_lock:
                txn = _Transaction(self._records.get(paste_id))
            yield txn
            if txn.dirty:
                with self._registry_lock:
                    if txn.record is None:
                        self._records.pop(paste_id, None)
                    else:
                        self._records[paste_id] = txn.record

    def create(self, paste_id, content, now_ms, ttl_seconds=None, max_views=None) -> PasteRecord:
        record = _new_record(paste_id, content, now_ms, ttl_seconds, max_views)
        with self._transaction(paste_id) as txn:
            if txn.record is not None:
                raise DuplicateKey(paste_id)
            txn.write(record)
        logger.info(f"Paste {paste_id} saved successfully")
        return record

    def consume(self, paste_id: str, now_ms: int) -> Optional[Paste]:
        with self._transaction(paste_id) as txn:
            state = availability(txn.record, now_ms)
            if state is not Availability.AVAILABLE:
                logger.warning(f"Paste {paste_id} unavailable: {state.value}")
                return None
            if txn.record.remaining_views is not None:
                txn.write(txn.record.spend_view())
            return txn.record.served()

    def stats(self, paste_id: str) -> Optional[PasteMeta]:
        with self._registry_lock:
            record = self._records.get(paste_id)
        return record.meta() if record else None

    def delete(self, paste_id: str) -> bool:
        with self._transaction(paste_id) as txn:
            existed = txn.record is not None
            if existed:
                txn.write(None)
        if existed:
            logger.info(f"Paste {paste_id} deleted")
        return existed

    def list_all(self, limit: Optional[int] = None) -> List[PasteMeta]:
        with self._registry_lock:
            records = list(self._records.values())
        return _newest_first([r.meta() for r in records], limit)

    def purge(self, now_ms: int) -> int:
        with self._registry_lock:
            paste_ids = list(self._records)
        purged = 0
        for paste_id in paste_ids:
            with self._transaction(paste_id) as txn:
                if txn.record is not None and not is_consumable(txn.record, now_ms):
                    txn.write(None)
                    purged += 1
        logger.info(f"Purged {purged} dead pastes")
        return purged

    def ping(self) -> bool:
        """Health check."""
        return True

    def close(self) -> None:
        """Nothing to release."""


class RedisPasteStore:
    """
    Paste records as Redis hashes, indexed by creation time in a sorted set.

    Consuming reads run as optimistic transactions: the paste key is WATCHed,
    the record is read and evaluated, and the decrement is queued in MULTI.
    If another client touches the key first, EXEC fails with WatchError and
    the whole read-evaluate-decrement cycle is attempted again.
    """

    using_fallback = False

    def __init__(self, redis: Redis, key_prefix: str = "", max_retries: int = 50):
        self.redis = redis
        self.key_prefix = key_prefix
        self.max_retries = max_retries
        self._index = f"{key_prefix}pastes:by_created"

    def _key(self, paste_id: str) -> str:
        return f"{self.key_prefix}paste:{paste_id}"

    @staticmethod
    def _encode(record: PasteRecord) -> Dict[str, str]:
        mapping = {
            "content": record.content,
            "created_at": str(record.created_at),
        }
        # Absent limits are left out of the hash entirely.
        if record.expires_at is not None:
            mapping["expires_at"] = str(record.expires_at)
        if record.remaining_views is not None:
            mapping["remaining_views"] = str(record.remaining_views)
        return mapping

    @staticmethod
    def _decode(paste_id: str, data: Dict[str, str]) -> Optional[PasteRecord]:
        if not data:
            return None
        return PasteRecord(
            id=paste_id,
            content=data["content"],
            created_at=int(data["created_at"]),
            expires_at=_optional_int(data.get("expires_at")),
            remaining_views=_optional_int(data.get("remaining_views")),
        )

    @staticmethod
    def _decode_meta(paste_id: str, fields: List[Optional[str]], length: int) -> Optional[PasteMeta]:
        created_at, expires_at, remaining_views = fields
        if created_at is None:
            return None
        return PasteMeta(
            id=paste_id,
            created_at=int(created_at),
            expires_at=_optional_int(expires_at),
            remaining_views=_optional_int(remaining_views),
            content_length=int(length),
        )

    def create(self, paste_id, content, now_ms, ttl_seconds=None, max_views=None) -> PasteRecord:
        record = _new_record(paste_id, content, now_ms, ttl_seconds, max_views)
        key = self._key(paste_id)
        try:
            with self.redis.pipeline() as pipe:
                pipe.watch(key)
                if pipe.exists(key):
                    raise DuplicateKey(paste_id)
                pipe.multi()
                pipe.hset(key, mapping=self._encode(record))
                pipe.zadd(self._index, {paste_id: record.created_at})
                pipe.execute()
        except WatchError:
            # The key appeared between EXISTS and EXEC.
            raise DuplicateKey(paste_id)
        except RedisError as e:
            logger.error(f"Error saving paste {paste_id}: {e}")
            raise StoreError(f"Failed to save paste {paste_id}") from e

        logger.info(f"Paste {paste_id} saved successfully")
        return record

    def consume(self, paste_id: str, now_ms: int) -> Optional[Paste]:
        key = self._key(paste_id)
        for attempt in range(1, self.max_retries + 1):
            try:
                with self.redis.pipeline() as pipe:
                    pipe.watch(key)
                    record = self._decode(paste_id, pipe.hgetall(key))
                    state = availability(record, now_ms)
                    if state is not Availability.AVAILABLE:
                        logger.warning(f"Paste {paste_id} unavailable: {state.value}")
                        return None
                    if record.remaining_views is None:
                        return record.served()

                    pipe.multi()
                    pipe.hincrby(key, "remaining_views", -1)
                    pipe.execute()
                    return record.spend_view().served()
            except WatchError:
                logger.debug(f"Concurrent update on paste {paste_id}, retry {attempt}")
            except RedisError as e:
                logger.error(f"Error consuming paste {paste_id}: {e}")
                raise StoreError(f"Failed to consume paste {paste_id}") from e

        logger.error(f"Gave up consuming paste {paste_id} after {self.max_retries} attempts")
        raise StoreError(f"Too much contention on paste {paste_id}")

    def _fetch_meta(self, paste_ids: List[str]) -> List[PasteMeta]:
        with self.redis.pipeline() as pipe:
            for paste_id in paste_ids:
                key = self._key(paste_id)
                pipe.hmget(key, META_FIELDS)
                pipe.hstrlen(key, "content")
            results = pipe.execute()

        metas = []
        for i, paste_id in enumerate(paste_ids):
            meta = self._decode_meta(paste_id, results[2 * i], results[2 * i + 1])
            if meta is not None:
                metas.append(meta)
        return metas

    def stats(self, paste_id: str) -> Optional[PasteMeta]:
        try:
            metas = self._fetch_meta([paste_id])
        except RedisError as e:
            logger.error(f"Error fetching stats for paste {paste_id}: {e}")
            raise StoreError(f"Failed to fetch stats for paste {paste_id}") from e
        return metas[0] if metas else None

    def delete(self, paste_id: str) -> bool:
        try:
            with self.redis.pipeline() as pipe:
                pipe.delete(self._key(paste_id))
                pipe.zrem(self._index, paste_id)
                removed, _ = pipe.execute()
        except RedisError as e:
            logger.error(f"Error deleting paste {paste_id}: {e}")
            raise StoreError(f"Failed to delete paste {paste_id}") from e

        if removed:
            logger.info(f"Paste {paste_id} deleted")
        return removed > 0

    def list_all(self, limit: Optional[int] = None) -> List[PasteMeta]:
        if limit is not None and limit <= 0:
            return []
        end = -1 if limit is None else limit - 1
        try:
            paste_ids = self.redis.zrevrange(self._index, 0, end)
            if not paste_ids:
                return []
            return self._fetch_meta(paste_ids)
        except RedisError as e:
            logger.error(f"Error listing pastes: {e}")
            raise StoreError("Failed to list pastes") from e

    def _purge_one(self, paste_id: str, now_ms: int) -> bool:
        key = self._key(paste_id)
        with self.redis.pipeline() as pipe:
            pipe.watch(key)
            record = self._decode(paste_id, pipe.hgetall(key))
            if record is not None and is_consumable(record, now_ms):
                return False
            pipe.multi()
            pipe.delete(key)
            pipe.zrem(self._index, paste_id)
            pipe.execute()
        # A dangling index entry is cleaned up but not counted.
        return record is not None

    def purge(self, now_ms: int) -> int:
        purged = 0
        try:
            for paste_id in self.redis.zrange(self._index, 0, -1):
                try:
                    if self._purge_one(paste_id, now_ms):
                        purged += 1
                except WatchError:
                    logger.debug(f"Paste {paste_id} changed during purge, skipped")
        except RedisError as e:
            logger.error(f"Error purging pastes: {e}")
            raise StoreError("Failed to purge pastes") from e

        logger.info(f"Purged {purged} dead pastes")
        return purged

    def ping(self) -> bool:
        """Check if the Redis connection is alive."""
        try:
            return bool(self.redis.ping())
        except RedisError as e:
            logger.error(f"Health check failed: {e}")
        return False

    def close(self) -> None:
        self.redis.close()


def _optional_int(value: Optional[str]) -> Optional[int]:
    return None if value is None else int(value)


def build_store(config: Settings = settings) -> PasteStore:
    """Connect to the configured backend, falling back to memory if Redis is down."""
    if config.STORE_BACKEND == "memory":
        logger.info("Using in-memory paste store (STORE_BACKEND=memory)")
        return MemoryPasteStore()

    try:
        logger.info(f"Attempting to connect to Redis: {config.REDIS_URL[:30]}...")
        client = Redis.from_url(config.REDIS_URL, decode_responses=True)
        client.ping()
        logger.info("✓ Redis connected successfully")
        return RedisPasteStore(
            client,
            key_prefix=config.REDIS_KEY_PREFIX,
            max_retries=config.CONSUME_MAX_RETRIES,
        )
    except ConnectionError as e:
        logger.error(f"❌ ConnectionError connecting to Redis: {type(e).__name__}: {str(e)}")
    except (RedisError, ValueError) as e:
        logger.error(f"❌ Unexpected error connecting to Redis: {type(e).__name__}: {str(e)}")

    logger.warning("Using in-memory fallback for development. Data will NOT persist across restarts.")
    return MemoryPasteStore(using_fallback=True)
