"""
Content-addressed store for embedding vectors.

Keys are derived from the exact text that was embedded, so two records with
identical text share one entry. Entries expire lazily: an expired entry reads
as a miss and is left for the next write to replace.
"""
import hashlib
import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Tuple

from pymongo import ASCENDING

from gigmatch.utils.logging_config import get_logger
from gigmatch.utils.utils import coerce_vector

logger = get_logger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def cache_key(text: str) -> str:
    return "embedding_" + hashlib.sha256(text.encode("utf-8")).hexdigest()


class VectorCache:
    """Interface shared by the cache backends."""

    def get(self, key: str) -> Optional[List[float]]:
        raise NotImplementedError

    def put(self, key: str, vector: List[float], ttl: float) -> None:
        raise NotImplementedError


class MemoryVectorCache(VectorCache):
    """Process-local cache. Safe to share between executor threads."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._entries: Dict[str, Tuple[List[float], float]] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def get(self, key: str) -> Optional[List[float]]:
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            return None
        vector, expires_at = entry
        if self._clock() >= expires_at:
            return None
        return list(vector)

    def put(self, key: str, vector: List[float], ttl: float) -> None:
        with self._lock:
            self._entries[key] = (list(vector), self._clock() + ttl)

    def __len__(self):
        with self._lock:
            return len(self._entries)


class MongoVectorCache(VectorCache):
    """Shared cache backed by a pymongo collection.

    Runs on the blocking driver because the embedding client is called from
    worker threads, not from the event loop. Expiry times are timezone-aware
    UTC, so the collection must come from a ``tz_aware=True`` client.
    """

    def __init__(self, collection, now: Callable[[], datetime] = None):
        self._coll = collection
        self._now = now or _utc_now

    def ensure_indexes(self):
        self._coll.create_index([("key", ASCENDING)], unique=True)

    def get(self, key: str) -> Optional[List[float]]:
        doc = self._coll.find_one({"key": key})
        if not doc:
            return None
        expires_at = doc.get("expires_at")
        if expires_at is None or expires_at <= self._now():
            return None
        vector = coerce_vector(doc.get("vector"))
        if vector is None:
            logger.warning(f"Discarding malformed cache entry {key}")
        return vector

    def put(self, key: str, vector: List[float], ttl: float) -> None:
        self._coll.update_one(
            {"key": key},
            {"$set": {
                "key": key,
                "vector": list(vector),
                "expires_at": self._now() + timedelta(seconds=ttl),
            }},
            upsert=True,
        )
