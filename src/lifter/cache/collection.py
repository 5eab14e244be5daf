"""Cache collections with coarse, per-collection staleness tracking.

A collection holds the values of one entity family keyed by a string id and
remembers a single last-write timestamp for the whole collection. Every
mutating call (``put``, ``put_many``, ``remove``) stamps it with the current
time; ``clear`` erases it, so a cleared collection always reports itself as
expired.

Keys are compared exactly. Any normalization (for example lower-casing
exercise ids) belongs to the caller and must be applied identically on write
and on read.
"""
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Generic, Iterable, List, Optional, TypeVar

from lifter import monitoring
from lifter.config import settings
from lifter.errors import StorageUnavailableError
from lifter.storage.key_value_store import KeyValueStore
from lifter.utils import utc_now

logger = logging.getLogger(__name__)

T = TypeVar("T")
Clock = Callable[[], datetime]

DEFAULT_CACHE_MAX_AGE = timedelta(minutes=settings.cache.max_age_minutes)

LAST_UPDATE_KEY = "last_update"


class CacheCollection(ABC, Generic[T]):
    """Uniform read/write/expiry contract for one cached entity family."""

    def __init__(self, name: str, key_of: Callable[[T], str], clock: Optional[Clock] = None):
        self.name = name
        self.key_of = key_of
        self.clock: Clock = clock or utc_now

    def _record(self, operation: str) -> None:
        monitoring.cache_operations.labels(collection=self.name, operation=operation).inc()

    @abstractmethod
    async def get_all(self) -> List[T]:
        """Return every cached value in insertion order."""

    @abstractmethod
    async def get_by_id(self, key: str) -> Optional[T]:
        """Return the value stored under exactly ``key``, or None."""

    @abstractmethod
    async def put(self, value: T) -> None:
        """Insert or replace one value and stamp the collection."""

    @abstractmethod
    async def put_many(self, values: Iterable[T]) -> None:
        """Replace the whole collection with ``values`` and stamp it once."""

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Remove ``key`` if present and stamp the collection."""

    @abstractmethod
    async def clear(self) -> None:
        """Empty the collection and forget its last-write timestamp."""

    @abstractmethod
    async def get_last_update(self) -> Optional[datetime]:
        """Time of the last write, or None if never written or cleared."""

    async def is_expired(self, max_age: timedelta = DEFAULT_CACHE_MAX_AGE) -> bool:
        """True when the collection was never written, was cleared, or is older than ``max_age``."""
        last_update = await self.get_last_update()
        expired = last_update is None or self.clock() - last_update > max_age
        if expired:
            monitoring.cache_expired_checks.labels(collection=self.name).inc()
        return expired


class InMemoryCacheCollection(CacheCollection[T]):
    """Volatile collection; every instance has independent state."""

    def __init__(self, name: str, key_of: Callable[[T], str], clock: Optional[Clock] = None):
        super().__init__(name, key_of, clock)
        self._values: Dict[str, T] = {}
        self._last_update: Optional[datetime] = None

    async def get_all(self) -> List[T]:
        return list(self._values.values())

    async def get_by_id(self, key: str) -> Optional[T]:
        return self._values.get(key)

    async def put(self, value: T) -> None:
        self._values[self.key_of(value)] = value
        self._last_update = self.clock()
        self._record("put")

    async def put_many(self, values: Iterable[T]) -> None:
        staging = {self.key_of(value): value for value in values}
        self._values = staging
        self._last_update = self.clock()
        self._record("put_many")

    async def remove(self, key: str) -> None:
        self._values.pop(key, None)
        self._last_update = self.clock()
        self._record("remove")

    async def clear(self) -> None:
        self._values = {}
        self._last_update = None
        self._record("clear")

    async def get_last_update(self) -> Optional[datetime]:
        return self._last_update


class DurableCacheCollection(CacheCollection[T]):
    """Collection persisted in a ``KeyValueStore``.

    Values are stored as JSON documents under the collection's namespace; the
    last-write timestamp is stored as ISO-8601 in a namespace of its own.
    The timestamp is written only after the data write succeeded.
    """

    def __init__(
        self,
        store: KeyValueStore,
        name: str,
        key_of: Callable[[T], str],
        encode: Callable[[T], Dict[str, Any]],
        decode: Callable[[Dict[str, Any]], T],
        clock: Optional[Clock] = None,
        timestamp_prefix: str = settings.cache.timestamp_prefix,
    ):
        super().__init__(name, key_of, clock)
        self.store = store
        self.encode = encode
        self.decode = decode
        self.timestamp_namespace = f"{timestamp_prefix}{name}"

    async def _touch(self) -> None:
        await self.store.put(self.timestamp_namespace, LAST_UPDATE_KEY, self.clock().isoformat())

    def _decode(self, document: Dict[str, Any]) -> T:
        try:
            return self.decode(document)
        except (KeyError, TypeError, ValueError) as e:
            monitoring.storage_errors.labels(operation="decode").inc()
            raise StorageUnavailableError("decode", self.name, f"malformed document: {e!r}") from e

    async def get_all(self) -> List[T]:
        documents = await self.store.get_all(self.name)
        return [self._decode(document) for document in documents.values()]

    async def get_by_id(self, key: str) -> Optional[T]:
        document = await self.store.get(self.name, key)
        if document is None:
            return None
        return self._decode(document)

    async def put(self, value: T) -> None:
        key = self.key_of(value)
        await self.store.put(self.name, key, self.encode(value))
        await self._touch()
        self._record("put")
        logger.debug(f"Cached '{key}' in {self.name}")

    async def put_many(self, values: Iterable[T]) -> None:
        entries = {self.key_of(value): self.encode(value) for value in values}
        await self.store.replace_namespace(self.name, entries)
        await self._touch()
        self._record("put_many")
        logger.debug(f"Replaced {self.name} with {len(entries)} entries")

    async def remove(self, key: str) -> None:
        await self.store.delete(self.name, key)
        await self._touch()
        self._record("remove")
        logger.debug(f"Removed '{key}' from {self.name}")

    async def clear(self) -> None:
        # Timestamp goes first: a failure part way leaves the collection expired
        await self.store.delete(self.timestamp_namespace, LAST_UPDATE_KEY)
        await self.store.clear_namespace(self.name)
        self._record("clear")
        logger.debug(f"Cleared {self.name}")

    async def get_last_update(self) -> Optional[datetime]:
        value = await self.store.get(self.timestamp_namespace, LAST_UPDATE_KEY)
        if value is None:
            return None
        try:
            return datetime.fromisoformat(value)
        except (TypeError, ValueError) as e:
            raise StorageUnavailableError("get_last_update", self.timestamp_namespace, str(e)) from e
