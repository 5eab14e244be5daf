"""Namespaced key-value storage used underneath the cache collections."""
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lifter import monitoring
from lifter.errors import StorageUnavailableError
from lifter.models.models import StoredEntry

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Asynchronous namespaced key-value store holding JSON-compatible values.

    Keys are matched exactly. ``get_all`` returns entries in insertion order.
    """

    @abstractmethod
    async def get(self, namespace: str, key: str) -> Optional[Any]:
        """Return the value stored under ``key`` or None."""

    @abstractmethod
    async def put(self, namespace: str, key: str, value: Any) -> None:
        """Insert or replace the value stored under ``key``."""

    @abstractmethod
    async def delete(self, namespace: str, key: str) -> None:
        """Delete ``key``; deleting a missing key is not an error."""

    @abstractmethod
    async def get_all(self, namespace: str) -> Dict[str, Any]:
        """Return every entry of the namespace."""

    @abstractmethod
    async def clear_namespace(self, namespace: str) -> None:
        """Delete every entry of the namespace."""

    @abstractmethod
    async def replace_namespace(self, namespace: str, entries: Mapping[str, Any]) -> None:
        """Replace the whole namespace with ``entries``, all or nothing."""


class SqlKeyValueStore(KeyValueStore):
    """Durable store backed by the ``kv_entries`` table."""

    def __init__(self, db: Session):
        """Initialize the store with a database session."""
        self.db = db

    def _fail(self, operation: str, namespace: str, error: Exception) -> StorageUnavailableError:
        logger.error(f"Storage {operation} failed for namespace '{namespace}': {error}")
        monitoring.storage_errors.labels(operation=operation).inc()
        return StorageUnavailableError(operation, namespace, str(error))

    def _decode(self, entry: StoredEntry) -> Any:
        try:
            return json.loads(entry.value)
        except json.JSONDecodeError as e:
            raise self._fail("decode", entry.namespace, e) from e

    def _query(self, namespace: str):
        return self.db.query(StoredEntry).filter(StoredEntry.namespace == namespace)

    async def get(self, namespace: str, key: str) -> Optional[Any]:
        try:
            entry = self._query(namespace).filter(StoredEntry.key == key).first()
        except SQLAlchemyError as e:
            raise self._fail("get", namespace, e) from e
        if entry is None:
            return None
        return self._decode(entry)

    async def put(self, namespace: str, key: str, value: Any) -> None:
        payload = json.dumps(value)
        try:
            entry = self._query(namespace).filter(StoredEntry.key == key).first()
            if entry is None:
                self.db.add(StoredEntry(namespace=namespace, key=key, value=payload))
            else:
                entry.value = payload
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise self._fail("put", namespace, e) from e

    async def delete(self, namespace: str, key: str) -> None:
        try:
            self._query(namespace).filter(StoredEntry.key == key).delete(synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise self._fail("delete", namespace, e) from e

    async def get_all(self, namespace: str) -> Dict[str, Any]:
        try:
            entries = self._query(namespace).order_by(StoredEntry.id).all()
        except SQLAlchemyError as e:
            raise self._fail("get_all", namespace, e) from e
        return {entry.key: self._decode(entry) for entry in entries}

    async def clear_namespace(self, namespace: str) -> None:
        try:
            self._query(namespace).delete(synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise self._fail("clear", namespace, e) from e

    async def replace_namespace(self, namespace: str, entries: Mapping[str, Any]) -> None:
        payloads = {key: json.dumps(value) for key, value in entries.items()}
        try:
            self._query(namespace).delete(synchronize_session=False)
            self.db.add_all(
                StoredEntry(namespace=namespace, key=key, value=payload)
                for key, payload in payloads.items()
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise self._fail("replace", namespace, e) from e
        logger.debug(f"Replaced namespace '{namespace}' with {len(payloads)} entries")


class InMemoryKeyValueStore(KeyValueStore):
    """Volatile store; each instance has its own independent state."""

    def __init__(self):
        self._namespaces: Dict[str, Dict[str, Any]] = {}

    def _namespace(self, namespace: str) -> Dict[str, Any]:
        return self._namespaces.setdefault(namespace, {})

    async def get(self, namespace: str, key: str) -> Optional[Any]:
        return self._namespaces.get(namespace, {}).get(key)

    async def put(self, namespace: str, key: str, value: Any) -> None:
        self._namespace(namespace)[key] = value

    async def delete(self, namespace: str, key: str) -> None:
        self._namespaces.get(namespace, {}).pop(key, None)

    async def get_all(self, namespace: str) -> Dict[str, Any]:
        return dict(self._namespaces.get(namespace, {}))

    async def clear_namespace(self, namespace: str) -> None:
        self._namespaces.pop(namespace, None)

    async def replace_namespace(self, namespace: str, entries: Mapping[str, Any]) -> None:
        staging = dict(entries)
        self._namespaces[namespace] = staging
