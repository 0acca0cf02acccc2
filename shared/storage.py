"""
Fallback-aware document storage for Storefront services.

A :class:`Storage` is resolved once at startup by :func:`open_storage` and
handed to the service that owns it. Two backends exist:

- ``RedisStorage`` keeps each collection as a hash of JSON documents plus a
  sorted set that remembers insertion order. Identifiers are uuid4 hex.
- ``InMemoryStorage`` keeps documents in a process-local ordered dict.
  Identifiers are increasing decimal strings ("1", "2", ...). Nothing
  survives a restart and nothing is shared between instances.

Documents are plain JSON-compatible dicts. Every read returns a copy.
"""

import copy
import functools
import itertools
import json
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from shared.config import BaseConfig
from shared.errors import StorageUnavailableError
from shared.logging import get_logger

Document = Dict[str, Any]

ID_FIELD = "id"


def timestamp() -> str:
    """Current UTC time as an ISO-8601 string (sorts chronologically)."""
    return datetime.now(timezone.utc).isoformat()


class Collection(ABC):
    """CRUD over one named set of documents."""

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    async def insert(self, document: Document) -> Document:
        """Store a new document and return it with its generated id."""

    @abstractmethod
    async def get(self, doc_id: str) -> Optional[Document]:
        ...

    @abstractmethod
    async def list(self) -> List[Document]:
        """All documents in insertion order."""

    @abstractmethod
    async def update(self, doc_id: str, changes: Document) -> Optional[Document]:
        """Shallow-merge ``changes`` into a document; None if it does not exist."""

    @abstractmethod
    async def delete(self, doc_id: str) -> bool:
        ...

    @abstractmethod
    async def count(self) -> int:
        ...

    async def find_one(self, **criteria: Any) -> Optional[Document]:
        """First document whose fields equal every criterion."""
        for document in await self.list():
            if all(document.get(key) == value for key, value in criteria.items()):
                return document
        return None


class Storage(ABC):
    """A set of collections sharing one backend."""

    backend: str = "unknown"

    def __init__(self):
        self._collections: Dict[str, Collection] = {}

    def collection(self, name: str) -> Collection:
        if name not in self._collections:
            self._collections[name] = self._create_collection(name)
        return self._collections[name]

    @abstractmethod
    def _create_collection(self, name: str) -> Collection:
        ...

    async def start(self) -> None:
        return None

    async def stop(self) -> None:
        return None

    async def ping(self) -> bool:
        return True


# In-memory backend

class InMemoryCollection(Collection):
    """Process-local collection; operations never suspend."""

    def __init__(self, name: str):
        super().__init__(name)
        self._documents: Dict[str, Document] = {}
        self._ids = itertools.count(1)

    async def insert(self, document: Document) -> Document:
        doc_id = str(next(self._ids))
        stored = {**copy.deepcopy(document), ID_FIELD: doc_id}
        self._documents[doc_id] = stored
        return copy.deepcopy(stored)

    async def get(self, doc_id: str) -> Optional[Document]:
        document = self._documents.get(doc_id)
        return copy.deepcopy(document) if document is not None else None

    async def list(self) -> List[Document]:
        return [copy.deepcopy(document) for document in self._documents.values()]

    async def update(self, doc_id: str, changes: Document) -> Optional[Document]:
        document = self._documents.get(doc_id)
        if document is None:
            return None
        document.update(copy.deepcopy(changes))
        document[ID_FIELD] = doc_id
        return copy.deepcopy(document)

    async def delete(self, doc_id: str) -> bool:
        return self._documents.pop(doc_id, None) is not None

    async def count(self) -> int:
        return len(self._documents)


class InMemoryStorage(Storage):
    """Fallback storage used when no database is configured or reachable."""

    backend = "memory"

    def _create_collection(self, name: str) -> Collection:
        return InMemoryCollection(name)


# Redis backend

def _storage_errors(func):
    """Surface redis failures as StorageUnavailableError."""

    @functools.wraps(func)
    async def wrapper(self, *args, **kwargs):
        try:
            return await func(self, *args, **kwargs)
        except RedisError as e:
            self.logger.error("Storage operation failed", collection=self.name, operation=func.__name__, error=str(e))
            raise StorageUnavailableError(details={"collection": self.name, "operation": func.__name__}) from e

    return wrapper


class RedisCollection(Collection):
    """Collection stored as a redis hash with a sorted-set order index."""

    def __init__(self, client: "redis.Redis", namespace: str, name: str):
        super().__init__(name)
        self.redis = client
        self.logger = get_logger(f"{namespace}.storage.redis")
        self.docs_key = f"{namespace}:{name}:docs"
        self.index_key = f"{namespace}:{name}:index"
        self.seq_key = f"{namespace}:{name}:seq"

    @staticmethod
    def _dump(document: Document) -> str:
        return json.dumps(document, default=str)

    @_storage_errors
    async def insert(self, document: Document) -> Document:
        doc_id = uuid.uuid4().hex
        stored = {**document, ID_FIELD: doc_id}
        position = await self.redis.incr(self.seq_key)
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.hset(self.docs_key, doc_id, self._dump(stored))
            pipe.zadd(self.index_key, {doc_id: position})
            await pipe.execute()
        return json.loads(self._dump(stored))

    @_storage_errors
    async def get(self, doc_id: str) -> Optional[Document]:
        raw = await self.redis.hget(self.docs_key, doc_id)
        return json.loads(raw) if raw is not None else None

    @_storage_errors
    async def list(self) -> List[Document]:
        doc_ids = await self.redis.zrange(self.index_key, 0, -1)
        if not doc_ids:
            return []
        values = await self.redis.hmget(self.docs_key, doc_ids)
        return [json.loads(raw) for raw in values if raw is not None]

    @_storage_errors
    async def update(self, doc_id: str, changes: Document) -> Optional[Document]:
        # read-merge-write; last writer wins between concurrent updates
        raw = await self.redis.hget(self.docs_key, doc_id)
        if raw is None:
            return None
        document = json.loads(raw)
        document.update(changes)
        document[ID_FIELD] = doc_id
        await self.redis.hset(self.docs_key, doc_id, self._dump(document))
        return json.loads(self._dump(document))

    @_storage_errors
    async def delete(self, doc_id: str) -> bool:
        removed = await self.redis.hdel(self.docs_key, doc_id)
        if removed:
            await self.redis.zrem(self.index_key, doc_id)
        return bool(removed)

    @_storage_errors
    async def count(self) -> int:
        return await self.redis.hlen(self.docs_key)


class RedisStorage(Storage):
    """Document storage backed by redis."""

    backend = "redis"

    def __init__(self, redis_url: str, namespace: str = "storefront"):
        super().__init__()
        self.redis_url = redis_url
        self.namespace = namespace
        self.logger = get_logger(f"{namespace}.storage.redis")
        self.redis: Optional[redis.Redis] = None

    async def start(self) -> None:
        """Connect and verify the server answers."""
        try:
            self.redis = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                health_check_interval=30
            )
            await self.redis.ping()
            self.logger.info("Connected to document store", url=self.redis_url)
        except (RedisError, OSError, ValueError) as e:
            if self.redis is not None:
                await self.redis.aclose()
                self.redis = None
            raise StorageUnavailableError(str(e), details={"url": self.redis_url}) from e

    async def stop(self) -> None:
        if self.redis is not None:
            await self.redis.aclose()
            self.redis = None
            self.logger.info("Document store connection closed")

    async def ping(self) -> bool:
        if self.redis is None:
            return False
        try:
            return bool(await self.redis.ping())
        except RedisError:
            return False

    def _create_collection(self, name: str) -> Collection:
        if self.redis is None:
            raise StorageUnavailableError("Storage not started", details={"collection": name})
        return RedisCollection(self.redis, self.namespace, name)


async def open_storage(config: BaseConfig, service_name: str = "storage") -> Storage:
    """Resolve the storage backend for a service.

    Without ``database_url``, or when the server cannot be reached, an
    in-memory storage is returned unless ``require_database`` is set, in which
    case :class:`StorageUnavailableError` is raised.
    """
    logger = get_logger(f"{service_name}.storage")

    if not config.database_url:
        if config.require_database:
            raise StorageUnavailableError("No database configured", details={"setting": "STOREFRONT_DATABASE_URL"})
        logger.warning("No database configured, using in-memory storage")
        return InMemoryStorage()

    storage = RedisStorage(config.database_url, namespace=config.database_namespace)
    try:
        await storage.start()
    except StorageUnavailableError as e:
        if config.require_database:
            logger.error("Database not available", error=e.message)
            raise
        logger.warning("Database not available, using in-memory storage", error=e.message)
        return InMemoryStorage()
    return storage
