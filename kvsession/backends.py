"""
Key-value backends for session data.

The store only needs three operations: set a value with a time-to-live, get a
value, and delete a value. A missing key is reported with
:class:`.NotFound`, which is distinct from :class:`.BackendError` (the
backend is unavailable or misbehaving).
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, Optional, Tuple

import redis
import redis.cluster
from cachetools import TLRUCache

from .exceptions import BackendError, NotFound

logger = logging.getLogger(__name__)


class Backend(ABC):
    """Minimal key-value contract used by :class:`.SessionStore`."""

    @abstractmethod
    def set(self, key: str, value: bytes, ttl: int) -> None:
        """Store ``value`` at ``key``, expiring after ``ttl`` seconds."""

    @abstractmethod
    def get(self, key: str) -> bytes:
        """
        Get the value stored at ``key``.

        Raises
        ------
        :class:`.NotFound`
            Raised if there is no live value at ``key``.
        :class:`.BackendError`
            Raised if the backend could not be queried.

        """

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete ``key``. Deleting a missing key is not an error."""

    def ping(self) -> None:
        """Raise :class:`.BackendError` if the backend is not reachable."""

    def close(self) -> None:
        """Release any resources held by the backend."""


class RedisBackend(Backend):
    """
    Stores session data in Redis.

    The client is thread safe, and connections are attached at the time a
    command is executed. Retry and timeout policy belong to the client.
    """

    def __init__(self, client: redis.Redis) -> None:
        self.r = client

    @classmethod
    def connect(cls, host: str = 'localhost', port: int = 6379, db: int = 0,
                password: Optional[str] = None,
                cluster: bool = False) -> 'RedisBackend':
        """Open a client for a single Redis node or a cluster."""
        logger.debug('New Redis connection at %s, port %s', host, port)
        client: redis.Redis
        if cluster:
            client = redis.cluster.RedisCluster(host=host, port=port,
                                                password=password)
        else:
            client = redis.Redis(host=host, port=port, db=db,
                                 password=password)
        return cls(client)

    @classmethod
    def from_url(cls, url: str) -> 'RedisBackend':
        """Open a client from a ``redis://`` URL."""
        return cls(redis.Redis.from_url(url))

    def set(self, key: str, value: bytes, ttl: int) -> None:
        try:
            self.r.set(key, value, ex=ttl)
        except redis.exceptions.ConnectionError as e:
            raise BackendError(f'Connection failed: {e}') from e
        except redis.exceptions.RedisError as e:
            raise BackendError(f'Failed to set {key}: {e}') from e

    def get(self, key: str) -> bytes:
        try:
            value: Optional[bytes] = self.r.get(key)
        except redis.exceptions.ConnectionError as e:
            raise BackendError(f'Connection failed: {e}') from e
        except redis.exceptions.RedisError as e:
            raise BackendError(f'Failed to get {key}: {e}') from e
        if value is None:
            raise NotFound(f'No such key: {key}')
        return value

    def delete(self, key: str) -> None:
        try:
            self.r.delete(key)
        except redis.exceptions.ConnectionError as e:
            raise BackendError(f'Connection failed: {e}') from e
        except redis.exceptions.RedisError as e:
            raise BackendError(f'Failed to delete {key}: {e}') from e

    def ping(self) -> None:
        try:
            self.r.ping()
        except redis.exceptions.RedisError as e:
            raise BackendError(f'Redis is not reachable: {e}') from e

    def close(self) -> None:
        self.r.close()


def _expires_at(key: str, item: Tuple[bytes, int], now: float) -> float:
    return now + item[1]


class MemoryBackend(Backend):
    """
    Stores session data in a cache in this process.

    Suitable for tests and single-process development. Each entry expires
    after its own TTL, and expired entries are evicted as new ones are
    written. Once ``maxsize`` entries are live, the least recently used are
    dropped.
    """

    def __init__(self, maxsize: int = 10000,
                 timer: Callable[[], float] = time.monotonic) -> None:
        self._cache: TLRUCache = TLRUCache(maxsize=maxsize, ttu=_expires_at,
                                           timer=timer)
        self._lock = threading.Lock()

    def set(self, key: str, value: bytes, ttl: int) -> None:
        with self._lock:
            self._cache.expire()
            self._cache[key] = (bytes(value), ttl)

    def get(self, key: str) -> bytes:
        with self._lock:
            try:
                value, _ = self._cache[key]
            except KeyError as e:
                raise NotFound(f'No such key: {key}') from e
            return value

    def delete(self, key: str) -> None:
        with self._lock:
            self._cache.pop(key, None)

    def close(self) -> None:
        with self._lock:
            self._cache.clear()

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._cache

    def __len__(self) -> int:
        with self._lock:
            self._cache.expire()
            return len(self._cache)
