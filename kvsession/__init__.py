"""
Server-side sessions in a key-value store, referenced by secure cookies.

Session values are stored in Redis (or another :class:`.Backend`) under a
random session ID. The client holds only a cookie carrying that ID, which is
authenticated and optionally encrypted by :mod:`.codecs`. Several generations
of cookie keys can be configured at once, so that keys can be rotated without
ending existing sessions.

See :mod:`.store` for the session lifecycle, and :mod:`.extension` for Flask
integration.
"""

from .backends import Backend, MemoryBackend, RedisBackend
from .codecs import KeyPair, SecureCookie, codecs_from_pairs
from .config import StoreConfig
from .cookies import SessionCookie
from .domain import SameSite, Session, SessionOptions
from .serializers import JSONSerializer, PickleSerializer, SessionSerializer
from .store import BaseSessionStore, SessionStore, new_redis_store, \
    new_redis_store_from_url, new_redis_store_simple, new_store
