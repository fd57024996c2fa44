"""
Configuration for the session store.

Module-level values are read from the environment and used as defaults for a
Flask application (see :func:`kvsession.extension.init_app`).
:class:`StoreConfig` is the explicit configuration passed to a
:class:`.SessionStore`.
"""

import os
from dataclasses import dataclass, field
from typing import Callable

from .domain import SessionOptions
from .keygen import generate_random_key
from .serializers import PickleSerializer, SessionSerializer

SESSION_EXPIRE = 86400 * 30
"""Default lifetime of sessions and their cookies, in seconds (30 days)."""

REDIS_HOST = os.environ.get('REDIS_HOST', 'localhost')
REDIS_PORT = os.environ.get('REDIS_PORT', '6379')
REDIS_DATABASE = os.environ.get('REDIS_DATABASE', '0')
REDIS_PASSWORD = os.environ.get('REDIS_PASSWORD', None)
"""This is the password used in the AUTH procedure."""
REDIS_CLUSTER = os.environ.get('REDIS_CLUSTER', '0')

REDIS_FAKE = os.environ.get('REDIS_FAKE', '0')
"""Use the FakeRedis library instead of a redis service.

Useful for testing, dev, beta."""

KVSESSION_KEYS = os.environ.get('KVSESSION_KEYS', '')
"""
Comma-separated cookie keys, alternating hash and block keys, newest first.

For example ``newhash,newblock,oldhash,oldblock``. Leave a block key empty
(``newhash,,oldhash``) to sign without encrypting.
"""

KVSESSION_KEY_PREFIX = os.environ.get('KVSESSION_KEY_PREFIX', 'session:')
"""Prepended to each session ID to form its key in Redis."""

KVSESSION_MAX_LENGTH = os.environ.get('KVSESSION_MAX_LENGTH', '0')
"""Largest serialized session that will be stored, in bytes; 0 disables."""

KVSESSION_DURATION = os.environ.get('KVSESSION_DURATION', str(SESSION_EXPIRE))
"""Default session lifetime in seconds."""

KVSESSION_SERIALIZER = os.environ.get('KVSESSION_SERIALIZER', 'pickle')
"""Either ``pickle`` or ``json``."""

KVSESSION_COOKIE_NAME = os.environ.get('KVSESSION_COOKIE_NAME', 'session_id')
KVSESSION_COOKIE_PATH = os.environ.get('KVSESSION_COOKIE_PATH', '/')
KVSESSION_COOKIE_DOMAIN = os.environ.get('KVSESSION_COOKIE_DOMAIN', None)
KVSESSION_COOKIE_SECURE = os.environ.get('KVSESSION_COOKIE_SECURE', '1')
KVSESSION_COOKIE_HTTPONLY = os.environ.get('KVSESSION_COOKIE_HTTPONLY', '1')
KVSESSION_COOKIE_SAMESITE = os.environ.get('KVSESSION_COOKIE_SAMESITE', 'Lax')

KVSESSION_JSON_LOGGING = os.environ.get('KVSESSION_JSON_LOGGING', '0')
"""If set to 1, session store logs are emitted as JSON."""


@dataclass
class StoreConfig:
    """Settings for a :class:`.SessionStore`."""

    key_prefix: str = 'session:'
    """Prepended to every backend key."""

    max_length: int = 0
    """Largest serialized session that will be stored; 0 disables the cap."""

    default_max_age: int = SESSION_EXPIRE
    """Session lifetime used when a session's own ``max_age`` is 0."""

    key_gen: Callable[[], str] = generate_random_key
    """Generates new session IDs; must return ``''`` on failure."""

    serializer: SessionSerializer = field(default_factory=PickleSerializer)
    """Converts session values to and from bytes."""

    options: SessionOptions = field(default_factory=SessionOptions)
    """Cookie attributes applied to new sessions."""
