"""
Session store backed by a key-value service.

Session values are kept server-side, at ``key_prefix + session_id``, and
expire with the session. The client only receives a signed (and optionally
encrypted) cookie that carries the session ID; see :mod:`.codecs`.

.. code-block:: python

   store = new_redis_store(redis.Redis(), b'hash-key', b'0123456789abcdef')
   session = store.new(request.cookies.get('sid'), 'sid')
   session.values['user'] = 'foo'
   cookie = store.save(session)
   cookie.apply(response)

Two requests that save the same session concurrently are not coordinated;
the last write wins.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Callable, Optional

import redis

from .backends import Backend, RedisBackend
from .codecs import Codecs, codecs_from_pairs, decode_multi, encode_multi
from .config import StoreConfig
from .cookies import SessionCookie, expired_cookie, new_cookie
from .domain import Session, SessionOptions
from .exceptions import BackendError, ConfigurationError, CookieError, \
    EncodingError, KeyGenerationError, NotFound, PayloadTooLargeError
from .serializers import SessionSerializer

logger = logging.getLogger(__name__)


class BaseSessionStore(ABC):
    """The contract that a session provider offers to a web application."""

    @abstractmethod
    def new(self, cookie_value: Optional[str], name: str) -> Session:
        """Get the session referenced by a cookie, or a new session."""

    @abstractmethod
    def save(self, session: Session) -> SessionCookie:
        """Persist a session and get the cookie to send to the client."""

    @abstractmethod
    def delete(self, session: Session) -> SessionCookie:
        """Remove a session and get a cookie that clears it on the client."""


class SessionStore(BaseSessionStore):
    """Stores sessions in a :class:`.Backend`."""

    def __init__(self, backend: Backend, codecs: Codecs,
                 config: Optional[StoreConfig] = None) -> None:
        """
        Configure the store.

        Parameters
        ----------
        backend : :class:`.Backend`
        codecs : tuple
            :class:`.SecureCookie` instances, newest key pair first.
        config : :class:`.StoreConfig`

        """
        if config is None:
            config = StoreConfig()
        self.backend = backend
        self.codecs = tuple(codecs)
        self.options = replace(config.options)
        self.key_prefix = config.key_prefix
        self.max_length = config.max_length
        self.default_max_age = config.default_max_age
        self.key_gen = config.key_gen
        self.serializer = config.serializer

    def _key(self, session_id: str) -> str:
        return self.key_prefix + session_id

    def _fresh(self, name: str) -> Session:
        session = Session(self, name, self.options)
        if session.options.max_age == 0:
            session.options.max_age = self.default_max_age
        return session

    def new(self, cookie_value: Optional[str], name: str) -> Session:
        """
        Get the session referenced by a cookie, or a new session.

        A missing, tampered-with or expired cookie, or a cookie whose session
        no longer exists in the backend, yields a new empty session. In the
        first three cases the decoding error is kept on
        :attr:`.Session.decode_error`.

        Parameters
        ----------
        cookie_value : str or None
            Value of the cookie called ``name`` on the request, if any.
        name : str
            Name of the session cookie.

        Returns
        -------
        :class:`.Session`

        Raises
        ------
        :class:`.BackendError`
            Raised if the backend could not be queried.
        :class:`.SerializationError`
            Raised if the stored session cannot be deserialized.

        """
        session = self._fresh(name)
        if not cookie_value:
            return session

        try:
            session_id = decode_multi(name, cookie_value, self.codecs)
        except CookieError as e:
            logger.debug('Ignoring session cookie %s: %s', name, e)
            session.decode_error = e
            return session
        if not isinstance(session_id, str) or not session_id:
            logger.debug('Cookie %s does not carry a session ID', name)
            return session

        try:
            data = self.backend.get(self._key(session_id))
        except NotFound:
            logger.debug('No data for session %s', session_id)
            return session
        except BackendError as e:
            logger.error('Could not load session %s: %s', session_id, e)
            raise

        session.values = self.serializer.deserialize(data)
        session.id = session_id
        session.is_new = False
        return session

    def save(self, session: Session) -> SessionCookie:
        """
        Persist a session and get the cookie to send to the client.

        If ``session.options.max_age <= 0``, the session is deleted from the
        backend instead and the returned cookie clears it on the client.

        Raises
        ------
        :class:`.KeyGenerationError`
            Raised if a new session ID could not be generated.
        :class:`.SerializationError`
            Raised if the session values cannot be serialized.
        :class:`.PayloadTooLargeError`
            Raised if the serialized session is longer than
            :attr:`max_length`. Nothing is written.
        :class:`.BackendError`
            Raised if the backend write fails.
        :class:`.EncodingError`
            Raised if the session ID cannot be encoded as a cookie.

        """
        if session.options.max_age <= 0:
            self._delete(session)
            return expired_cookie(session.name, session.options)

        if not session.id:
            session_id = self.key_gen()
            if not session_id:
                raise KeyGenerationError('Failed to generate session ID')
            session.id = session_id

        self._save(session)
        try:
            encoded = encode_multi(session.name, session.id, self.codecs)
        except EncodingError as e:
            logger.error('Could not encode cookie %s: %s', session.name, e)
            raise
        return new_cookie(session.name, encoded, session.options)

    def delete(self, session: Session) -> SessionCookie:
        """
        Remove a session, whatever its max age.

        The session's ``options.max_age`` is set to -1 so that saving it again
        does not bring it back.
        """
        self._delete(session)
        session.options.max_age = -1
        return expired_cookie(session.name, session.options)

    def _save(self, session: Session) -> None:
        data = self.serializer.serialize(session.values)
        if self.max_length and len(data) > self.max_length:
            raise PayloadTooLargeError(
                f'Session is {len(data)} bytes; limit is {self.max_length}'
            )
        age = session.options.max_age or self.default_max_age
        try:
            self.backend.set(self._key(session.id), data, age)
        except BackendError as e:
            logger.error('Could not save session %s: %s', session.id, e)
            raise

    def _delete(self, session: Session) -> None:
        if not session.id:
            return
        try:
            self.backend.delete(self._key(session.id))
        except BackendError as e:
            logger.error('Could not delete session %s: %s', session.id, e)
            raise

    def set_options(self, options: SessionOptions) -> None:
        """Set the cookie attributes applied to new sessions."""
        self.options = replace(options)

    def set_key_prefix(self, key_prefix: str) -> None:
        """Set the prefix of session keys in the backend."""
        self.key_prefix = key_prefix

    def set_max_length(self, max_length: int) -> None:
        """
        Limit the size of serialized sessions, in bytes.

        If ``max_length`` is 0 there is no limit; use with caution. Negative
        values are ignored.
        """
        if max_length >= 0:
            self.max_length = max_length

    def set_key_gen(self, key_gen: Callable[[], str]) -> None:
        """Set the session ID generator."""
        self.key_gen = key_gen

    def set_serializer(self, serializer: SessionSerializer) -> None:
        """
        Set the session serializer.

        Sessions already stored with a different serializer cannot be loaded
        afterwards.
        """
        self.serializer = serializer

    def set_max_age(self, max_age: int) -> None:
        """
        Set the lifetime of new sessions, both in the backend and the browser.

        The age of incoming cookies is checked by every codec, so all of them
        are replaced with codecs that enforce the new value. If ``max_age``
        is 0, cookie age is not checked and new sessions use
        :attr:`default_max_age`.
        """
        self.options = replace(self.options, max_age=max_age)
        self.codecs = tuple(codec.with_max_age(max_age)
                            for codec in self.codecs)

    def rotate_keys(self, *keys: Optional[bytes]) -> None:
        """
        Start encoding cookies with new key pairs.

        ``keys`` alternate hash and block keys, as in
        :func:`.codecs_from_pairs`. The new codecs are put in front of the
        existing ones, which keep validating cookies they issued.
        """
        if self.codecs:
            max_age = self.codecs[0].max_age
        elif self.options.max_age > 0:
            max_age = self.options.max_age
        else:
            max_age = self.default_max_age
        self.codecs = codecs_from_pairs(*keys, max_age=max_age) + self.codecs

    def close(self) -> None:
        """Release the backend."""
        self.backend.close()


def new_store(backend: Backend, *keys: Optional[bytes],
              config: Optional[StoreConfig] = None) -> SessionStore:
    """
    Create a store with codecs built from ``keys``.

    Raises
    ------
    :class:`.ConfigurationError`
        Raised if the backend is not reachable, or the keys are not valid.

    """
    if not keys:
        raise ConfigurationError('At least one hash key is required')
    if config is None:
        config = StoreConfig()
    max_age = config.options.max_age or config.default_max_age
    store = SessionStore(backend, codecs_from_pairs(*keys, max_age=max_age),
                         config)
    try:
        backend.ping()
    except BackendError as e:
        raise ConfigurationError(f'Backend is not available: {e}') from e
    return store


def new_redis_store(client: redis.Redis, *keys: Optional[bytes],
                    config: Optional[StoreConfig] = None) -> SessionStore:
    """Create a store that uses an existing Redis client."""
    return new_store(RedisBackend(client), *keys, config=config)


def new_redis_store_from_url(url: str, *keys: Optional[bytes],
                             config: Optional[StoreConfig] = None) \
        -> SessionStore:
    """Create a store that connects to Redis at ``url``."""
    return new_store(RedisBackend.from_url(url), *keys, config=config)


def new_redis_store_simple(host: str, port: int, password: Optional[str],
                           db: int, *keys: Optional[bytes],
                           config: Optional[StoreConfig] = None) \
        -> SessionStore:
    """Create a store that connects to a single Redis node."""
    backend = RedisBackend.connect(host=host, port=port, db=db,
                                   password=password)
    return new_store(backend, *keys, config=config)
