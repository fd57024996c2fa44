"""
Flask integration.

Reads session cookies from the current request and writes ``Set-Cookie``
headers on responses, using a :class:`.SessionStore` configured from the
application config. For example:

.. code-block:: python

   from flask import Flask, make_response
   from kvsession import extension


   def create_web_app() -> Flask:
       app = Flask('someapp')
       app.config.from_pyfile('config.py')
       extension.init_app(app)

       @app.route('/')
       def index():
           session = extension.load_session()
           session.values['visits'] = session.values.get('visits', 0) + 1
           response = make_response('hello')
           extension.save_session(session, response)
           return response

       return app

"""

import atexit
import logging
import threading
from typing import Any, Optional

from flask import Flask, current_app, has_app_context, request

from . import app_logging, config
from .backends import Backend, RedisBackend
from .config import StoreConfig
from .cookies import SessionCookie
from .domain import SameSite, Session, SessionOptions
from .exceptions import ConfigurationError
from .serializers import get_serializer
from .store import SessionStore, new_store

logger = logging.getLogger(__name__)

_store_lock = threading.Lock()

DEFAULTS = [
    'REDIS_HOST', 'REDIS_PORT', 'REDIS_DATABASE', 'REDIS_PASSWORD',
    'REDIS_CLUSTER', 'REDIS_FAKE', 'KVSESSION_KEYS', 'KVSESSION_KEY_PREFIX',
    'KVSESSION_MAX_LENGTH', 'KVSESSION_DURATION', 'KVSESSION_SERIALIZER',
    'KVSESSION_COOKIE_NAME', 'KVSESSION_COOKIE_PATH', 'KVSESSION_COOKIE_DOMAIN',
    'KVSESSION_COOKIE_SECURE', 'KVSESSION_COOKIE_HTTPONLY',
    'KVSESSION_COOKIE_SAMESITE', 'KVSESSION_JSON_LOGGING'
]


def _flag(value: Any) -> bool:
    return str(value).lower() in ('1', 'true', 'yes', 'on')


def init_app(app: Flask) -> None:
    """Set default configuration parameters for an application instance."""
    for key in DEFAULTS:
        app.config.setdefault(key, getattr(config, key))
    if _flag(app.config['KVSESSION_JSON_LOGGING']):
        app_logging.setup_logger()
    atexit.register(close_store, app)


def _get_config(app: Optional[Flask] = None) -> Any:
    if app is not None:
        return app.config
    if has_app_context():
        return current_app.config
    return {key: getattr(config, key) for key in DEFAULTS}


def parse_keys(raw: str) -> list:
    """Split ``KVSESSION_KEYS`` into alternating hash and block keys."""
    keys = [key.strip().encode('utf-8') or None for key in raw.split(',')]
    while keys and keys[-1] is None:
        keys.pop()
    if not keys or keys[0] is None:
        raise ConfigurationError('KVSESSION_KEYS must start with a hash key')
    return keys


def _get_backend(cfg: Any, app: Optional[Flask] = None) -> Backend:
    if _flag(cfg.get('REDIS_FAKE', '0')):
        import fakeredis
        logger.debug('Using fake Redis')
        server = fakeredis.FakeServer()
        if app is not None:
            server = app.extensions.setdefault('kvsession_fake_redis',
                                               server)
        return RedisBackend(fakeredis.FakeStrictRedis(server=server))
    return RedisBackend.connect(
        host=cfg.get('REDIS_HOST', 'localhost'),
        port=int(cfg.get('REDIS_PORT', '6379')),
        db=int(cfg.get('REDIS_DATABASE', '0')),
        password=cfg.get('REDIS_PASSWORD', None),
        cluster=_flag(cfg.get('REDIS_CLUSTER', '0'))
    )


def get_store_config(app: Optional[Flask] = None) -> StoreConfig:
    """Build a :class:`.StoreConfig` from application config."""
    cfg = _get_config(app)
    same_site = cfg.get('KVSESSION_COOKIE_SAMESITE', None)
    try:
        options = SessionOptions(
            path=cfg.get('KVSESSION_COOKIE_PATH', '/'),
            domain=cfg.get('KVSESSION_COOKIE_DOMAIN', None),
            secure=_flag(cfg.get('KVSESSION_COOKIE_SECURE', '1')),
            http_only=_flag(cfg.get('KVSESSION_COOKIE_HTTPONLY', '1')),
            same_site=SameSite(same_site.capitalize()) if same_site else None
        )
        return StoreConfig(
            key_prefix=cfg.get('KVSESSION_KEY_PREFIX', 'session:'),
            max_length=int(cfg.get('KVSESSION_MAX_LENGTH', '0')),
            default_max_age=int(cfg.get('KVSESSION_DURATION',
                                        str(config.SESSION_EXPIRE))),
            serializer=get_serializer(cfg.get('KVSESSION_SERIALIZER',
                                              'pickle')),
            options=options
        )
    except ValueError as e:
        raise ConfigurationError(f'Invalid session configuration: {e}') from e


def get_session_store(app: Optional[Flask] = None) -> SessionStore:
    """
    Get a new session store configured for the application.

    The caller owns the returned store and must :meth:`.SessionStore.close`
    it. Within an application, use :func:`current_store` instead.
    """
    if app is None and has_app_context():
        app = current_app._get_current_object()    # type: ignore
    cfg = _get_config(app)
    keys = parse_keys(cfg.get('KVSESSION_KEYS', ''))
    return new_store(_get_backend(cfg, app), *keys,
                     config=get_store_config(app))


def current_store() -> SessionStore:
    """
    Get the :class:`.SessionStore` of the current application.

    The store, and its backend connection pool, is created on first use and
    shared by every request until :func:`close_store` is called.

    Raises
    ------
    :class:`RuntimeError`
        Raised if there is no application context.

    """
    if not has_app_context():
        raise RuntimeError('current_store() requires an application context')
    app = current_app._get_current_object()     # type: ignore
    store = app.extensions.get('kvsession')
    if store is None:
        with _store_lock:
            store = app.extensions.get('kvsession')
            if store is None:
                store = get_session_store(app)
                app.extensions['kvsession'] = store
    return store    # type: ignore


def close_store(app: Flask) -> None:
    """Close the application's session store, if it was created."""
    store = app.extensions.pop('kvsession', None)
    if store is not None:
        logger.debug('Closing session store for %s', app.name)
        store.close()


def _cookie_name(name: Optional[str]) -> str:
    return name or _get_config()['KVSESSION_COOKIE_NAME']


def load_session(name: Optional[str] = None) -> Session:
    """Load the session named by a cookie on the current request."""
    name = _cookie_name(name)
    return current_store().new(request.cookies.get(name), name)


def save_session(session: Session, response: Any) -> SessionCookie:
    """Save ``session`` and set its cookie on ``response``."""
    cookie = session.save()
    cookie.apply(response)
    return cookie


def delete_session(session: Session, response: Any) -> SessionCookie:
    """Delete ``session`` and clear its cookie on ``response``."""
    cookie = session.delete()
    cookie.apply(response)
    return cookie
