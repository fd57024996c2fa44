"""Core concepts of the session store."""

from copy import copy
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:   # pragma: no cover
    from .cookies import SessionCookie
    from .store import BaseSessionStore

FLASH_KEY = '_flash'
"""Default key under which flash messages are kept in session values."""


class SameSite(Enum):
    """Values of the ``SameSite`` cookie attribute."""

    LAX = 'Lax'
    STRICT = 'Strict'
    NONE = 'None'


@dataclass
class SessionOptions:
    """Attributes of the cookie that carries a session."""

    path: str = '/'
    """Path for which the cookie is sent."""

    domain: Optional[str] = None
    """Domain for which the cookie is sent. Defaults to the request host."""

    max_age: int = 0
    """
    Lifetime of the session, in seconds.

    When a store creates a session, 0 is replaced with the store's default
    max age. A session saved with ``max_age <= 0`` is deleted.
    """

    secure: bool = False
    """Only send the cookie over HTTPS."""

    http_only: bool = True
    """Hide the cookie from client-side scripts."""

    same_site: Optional[SameSite] = None
    """``SameSite`` attribute of the cookie; not sent if ``None``."""


class Session(object):
    """
    Server-side session state for one client.

    Only :attr:`values` is meant to be read and written by the application;
    :attr:`options` may be changed to control the cookie (set
    ``options.max_age`` to -1 to end the session on the next save).
    """

    def __init__(self, store: 'BaseSessionStore', name: str,
                 options: SessionOptions) -> None:
        self.store = store
        self.name = name
        self.options = copy(options)
        self.values: Dict[Any, Any] = {}
        self.is_new = True
        self.decode_error: Optional[Exception] = None
        """Why the incoming cookie was ignored, if it was."""
        self._id = ''

    @property
    def id(self) -> str:
        """Session ID; empty until the session is first saved."""
        return self._id

    @id.setter
    def id(self, value: str) -> None:
        if self._id and value != self._id:
            raise AttributeError('Session ID cannot be changed once assigned')
        self._id = value

    def __repr__(self) -> str:
        return f'<Session {self.name!r} id={self._id!r} new={self.is_new}>'

    def add_flash(self, value: Any, key: str = FLASH_KEY) -> None:
        """Add a flash message to the session."""
        self.values.setdefault(key, []).append(value)

    def flashes(self, key: str = FLASH_KEY) -> List[Any]:
        """Get and remove the flash messages stored under ``key``."""
        return list(self.values.pop(key, []))

    def save(self) -> 'SessionCookie':
        """Save this session with the store that created it."""
        return self.store.save(self)

    def delete(self) -> 'SessionCookie':
        """Delete this session from the store that created it."""
        return self.store.delete(self)
