"""Cookie instructions produced when a session is saved or deleted."""

from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, Dict, NamedTuple, Optional

from pytz import UTC
from werkzeug.http import dump_cookie

from .domain import SessionOptions

EPOCH = datetime.fromtimestamp(0, tz=UTC)


class SessionCookie(NamedTuple):
    """
    A cookie to be set on the response.

    An expired cookie (``options.max_age <= 0``) has an empty value, and
    instructs the client to discard any cookie it holds under :attr:`name`.
    """

    name: str
    """Name of the cookie."""

    value: str
    """Encoded session ID, or ``''`` for an expired cookie."""

    options: SessionOptions
    """Cookie attributes."""

    @property
    def expired(self) -> bool:
        """Whether this cookie clears the session on the client."""
        return self.options.max_age <= 0

    @property
    def max_age(self) -> Optional[int]:
        """Value of the ``Max-Age`` attribute."""
        if self.expired:
            return 0
        return self.options.max_age

    @property
    def expires(self) -> datetime:
        """Value of the ``Expires`` attribute, for older clients."""
        if self.expired:
            return EPOCH
        return datetime.now(tz=UTC) + timedelta(seconds=self.options.max_age)

    def _attributes(self) -> Dict[str, Any]:
        same_site = self.options.same_site
        return dict(
            max_age=self.max_age,
            expires=self.expires,
            path=self.options.path,
            domain=self.options.domain,
            secure=self.options.secure,
            httponly=self.options.http_only,
            samesite=same_site.value if same_site is not None else None
        )

    def to_header(self) -> str:
        """Render this cookie as the value of a ``Set-Cookie`` header."""
        return dump_cookie(self.name, self.value, **self._attributes())

    def apply(self, response: Any) -> None:
        """Set this cookie on a Flask/Werkzeug response."""
        response.set_cookie(self.name, self.value, **self._attributes())


def new_cookie(name: str, value: str,
               options: SessionOptions) -> SessionCookie:
    """Create a cookie instruction with a private copy of ``options``."""
    return SessionCookie(name, value, replace(options))


def expired_cookie(name: str, options: SessionOptions) -> SessionCookie:
    """Create a cookie instruction that clears ``name`` on the client."""
    return SessionCookie(name, '', replace(options, max_age=-1))
