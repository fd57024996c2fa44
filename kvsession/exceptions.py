"""Exceptions raised by the session store and its collaborators."""


class SessionError(RuntimeError):
    """Base class for all session store errors."""


class ConfigurationError(SessionError):
    """The store is misconfigured, or the backend is unreachable at startup."""


class KeyGenerationError(SessionError):
    """Could not generate a new session ID."""


class CookieError(SessionError):
    """A session cookie could not be decoded."""


class InvalidSignatureError(CookieError):
    """No configured key pair validates the cookie signature."""


class ExpiredError(CookieError):
    """The cookie timestamp is older than the configured max age."""


class MalformedError(CookieError):
    """The cookie value cannot be parsed."""


class EncodingError(SessionError):
    """A value could not be encoded as a session cookie."""


class NotFound(SessionError):
    """No entry exists in the backend for the requested key."""


class BackendError(SessionError):
    """The backend failed for a reason other than a missing key."""


class SerializationError(SessionError):
    """Session values could not be serialized or deserialized."""


class PayloadTooLargeError(SessionError):
    """The serialized session exceeds the configured maximum length."""
