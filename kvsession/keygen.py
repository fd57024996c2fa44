"""Generates session IDs."""

import logging
import secrets
from base64 import b32encode

logger = logging.getLogger(__name__)

KEY_LENGTH = 64
"""Number of random bytes in a generated session ID."""


def generate_random_key(length: int = KEY_LENGTH) -> str:
    """
    Generate a new random session ID.

    Draws ``length`` bytes from the system CSPRNG and encodes them as
    base32, with padding stripped, so that the result is safe to use both as
    a key-value store key and inside a cookie.

    Parameters
    ----------
    length : int
        Number of random bytes.

    Returns
    -------
    str
        The encoded key, or an empty string if the entropy source is not
        available.

    """
    try:
        key = secrets.token_bytes(length)
    except (OSError, NotImplementedError) as e:
        logger.error('Could not read from entropy source: %s', e)
        return ''
    return b32encode(key).decode('ascii').rstrip('=')
