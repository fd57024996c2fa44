"""
Authenticated, optionally encrypted, session cookie values.

A cookie value is ``base64url(tag || timestamp || payload)``, with padding
stripped, where

- ``payload`` is the JSON-serialized value, encrypted with AES-CTR under the
  block key (random IV prepended) if the key pair has one;
- ``timestamp`` is the issue time in UNIX seconds, as an 8-byte big-endian
  integer;
- ``tag`` is HMAC-SHA256, under the hash key, of the cookie name, the
  timestamp and the payload.

Binding the cookie name into the tag prevents a value issued for one cookie
from being replayed under another.

Several key pairs can be configured at once, newest first. New values are
always encoded with the first; :func:`decode_multi` tries each in turn, so
that cookies issued under a superseded key pair stay valid for as long as that
key pair is still configured.
"""

import hashlib
import hmac
import json
import logging
import os
import struct
import time
from base64 import urlsafe_b64decode, urlsafe_b64encode
from binascii import Error as BinasciiError
from typing import Any, NamedTuple, Optional, Sequence, Tuple

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .exceptions import ConfigurationError, EncodingError, ExpiredError, \
    InvalidSignatureError, MalformedError

logger = logging.getLogger(__name__)

DEFAULT_MAX_AGE = 86400 * 30
"""Default maximum age of a cookie value, in seconds."""

MAX_LENGTH = 4096
"""Longest cookie value that will be emitted; browsers drop larger cookies."""

TAG_SIZE = hashlib.sha256().digest_size
IV_SIZE = algorithms.AES.block_size // 8
BLOCK_KEY_SIZES = (16, 24, 32)
_TIMESTAMP = struct.Struct('>Q')
HEADER_SIZE = TAG_SIZE + _TIMESTAMP.size


class KeyPair(NamedTuple):
    """One generation of cookie signing and encryption keys."""

    hash_key: bytes
    """Key used to authenticate cookie values with HMAC-SHA256."""

    block_key: Optional[bytes] = None
    """
    Optional AES key (16, 24 or 32 bytes) used to encrypt cookie values.

    If not set, the session ID is signed but not encrypted.
    """


def _b64encode(data: bytes) -> str:
    return urlsafe_b64encode(data).decode('ascii').rstrip('=')


def _b64decode(value: str) -> bytes:
    padded = value + '=' * (-len(value) % 4)
    return urlsafe_b64decode(padded.encode('ascii'))


class SecureCookie(object):
    """Encodes and decodes cookie values with a single :class:`.KeyPair`."""

    def __init__(self, key_pair: KeyPair,
                 max_age: int = DEFAULT_MAX_AGE) -> None:
        """
        Validate the key material.

        Parameters
        ----------
        key_pair : :class:`.KeyPair`
        max_age : int
            Cookie values older than this many seconds are rejected. If 0,
            age is not checked.

        Raises
        ------
        :class:`.ConfigurationError`
            Raised if the hash key is empty or the block key has a length
            that AES does not support.

        """
        if not key_pair.hash_key:
            raise ConfigurationError('Hash key is not set')
        if key_pair.block_key \
                and len(key_pair.block_key) not in BLOCK_KEY_SIZES:
            raise ConfigurationError(
                f'Invalid block key size: {len(key_pair.block_key)}'
            )
        self.key_pair = key_pair
        self.max_age = max_age

    def with_max_age(self, max_age: int) -> 'SecureCookie':
        """Get a copy of this codec that enforces a different max age."""
        return SecureCookie(self.key_pair, max_age=max_age)

    def _cipher(self, iv: bytes) -> Cipher:
        return Cipher(algorithms.AES(self.key_pair.block_key), modes.CTR(iv))

    def _encrypt(self, data: bytes) -> bytes:
        iv = os.urandom(IV_SIZE)
        encryptor = self._cipher(iv).encryptor()
        return iv + encryptor.update(data) + encryptor.finalize()

    def _decrypt(self, data: bytes) -> bytes:
        if len(data) < IV_SIZE:
            raise MalformedError('Encrypted value is too short')
        decryptor = self._cipher(data[:IV_SIZE]).decryptor()
        return decryptor.update(data[IV_SIZE:]) + decryptor.finalize()

    def _tag(self, name: str, timestamp: bytes, payload: bytes) -> bytes:
        message = name.encode('utf-8') + b'|' + timestamp + b'|' + payload
        return hmac.new(self.key_pair.hash_key, message,
                        hashlib.sha256).digest()

    def encode(self, name: str, value: Any) -> str:
        """
        Encode ``value`` for the cookie called ``name``.

        Raises
        ------
        :class:`.EncodingError`
            Raised if ``value`` cannot be serialized, or if the encoded value
            would be too long for a browser to store.

        """
        try:
            payload = json.dumps(value, separators=(',', ':')).encode('utf-8')
        except (TypeError, ValueError) as e:
            raise EncodingError(f'Cannot serialize cookie value: {e}') from e
        if self.key_pair.block_key:
            payload = self._encrypt(payload)
        timestamp = _TIMESTAMP.pack(int(time.time()))
        tag = self._tag(name, timestamp, payload)
        encoded = _b64encode(tag + timestamp + payload)
        if len(encoded) > MAX_LENGTH:
            raise EncodingError('The encoded value is too long')
        return encoded

    def decode(self, name: str, value: str) -> Any:
        """
        Verify and decode the value of the cookie called ``name``.

        Raises
        ------
        :class:`.MalformedError`
            Raised if the value cannot be parsed.
        :class:`.InvalidSignatureError`
            Raised if the tag does not match under this key pair.
        :class:`.ExpiredError`
            Raised if the value is older than :attr:`max_age`.

        """
        if len(value) > MAX_LENGTH:
            raise MalformedError('The value is too long')
        try:
            raw = _b64decode(value)
        except (BinasciiError, ValueError) as e:
            raise MalformedError(f'Not a valid cookie value: {e}') from e
        if _b64encode(raw) != value:
            raise MalformedError('Not a canonical cookie value')
        if len(raw) < HEADER_SIZE:
            raise MalformedError('The value is too short')

        tag = raw[:TAG_SIZE]
        timestamp = raw[TAG_SIZE:HEADER_SIZE]
        payload = raw[HEADER_SIZE:]
        if not hmac.compare_digest(tag, self._tag(name, timestamp, payload)):
            raise InvalidSignatureError('The value is not valid')

        issued_at, = _TIMESTAMP.unpack(timestamp)
        if self.max_age and issued_at < int(time.time()) - self.max_age:
            raise ExpiredError('The value has expired')

        if self.key_pair.block_key:
            payload = self._decrypt(payload)
        try:
            return json.loads(payload.decode('utf-8'))
        except (UnicodeDecodeError, ValueError) as e:
            raise MalformedError(f'Cannot deserialize value: {e}') from e


Codecs = Tuple[SecureCookie, ...]


def codecs_from_pairs(*keys: Optional[bytes],
                      max_age: int = DEFAULT_MAX_AGE) -> Codecs:
    """
    Build codecs from alternating hash and block keys.

    For example, ``codecs_from_pairs(new_hash, new_block, old_hash, None)``
    returns two codecs, newest first. A trailing hash key without a block key
    is allowed.
    """
    codecs = []
    for i in range(0, len(keys), 2):
        hash_key = keys[i]
        block_key = keys[i + 1] if i + 1 < len(keys) else None
        codecs.append(SecureCookie(KeyPair(hash_key, block_key or None),
                                   max_age=max_age))
    return tuple(codecs)


def encode_multi(name: str, value: Any,
                 codecs: Sequence[SecureCookie]) -> str:
    """Encode ``value`` using the first (newest) codec."""
    if not codecs:
        raise EncodingError('No codecs were provided')
    return codecs[0].encode(name, value)


def decode_multi(name: str, value: str,
                 codecs: Sequence[SecureCookie]) -> Any:
    """
    Decode ``value`` with the first codec that accepts its signature.

    Raises
    ------
    :class:`.MalformedError`
        Raised as soon as the value cannot be parsed.
    :class:`.ExpiredError`
        Raised as soon as a codec validates the signature but the value is
        too old.
    :class:`.InvalidSignatureError`
        Raised if no codec validates the signature.

    """
    if not codecs:
        raise InvalidSignatureError('No codecs were provided')
    for i, codec in enumerate(codecs):
        try:
            return codec.decode(name, value)
        except InvalidSignatureError:
            logger.debug('Cookie %s not valid under key pair %i', name, i)
    raise InvalidSignatureError('The value is not valid under any key pair')
