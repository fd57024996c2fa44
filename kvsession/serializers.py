"""
Serializers for session values.

Two strategies are provided, and they differ in type fidelity:

- :class:`PickleSerializer` is a schema-free binary format. Values come back
  with exactly the types they were stored with: ``1`` stays an ``int``,
  ``1.0`` stays a ``float``, tuples stay tuples, and so on. This is the
  default.
- :class:`JSONSerializer` is a text format. Every number comes back as a
  ``float`` and tuples come back as lists. Keys must be strings, and values
  must be representable in JSON.

Changing the serializer of a store that already holds sessions makes those
sessions unreadable; loading one raises :class:`.SerializationError`.
"""

import json
import pickle
from abc import ABC, abstractmethod
from typing import Any, Dict

from .exceptions import ConfigurationError, SerializationError

Values = Dict[Any, Any]


class SessionSerializer(ABC):
    """Converts session values to and from bytes."""

    @abstractmethod
    def serialize(self, values: Values) -> bytes:
        """Serialize ``values`` for storage."""

    @abstractmethod
    def deserialize(self, data: bytes) -> Values:
        """Reconstitute values from stored bytes."""


class PickleSerializer(SessionSerializer):
    """
    Binary serializer that preserves exact Python types.

    Only use this with a backend that you trust; unpickling executes
    arbitrary code embedded in the payload.
    """

    protocol = pickle.HIGHEST_PROTOCOL

    def serialize(self, values: Values) -> bytes:
        try:
            return pickle.dumps(dict(values), protocol=self.protocol)
        except (pickle.PicklingError, TypeError, AttributeError) as e:
            raise SerializationError(f'Cannot pickle session: {e}') from e

    def deserialize(self, data: bytes) -> Values:
        try:
            values = pickle.loads(data)
        except Exception as e:
            raise SerializationError(f'Cannot unpickle session: {e}') from e
        if not isinstance(values, dict):
            raise SerializationError('Stored session is not a mapping')
        return values


def _check_keys(value: Any) -> None:
    if isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                raise SerializationError(
                    f'Non-string key value, cannot serialize session to'
                    f' JSON: {key!r}'
                )
            _check_keys(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            _check_keys(item)


class JSONSerializer(SessionSerializer):
    """
    Text serializer using JSON.

    All numbers are decoded as ``float``, so ``{'n': 1}`` comes back as
    ``{'n': 1.0}``. Bools, strings, ``None``, lists and string-keyed dicts
    round-trip unchanged.
    """

    def serialize(self, values: Values) -> bytes:
        # json.dumps would silently turn int, float and bool keys into str.
        _check_keys(values)
        try:
            return json.dumps(values, separators=(',', ':'),
                              allow_nan=False).encode('utf-8')
        except (TypeError, ValueError) as e:
            raise SerializationError(f'Cannot serialize session: {e}') from e

    def deserialize(self, data: bytes) -> Values:
        try:
            values = json.loads(data, parse_int=float)
        except (TypeError, ValueError) as e:     # Includes UnicodeDecodeError.
            raise SerializationError(f'Cannot decode session: {e}') from e
        if not isinstance(values, dict):
            raise SerializationError('Stored session is not a JSON object')
        return values


SERIALIZERS = {
    'pickle': PickleSerializer,
    'json': JSONSerializer,
}
"""Serializers that can be selected by name in configuration."""


def get_serializer(name: str) -> SessionSerializer:
    """Get a serializer instance by its configured name."""
    try:
        return SERIALIZERS[name.lower()]()
    except KeyError as e:
        raise ConfigurationError(f'Unknown session serializer: {name}') from e
