"""Minimal JSON object encoder for metrics payloads.

The collector expects a byte-exact format, so this module does its own
serialization instead of going through json.dumps:

- no whitespace, fields in append order
- keys and strings escape only backslash, double quote and code points
  below 0x20 (as \\u00xx, lowercase hex); "/" is left alone
- integers in plain decimal

A PayloadBuilder is single-use. After build() every further append or
build raises BuilderStateError.
"""
from __future__ import annotations

from collections.abc import Sequence

from plugstats.errors import BuilderStateError, InvalidArgumentError


class Payload:
    """An immutable, already-serialized JSON object."""

    __slots__ = ("_value",)

    def __init__(self, value: str) -> None:
        object.__setattr__(self, "_value", value)

    def __setattr__(self, name, value):
        raise AttributeError("Payload is immutable")

    def __str__(self) -> str:
        return self._value

    def __repr__(self) -> str:
        return f"Payload({self._value!r})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, Payload):
            return NotImplemented
        return self._value == other._value

    def __hash__(self) -> int:
        return hash(self._value)

    def to_bytes(self) -> bytes:
        """UTF-8 encoding of the serialized object."""
        return self._value.encode("utf-8")


class PayloadBuilder:
    """Builds a Payload from an ordered sequence of field appends.

    Example::

        payload = (
            PayloadBuilder()
            .append_field("osName", "Linux")
            .append_field("coreCount", 8)
            .append_null("proxy")
            .build()
        )
        str(payload)  # '{"osName":"Linux","coreCount":8,"proxy":null}'
    """

    def __init__(self) -> None:
        self._parts: list[str] | None = []

    def append_null(self, key: str) -> "PayloadBuilder":
        """Append a field whose value is JSON null."""
        self._check_key(key)
        self._parts.append(_quote(key) + ":null")
        return self

    def append_field(self, key: str, value) -> "PayloadBuilder":
        """Append a field.

        Args:
            key: Field name. Must not be None.
            value: str, int, Payload, or a sequence of exactly one of those
                kinds. Must not be None; use append_null() for nulls.

        Raises:
            InvalidArgumentError: key or value is None.
            TypeError: value is of an unsupported kind.
            BuilderStateError: the builder was already built.
        """
        self._check_key(key)
        if value is None:
            raise InvalidArgumentError("JSON value must not be null")
        self._parts.append(_quote(key) + ":" + _encode_value(value))
        return self

    def build(self) -> Payload:
        """Finalize the object. The builder cannot be used afterwards."""
        if self._parts is None:
            raise BuilderStateError("JSON has already been built")
        payload = Payload("{" + ",".join(self._parts) + "}")
        self._parts = None
        return payload

    def _check_key(self, key: str) -> None:
        if self._parts is None:
            raise BuilderStateError("JSON has already been built")
        if key is None:
            raise InvalidArgumentError("JSON key must not be null")
        if not isinstance(key, str):
            raise TypeError(f"JSON key must be a string, got {type(key).__name__}")


def escape(value: str) -> str:
    """Escape a string for use inside JSON double quotes."""
    out = []
    for ch in value:
        if ch == '"':
            out.append('\\"')
        elif ch == "\\":
            out.append("\\\\")
        elif ch < " ":
            out.append("\\u%04x" % ord(ch))
        else:
            out.append(ch)
    return "".join(out)


def _quote(value: str) -> str:
    return '"' + escape(value) + '"'


def _is_int(value) -> bool:
    # bool is an int subclass but not a supported field kind
    return isinstance(value, int) and not isinstance(value, bool)


def _encode_value(value) -> str:
    if isinstance(value, str):
        return _quote(value)
    if _is_int(value):
        return str(value)
    if isinstance(value, Payload):
        return str(value)
    if isinstance(value, Sequence) and not isinstance(value, (bytes, bytearray)):
        return _encode_array(value)
    raise TypeError(f"Unsupported JSON value type: {type(value).__name__}")


def _encode_array(values: Sequence) -> str:
    if any(v is None for v in values):
        raise InvalidArgumentError("JSON array elements must not be null")
    if all(isinstance(v, str) for v in values):
        encoded = [_quote(v) for v in values]
    elif all(_is_int(v) for v in values):
        encoded = [str(v) for v in values]
    elif all(isinstance(v, Payload) for v in values):
        encoded = [str(v) for v in values]
    else:
        raise TypeError("JSON arrays must hold only strings, only ints or only objects")
    return "[" + ",".join(encoded) + "]"
