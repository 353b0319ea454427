"""Core key types, varint coding and the storage error hierarchy."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

U64_MASK = (1 << 64) - 1
INTERNAL_KEY_SUFFIX = 9


class DbError(Exception):
    """Base class for all storage errors."""


class CorruptionError(DbError):
    """Stored data is malformed or truncated."""


class InvalidCrcError(DbError):
    """A checksum did not match its data."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"invalid crc: expected {expected:#010x}, actual {actual:#010x}")
        self.expected = expected
        self.actual = actual


class InvalidMagicError(DbError):
    """A table footer did not carry the expected magic number."""

    def __init__(self, message: str = "invalid magic number") -> None:
        super().__init__(message)


class ValueType(IntEnum):
    """Kind of entry stored under an internal key."""

    DELETION = 0
    VALUE = 1


def _as_bytes(data: bytes | bytearray | memoryview | str) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


def _check_sequence(sequence: int) -> int:
    if not 0 <= sequence <= U64_MASK:
        raise ValueError(f"sequence number out of range: {sequence}")
    return sequence


def _encode_internal(user_key: bytes, sequence: int, value_type: ValueType) -> bytes:
    inverted = ~sequence & U64_MASK
    return user_key + inverted.to_bytes(8, "big") + bytes((int(value_type),))


@dataclass(frozen=True)
class InternalKey:
    """A user key tagged with a sequence number and an entry type.

    Keys order by user key ascending, then by sequence descending, so the
    newest version of a key comes first.
    """

    user_key: bytes
    sequence: int
    value_type: ValueType = ValueType.VALUE

    def __post_init__(self) -> None:
        object.__setattr__(self, "user_key", _as_bytes(self.user_key))
        object.__setattr__(self, "sequence", _check_sequence(self.sequence))
        object.__setattr__(self, "value_type", ValueType(self.value_type))

    @classmethod
    def for_seek(cls, user_key: bytes, sequence: int) -> InternalKey:
        """Build a key suitable for seeking to the newest version at ``sequence``."""
        return cls(user_key, sequence, ValueType.VALUE)

    def encode(self) -> bytes:
        """Encode as user key, inverted big-endian sequence and type byte."""
        return _encode_internal(self.user_key, self.sequence, self.value_type)

    @classmethod
    def decode(cls, data: bytes) -> InternalKey | None:
        """Decode an encoded key, or return None if it is malformed."""
        data = bytes(data)
        if len(data) < INTERNAL_KEY_SUFFIX:
            return None
        try:
            value_type = ValueType(data[-1])
        except ValueError:
            return None
        inverted = int.from_bytes(data[-9:-1], "big")
        return cls(data[:-9], ~inverted & U64_MASK, value_type)

    def encoded_len(self) -> int:
        """Length of the encoded form."""
        return len(self.user_key) + INTERNAL_KEY_SUFFIX

    def _sort_key(self) -> tuple[bytes, int]:
        return (self.user_key, -self.sequence)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, InternalKey):
            return NotImplemented
        return self._sort_key() < other._sort_key()

    def __le__(self, other: object) -> bool:
        if not isinstance(other, InternalKey):
            return NotImplemented
        return self._sort_key() <= other._sort_key()

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, InternalKey):
            return NotImplemented
        return self._sort_key() > other._sort_key()

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, InternalKey):
            return NotImplemented
        return self._sort_key() >= other._sort_key()


def encode_seek_key(user_key: bytes, sequence: int) -> bytes:
    """Encode a seek key for ``user_key`` visible at ``sequence``."""
    return _encode_internal(_as_bytes(user_key), _check_sequence(sequence), ValueType.VALUE)


def encode_varint(value: int) -> bytes:
    """Encode an unsigned 64-bit integer as a little-endian base-128 varint."""
    if not 0 <= value <= U64_MASK:
        raise ValueError(f"varint value out of range: {value}")
    out = bytearray()
    while value >= 0x80:
        out.append((value & 0x7F) | 0x80)
        value >>= 7
    out.append(value)
    return bytes(out)


def decode_varint(data: bytes) -> tuple[int, int] | None:
    """Decode a varint from the start of ``data``.

    Returns ``(value, bytes_read)``, or None if the data is truncated or the
    varint is too long for 64 bits.
    """
    result = 0
    shift = 0
    for count, byte in enumerate(data, start=1):
        if shift > 63:
            return None
        result = (result | ((byte & 0x7F) << shift)) & U64_MASK
        if not byte & 0x80:
            return result, count
        shift += 7
    return None