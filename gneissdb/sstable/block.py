"""Data blocks: prefix-compressed sorted key/value entries with restart points."""

from __future__ import annotations

import struct
import zlib

from ..types import CorruptionError, InvalidCrcError, decode_varint, encode_varint

_U32 = struct.Struct("<I")
_MAX_VARINT_LEN = 10


def _shared_prefix_len(a: bytes, b: bytes) -> int:
    for i, (x, y) in enumerate(zip(a, b)):
        if x != y:
            return i
    return min(len(a), len(b))


class BlockBuilder:
    """Accumulates sorted entries and encodes them as a block."""

    def __init__(self, restart_interval: int = 16) -> None:
        if restart_interval <= 0:
            raise ValueError("restart interval must be positive")
        self._restart_interval = restart_interval
        self._buffer = bytearray()
        self._restarts: list[int] = [0]
        self._last_key = b""
        self._entry_count = 0

    def add(self, key: bytes, value: bytes) -> None:
        """Append an entry; keys must be added in ascending order."""
        key = bytes(key)
        value = bytes(value)
        if self._entry_count % self._restart_interval == 0:
            if self._entry_count > 0:
                self._restarts.append(len(self._buffer))
            shared = 0
        else:
            shared = _shared_prefix_len(self._last_key, key)

        self._buffer += encode_varint(shared)
        self._buffer += encode_varint(len(key) - shared)
        self._buffer += encode_varint(len(value))
        self._buffer += key[shared:]
        self._buffer += value

        self._last_key = key
        self._entry_count += 1

    def finish(self) -> bytes:
        """Encode the block: entries, restart offsets, restart count and CRC."""
        out = bytearray(self._buffer)
        for restart in self._restarts[1:]:
            out += _U32.pack(restart)
        out += _U32.pack(len(self._restarts) - 1)
        out += _U32.pack(zlib.crc32(out) & 0xFFFFFFFF)
        return bytes(out)

    def estimated_size(self) -> int:
        """Approximate encoded size of the block so far."""
        return len(self._buffer) + len(self._restarts) * 4 + 8

    def is_empty(self) -> bool:
        """True if no entries have been added."""
        return self._entry_count == 0

    def reset(self) -> None:
        """Discard all entries."""
        self._buffer.clear()
        self._restarts = [0]
        self._last_key = b""
        self._entry_count = 0

    def last_key(self) -> bytes:
        """The most recently added key."""
        return self._last_key


class Block:
    """A decoded, read-only block."""

    def __init__(self, data: bytes) -> None:
        data = bytes(data)
        if len(data) < 8:
            raise CorruptionError("Block too small")
        crc_offset = len(data) - 4
        (expected,) = _U32.unpack_from(data, crc_offset)
        actual = zlib.crc32(data[:crc_offset]) & 0xFFFFFFFF
        if expected != actual:
            raise InvalidCrcError(expected, actual)
        self._setup(data)

    @classmethod
    def unchecked(cls, data: bytes) -> Block:
        """Build a block without verifying its checksum."""
        block = cls.__new__(cls)
        block._setup(bytes(data))
        return block

    def _setup(self, data: bytes) -> None:
        if len(data) < 8:
            raise CorruptionError("Block too small")
        crc_offset = len(data) - 4
        count_offset = crc_offset - 4
        (restart_count,) = _U32.unpack_from(data, count_offset)
        restart_offset = count_offset - restart_count * 4
        if restart_offset < 0:
            raise CorruptionError("Block restart array out of range")
        self._data = data
        self._restart_count = restart_count
        self._restart_offset = restart_offset

    def __iter__(self) -> BlockIterator:
        return BlockIterator(self._data, self._restart_offset, 0)

    def seek(self, target: bytes) -> BlockIterator:
        """Iterator positioned at the first entry with key >= ``target``."""
        target = bytes(target)
        start = self._restart(self._find_restart_point(target))
        it = BlockIterator(self._data, self._restart_offset, start)
        while (entry := it.peek()) is not None and entry[0] < target:
            next(it)
        return it

    def _find_restart_point(self, target: bytes) -> int:
        if self._restart_count == 0:
            return 0
        left, right = 0, self._restart_count
        while left < right:
            mid = left + (right - left) // 2
            key = self._decode_key_at(self._restart(mid))
            if key is None:
                break
            if key < target:
                left = mid + 1
            else:
                right = mid
        return left - 1 if left > 0 else 0

    def _decode_key_at(self, pos: int) -> bytes | None:
        if pos >= self._restart_offset:
            return None
        header = _read_header(self._data, pos)
        if header is None:
            return None
        shared, non_shared, _value_len, offset = header
        if shared != 0:
            return None
        key_end = offset + non_shared
        if key_end > len(self._data):
            return None
        return self._data[offset:key_end]

    def _restart(self, index: int) -> int:
        if index == 0:
            return 0
        (offset,) = _U32.unpack_from(self._data, self._restart_offset + (index - 1) * 4)
        return offset


def _read_header(data: bytes, pos: int) -> tuple[int, int, int, int] | None:
    fields = []
    for _ in range(3):
        decoded = decode_varint(data[pos : pos + _MAX_VARINT_LEN])
        if decoded is None:
            return None
        value, read = decoded
        fields.append(value)
        pos += read
    return fields[0], fields[1], fields[2], pos


class BlockIterator:
    """Yields ``(key, value)`` pairs from a block in order."""

    def __init__(self, data: bytes, restart_offset: int, pos: int) -> None:
        self._data = data
        self._restart_offset = restart_offset
        self._pos = pos
        self._current_key = b""

    def _decode(self) -> tuple[bytes, bytes, int] | None:
        if self._pos >= self._restart_offset:
            return None
        header = _read_header(self._data, self._pos)
        if header is None:
            return None
        shared, non_shared, value_len, pos = header
        key_end = pos + non_shared
        value_end = key_end + value_len
        if shared > len(self._current_key) or value_end > self._restart_offset:
            raise CorruptionError("Block entry out of range")
        key = self._current_key[:shared] + self._data[pos:key_end]
        return key, self._data[key_end:value_end], value_end

    def peek(self) -> tuple[bytes, bytes] | None:
        """The next entry without consuming it, or None at the end."""
        decoded = self._decode()
        if decoded is None:
            return None
        key, value, _ = decoded
        return key, value

    def __iter__(self) -> BlockIterator:
        return self

    def __next__(self) -> tuple[bytes, bytes]:
        decoded = self._decode()
        if decoded is None:
            raise StopIteration
        key, value, self._pos = decoded
        self._current_key = key
        return key, value