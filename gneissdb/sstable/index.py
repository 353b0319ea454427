"""Index block mapping each data block's last key to its location."""

from __future__ import annotations

import bisect
import struct
from dataclasses import dataclass

from ..types import CorruptionError

_U32 = struct.Struct("<I")
_LOCATION = struct.Struct("<QI")


@dataclass(frozen=True)
class IndexEntry:
    """Location of one data block and the last key it holds."""

    last_key: bytes
    offset: int
    size: int


class IndexBlock:
    """Ordered list of data block locations."""

    def __init__(self, entries: list[IndexEntry] | None = None) -> None:
        self._entries: list[IndexEntry] = list(entries or [])

    def add(self, last_key: bytes, offset: int, size: int) -> None:
        """Append a block location; blocks must be added in key order."""
        self._entries.append(IndexEntry(bytes(last_key), offset, size))

    def find_block(self, key: bytes) -> IndexEntry | None:
        """The first block whose last key is >= ``key``, else the last block."""
        if not self._entries:
            return None
        idx = bisect.bisect_left(self._entries, bytes(key), key=lambda e: e.last_key)
        if idx < len(self._entries):
            return self._entries[idx]
        return self._entries[-1]

    def encode(self) -> bytes:
        """Encode as a count followed by length-prefixed entries."""
        parts = [_U32.pack(len(self._entries))]
        for entry in self._entries:
            parts.append(_U32.pack(len(entry.last_key)))
            parts.append(entry.last_key)
            parts.append(_LOCATION.pack(entry.offset, entry.size))
        return b"".join(parts)

    @classmethod
    def decode(cls, data: bytes) -> IndexBlock:
        """Decode an encoded index block."""
        data = bytes(data)
        if len(data) < 4:
            raise CorruptionError("Index block too small")
        (count,) = _U32.unpack_from(data, 0)
        pos = 4
        entries = []
        for _ in range(count):
            if pos + 4 > len(data):
                raise CorruptionError("Index entry truncated")
            (key_len,) = _U32.unpack_from(data, pos)
            pos += 4
            if pos + key_len + 12 > len(data):
                raise CorruptionError("Index entry truncated")
            last_key = data[pos : pos + key_len]
            pos += key_len
            offset, size = _LOCATION.unpack_from(data, pos)
            pos += 12
            entries.append(IndexEntry(last_key, offset, size))
        return cls(entries)

    def entries(self) -> tuple[IndexEntry, ...]:
        """All entries in order."""
        return tuple(self._entries)

    def is_empty(self) -> bool:
        """True if the index holds no blocks."""
        return not self._entries

    def __len__(self) -> int:
        return len(self._entries)