"""Fixed-size table footer locating the index and bloom filter."""

from __future__ import annotations

import struct
from dataclasses import dataclass

from ..types import CorruptionError, InvalidMagicError

FOOTER_SIZE = 52
MAGIC = 0x524F434B5344425F
_KEY_PREFIX = 8

_HEAD = struct.Struct("<QIQI")
_KEY = struct.Struct("<H8s")
_MAGIC = struct.Struct("<Q")


@dataclass
class Footer:
    """Offsets and sizes of the index and bloom blocks, plus key prefixes."""

    index_offset: int
    index_size: int
    bloom_offset: int
    bloom_size: int
    min_key: bytes = b""
    max_key: bytes = b""

    def encode(self) -> bytes:
        """Encode into exactly FOOTER_SIZE bytes."""
        min_key = bytes(self.min_key)
        max_key = bytes(self.max_key)
        return b"".join(
            (
                _HEAD.pack(self.index_offset, self.index_size, self.bloom_offset, self.bloom_size),
                _KEY.pack(len(min_key) & 0xFFFF, min_key[:_KEY_PREFIX]),
                _KEY.pack(len(max_key) & 0xFFFF, max_key[:_KEY_PREFIX]),
                _MAGIC.pack(MAGIC),
            )
        )

    @classmethod
    def decode(cls, data: bytes) -> Footer:
        """Decode the footer held in the last FOOTER_SIZE bytes of ``data``."""
        data = bytes(data)
        if len(data) < FOOTER_SIZE:
            raise CorruptionError("Footer too small")
        data = data[-FOOTER_SIZE:]

        (magic,) = _MAGIC.unpack_from(data, FOOTER_SIZE - 8)
        if magic != MAGIC:
            raise InvalidMagicError()

        index_offset, index_size, bloom_offset, bloom_size = _HEAD.unpack_from(data, 0)
        min_len, min_raw = _KEY.unpack_from(data, 24)
        max_len, max_raw = _KEY.unpack_from(data, 34)
        return cls(
            index_offset=index_offset,
            index_size=index_size,
            bloom_offset=bloom_offset,
            bloom_size=bloom_size,
            min_key=min_raw[: min(min_len, _KEY_PREFIX)],
            max_key=max_raw[: min(max_len, _KEY_PREFIX)],
        )

    def may_contain_key(self, key: bytes) -> bool:
        """Whether ``key``'s prefix falls within the stored key prefixes."""
        prefix = bytes(key)[:_KEY_PREFIX]
        return self.min_key[:_KEY_PREFIX] <= prefix <= self.max_key[:_KEY_PREFIX]