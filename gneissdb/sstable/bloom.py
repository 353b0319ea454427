"""Bloom filter over user keys, stored alongside each table."""

from __future__ import annotations

_U32 = 0xFFFFFFFF
_MAX_PROBES = 30


def _bloom_hash(key: bytes) -> int:
    h = 0
    for byte in key:
        h = (h * 0x5BD1E995 + byte) & _U32
        h ^= h >> 15
    return h


def _rotate_left15(h: int) -> int:
    return ((h << 15) | (h >> 17)) & _U32


class BloomFilter:
    """Probabilistic set membership: no false negatives, few false positives."""

    def __init__(self, bits_per_key: int, num_keys: int) -> None:
        bits = max(64, num_keys * bits_per_key)
        self._k = min(max(int(bits_per_key * 0.69), 1), _MAX_PROBES)
        self._bits = bytearray((bits + 7) // 8)

    @classmethod
    def from_bytes(cls, data: bytes) -> BloomFilter | None:
        """Rebuild a filter from its encoding, or None if it is invalid."""
        data = bytes(data)
        if not data:
            return None
        k = data[-1]
        if k > _MAX_PROBES:
            return None
        bloom = cls.__new__(cls)
        bloom._k = k
        bloom._bits = bytearray(data[:-1])
        return bloom

    def _positions(self, key: bytes):
        h = _bloom_hash(key)
        delta = _rotate_left15(h)
        bits_len = len(self._bits) * 8
        for _ in range(self._k):
            yield h % bits_len
            h = (h + delta) & _U32

    def add(self, key: bytes) -> None:
        """Record ``key`` in the filter."""
        for pos in self._positions(bytes(key)):
            self._bits[pos // 8] |= 1 << (pos % 8)

    def may_contain(self, key: bytes) -> bool:
        """False if ``key`` was certainly never added."""
        return all(
            self._bits[pos // 8] & (1 << (pos % 8)) for pos in self._positions(bytes(key))
        )

    def encode(self) -> bytes:
        """Encode as the bit array followed by the probe count byte."""
        return bytes(self._bits) + bytes((self._k,))

    def size(self) -> int:
        """Length of the encoded filter in bytes."""
        return len(self._bits) + 1