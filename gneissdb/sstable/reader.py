"""Point lookups in a table file."""

from __future__ import annotations

import os
from collections.abc import MutableMapping
from dataclasses import dataclass
from enum import Enum
from typing import BinaryIO

from ..types import CorruptionError, InternalKey, ValueType, encode_seek_key
from .block import Block
from .bloom import BloomFilter
from .footer import FOOTER_SIZE, Footer
from .index import IndexBlock

BlockCacheMapping = MutableMapping[tuple[int, int], bytes]


class LookupKind(Enum):
    """Outcome of a point lookup."""

    FOUND = "found"
    DELETED = "deleted"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class LookupResult:
    """Outcome of a point lookup, with the value when one was found."""

    kind: LookupKind
    value: bytes | None = None


_NOT_FOUND = LookupResult(LookupKind.NOT_FOUND)
_DELETED = LookupResult(LookupKind.DELETED)


def _file_size(file: BinaryIO) -> int:
    return file.seek(0, os.SEEK_END)


def _read_at(file: BinaryIO, offset: int, size: int) -> bytes:
    file.seek(offset)
    data = file.read(size)
    if len(data) != size:
        raise CorruptionError(f"short read at offset {offset}: wanted {size}, got {len(data)}")
    return data


def _read_footer_and_index(file: BinaryIO) -> tuple[Footer, IndexBlock]:
    size = _file_size(file)
    if size < FOOTER_SIZE:
        raise CorruptionError("Footer too small")
    footer = Footer.decode(_read_at(file, size - FOOTER_SIZE, FOOTER_SIZE))
    index = IndexBlock.decode(_read_at(file, footer.index_offset, footer.index_size))
    return footer, index


class SstableReader:
    """Reads values from a finished table, caching decoded blocks.

    ``cache`` maps ``(file_number, offset)`` to raw block bytes.
    """

    def __init__(
        self,
        file: BinaryIO,
        file_number: int,
        footer: Footer,
        index: IndexBlock,
        bloom: BloomFilter | None,
        cache: BlockCacheMapping,
    ) -> None:
        self._file = file
        self._file_number = file_number
        self._footer = footer
        self._index = index
        self._bloom = bloom
        self._cache = cache

    @classmethod
    def open(cls, file: BinaryIO, file_number: int, cache: BlockCacheMapping) -> SstableReader:
        """Read the footer, index and bloom filter of an open table file."""
        footer, index = _read_footer_and_index(file)
        bloom = None
        if footer.bloom_size > 0:
            bloom = BloomFilter.from_bytes(
                _read_at(file, footer.bloom_offset, footer.bloom_size)
            )
        return cls(file, file_number, footer, index, bloom, cache)

    def get(self, user_key: bytes, sequence: int) -> LookupResult:
        """Find the newest entry for ``user_key`` visible at ``sequence``."""
        user_key = bytes(user_key)
        if self._bloom is not None and not self._bloom.may_contain(user_key):
            return _NOT_FOUND

        seek_key = encode_seek_key(user_key, sequence)
        entry = self._index.find_block(seek_key)
        if entry is None:
            return _NOT_FOUND

        block = self._read_block(entry.offset, entry.size)
        for key, value in block.seek(seek_key):
            parsed = InternalKey.decode(key)
            if parsed is None:
                continue
            if parsed.user_key != user_key:
                if parsed.user_key > user_key:
                    break
                continue
            if parsed.sequence <= sequence:
                if parsed.value_type is ValueType.VALUE:
                    return LookupResult(LookupKind.FOUND, value)
                return _DELETED
        return _NOT_FOUND

    def _read_block(self, offset: int, size: int) -> Block:
        cached = self._cache.get((self._file_number, offset))
        if cached is not None:
            return Block.unchecked(cached)
        data = _read_at(self._file, offset, size)
        block = Block(data)
        self._cache[(self._file_number, offset)] = data
        return block

    def min_key(self) -> bytes:
        """Prefix of the smallest encoded key, as stored in the footer."""
        return self._footer.min_key

    def max_key(self) -> bytes:
        """Prefix of the largest encoded key, as stored in the footer."""
        return self._footer.max_key

    def file_number(self) -> int:
        """Number identifying this table file."""
        return self._file_number

    def close(self) -> None:
        """Close the underlying file."""
        self._file.close()