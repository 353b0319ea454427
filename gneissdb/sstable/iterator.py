"""Sequential iteration over every entry of a table."""

from __future__ import annotations

from typing import BinaryIO

from .block import Block, BlockIterator
from .index import IndexEntry
from .reader import BlockCacheMapping, _read_at, _read_footer_and_index
from .table_handle import SstableHandle


class SstableIterator:
    """Yields ``(encoded_key, value)`` pairs from a table in key order."""

    def __init__(
        self,
        index_entries: tuple[IndexEntry, ...],
        file_number: int,
        cache: BlockCacheMapping,
        file: BinaryIO | None = None,
        handle: SstableHandle | None = None,
    ) -> None:
        self._index_entries = index_entries
        self._file_number = file_number
        self._cache = cache
        self._file = file
        self._handle = handle
        self._block_idx = 0
        self._block_iter: BlockIterator | None = None

    @classmethod
    def open(cls, file: BinaryIO, file_number: int, cache: BlockCacheMapping) -> SstableIterator:
        """Iterate over an open table file, reading blocks through ``cache``."""
        _footer, index = _read_footer_and_index(file)
        return cls(index.entries(), file_number, cache, file=file)

    @classmethod
    def from_handle(cls, handle: SstableHandle) -> SstableIterator:
        """Iterate over a table through a shared handle."""
        return cls(handle.index_entries, handle.file_number, {}, handle=handle)

    def seek(self, target: bytes) -> None:
        """Position before the first entry with key >= ``target``."""
        target = bytes(target)
        self._block_iter = None
        self._block_idx = next(
            (i for i, e in enumerate(self._index_entries) if e.last_key >= target),
            len(self._index_entries),
        )
        if self._block_idx < len(self._index_entries):
            self._block_iter = self._load_block().seek(target)

    def _load_block(self) -> Block:
        entry = self._index_entries[self._block_idx]
        return self._read_block(entry.offset, entry.size)

    def _read_block(self, offset: int, size: int) -> Block:
        if self._handle is not None:
            return self._handle.read_block(offset, size)
        cache_key = (self._file_number, offset)
        cached = self._cache.get(cache_key)
        if cached is not None:
            return Block.unchecked(cached)
        data = _read_at(self._file, offset, size)
        block = Block(data)
        self._cache[cache_key] = data
        return block

    def __iter__(self) -> SstableIterator:
        return self

    def __next__(self) -> tuple[bytes, bytes]:
        while True:
            if self._block_iter is None:
                if self._block_idx >= len(self._index_entries):
                    raise StopIteration
                self._block_iter = iter(self._load_block())
            entry = next(self._block_iter, None)
            if entry is not None:
                return entry
            self._block_idx += 1
            self._block_iter = None

    def is_valid(self) -> bool:
        """True while blocks remain to be read."""
        return self._block_idx < len(self._index_entries) or self._block_iter is not None