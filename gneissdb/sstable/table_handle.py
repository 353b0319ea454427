"""Shared open tables and a bounded cache of them."""

from __future__ import annotations

import os
import threading
from pathlib import Path
from typing import BinaryIO, Iterable

from .block import Block
from .index import IndexEntry
from .reader import BlockCacheMapping, _read_at, _read_footer_and_index


class SstableHandle:
    """An open table file with its decoded index, shared between iterators."""

    def __init__(
        self,
        file: BinaryIO,
        file_number: int,
        index_entries: Iterable[IndexEntry],
        cache: BlockCacheMapping,
    ) -> None:
        self._file = file
        self.file_number = file_number
        self.index_entries: tuple[IndexEntry, ...] = tuple(index_entries)
        self._cache = cache
        self._file_lock = threading.Lock()

    @classmethod
    def open(cls, file: BinaryIO, file_number: int, cache: BlockCacheMapping) -> SstableHandle:
        """Read the footer and index of an open table file."""
        _footer, index = _read_footer_and_index(file)
        return cls(file, file_number, index.entries(), cache)

    def read_block(self, offset: int, size: int) -> Block:
        """Return the block at ``offset``, from the cache when possible."""
        cache_key = (self.file_number, offset)
        cached = self._cache.get(cache_key)
        if cached is not None:
            return Block.unchecked(cached)
        with self._file_lock:
            data = _read_at(self._file, offset, size)
        block = Block(data)
        self._cache[cache_key] = data
        return block


class SstableHandleCache:
    """Keeps up to ``max_handles`` table handles open, keyed by file number."""

    def __init__(
        self,
        db_path: str | os.PathLike,
        block_cache: BlockCacheMapping,
        max_handles: int,
    ) -> None:
        self._db_path = Path(db_path)
        self._block_cache = block_cache
        self._max_handles = max_handles
        self._handles: dict[int, SstableHandle] = {}
        self._lock = threading.Lock()

    def get(self, file_number: int) -> SstableHandle:
        """Return the handle for a table, opening it if needed."""
        with self._lock:
            handle = self._handles.get(file_number)
            if handle is not None:
                return handle

            path = self._db_path / f"{file_number:06d}.sst"
            file = open(path, "rb")
            try:
                handle = SstableHandle.open(file, file_number, self._block_cache)
            except BaseException:
                file.close()
                raise

            if self._handles and len(self._handles) >= self._max_handles:
                del self._handles[next(iter(self._handles))]
            self._handles[file_number] = handle
            return handle

    def evict(self, file_number: int) -> None:
        """Forget the handle for a table, if one is cached."""
        with self._lock:
            self._handles.pop(file_number, None)