"""Bounded cache of open table readers, keyed by file number."""

from __future__ import annotations

import os
import threading
from pathlib import Path

from .sstable.reader import BlockCacheMapping, SstableReader


class TableCache:
    """Keeps up to ``max_open_files`` readers open, sharing one block cache."""

    def __init__(
        self,
        db_path: str | os.PathLike,
        block_cache: BlockCacheMapping,
        max_open_files: int,
    ) -> None:
        self._db_path = Path(db_path)
        self._block_cache = block_cache
        self._max_open_files = max_open_files
        self._readers: dict[int, SstableReader] = {}
        self._lock = threading.Lock()

    def get(self, file_number: int) -> SstableReader:
        """Return the reader for a table, opening it if needed."""
        with self._lock:
            reader = self._readers.get(file_number)
            if reader is not None:
                return reader

            path = self._db_path / f"{file_number:06d}.sst"
            file = open(path, "rb")
            try:
                reader = SstableReader.open(file, file_number, self._block_cache)
            except BaseException:
                file.close()
                raise

            if self._readers and len(self._readers) >= self._max_open_files:
                del self._readers[next(iter(self._readers))]
            self._readers[file_number] = reader
            return reader

    def evict(self, file_number: int) -> None:
        """Forget the reader for a table, if one is cached."""
        with self._lock:
            self._readers.pop(file_number, None)

    def evict_by_path(self, path: str | os.PathLike) -> None:
        """Forget the reader for the table at ``path``; other names are ignored."""
        stem = Path(path).stem
        if stem.isdigit():
            self.evict(int(stem))

    def clear(self) -> None:
        """Forget every cached reader."""
        with self._lock:
            self._readers.clear()

    def __len__(self) -> int:
        return len(self._readers)