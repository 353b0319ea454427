"""Writes sorted entries into an immutable table file."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

from ..types import INTERNAL_KEY_SUFFIX, InternalKey
from .block import BlockBuilder
from .bloom import BloomFilter
from .footer import FOOTER_SIZE, Footer
from .index import IndexBlock

_RESTART_INTERVAL = 16


@dataclass(frozen=True)
class SstableMetadata:
    """Summary of a finished table file."""

    path: Path
    file_size: int
    entry_count: int
    min_key: bytes
    max_key: bytes


class SstableBuilder:
    """Builds a table from entries added in ascending internal-key order.

    The layout is: data blocks, bloom filter, index block, footer.
    """

    def __init__(
        self,
        file: BinaryIO,
        path: str | os.PathLike,
        block_size: int,
        bloom_bits_per_key: int,
        estimated_entries: int,
    ) -> None:
        self._file = file
        self._path = Path(path)
        self._block_builder = BlockBuilder(_RESTART_INTERVAL)
        self._index = IndexBlock()
        self._bloom = BloomFilter(bloom_bits_per_key, estimated_entries)
        self._block_size = block_size
        self._current_offset = 0
        self._first_key: bytes | None = None
        self._last_key: bytes | None = None
        self._entry_count = 0
        self._finished = False

    def _check_open(self) -> None:
        if self._finished:
            raise ValueError("table builder has already been finished")

    def _record_key(self, encoded_key: bytes) -> None:
        if self._first_key is None:
            self._first_key = encoded_key
        self._last_key = encoded_key

    def add(self, key: InternalKey, value: bytes) -> None:
        """Add an entry under an internal key."""
        self._check_open()
        encoded_key = key.encode()
        self._record_key(encoded_key)
        self._bloom.add(key.user_key)
        self._block_builder.add(encoded_key, value)
        self._entry_count += 1
        self._maybe_flush()

    def add_raw(self, key: bytes, value: bytes) -> None:
        """Add an entry under an already encoded internal key."""
        self._check_open()
        key = bytes(key)
        self._record_key(key)
        if len(key) >= INTERNAL_KEY_SUFFIX:
            self._bloom.add(key[:-INTERNAL_KEY_SUFFIX])
        self._block_builder.add(key, value)
        self._entry_count += 1
        self._maybe_flush()

    def _maybe_flush(self) -> None:
        if self._block_builder.estimated_size() >= self._block_size:
            self._flush_block()

    def _write(self, data: bytes) -> None:
        self._file.write(data)
        self._current_offset += len(data)

    def _flush_block(self) -> None:
        if self._block_builder.is_empty():
            return
        last_key = self._block_builder.last_key()
        block_data = self._block_builder.finish()
        self._block_builder = BlockBuilder(_RESTART_INTERVAL)
        offset = self._current_offset
        self._write(block_data)
        self._index.add(last_key, offset, len(block_data))

    def _sync_and_close(self) -> None:
        self._file.flush()
        try:
            os.fsync(self._file.fileno())
        except (AttributeError, OSError):
            pass
        self._file.close()

    def finish(self) -> SstableMetadata:
        """Write the remaining data, the bloom filter, index and footer, then close."""
        self._check_open()
        self._flush_block()

        bloom_offset = self._current_offset
        bloom_data = self._bloom.encode()
        self._write(bloom_data)

        index_offset = self._current_offset
        index_data = self._index.encode()
        self._write(index_data)

        min_key = self._first_key or b""
        max_key = self._last_key or b""
        footer = Footer(
            index_offset=index_offset,
            index_size=len(index_data),
            bloom_offset=bloom_offset,
            bloom_size=len(bloom_data),
            min_key=min_key,
            max_key=max_key,
        )
        footer_data = footer.encode()
        assert len(footer_data) == FOOTER_SIZE
        self._write(footer_data)

        self._sync_and_close()
        self._finished = True

        return SstableMetadata(
            path=self._path,
            file_size=self._current_offset,
            entry_count=self._entry_count,
            min_key=min_key,
            max_key=max_key,
        )

    def estimated_size(self) -> int:
        """Bytes written so far plus the size of the pending block."""
        return self._current_offset + self._block_builder.estimated_size()