"""Merges memtable and table sources into one ordered, de-duplicated stream."""

from __future__ import annotations

import heapq
import itertools
from typing import Iterable, Iterator

from .types import INTERNAL_KEY_SUFFIX, U64_MASK, InternalKey, ValueType


def _parse_encoded(key: bytes) -> tuple[bytes, int, int]:
    user_key = bytes(key[:-INTERNAL_KEY_SUFFIX])
    inverted = int.from_bytes(key[-INTERNAL_KEY_SUFFIX:-1], "big")
    return user_key, ~inverted & U64_MASK, key[-1]


class _MemtableSource:
    def __init__(
        self,
        entries: list[tuple[InternalKey, bytes]],
        position: int,
        end_key: bytes,
        max_sequence: int,
    ) -> None:
        self.entries = entries
        self.position = position
        self.end_key = end_key
        self.max_sequence = max_sequence

    def peek(self) -> tuple[InternalKey, bytes] | None:
        if self.position >= len(self.entries):
            return None
        key, value = self.entries[self.position]
        if key.user_key >= self.end_key or key.sequence > self.max_sequence:
            return None
        return key, value

    def advance(self) -> None:
        self.position += 1
        while self.position < len(self.entries):
            key, _ = self.entries[self.position]
            if key.user_key >= self.end_key or key.sequence <= self.max_sequence:
                break
            self.position += 1


class MergeIterator:
    """Yields ``(user_key, value)`` for the newest live version of each key.

    Keys run in ascending order and stop before ``end_key``; versions newer
    than ``max_sequence`` are ignored and keys whose newest visible version
    is a deletion are skipped. Memtable sources must be added first, with
    ``source_idx`` counting from 0, and table sources after them.
    """

    def __init__(self, end_key: bytes, max_sequence: int) -> None:
        self._end_key = bytes(end_key)
        self._max_sequence = max_sequence
        self._heap: list[tuple[bytes, int, int, int, bytes, int]] = []
        self._counter = itertools.count()
        self._memtable_sources: list[_MemtableSource] = []
        self._sstable_sources: list[Iterator[tuple[bytes, bytes]]] = []
        self._last_user_key: bytes | None = None

    def _push(
        self, user_key: bytes, sequence: int, value_type: int, value: bytes, source_idx: int
    ) -> None:
        heapq.heappush(
            self._heap,
            (user_key, -sequence, next(self._counter), int(value_type), bytes(value), source_idx),
        )

    def _push_memtable(self, source: _MemtableSource, source_idx: int) -> None:
        current = source.peek()
        if current is not None:
            key, value = current
            self._push(key.user_key, key.sequence, key.value_type, value, source_idx)

    def add_memtable_entries(
        self,
        entries: Iterable[tuple[InternalKey, bytes]],
        start_key: bytes,
        source_idx: int,
    ) -> None:
        """Add sorted memtable entries, starting at the first key >= ``start_key``."""
        entries = list(entries)
        start_key = bytes(start_key)
        start_pos = next(
            (i for i, (key, _) in enumerate(entries) if key.user_key >= start_key),
            len(entries),
        )
        source = _MemtableSource(entries, start_pos, self._end_key, self._max_sequence)
        self._push_memtable(source, source_idx)
        self._memtable_sources.append(source)

    def add_sstable(self, iterator: Iterable[tuple[bytes, bytes]], source_idx: int) -> None:
        """Add a positioned table iterator yielding encoded internal keys."""
        iterator = iter(iterator)
        first = next(iterator, None)
        if first is not None:
            key, value = first
            if len(key) >= INTERNAL_KEY_SUFFIX:
                user_key, sequence, value_type = _parse_encoded(key)
                if user_key < self._end_key and sequence <= self._max_sequence:
                    self._push(user_key, sequence, value_type, value, source_idx)
        self._sstable_sources.append(iterator)

    def _refill_sstable(self, source_idx: int) -> None:
        sst_idx = source_idx - len(self._memtable_sources)
        if not 0 <= sst_idx < len(self._sstable_sources):
            return
        for key, value in self._sstable_sources[sst_idx]:
            if len(key) < INTERNAL_KEY_SUFFIX:
                continue
            user_key, sequence, value_type = _parse_encoded(key)
            if user_key >= self._end_key:
                break
            if sequence > self._max_sequence:
                continue
            self._push(user_key, sequence, value_type, value, source_idx)
            break

    def __iter__(self) -> MergeIterator:
        return self

    def __next__(self) -> tuple[bytes, bytes]:
        while self._heap:
            user_key, _, _, value_type, value, source_idx = heapq.heappop(self._heap)

            if source_idx < len(self._memtable_sources):
                source = self._memtable_sources[source_idx]
                source.advance()
                self._push_memtable(source, source_idx)
            else:
                self._refill_sstable(source_idx)

            if self._last_user_key == user_key:
                continue
            self._last_user_key = user_key

            if value_type == ValueType.VALUE:
                return user_key, value
        raise StopIteration