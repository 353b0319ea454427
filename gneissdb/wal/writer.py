"""Appends framed, checksummed records to a write-ahead log file."""

from __future__ import annotations

import io
import os
import struct
import zlib
from pathlib import Path
from typing import BinaryIO, Iterable

from .records import (
    BatchDelete,
    BatchPut,
    BatchRecord,
    DeleteRecord,
    PutRecord,
    RecordType,
    WalRecord,
)

_HEADER = struct.Struct("<II")
_U64 = struct.Struct("<Q")
_U32 = struct.Struct("<I")
_U32_MAX = 0xFFFFFFFF
_U64_MAX = (1 << 64) - 1


def _len_prefixed(data: bytes) -> bytes:
    return _U32.pack(len(data)) + data


def _encode_op(op: BatchPut | BatchDelete) -> bytes:
    if isinstance(op, BatchPut):
        return bytes((op.op_type,)) + _len_prefixed(op.key) + _len_prefixed(op.value)
    if isinstance(op, BatchDelete):
        return bytes((op.op_type,)) + _len_prefixed(op.key)
    raise TypeError(f"not a batch operation: {op!r}")


def encode_record(record: WalRecord) -> bytes:
    """Encode a record's payload, without the checksum and length header."""
    if isinstance(record, PutRecord):
        return b"".join(
            (
                bytes((record.record_type,)),
                _U64.pack(record.sequence),
                _len_prefixed(record.key),
                _len_prefixed(record.value),
            )
        )
    if isinstance(record, DeleteRecord):
        return b"".join(
            (
                bytes((record.record_type,)),
                _U64.pack(record.sequence),
                _len_prefixed(record.key),
            )
        )
    if isinstance(record, BatchRecord):
        return b"".join(
            (
                bytes((record.record_type,)),
                _U64.pack(record.sequence),
                _U32.pack(len(record.ops)),
                *(_encode_op(op) for op in record.ops),
            )
        )
    raise TypeError(f"not a log record: {record!r}")


def _frame(payload: bytes) -> bytes:
    return _HEADER.pack(zlib.crc32(payload) & _U32_MAX, len(payload)) + payload


class WalWriter:
    """Writes records to an open binary log file.

    Each record is framed as a little-endian CRC-32 of the payload, the
    payload length, then the payload itself.
    """

    def __init__(self, file: BinaryIO, path: str | os.PathLike, sync_on_write: bool) -> None:
        self._file = file
        self._path = Path(path)
        self._sync_on_write = sync_on_write

    def path(self) -> Path:
        """Location of the log file."""
        return self._path

    def append(self, record: WalRecord) -> None:
        """Write one record, syncing afterwards if the writer was so configured."""
        self.append_no_sync(record)
        if self._sync_on_write:
            self.sync()

    def append_no_sync(self, record: WalRecord) -> None:
        """Write one record without syncing."""
        self._file.write(_frame(encode_record(record)))

    def append_batch(self, records: Iterable[WalRecord]) -> None:
        """Write several records with a single write, without syncing."""
        frames = b"".join(_frame(encode_record(record)) for record in records)
        if frames:
            self._file.write(frames)

    def append_batch_raw(self, sequence: int, data: bytes, count: int) -> None:
        """Write a batch record whose operations are already encoded in ``data``."""
        if not 0 <= sequence <= _U64_MAX:
            raise ValueError(f"sequence number out of range: {sequence}")
        if not 0 <= count <= _U32_MAX:
            raise ValueError(f"operation count out of range: {count}")
        payload = b"".join(
            (bytes((RecordType.BATCH,)), _U64.pack(sequence), _U32.pack(count), bytes(data))
        )
        self._file.write(_frame(payload))

    def sync(self) -> None:
        """Flush buffered data and force it to stable storage."""
        self._file.flush()
        try:
            fd = self._file.fileno()
        except (AttributeError, io.UnsupportedOperation):
            return
        os.fsync(fd)

    def close(self) -> None:
        """Flush and close the log file."""
        if not self._file.closed:
            self._file.flush()
            self._file.close()

    def __enter__(self) -> WalWriter:
        return self

    def __exit__(self, *args) -> None:
        self.close()