"""Reads framed, checksummed records back from a write-ahead log file."""

from __future__ import annotations

import logging
import os
import struct
import zlib
from typing import BinaryIO, Iterator

from ..types import CorruptionError, DbError, InvalidCrcError
from .records import (
    BatchDelete,
    BatchOpType,
    BatchPut,
    BatchRecord,
    DeleteRecord,
    PutRecord,
    RecordType,
    WalRecord,
)

logger = logging.getLogger(__name__)

_HEADER = struct.Struct("<II")
_U32 = struct.Struct("<I")
_U64 = struct.Struct("<Q")
_MIN_RECORD_LEN = 13


class _Cursor:
    """Bounds-checked sequential reader over a record payload."""

    def __init__(self, data: bytes, pos: int = 0) -> None:
        self._data = data
        self._pos = pos

    def take(self, size: int) -> bytes:
        end = self._pos + size
        if end > len(self._data):
            raise CorruptionError("Record truncated")
        chunk = self._data[self._pos : end]
        self._pos = end
        return chunk

    def u8(self) -> int:
        return self.take(1)[0]

    def u32(self) -> int:
        (value,) = _U32.unpack(self.take(4))
        return value

    def u64(self) -> int:
        (value,) = _U64.unpack(self.take(8))
        return value

    def prefixed(self) -> bytes:
        return self.take(self.u32())


def decode_record(data: bytes) -> WalRecord:
    """Decode one record payload, without its checksum and length header."""
    data = bytes(data)
    if not data:
        raise CorruptionError("Empty record")

    record_type = data[0]
    cursor = _Cursor(data, 1)

    if record_type == RecordType.PUT:
        if len(data) < _MIN_RECORD_LEN:
            raise CorruptionError("Put record too short")
        sequence = cursor.u64()
        key = cursor.prefixed()
        value = cursor.prefixed()
        return PutRecord(sequence, key, value)

    if record_type == RecordType.DELETE:
        if len(data) < _MIN_RECORD_LEN:
            raise CorruptionError("Delete record too short")
        sequence = cursor.u64()
        key = cursor.prefixed()
        return DeleteRecord(sequence, key)

    if record_type == RecordType.BATCH:
        if len(data) < _MIN_RECORD_LEN:
            raise CorruptionError("Batch record too short")
        sequence = cursor.u64()
        op_count = cursor.u32()
        ops: list[BatchPut | BatchDelete] = []
        for _ in range(op_count):
            op_type = cursor.u8()
            if op_type == BatchOpType.PUT:
                key = cursor.prefixed()
                value = cursor.prefixed()
                ops.append(BatchPut(key, value))
            elif op_type == BatchOpType.DELETE:
                ops.append(BatchDelete(cursor.prefixed()))
            else:
                raise CorruptionError(f"Unknown batch op type: {op_type}")
        return BatchRecord(sequence, ops)

    raise CorruptionError(f"Unknown record type: {record_type}")


class WalReader:
    """Reads records from an open binary log file in the order they were written.

    Reading stops quietly at the end of the file, at a partial header, and
    at the first damaged record, which is logged as a warning.
    """

    def __init__(self, file: BinaryIO) -> None:
        self._file = file

    @classmethod
    def open(cls, path: str | os.PathLike) -> WalReader:
        """Open the log file at ``path`` for reading."""
        return cls(open(path, "rb"))

    def _read_record(self) -> WalRecord | None:
        header = self._file.read(_HEADER.size)
        if len(header) < _HEADER.size:
            return None
        expected_crc, length = _HEADER.unpack(header)
        data = self._file.read(length)
        if len(data) < length:
            raise CorruptionError("Record truncated")
        actual_crc = zlib.crc32(data) & 0xFFFFFFFF
        if expected_crc != actual_crc:
            raise InvalidCrcError(expected_crc, actual_crc)
        return decode_record(data)

    def __iter__(self) -> Iterator[WalRecord]:
        while True:
            try:
                record = self._read_record()
            except DbError as exc:
                logger.warning("WAL read error, stopping recovery: %s", exc)
                return
            if record is None:
                return
            yield record

    def read_all(self) -> list[WalRecord]:
        """Every readable record from the current position onwards."""
        return list(self)

    def close(self) -> None:
        """Close the log file."""
        self._file.close()

    def __enter__(self) -> WalReader:
        return self

    def __exit__(self, *args) -> None:
        self.close()