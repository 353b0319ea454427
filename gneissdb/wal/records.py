"""Write-ahead log record types."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import ClassVar, Iterable, Union

U64_MASK = (1 << 64) - 1


class RecordType(IntEnum):
    """Tag byte that starts every encoded log record."""

    PUT = 0x01
    DELETE = 0x02
    BATCH = 0x03


class BatchOpType(IntEnum):
    """Tag byte for an operation inside a batch record."""

    PUT = 0x01
    DELETE = 0x02


def _as_bytes(data: bytes | bytearray | memoryview | str) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


def _check_sequence(sequence: int) -> int:
    if not 0 <= sequence <= U64_MASK:
        raise ValueError(f"sequence number out of range: {sequence}")
    return sequence


@dataclass(frozen=True)
class BatchPut:
    """Put operation inside a batch."""

    key: bytes
    value: bytes

    op_type: ClassVar[BatchOpType] = BatchOpType.PUT

    def __post_init__(self) -> None:
        object.__setattr__(self, "key", _as_bytes(self.key))
        object.__setattr__(self, "value", _as_bytes(self.value))


@dataclass(frozen=True)
class BatchDelete:
    """Delete operation inside a batch."""

    key: bytes

    op_type: ClassVar[BatchOpType] = BatchOpType.DELETE

    def __post_init__(self) -> None:
        object.__setattr__(self, "key", _as_bytes(self.key))


BatchOp = Union[BatchPut, BatchDelete]


@dataclass(frozen=True)
class PutRecord:
    """A single put."""

    sequence: int
    key: bytes
    value: bytes

    record_type: ClassVar[RecordType] = RecordType.PUT

    def __post_init__(self) -> None:
        _check_sequence(self.sequence)
        object.__setattr__(self, "key", _as_bytes(self.key))
        object.__setattr__(self, "value", _as_bytes(self.value))


@dataclass(frozen=True)
class DeleteRecord:
    """A single delete."""

    sequence: int
    key: bytes

    record_type: ClassVar[RecordType] = RecordType.DELETE

    def __post_init__(self) -> None:
        _check_sequence(self.sequence)
        object.__setattr__(self, "key", _as_bytes(self.key))


@dataclass(frozen=True)
class BatchRecord:
    """A group of operations written atomically, starting at ``sequence``."""

    sequence: int
    ops: tuple[BatchOp, ...]

    record_type: ClassVar[RecordType] = RecordType.BATCH

    def __init__(self, sequence: int, ops: Iterable[BatchOp]) -> None:
        _check_sequence(sequence)
        ops = tuple(ops)
        for op in ops:
            if not isinstance(op, (BatchPut, BatchDelete)):
                raise TypeError(f"not a batch operation: {op!r}")
        object.__setattr__(self, "sequence", sequence)
        object.__setattr__(self, "ops", ops)


WalRecord = Union[PutRecord, DeleteRecord, BatchRecord]