"""Database, write and read options."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum


class IoEngine(Enum):
    """I/O backend used for file access."""

    STANDARD = "standard"


@dataclass(frozen=True)
class Options:
    """Tuning options for a database instance."""

    memtable_size: int = 4 * 1024 * 1024
    block_size: int = 4 * 1024
    block_cache_size: int = 8 * 1024 * 1024
    l0_compaction_trigger: int = 4
    l0_slowdown_trigger: int = 8
    l0_stop_trigger: int = 12
    level_size_multiplier: int = 10
    max_levels: int = 7
    sync_writes: bool = True
    bloom_bits_per_key: int = 10
    block_restart_interval: int = 16
    write_stall_delay: timedelta = field(default_factory=lambda: timedelta(milliseconds=1))
    io_engine: IoEngine = IoEngine.STANDARD

    def replace(self, **kwargs) -> Options:
        """Return a copy with the given fields changed."""
        return dataclasses.replace(self, **kwargs)


@dataclass(frozen=True)
class WriteOptions:
    """Options for a single write."""

    sync: bool = False

    def replace(self, **kwargs) -> WriteOptions:
        """Return a copy with the given fields changed."""
        return dataclasses.replace(self, **kwargs)


@dataclass(frozen=True)
class ReadOptions:
    """Options for a single read."""

    snapshot: int | None = None

    def replace(self, **kwargs) -> ReadOptions:
        """Return a copy with the given fields changed."""
        return dataclasses.replace(self, **kwargs)