# gneissdb

The storage pieces of an LSM-tree key-value store. It is written in pure
Python and has no dependencies.

- `gneissdb.types`: `InternalKey` (user key, sequence number, `ValueType`),
  `encode_seek_key`, `encode_varint`/`decode_varint`, and the error classes.
  `DbError` is the base class. `CorruptionError`, `InvalidCrcError` and
  `InvalidMagicError` derive from it.
- `gneissdb.options`: frozen `Options`, `WriteOptions` and `ReadOptions`
  dataclasses. Each has `replace(**kwargs)`, which returns a changed copy.
  `IoEngine` has one member, `STANDARD`.
- `gneissdb.sstable.block`: `BlockBuilder`, `Block` and `BlockIterator`.
  Blocks are prefix-compressed and have restart points and a CRC-32.
  `Block(data)` checks the checksum. `Block.unchecked(data)` does not check it.
- `gneissdb.sstable.index`, `gneissdb.sstable.bloom` and
  `gneissdb.sstable.footer`: `IndexBlock`, `BloomFilter` and `Footer`. These
  are the per-table metadata.
- `gneissdb.sstable.builder`: `SstableBuilder` writes a table to an open
  binary file. `finish()` returns an `SstableMetadata`.
- `gneissdb.sstable.reader`: `SstableReader` does point lookups. It returns
  a `LookupResult` whose `kind` is `FOUND`, `DELETED` or `NOT_FOUND`.
- `gneissdb.sstable.iterator`: `SstableIterator` yields every
  `(encoded_key, value)` pair of a table. `seek(target)` positions it.
- `gneissdb.sstable.table_handle`: `SstableHandle` and `SstableHandleCache`.
  They hold open tables that can be shared between iterators.
- `gneissdb.table_cache`: `TableCache`, a bounded cache of open
  `SstableReader`s. It opens `<db_path>/NNNNNN.sst` by file number.
- `gneissdb.wal`: the write-ahead log.
  - `records` defines `PutRecord`, `DeleteRecord`, `BatchRecord`, `BatchPut`
    and `BatchDelete`.
  - `writer` has `WalWriter` and `encode_record`.
  - `reader` has `WalReader` and `decode_record`.
- `gneissdb.merge_iterator`: `MergeIterator` merges sorted memtable entries
  and table iterators into one ascending stream of `(user_key, value)`
  pairs. It hides entries that are newer than a snapshot sequence, older
  versions of a key, and deleted keys.

Block caches are plain mutable mappings from `(file_number, offset)` to raw
block bytes. A `dict` works, and so does any bounded mapping you supply.

## Install

```
pip install .
```

## Example: a table

```python
from gneissdb.types import InternalKey, ValueType
from gneissdb.sstable.builder import SstableBuilder
from gneissdb.sstable.reader import SstableReader, LookupKind
from gneissdb.sstable.iterator import SstableIterator

# Entries must be added in ascending internal-key order.
builder = SstableBuilder(open("000001.sst", "wb"), "000001.sst", 4096, 10, 2)
builder.add(InternalKey(b"apple", 1, ValueType.VALUE), b"red")
builder.add(InternalKey(b"banana", 2, ValueType.VALUE), b"yellow")
meta = builder.finish()          # writes bloom, index and footer, then closes

cache = {}
with open("000001.sst", "rb") as f:
    reader = SstableReader.open(f, 1, cache)
    result = reader.get(b"apple", 10)
    assert result.kind is LookupKind.FOUND and result.value == b"red"

with open("000001.sst", "rb") as f:
    for encoded_key, value in SstableIterator.open(f, 1, cache):
        print(InternalKey.decode(encoded_key), value)
```

## Example: write-ahead log

```python
from gneissdb.wal.records import PutRecord, DeleteRecord
from gneissdb.wal.writer import WalWriter
from gneissdb.wal.reader import WalReader

with WalWriter(open("000001.wal", "wb"), "000001.wal", True) as wal:
    wal.append(PutRecord(sequence=1, key=b"key", value=b"value"))
    wal.append(DeleteRecord(sequence=2, key=b"key"))

with WalReader.open("000001.wal") as reader:
    for record in reader.read_all():
        print(record)
```

Each record is framed as a CRC-32, a length and a payload. Reading stops
quietly at the end of the file or at a partial header. It also stops at the
first damaged record and logs a warning.

## Example: merging sources

```python
from gneissdb.merge_iterator import MergeIterator
from gneissdb.types import InternalKey, ValueType

merged = MergeIterator(end_key=b"\xff", max_sequence=10)
merged.add_memtable_entries(
    [(InternalKey(b"a", 3, ValueType.DELETION), b""),
     (InternalKey(b"b", 2, ValueType.VALUE), b"two")],
    start_key=b"",
    source_idx=0,
)
print(list(merged))   # [(b'b', b'two')]
```

Memtable sources must be added first, numbered from 0. Table iterators come
after them, and their `source_idx` continues the same numbering.

## What this package does not do

There is no database object. The package has no memtable, no flush, no
compaction and no manifest, and it does not recover a store from its files.
`Options`, `WriteOptions` and `ReadOptions` only hold settings. Nothing in
the package reads them. There is no command-line tool and no server.

## Tests

```
pip install .[test]
pytest
```