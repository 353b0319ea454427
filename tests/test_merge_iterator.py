from gneissdb.merge_iterator import MergeIterator
from gneissdb.sstable.builder import SstableBuilder
from gneissdb.sstable.iterator import SstableIterator
from gneissdb.types import InternalKey, ValueType


def put(key, seq, value):
    return InternalKey(key, seq, ValueType.VALUE), value


def delete(key, seq):
    return InternalKey(key, seq, ValueType.DELETION), b""


def encoded(entries):
    return [(key.encode(), value) for key, value in entries]


def test_single_memtable_in_order():
    entries = [put(b"a", 1, b"va"), put(b"b", 2, b"vb"), put(b"c", 3, b"vc")]
    merge = MergeIterator(b"\xff", 100)
    merge.add_memtable_entries(entries, b"", 0)
    assert list(merge) == [(b"a", b"va"), (b"b", b"vb"), (b"c", b"vc")]


def test_start_and_end_keys_bound_range():
    entries = [put(b"a", 1, b"va"), put(b"b", 2, b"vb"), put(b"c", 3, b"vc"), put(b"d", 4, b"vd")]
    merge = MergeIterator(b"d", 100)
    merge.add_memtable_entries(entries, b"b", 0)
    assert list(merge) == [(b"b", b"vb"), (b"c", b"vc")]


def test_newest_version_wins_across_sources():
    memtable = [put(b"k", 10, b"new")]
    table = encoded([put(b"k", 5, b"old"), put(b"z", 4, b"vz")])
    merge = MergeIterator(b"\xff", 100)
    merge.add_memtable_entries(memtable, b"", 0)
    merge.add_sstable(table, 1)
    assert list(merge) == [(b"k", b"new"), (b"z", b"vz")]


def test_deletion_hides_older_value():
    entries = [delete(b"a", 3), put(b"a", 1, b"old"), put(b"b", 2, b"vb")]
    merge = MergeIterator(b"\xff", 100)
    merge.add_memtable_entries(entries, b"", 0)
    assert list(merge) == [(b"b", b"vb")]


def test_deletion_in_memtable_hides_table_value():
    merge = MergeIterator(b"\xff", 100)
    merge.add_memtable_entries([delete(b"k", 9)], b"", 0)
    merge.add_sstable(encoded([put(b"k", 2, b"old")]), 1)
    assert list(merge) == []


def test_snapshot_hides_newer_versions():
    entries = [put(b"a", 1, b"va"), put(b"b", 5, b"b5"), put(b"b", 2, b"b2")]
    merge = MergeIterator(b"\xff", 3)
    merge.add_memtable_entries(entries, b"", 0)
    assert list(merge) == [(b"a", b"va"), (b"b", b"b2")]


def test_sstable_skips_too_new_and_stops_at_end():
    table = encoded(
        [put(b"a", 1, b"va"), put(b"b", 9, b"b9"), put(b"b", 2, b"b2"), put(b"c", 1, b"vc")]
    )
    merge = MergeIterator(b"c", 5)
    merge.add_sstable(table, 0)
    assert list(merge) == [(b"a", b"va"), (b"b", b"b2")]


def test_interleaved_sources_are_sorted_and_unique():
    first = [put(b"a", 1, b"a1"), put(b"c", 1, b"c1"), put(b"e", 1, b"e1")]
    second = [put(b"b", 2, b"b2"), put(b"c", 2, b"c2"), put(b"d", 2, b"d2")]
    merge = MergeIterator(b"\xff", 100)
    merge.add_memtable_entries(first, b"", 0)
    merge.add_memtable_entries(second, b"", 1)
    result = list(merge)
    keys = [k for k, _ in result]
    assert keys == sorted(set(keys))
    assert dict(result)[b"c"] == b"c2"
    assert len(result) == 5


def test_empty_iterator_stops():
    merge = MergeIterator(b"\xff", 100)
    merge.add_memtable_entries([], b"", 0)
    assert list(merge) == []


def test_merge_with_real_table(tmp_path):
    path = tmp_path / "000001.sst"
    builder = SstableBuilder(open(path, "wb"), path, 256, 10, 50)
    for i in range(50):
        builder.add(InternalKey(f"key{i:04d}".encode(), i + 1), f"value{i}".encode())
    builder.finish()

    with open(path, "rb") as file:
        table = SstableIterator.open(file, 1, {})
        merge = MergeIterator(b"key0040", 1000)
        merge.add_memtable_entries([put(b"key0010", 500, b"override")], b"", 0)
        merge.add_sstable(table, 1)
        result = list(merge)

    assert len(result) == 40
    assert result[0] == (b"key0000", b"value0")
    assert dict(result)[b"key0010"] == b"override"
    assert result[-1][0] == b"key0039"