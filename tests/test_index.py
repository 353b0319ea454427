import pytest

from gneissdb.sstable.index import IndexBlock, IndexEntry
from gneissdb.types import CorruptionError


def test_index_block_add_find():
    index = IndexBlock()
    index.add(b"key1", 0, 100)
    index.add(b"key5", 100, 100)
    index.add(b"key9", 200, 100)
    assert index.find_block(b"key1").offset == 0
    assert index.find_block(b"key3").offset == 100
    assert index.find_block(b"key7").offset == 200


def test_index_block_find_past_last_returns_last():
    index = IndexBlock()
    index.add(b"key1", 0, 100)
    index.add(b"key5", 100, 100)
    assert index.find_block(b"zzz") == IndexEntry(b"key5", 100, 100)


def test_index_block_encode_decode():
    index = IndexBlock()
    index.add(b"key1", 0, 100)
    index.add(b"key5", 100, 200)
    index.add(b"key9", 300, 300)
    decoded = IndexBlock.decode(index.encode())
    entries = decoded.entries()
    assert len(entries) == 3
    assert entries[0].last_key == b"key1"
    assert entries[1].offset == 100
    assert entries[2].size == 300
    assert entries == index.entries()


def test_index_block_encoding_layout():
    index = IndexBlock()
    index.add(b"ab", 1, 2)
    expected = (
        b"\x01\x00\x00\x00"
        + b"\x02\x00\x00\x00"
        + b"ab"
        + b"\x01\x00\x00\x00\x00\x00\x00\x00"
        + b"\x02\x00\x00\x00"
    )
    assert index.encode() == expected


def test_index_block_empty():
    index = IndexBlock()
    assert index.is_empty()
    assert len(index) == 0
    assert index.find_block(b"key") is None
    assert index.encode() == b"\x00\x00\x00\x00"


def test_index_block_decode_too_small():
    with pytest.raises(CorruptionError):
        IndexBlock.decode(bytes([0, 1, 2]))


def test_index_block_decode_truncated():
    index = IndexBlock()
    index.add(b"key1", 0, 100)
    encoded = index.encode()
    with pytest.raises(CorruptionError):
        IndexBlock.decode(encoded[:-1])
    with pytest.raises(CorruptionError):
        IndexBlock.decode(encoded[:6])


def test_index_block_entries():
    index = IndexBlock()
    index.add(b"key1", 0, 100)
    assert len(index.entries()) == 1
    assert len(index) == 1
    assert not index.is_empty()


@pytest.mark.parametrize(
    "key, offset",
    [(b"key000", 0), (b"key005", 1000), (b"key500", 50000), (b"key999", 99000)],
)
def test_index_block_binary_search(key, offset):
    index = IndexBlock()
    for i in range(100):
        index.add(f"key{i * 10:03}".encode(), i * 1000, 100)
    assert index.find_block(key).offset == offset