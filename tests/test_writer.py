import io
import struct
import zlib

import pytest

from gneissdb.wal.records import (
    BatchDelete,
    BatchPut,
    BatchRecord,
    DeleteRecord,
    PutRecord,
)
from gneissdb.wal.writer import WalWriter, encode_record

PUT_PAYLOAD = (
    b"\x01"
    + b"\x01\x00\x00\x00\x00\x00\x00\x00"
    + b"\x03\x00\x00\x00"
    + b"key"
    + b"\x05\x00\x00\x00"
    + b"value"
)


def _split_frame(data):
    crc, length = struct.unpack_from("<II", data, 0)
    return crc, length, data[8 : 8 + length]


def test_encode_put_record():
    assert encode_record(PutRecord(1, b"key", b"value")) == PUT_PAYLOAD


def test_encode_delete_record():
    expected = b"\x02" + b"\x01\x00\x00\x00\x00\x00\x00\x00" + b"\x03\x00\x00\x00" + b"key"
    assert encode_record(DeleteRecord(1, b"key")) == expected


def test_encode_batch_record():
    record = BatchRecord(1, [BatchPut(b"k1", b"v1"), BatchDelete(b"k2")])
    expected = (
        b"\x03"
        + b"\x01\x00\x00\x00\x00\x00\x00\x00"
        + b"\x02\x00\x00\x00"
        + b"\x01\x02\x00\x00\x00k1\x02\x00\x00\x00v1"
        + b"\x02\x02\x00\x00\x00k2"
    )
    assert encode_record(record) == expected


def test_encode_rejects_non_record():
    with pytest.raises(TypeError):
        encode_record("not a record")


def test_writer_put(tmp_path):
    path = tmp_path / "test.wal"
    writer = WalWriter(open(path, "wb"), path, True)
    writer.append(PutRecord(1, b"key", b"value"))
    writer.close()

    data = path.read_bytes()
    assert len(data) > 8
    crc, length, payload = _split_frame(data)
    assert payload == PUT_PAYLOAD
    assert length == len(PUT_PAYLOAD)
    assert crc == zlib.crc32(PUT_PAYLOAD)
    assert len(data) == 8 + length


def test_writer_delete(tmp_path):
    path = tmp_path / "test.wal"
    with WalWriter(open(path, "wb"), path, True) as writer:
        writer.append(DeleteRecord(1, b"key"))
    data = path.read_bytes()
    assert len(data) > 8
    _, _, payload = _split_frame(data)
    assert payload == encode_record(DeleteRecord(1, b"key"))


def test_writer_batch(tmp_path):
    path = tmp_path / "test.wal"
    record = BatchRecord(1, [BatchPut(b"k1", b"v1"), BatchDelete(b"k2")])
    with WalWriter(open(path, "wb"), path, True) as writer:
        writer.append(record)
    data = path.read_bytes()
    assert len(data) > 8
    crc, _, payload = _split_frame(data)
    assert payload == encode_record(record)
    assert crc == zlib.crc32(payload)


def test_writer_path(tmp_path):
    path = tmp_path / "test.wal"
    writer = WalWriter(open(path, "wb"), path, True)
    assert writer.path() == path
    writer.close()


def test_writer_sync(tmp_path):
    path = tmp_path / "test.wal"
    writer = WalWriter(open(path, "wb"), path, False)
    writer.append(PutRecord(1, b"key", b"value"))
    writer.sync()
    assert path.read_bytes()[8:] == PUT_PAYLOAD
    writer.close()


def test_append_batch_matches_individual_appends():
    records = [
        PutRecord(i, f"key{i}".encode(), f"value{i}".encode()) for i in range(10)
    ] + [DeleteRecord(10, b"key3")]

    single = io.BytesIO()
    writer = WalWriter(single, "a.wal", False)
    for record in records:
        writer.append_no_sync(record)

    batched = io.BytesIO()
    WalWriter(batched, "b.wal", False).append_batch(records)

    assert batched.getvalue() == single.getvalue()


def test_append_batch_empty_writes_nothing():
    buf = io.BytesIO()
    WalWriter(buf, "x.wal", True).append_batch([])
    assert buf.getvalue() == b""


def test_append_batch_raw_matches_batch_record():
    record = BatchRecord(42, [BatchPut(b"k1", b"v1"), BatchDelete(b"k2")])
    ops_data = encode_record(record)[13:]

    expected = io.BytesIO()
    WalWriter(expected, "a.wal", True).append(record)

    raw = io.BytesIO()
    WalWriter(raw, "b.wal", False).append_batch_raw(42, ops_data, 2)

    assert raw.getvalue() == expected.getvalue()


def test_append_batch_raw_rejects_bad_count():
    with pytest.raises(ValueError):
        WalWriter(io.BytesIO(), "x.wal", False).append_batch_raw(1, b"", -1)


def test_context_manager_closes_file(tmp_path):
    path = tmp_path / "test.wal"
    file = open(path, "wb")
    with WalWriter(file, path, False) as writer:
        writer.append(PutRecord(7, b"a", b"b"))
    assert file.closed
    assert path.read_bytes()[8:] == encode_record(PutRecord(7, b"a", b"b"))