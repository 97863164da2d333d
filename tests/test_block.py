import struct

import pytest

from dtagkv.block import (
    HEADER_SIZE,
    MAGIC,
    VERSION,
    Block,
    DtagError,
    ErrorCode,
    Item,
)
from dtagkv.checksum import CHECKSUM_LENGTH


def _completed(size=1024):
    block = Block.init(size)
    block.complete()
    return block


def test_dtag_init():
    block = Block.init(1024)
    assert block.magic == MAGIC
    assert block.version == VERSION
    assert block.capacity == 1024 - HEADER_SIZE
    assert block.length == 0


def test_header_size_and_magic_bytes():
    image = _completed().to_bytes()
    assert HEADER_SIZE == 32
    assert len(image) == 1024
    assert image[:4] == b"GATD"


def test_init_too_small():
    with pytest.raises(DtagError) as info:
        Block.init(HEADER_SIZE - 1)
    assert info.value.code == ErrorCode.CAPACITY


def test_dtag_import():
    image = _completed().to_bytes()
    imported = Block.from_bytes(image)
    assert imported.magic == MAGIC
    assert imported.version == VERSION
    assert imported.capacity == 1024 - HEADER_SIZE


def test_dtag_import_checksum_error():
    block = _completed()
    block.checksum = bytes([block.checksum[0] ^ 0xFF]) + block.checksum[1:]
    with pytest.raises(DtagError) as info:
        Block.from_bytes(block.to_bytes())
    assert info.value.code == ErrorCode.CHECKSUM


def test_dtag_get_set_del():
    block = Block.init(1024)
    value = bytes([1, 2, 3, 4])
    block.set("key", value)
    assert block.get("key") == value
    block.delete("key")
    with pytest.raises(DtagError) as info:
        block.get("key")
    assert info.value.code == ErrorCode.NOTFOUND


def test_item_wire_layout():
    block = Block.init(1024)
    block.set("key", bytes([1, 2, 3, 4]))
    assert block.length == 12
    assert bytes(block.data[:12]) == bytes([4, 4, 0, 0]) + b"key\0" + bytes([1, 2, 3, 4])


@pytest.mark.parametrize(
    "offset, code",
    [(0, ErrorCode.MAGIC), (4, ErrorCode.VERSION), (6, ErrorCode.CHKSUM_LEN)],
)
def test_import_header_errors(offset, code):
    image = bytearray(_completed().to_bytes())
    image[offset] ^= 0xFF
    with pytest.raises(DtagError) as info:
        Block.from_bytes(bytes(image))
    assert info.value.code == code


def test_import_length_exceeds_capacity():
    image = bytearray(_completed().to_bytes())
    struct.pack_into("<I", image, 12, 5000)
    with pytest.raises(DtagError) as info:
        Block.from_bytes(bytes(image))
    assert info.value.code == ErrorCode.LENGTH


def test_import_truncated_buffer():
    image = _completed().to_bytes()
    with pytest.raises(DtagError) as info:
        Block.from_bytes(image[:-1])
    assert info.value.code == ErrorCode.CAPACITY
    with pytest.raises(DtagError) as info:
        Block.from_bytes(image[: HEADER_SIZE - 1])
    assert info.value.code == ErrorCode.CAPACITY


def test_import_larger_buffer_accepted():
    image = _completed(64).to_bytes() + bytes(10)
    assert Block.from_bytes(image).capacity == 64 - HEADER_SIZE


def test_round_trip_with_items():
    block = Block.init(256)
    block.set("alpha", b"\x00\x01")
    block.set("beta", b"")
    block.complete()
    restored = Block.from_bytes(block.to_bytes())
    assert [(i.key, i.value) for i in restored.items()] == [("alpha", b"\x00\x01"), ("beta", b"")]
    assert restored.checksum == block.checksum
    assert len(restored.checksum) == CHECKSUM_LENGTH


def test_save_and_load(tmp_path):
    path = tmp_path / "tags.bin"
    block = Block.init(128)
    block.set("name", b"value")
    block.complete()
    block.save(path)
    assert path.read_bytes() == block.to_bytes()
    loaded = Block.load(path)
    assert loaded.get("name") == b"value"


def test_load_missing_file(tmp_path):
    with pytest.raises(DtagError) as info:
        Block.load(tmp_path / "missing.bin")
    assert info.value.code == ErrorCode.FILEIO


def test_load_short_file(tmp_path):
    path = tmp_path / "short.bin"
    path.write_bytes(_completed(128).to_bytes()[:100])
    with pytest.raises(DtagError) as info:
        Block.load(path)
    assert info.value.code == ErrorCode.FILEIO


def test_load_bad_checksum(tmp_path):
    path = tmp_path / "bad.bin"
    block = Block.init(128)
    block.set("k", b"v")
    path.write_bytes(block.to_bytes())
    with pytest.raises(DtagError) as info:
        Block.load(path)
    assert info.value.code == ErrorCode.CHECKSUM


def test_set_replaces_and_moves_to_end():
    block = Block.init(256)
    block.set("a", b"1")
    block.set("b", b"2")
    block.set("a", b"333")
    assert [(i.key, i.value) for i in block.items()] == [("b", b"2"), ("a", b"333")]


def test_set_capacity_exceeded():
    block = Block.init(HEADER_SIZE + 10)
    with pytest.raises(DtagError) as info:
        block.set("key", b"123456")
    assert info.value.code == ErrorCode.CAPACITY
    block.set("key", b"12")
    assert block.length == 10


def test_replace_capacity_exceeded_keeps_old():
    block = Block.init(HEADER_SIZE + 10)
    block.set("key", b"12")
    with pytest.raises(DtagError) as info:
        block.set("key", b"123")
    assert info.value.code == ErrorCode.CAPACITY
    assert block.get("key") == b"12"


def test_key_too_long():
    block = Block.init(1024)
    with pytest.raises(DtagError) as info:
        block.set("k" * 255, b"")
    assert info.value.code == ErrorCode.INVPARAM
    block.set("k" * 254, b"v")
    assert block.get("k" * 254) == b"v"


def test_key_with_nul_rejected():
    block = Block.init(64)
    with pytest.raises(DtagError) as info:
        block.set("a\0b", b"")
    assert info.value.code == ErrorCode.INVPARAM


def test_delete_missing():
    block = Block.init(64)
    with pytest.raises(DtagError) as info:
        block.delete("nope")
    assert info.value.code == ErrorCode.NOTFOUND


def test_corrupt_item_detected():
    block = Block.init(256)
    block.set("a", b"xy")
    block.data[0:4] = struct.pack("<I", 2 | (1000 << 8))
    with pytest.raises(DtagError) as info:
        list(block.items())
    assert info.value.code == ErrorCode.DATA


def test_prefix_keys_distinct():
    block = Block.init(256)
    block.set("ab", b"1")
    block.set("a", b"2")
    assert block.get("a") == b"2"
    assert block.get("ab") == b"1"