import pytest

from dtagkv.checksum import CHECKSUM_LENGTH, compute_checksum


def test_empty_input_digest():
    assert compute_checksum(b"").hex() == "d41d8cd98f00b204e9800998ecf8427e"


def test_known_vector():
    assert compute_checksum(b"abc").hex() == "900150983cd24fb0d6963f7d28e17f72"


@pytest.mark.parametrize("data", [b"", b"x", bytes(range(256)) * 4])
def test_length_is_fixed(data):
    assert len(compute_checksum(data)) == CHECKSUM_LENGTH


def test_accepts_buffer_types():
    data = b"tag block data"
    expected = compute_checksum(data)
    assert compute_checksum(bytearray(data)) == expected
    assert compute_checksum(memoryview(data)) == expected


def test_differs_on_change():
    assert compute_checksum(b"abc") != compute_checksum(b"abd")
    assert compute_checksum(b"abc") == compute_checksum(b"abc")