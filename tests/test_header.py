"""Tests for the header codec."""

import struct

import pytest

from ringfile.errors import CorruptHeader
from ringfile.header import HEADER_LENGTH, Header, decode_header, encode_header


def test_header_length_is_twenty_bytes():
    """Header is a 4-byte record length plus two 8-byte counters."""
    assert HEADER_LENGTH == 20
    assert len(encode_header(20, 0, 0)) == HEADER_LENGTH


def test_encode_is_big_endian():
    """Fields are laid out big-endian at offsets 0, 4 and 12."""
    data = encode_header(0x01020304, 5, 0x0A0B)
    assert data[0:4] == b"\x01\x02\x03\x04"
    assert struct.unpack(">q", data[4:12]) == (5,)
    assert struct.unpack(">q", data[12:20]) == (0x0A0B,)


def test_decode_returns_fields():
    """decode_header reverses encode_header."""
    header = decode_header(encode_header(123, 4711, 42))
    assert header == Header(record_length=123, count=4711, last=42)


def test_decode_ignores_trailing_bytes():
    """Only the leading HEADER_LENGTH bytes are read."""
    data = encode_header(8, 3, 2) + b"\xff" * 16
    assert decode_header(data) == Header(8, 3, 2)


def test_decode_does_not_validate_values():
    """Nonsensical values are passed through; the engine judges them."""
    header = decode_header(encode_header(-1, -5, 99))
    assert header.record_length == -1
    assert header.count == -5


@pytest.mark.parametrize("size", [0, 1, 19])
def test_decode_short_data_raises(size):
    """Fewer than HEADER_LENGTH bytes is a corrupt header."""
    with pytest.raises(CorruptHeader):
        decode_header(b"\x00" * size)
