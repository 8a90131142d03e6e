"""Header codec for ring buffer files.

Layout (big-endian):

    offset 0   record_length  int32
    offset 4   count          int64
    offset 12  last           int64

The data region starts right after the header.
"""

import struct
from typing import NamedTuple

from ringfile.errors import CorruptHeader

HEADER_FORMAT = ">iqq"
HEADER_LENGTH = struct.calcsize(HEADER_FORMAT)  # 20


class Header(NamedTuple):
    """Decoded header fields."""

    record_length: int
    count: int
    last: int


def encode_header(record_length: int, count: int, last: int) -> bytes:
    """Pack header fields into HEADER_LENGTH bytes."""
    return struct.pack(HEADER_FORMAT, record_length, count, last)


def decode_header(data: bytes) -> Header:
    """Unpack the leading HEADER_LENGTH bytes of data.

    Values are not validated here; callers decide whether they make sense.

    Raises:
        CorruptHeader: If data is shorter than HEADER_LENGTH
    """
    if len(data) < HEADER_LENGTH:
        raise CorruptHeader(f"Header needs {HEADER_LENGTH} bytes, got {len(data)}")
    return Header(*struct.unpack_from(HEADER_FORMAT, data))
