# src/ringfile/ringbuffer.py
"""Persistent ring buffer of fixed-length records.

One file holds a 20-byte header followed by `capacity` slots of
`record_length` bytes each. Pushing into a full ring overwrites the oldest
record. Pop, peek and delete work newest-first.

The header is rewritten after every mutation, so a reopened file always
reflects the last completed call.
"""

import os
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Generator

import structlog

from ringfile.errors import (
    BufferClosed,
    CorruptHeader,
    MissingFile,
    RecordSizeMismatch,
    StorageIO,
    ZeroCapacity,
)
from ringfile.header import HEADER_LENGTH, Header, decode_header, encode_header

log = structlog.get_logger()

MAX_RECORD_LENGTH = 2**31 - 1  # record_length is stored as int32
MOVE_CHUNK_BYTES = 1024 * 1024  # Max bytes held in memory while moving slots


def _check_geometry(capacity: int, record_length: int) -> None:
    """Validate requested capacity and record length."""
    if capacity < 0:
        raise ValueError(f"capacity must be >= 0, got {capacity}")
    if not 1 <= record_length <= MAX_RECORD_LENGTH:
        raise ValueError(f"record_length must be in [1, {MAX_RECORD_LENGTH}], got {record_length}")


def _capacity_from_header(header: Header, file_size: int) -> int:
    """Derive capacity from a decoded header and the file size.

    Raises:
        CorruptHeader: If the header doesn't describe this file
    """
    if header.record_length <= 0:
        raise CorruptHeader(f"Invalid record length {header.record_length}")

    data_size = file_size - HEADER_LENGTH
    if data_size % header.record_length:
        raise CorruptHeader(
            f"Data region of {data_size} bytes is not a multiple of "
            f"record length {header.record_length}"
        )
    capacity = data_size // header.record_length

    if not 0 <= header.count <= capacity:
        raise CorruptHeader(f"Count {header.count} outside [0, {capacity}]")
    if header.last < 0 or (header.count > 0 and header.last >= capacity):
        raise CorruptHeader(f"Last {header.last} outside [0, {capacity})")
    return capacity


def read_geometry(path: str | Path) -> tuple[int, int]:
    """Return (capacity, record_length) of an existing buffer file.

    Reads only the header and file size. Nothing is logged and the file is
    never modified.

    Raises:
        MissingFile: If path doesn't exist
        CorruptHeader: If the header doesn't describe the file
        StorageIO: If the file can't be read
    """
    path = Path(path)
    try:
        with open(path, "rb") as f:
            file_size = os.fstat(f.fileno()).st_size
            header = decode_header(f.read(HEADER_LENGTH))
    except FileNotFoundError as e:
        raise MissingFile(f"Buffer file not found: {path}") from e
    except OSError as e:
        raise StorageIO(f"Failed to read header of {path}: {e}") from e
    return _capacity_from_header(header, file_size), header.record_length


class RingBuffer:
    """Fixed-record circular buffer backed by a single file.

    Use RingBuffer.create() or RingBuffer.open() rather than the constructor.
    The instance owns the file handle exclusively until close().
    """

    def __init__(
        self,
        path: Path,
        file: BinaryIO,
        record_length: int,
        capacity: int,
        count: int = 0,
        last: int = 0,
        *,
        sync: bool = False,
    ) -> None:
        self._path = path
        self._file: BinaryIO | None = file
        self._record_length = record_length
        self._capacity = capacity
        self._count = count
        self._last = last
        self._sync = sync
        self._failed = False

    # ─────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────────

    @classmethod
    def create(
        cls, path: str | Path, capacity: int, record_length: int, *, sync: bool = False
    ) -> "RingBuffer":
        """Create an empty buffer, discarding anything already at path."""
        _check_geometry(capacity, record_length)
        path = Path(path)
        try:
            file = open(path, "w+b")
        except OSError as e:
            raise StorageIO(f"Failed to create {path}: {e}") from e

        buffer = cls(path, file, record_length, capacity, sync=sync)
        try:
            buffer._format(file)
        except StorageIO:
            file.close()
            raise
        log.info("ring_created", path=str(path), capacity=capacity, record_length=record_length)
        return buffer

    @classmethod
    def open(
        cls,
        path: str | Path,
        capacity: int | None = None,
        record_length: int | None = None,
        *,
        sync: bool = False,
    ) -> "RingBuffer":
        """Open a buffer file.

        Without capacity/record_length the file's own header is trusted.
        With both, an existing file is reused only if its geometry matches;
        otherwise it is recreated empty and a ring_reinitialized warning is
        logged.

        Raises:
            MissingFile: Bare reopen of a path that doesn't exist
            CorruptHeader: Bare reopen of a file with an invalid header
            ValueError: Only one of capacity/record_length given
        """
        path = Path(path)
        if capacity is None and record_length is None:
            buffer = cls._load(path, sync=sync)
            buffer._log_opened()
            return buffer
        if capacity is None or record_length is None:
            raise ValueError("capacity and record_length must be given together")

        _check_geometry(capacity, record_length)
        if not path.exists():
            return cls.create(path, capacity, record_length, sync=sync)

        try:
            buffer = cls._load(path, sync=sync)
        except CorruptHeader as e:
            reason = str(e)
        else:
            if buffer.record_length == record_length and buffer.capacity == capacity:
                buffer._log_opened()
                return buffer
            reason = (
                f"stored geometry {buffer.capacity}x{buffer.record_length} "
                f"!= requested {capacity}x{record_length}"
            )
            buffer.close()

        log.warning("ring_reinitialized", path=str(path), reason=reason)
        return cls.create(path, capacity, record_length, sync=sync)

    @classmethod
    def _load(cls, path: Path, *, sync: bool) -> "RingBuffer":
        """Open an existing file and load its header."""
        try:
            file = open(path, "r+b")
        except FileNotFoundError as e:
            raise MissingFile(f"Buffer file not found: {path}") from e
        except OSError as e:
            raise StorageIO(f"Failed to open {path}: {e}") from e

        try:
            file_size = os.fstat(file.fileno()).st_size
            header = decode_header(file.read(HEADER_LENGTH))
            capacity = _capacity_from_header(header, file_size)
        except OSError as e:
            file.close()
            raise StorageIO(f"Failed to read header of {path}: {e}") from e
        except CorruptHeader:
            file.close()
            raise

        return cls(
            path, file, header.record_length, capacity, header.count, header.last, sync=sync
        )

    def close(self) -> None:
        """Flush and release the file. Calling close() again does nothing."""
        if self._file is None:
            return
        file, self._file = self._file, None
        try:
            file.close()
        except OSError as e:
            raise StorageIO(f"Failed to close {self._path}: {e}") from e
        log.info("ring_closed", path=str(self._path), count=self._count, last=self._last)

    def __enter__(self) -> "RingBuffer":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"RingBuffer(path={str(self._path)!r}, capacity={self._capacity}, "
            f"record_length={self._record_length}, count={self._count}, last={self._last})"
        )

    def __len__(self) -> int:
        """Return number of live records."""
        return self._count

    # ─────────────────────────────────────────────────────────────────────
    # Properties
    # ─────────────────────────────────────────────────────────────────────

    @property
    def path(self) -> Path:
        """Path of the backing file."""
        return self._path

    @property
    def capacity(self) -> int:
        """Number of slots."""
        return self._capacity

    @property
    def record_length(self) -> int:
        """Size of every record in bytes."""
        return self._record_length

    @property
    def count(self) -> int:
        """Number of live records."""
        return self._count

    @property
    def last(self) -> int:
        """Slot of the newest record. Meaningless while the buffer is empty."""
        return self._last

    @property
    def file_size(self) -> int:
        """Size of the backing file implied by the current geometry."""
        return self._offset(self._capacity)

    @property
    def closed(self) -> bool:
        return self._file is None

    @property
    def is_empty(self) -> bool:
        return self._count == 0

    @property
    def is_full(self) -> bool:
        return self._count == self._capacity

    # ─────────────────────────────────────────────────────────────────────
    # Records
    # ─────────────────────────────────────────────────────────────────────

    def push(self, record: bytes) -> None:
        """Append a record, overwriting the oldest one when full.

        Raises:
            RecordSizeMismatch: len(record) != record_length
            ZeroCapacity: The buffer has no slots
        """
        file = self._require_open()
        if len(record) != self._record_length:
            raise RecordSizeMismatch(self._record_length, len(record))
        if self._capacity == 0:
            raise ZeroCapacity(f"Cannot push into a buffer with capacity 0 ({self._path})")

        with self._io("push to"):
            last = (self._last + 1) % self._capacity
            file.seek(self._offset(last))
            file.write(record)
            self._count = min(self._count + 1, self._capacity)
            self._last = last
            self._persist_header(file)

    def pop(self) -> bytes | None:
        """Remove and return the newest record, or None if empty."""
        file = self._require_open()
        if self._count == 0:
            return None

        with self._io("pop from"):
            record = self._read_slots(file, self._last, 1)
            self._count -= 1
            self._last = self._step_back(self._last, 1)
            self._persist_header(file)
        return record

    def peek(self, n: int | None = None) -> bytes | list[bytes] | None:
        """Read records without removing them.

        peek() returns the newest record (or None if empty). peek(n) returns
        up to n records, newest first.
        """
        file = self._require_open()
        if n is None:
            if self._count == 0:
                return None
            with self._io("peek into"):
                return self._read_slots(file, self._last, 1)

        if n < 0:
            raise ValueError(f"n must be >= 0, got {n}")
        wanted = min(self._count, n)
        if wanted == 0:
            return []

        # At most two ranges: slots ending at last, then slots ending at capacity - 1
        head = min(wanted, self._last + 1)
        tail = wanted - head
        with self._io("peek into"):
            records = self._split(self._read_slots(file, self._last - head + 1, head))[::-1]
            if tail:
                wrapped = self._read_slots(file, self._capacity - tail, tail)
                records.extend(self._split(wrapped)[::-1])
        return records

    def delete(self, n: int = 1) -> None:
        """Drop up to n newest records without reading them."""
        if n < 0:
            raise ValueError(f"n must be >= 0, got {n}")
        file = self._require_open()
        removed = min(self._count, n)
        if removed == 0:
            return

        with self._io("delete from"):
            self._count -= removed
            self._last = self._step_back(self._last, removed)
            self._persist_header(file)

    def clear(self) -> None:
        """Drop every record."""
        self.delete(self._count)

    # ─────────────────────────────────────────────────────────────────────
    # Geometry
    # ─────────────────────────────────────────────────────────────────────

    def resize(self, new_capacity: int) -> None:
        """Change the number of slots, keeping the newest records in order.

        Growing never loses records. Shrinking below count drops the oldest.
        Resizing to 0 empties the buffer.
        """
        if new_capacity < 0:
            raise ValueError(f"capacity must be >= 0, got {new_capacity}")
        file = self._require_open()
        old_capacity = self._capacity
        if new_capacity == old_capacity:
            return

        kept = min(self._count, new_capacity)
        dropped = self._count - kept
        with self._io("resize"):
            if new_capacity > old_capacity:
                file.truncate(self._offset(new_capacity))

            if kept:
                head = min(kept, self._last + 1)
                tail = kept - head
                if tail:
                    # Wrapped: slots [0, last] stay, the tail moves to end at the new boundary
                    self._move(file, old_capacity - tail, new_capacity - tail, tail)
                elif self._last >= new_capacity:
                    self._move(file, self._last - kept + 1, 0, kept)
                    self._last = kept - 1
            elif self._last >= new_capacity:
                self._last = 0

            if new_capacity < old_capacity:
                file.truncate(self._offset(new_capacity))
            self._capacity = new_capacity
            self._count = kept
            self._persist_header(file)

        log.info(
            "ring_resized",
            path=str(self._path),
            old_capacity=old_capacity,
            capacity=new_capacity,
            count=kept,
            dropped=dropped,
        )

    def reinitialize(self, capacity: int, record_length: int | None = None) -> None:
        """Discard all records and reformat the file with a new geometry."""
        if record_length is None:
            record_length = self._record_length
        _check_geometry(capacity, record_length)
        file = self._require_open()

        self._capacity = capacity
        self._record_length = record_length
        self._count = 0
        self._last = 0
        self._format(file)
        log.info(
            "ring_reinitialized",
            path=str(self._path),
            reason="requested",
            capacity=capacity,
            record_length=record_length,
        )

    # ─────────────────────────────────────────────────────────────────────
    # Internals
    # ─────────────────────────────────────────────────────────────────────

    def _require_open(self) -> BinaryIO:
        if self._file is None:
            raise BufferClosed(f"Buffer {self._path} is closed")
        if self._failed:
            raise StorageIO(f"Buffer {self._path} is unusable after an I/O failure; reopen it")
        return self._file

    @contextmanager
    def _io(self, action: str) -> Generator[None, None, None]:
        """Translate OSError into StorageIO and mark the handle unusable."""
        try:
            yield
        except OSError as e:
            self._failed = True
            log.error("ring_io_failed", path=str(self._path), action=action, error=str(e))
            raise StorageIO(f"Failed to {action} {self._path}: {e}") from e

    def _offset(self, slot: int) -> int:
        return HEADER_LENGTH + slot * self._record_length

    def _step_back(self, slot: int, n: int) -> int:
        return (slot - n) % self._capacity

    def _split(self, data: bytes) -> list[bytes]:
        size = self._record_length
        return [data[i : i + size] for i in range(0, len(data), size)]

    def _read_slots(self, file: BinaryIO, start: int, n: int) -> bytes:
        """Read n consecutive slots beginning at start."""
        expected = n * self._record_length
        file.seek(self._offset(start))
        data = file.read(expected)
        if len(data) != expected:
            raise OSError(f"Short read at slot {start}: expected {expected} bytes, got {len(data)}")
        return data

    def _move(self, file: BinaryIO, src: int, dst: int, n: int) -> None:
        """Copy n slots from src to dst. Overlapping ranges are safe."""
        if n == 0 or src == dst:
            return
        per_chunk = max(1, MOVE_CHUNK_BYTES // self._record_length)
        starts = range(0, n, per_chunk)
        if dst > src:
            # Copy from the far end so unread source slots aren't overwritten
            starts = reversed(starts)
        for start in starts:
            size = min(per_chunk, n - start)
            data = self._read_slots(file, src + start, size)
            file.seek(self._offset(dst + start))
            file.write(data)

    def _persist_header(self, file: BinaryIO) -> None:
        file.seek(0)
        file.write(encode_header(self._record_length, self._count, self._last))
        file.flush()
        if self._sync:
            os.fsync(file.fileno())

    def _format(self, file: BinaryIO) -> None:
        """Zero the file at the current geometry and write a fresh header."""
        with self._io("format"):
            file.truncate(0)
            file.truncate(self._offset(self._capacity))
            self._persist_header(file)

    def _log_opened(self) -> None:
        log.info(
            "ring_opened",
            path=str(self._path),
            capacity=self._capacity,
            record_length=self._record_length,
            count=self._count,
            last=self._last,
        )
