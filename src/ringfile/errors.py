"""Error taxonomy for ringfile."""


class RingFileError(Exception):
    """Base class for all ring buffer errors."""

    pass


class RecordSizeMismatch(RingFileError, ValueError):
    """Raised when a pushed record doesn't match the configured record length."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Record length must be {expected}, got {actual}")


class ZeroCapacity(RingFileError):
    """Raised when pushing into a buffer with no slots."""

    pass


class CorruptHeader(RingFileError):
    """Raised when the file header can't be read or doesn't match the file."""

    pass


class MissingFile(RingFileError, FileNotFoundError):
    """Raised when reopening a buffer file that doesn't exist."""

    pass


class StorageIO(RingFileError):
    """Raised when reading or writing the backing file fails.

    The handle is unusable afterwards and must be reopened.
    """

    pass


class BufferClosed(RingFileError):
    """Raised when a closed buffer is used."""

    pass
