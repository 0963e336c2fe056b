from typing import Any

from pyadata.runtime.error import ErrorCode, TraceRecord


class Buffer:
    """Byte stream shared by generated codecs.

    Reads come from any buffer-protocol object (``bytes``, ``bytearray``,
    ``mmap``...) through a memoryview without copying; writes append to an
    owned ``bytearray``. The buffer also carries the last error code and the
    trace of members that failed, innermost first.
    """

    __slots__ = ('view', 'read_pos', 'read_end', '_out', 'error_code', 'trace')

    def __init__(self, data: Any = b''):
        self._out = bytearray()
        self.error_code = ErrorCode.SUCCESS
        self.trace: list[TraceRecord] = []
        self.set_read_data(data)

    def set_read_data(self, data: Any) -> 'Buffer':
        """Point the read cursor at the start of ``data``."""
        self.view = memoryview(data).cast('B')
        self.read_pos = 0
        self.read_end = len(self.view)
        return self

    # Reading ------------------------------------------------------------

    @property
    def read_length(self) -> int:
        """Number of bytes consumed so far."""
        return self.read_pos

    @property
    def remaining(self) -> int:
        return self.read_end - self.read_pos

    def read(self, size: int) -> bytes | None:
        """Consume ``size`` bytes, or return None when not enough are left."""
        if self.read_end - self.read_pos < size:
            return None
        start = self.read_pos
        self.read_pos = start + size
        return self.view[start:self.read_pos].tobytes()

    def skip(self, size: int) -> bool:
        if self.read_end - self.read_pos < size:
            return False
        self.read_pos += size
        return True

    # Writing ------------------------------------------------------------

    @property
    def write_length(self) -> int:
        """Number of bytes written so far."""
        return len(self._out)

    def write(self, data: bytes | bytearray) -> None:
        self._out += data

    def write_byte(self, value: int) -> None:
        self._out.append(value)

    def truncate(self, length: int) -> None:
        """Drop everything written after ``length``."""
        del self._out[length:]

    def get_write_data(self) -> bytes:
        return bytes(self._out)

    # State --------------------------------------------------------------

    def clear(self) -> None:
        """Reset both cursors, the error code and the trace."""
        self._out.clear()
        self.read_pos = 0
        self.clear_error()

    def clear_error(self) -> None:
        self.error_code = ErrorCode.SUCCESS
        self.trace.clear()


# Helpers shared by both runtime tiers ----------------------------------------

def set_error(buf: Buffer, ec: ErrorCode) -> ErrorCode:
    buf.error_code = ec
    return ec


def trace_error(buf: Buffer, field: str, index: int) -> None:
    buf.trace.append(TraceRecord(field, index))


def get_rd_len(buf: Buffer) -> int:
    return buf.read_pos


def skip_rd_len(buf: Buffer, size: int) -> ErrorCode:
    """Discard ``size`` bytes of a frame's unknown tail."""
    if not buf.skip(size):
        return set_error(buf, ErrorCode.DECODE_TRUNCATED)
    return ErrorCode.SUCCESS
