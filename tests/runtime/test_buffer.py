from pyadata.runtime.buffer import (
    Buffer,
    get_rd_len,
    set_error,
    skip_rd_len,
    trace_error
)
from pyadata.runtime.error import (
    AdataError,
    DecodeError,
    ErrorCode,
    TraceRecord,
    format_trace
)


def test_read_and_skip() -> None:
    buf = Buffer(b'abcdef')
    assert buf.read(2) == b'ab'
    assert buf.skip(1)
    assert get_rd_len(buf) == 3
    assert buf.remaining == 3
    assert buf.read(4) is None
    assert buf.read_length == 3
    assert not buf.skip(4)
    assert buf.read(3) == b'def'


def test_reads_any_buffer_object() -> None:
    data = bytearray(b'\x01\x02\x03')
    buf = Buffer(memoryview(data))
    assert buf.read(3) == b'\x01\x02\x03'
    buf.set_read_data(b'\x09')
    assert buf.read_length == 0
    assert buf.read(1) == b'\x09'


def test_write_and_truncate() -> None:
    buf = Buffer()
    buf.write(b'ab')
    buf.write_byte(0x63)
    assert buf.write_length == 3
    buf.truncate(1)
    assert buf.get_write_data() == b'a'


def test_skip_rd_len() -> None:
    buf = Buffer(b'1234')
    assert skip_rd_len(buf, 3) == ErrorCode.SUCCESS
    assert skip_rd_len(buf, 3) == ErrorCode.DECODE_TRUNCATED
    assert buf.error_code == ErrorCode.DECODE_TRUNCATED


def test_error_state_and_trace() -> None:
    buf = Buffer()
    assert set_error(buf, ErrorCode.VALUE_TOO_LARGE) == ErrorCode.VALUE_TOO_LARGE
    trace_error(buf, 'x', 2)
    trace_error(buf, 'items', -1)
    assert buf.trace == [TraceRecord('x', 2), TraceRecord('items')]
    assert format_trace(buf.trace) == 'items.x[2]'

    buf.clear()
    assert buf.error_code == ErrorCode.SUCCESS
    assert buf.trace == []


def test_exception_message() -> None:
    error = DecodeError(ErrorCode.DECODE_TRUNCATED, [TraceRecord('name'), TraceRecord('inner', 1)])
    assert isinstance(error, AdataError)
    assert error.code is ErrorCode.DECODE_TRUNCATED
    assert str(error) == 'decode_truncated at inner[1].name'
    assert str(AdataError(ErrorCode.UNDEFINED_MEMBER)) == 'undefined_member'
