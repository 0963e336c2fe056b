"""Baseline-tier primitive codecs.

Every reader returns ``(ec, value)``, every writer and skip-reader returns
``ec`` and every ``szof_`` function returns the encoded size in bytes.
Failures are recorded on the buffer with :func:`set_error` and returned as an
:class:`ErrorCode`; no exception leaves these functions for well-typed input.

Compact integers are written as a single byte when ``0 <= v < 0x80``.
Otherwise a marker byte ``0x80 | negative_bit | (n - 1)`` is followed by the
``n`` little-endian bytes of the magnitude. Fixed-width integers and floats
are little-endian and always use their full width.
"""
import struct
from typing import Callable

from pyadata.runtime.buffer import (
    Buffer,
    get_rd_len,
    set_error,
    skip_rd_len,
    trace_error
)
from pyadata.runtime.error import ErrorCode

SUCCESS = ErrorCode.SUCCESS
NEGATIVE_ASSIGN_TO_UNSIGNED = ErrorCode.NEGATIVE_ASSIGN_TO_UNSIGNED
VALUE_TOO_LARGE = ErrorCode.VALUE_TOO_LARGE
SEQUENCE_LENGTH_OVERFLOW = ErrorCode.SEQUENCE_LENGTH_OVERFLOW
DECODE_TRUNCATED = ErrorCode.DECODE_TRUNCATED
UNDEFINED_MEMBER = ErrorCode.UNDEFINED_MEMBER

TAG_AS_TYPE = 0x80
NEGATIVE_BIT = 0x20
BYTE_COUNT_MASK = 0x1f

Reader = Callable[[Buffer], tuple[ErrorCode, int]]
Skipper = Callable[[Buffer], ErrorCode]
Writer = Callable[[Buffer, int], ErrorCode]


def integer_range(bits: int, signed: bool) -> tuple[int, int]:
    if signed:
        return -(1 << (bits - 1)), (1 << (bits - 1)) - 1
    return 0, (1 << bits) - 1


def range_error(buf: Buffer, value: int | float, signed: bool) -> ErrorCode:
    if value < 0 and not signed:
        return set_error(buf, NEGATIVE_ASSIGN_TO_UNSIGNED)
    return set_error(buf, VALUE_TOO_LARGE)


def compact_size(value: int) -> int:
    if 0 <= value < TAG_AS_TYPE:
        return 1
    return 1 + (abs(value).bit_length() + 7) // 8


def _make_compact(bits: int, signed: bool) -> tuple[Reader, Skipper, Writer]:
    lo, hi = integer_range(bits, signed)
    max_bytes = bits // 8

    def read(buf: Buffer) -> tuple[ErrorCode, int]:
        head = buf.read(1)
        if head is None:
            return set_error(buf, DECODE_TRUNCATED), 0
        tag = head[0]
        if tag < TAG_AS_TYPE:
            return SUCCESS, tag
        count = (tag & BYTE_COUNT_MASK) + 1
        if count > max_bytes:
            return set_error(buf, VALUE_TOO_LARGE), 0
        raw = buf.read(count)
        if raw is None:
            return set_error(buf, DECODE_TRUNCATED), 0
        magnitude = 0
        for shift, byte in enumerate(raw):
            magnitude |= byte << (shift * 8)
        value = magnitude
        if tag & NEGATIVE_BIT:
            if not signed:
                return set_error(buf, NEGATIVE_ASSIGN_TO_UNSIGNED), 0
            value = -magnitude
        if not lo <= value <= hi:
            return set_error(buf, VALUE_TOO_LARGE), 0
        return SUCCESS, value

    def skip(buf: Buffer) -> ErrorCode:
        head = buf.read(1)
        if head is None:
            return set_error(buf, DECODE_TRUNCATED)
        tag = head[0]
        if tag < TAG_AS_TYPE:
            return SUCCESS
        count = (tag & BYTE_COUNT_MASK) + 1
        if count > max_bytes:
            return set_error(buf, VALUE_TOO_LARGE)
        if not buf.skip(count):
            return set_error(buf, DECODE_TRUNCATED)
        return SUCCESS

    def write(buf: Buffer, value: int) -> ErrorCode:
        if not lo <= value <= hi:
            return range_error(buf, value, signed)
        if 0 <= value < TAG_AS_TYPE:
            buf.write_byte(value)
            return SUCCESS
        tag = TAG_AS_TYPE
        magnitude = value
        if value < 0:
            tag |= NEGATIVE_BIT
            magnitude = -value
        raw = bytearray()
        while magnitude:
            raw.append(magnitude & 0xff)
            magnitude >>= 8
        buf.write_byte(tag | (len(raw) - 1))
        buf.write(raw)
        return SUCCESS

    return read, skip, write


def _make_fixed(fmt: str) -> tuple[Reader, Skipper, Writer, Callable[[int | float], int]]:
    size = struct.calcsize(fmt)
    signed = fmt[-1].islower()

    def read(buf: Buffer) -> tuple[ErrorCode, int | float]:
        raw = buf.read(size)
        if raw is None:
            return set_error(buf, DECODE_TRUNCATED), 0
        return SUCCESS, struct.unpack(fmt, raw)[0]

    def skip(buf: Buffer) -> ErrorCode:
        if not buf.skip(size):
            return set_error(buf, DECODE_TRUNCATED)
        return SUCCESS

    def write(buf: Buffer, value: int | float) -> ErrorCode:
        try:
            buf.write(struct.pack(fmt, value))
        except (struct.error, OverflowError):
            return range_error(buf, value, signed)
        return SUCCESS

    def szof(value: int | float) -> int:
        return size

    return read, skip, write, szof


# Compact integers ---------------------------------------------------------

rd_i8, skip_rd_i8, wt_i8 = _make_compact(8, True)
rd_u8, skip_rd_u8, wt_u8 = _make_compact(8, False)
rd_i16, skip_rd_i16, wt_i16 = _make_compact(16, True)
rd_u16, skip_rd_u16, wt_u16 = _make_compact(16, False)
rd_i32, skip_rd_i32, wt_i32 = _make_compact(32, True)
rd_u32, skip_rd_u32, wt_u32 = _make_compact(32, False)
rd_i64, skip_rd_i64, wt_i64 = _make_compact(64, True)
rd_u64, skip_rd_u64, wt_u64 = _make_compact(64, False)

szof_i8 = szof_u8 = szof_i16 = szof_u16 = compact_size
szof_i32 = szof_u32 = szof_i64 = szof_u64 = compact_size

# Fixed-width integers and floats -----------------------------------------

rd_fix_i8, skip_rd_fix_i8, wt_fix_i8, szof_fix_i8 = _make_fixed('<b')
rd_fix_u8, skip_rd_fix_u8, wt_fix_u8, szof_fix_u8 = _make_fixed('<B')
rd_fix_i16, skip_rd_fix_i16, wt_fix_i16, szof_fix_i16 = _make_fixed('<h')
rd_fix_u16, skip_rd_fix_u16, wt_fix_u16, szof_fix_u16 = _make_fixed('<H')
rd_fix_i32, skip_rd_fix_i32, wt_fix_i32, szof_fix_i32 = _make_fixed('<i')
rd_fix_u32, skip_rd_fix_u32, wt_fix_u32, szof_fix_u32 = _make_fixed('<I')
rd_fix_i64, skip_rd_fix_i64, wt_fix_i64, szof_fix_i64 = _make_fixed('<q')
rd_fix_u64, skip_rd_fix_u64, wt_fix_u64, szof_fix_u64 = _make_fixed('<Q')
rd_f32, skip_rd_f32, wt_f32, szof_f32 = _make_fixed('<f')
rd_f64, skip_rd_f64, wt_f64, szof_f64 = _make_fixed('<d')

# Strings ------------------------------------------------------------------


def rd_str(buf: Buffer, ceiling: int = 0) -> tuple[ErrorCode, str]:
    ec, count = rd_u32(buf)
    if ec:
        return ec, ''
    if ceiling and count > ceiling:
        return set_error(buf, SEQUENCE_LENGTH_OVERFLOW), ''
    raw = buf.read(count)
    if raw is None:
        return set_error(buf, DECODE_TRUNCATED), ''
    return SUCCESS, raw.decode('utf-8', 'surrogateescape')


def skip_rd_str(buf: Buffer, ceiling: int = 0) -> ErrorCode:
    ec, count = rd_u32(buf)
    if ec:
        return ec
    if ceiling and count > ceiling:
        return set_error(buf, SEQUENCE_LENGTH_OVERFLOW)
    if not buf.skip(count):
        return set_error(buf, DECODE_TRUNCATED)
    return SUCCESS


def wt_str(buf: Buffer, value: str, ceiling: int = 0) -> ErrorCode:
    raw = value.encode('utf-8', 'surrogateescape')
    if ceiling and len(raw) > ceiling:
        return set_error(buf, SEQUENCE_LENGTH_OVERFLOW)
    ec = wt_u32(buf, len(raw))
    if ec:
        return ec
    buf.write(raw)
    return SUCCESS


def szof_str(value: str) -> int:
    count = len(value.encode('utf-8', 'surrogateescape'))
    return compact_size(count) + count

