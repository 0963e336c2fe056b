"""Accelerated-tier primitive codecs.

Same contract and wire bytes as :mod:`pyadata.runtime.core`, but values are
handled as native 64-bit integers and decoded in place from the buffer's
memoryview with precompiled :class:`struct.Struct` objects, so foreign
memory (``mmap``, shared buffers) is never copied.
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
from pyadata.runtime.core import (
    BYTE_COUNT_MASK,
    DECODE_TRUNCATED,
    NEGATIVE_ASSIGN_TO_UNSIGNED,
    NEGATIVE_BIT,
    SEQUENCE_LENGTH_OVERFLOW,
    SUCCESS,
    TAG_AS_TYPE,
    UNDEFINED_MEMBER,
    VALUE_TOO_LARGE,
    compact_size,
    integer_range,
    range_error
)
from pyadata.runtime.error import ErrorCode


def _make_compact(bits: int, signed: bool) -> tuple[Callable, Callable, Callable]:
    lo, hi = integer_range(bits, signed)
    max_bytes = bits // 8

    def read(buf: Buffer) -> tuple[ErrorCode, int]:
        pos = buf.read_pos
        if pos >= buf.read_end:
            return set_error(buf, DECODE_TRUNCATED), 0
        view = buf.view
        tag = view[pos]
        if tag < TAG_AS_TYPE:
            buf.read_pos = pos + 1
            return SUCCESS, tag
        count = (tag & BYTE_COUNT_MASK) + 1
        if count > max_bytes:
            return set_error(buf, VALUE_TOO_LARGE), 0
        end = pos + 1 + count
        if end > buf.read_end:
            return set_error(buf, DECODE_TRUNCATED), 0
        value = int.from_bytes(view[pos + 1:end], 'little')
        if tag & NEGATIVE_BIT:
            if not signed:
                return set_error(buf, NEGATIVE_ASSIGN_TO_UNSIGNED), 0
            value = -value
        if not lo <= value <= hi:
            return set_error(buf, VALUE_TOO_LARGE), 0
        buf.read_pos = end
        return SUCCESS, value

    def skip(buf: Buffer) -> ErrorCode:
        pos = buf.read_pos
        if pos >= buf.read_end:
            return set_error(buf, DECODE_TRUNCATED)
        tag = buf.view[pos]
        end = pos + 1
        if tag >= TAG_AS_TYPE:
            count = (tag & BYTE_COUNT_MASK) + 1
            if count > max_bytes:
                return set_error(buf, VALUE_TOO_LARGE)
            end += count
        if end > buf.read_end:
            return set_error(buf, DECODE_TRUNCATED)
        buf.read_pos = end
        return SUCCESS

    def write(buf: Buffer, value: int) -> ErrorCode:
        if not lo <= value <= hi:
            return range_error(buf, value, signed)
        if 0 <= value < TAG_AS_TYPE:
            buf.write_byte(value)
            return SUCCESS
        magnitude = -value if value < 0 else value
        count = (magnitude.bit_length() + 7) // 8
        tag = TAG_AS_TYPE | (NEGATIVE_BIT if value < 0 else 0) | (count - 1)
        buf.write_byte(tag)
        buf.write(magnitude.to_bytes(count, 'little'))
        return SUCCESS

    return read, skip, write


def _make_fixed(fmt: str) -> tuple[Callable, Callable, Callable, Callable]:
    packer = struct.Struct(fmt)
    size = packer.size
    signed = fmt[-1].islower()
    unpack_from = packer.unpack_from
    pack = packer.pack

    def read(buf: Buffer) -> tuple[ErrorCode, int | float]:
        pos = buf.read_pos
        if pos + size > buf.read_end:
            return set_error(buf, DECODE_TRUNCATED), 0
        buf.read_pos = pos + size
        return SUCCESS, unpack_from(buf.view, pos)[0]

    def skip(buf: Buffer) -> ErrorCode:
        if not buf.skip(size):
            return set_error(buf, DECODE_TRUNCATED)
        return SUCCESS

    def write(buf: Buffer, value: int | float) -> ErrorCode:
        try:
            buf.write(pack(value))
        except (struct.error, OverflowError):
            return range_error(buf, value, signed)
        return SUCCESS

    def szof(value: int | float) -> int:
        return size

    return read, skip, write, szof


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


def rd_str(buf: Buffer, ceiling: int = 0) -> tuple[ErrorCode, str]:
    ec, count = rd_u32(buf)
    if ec:
        return ec, ''
    if ceiling and count > ceiling:
        return set_error(buf, SEQUENCE_LENGTH_OVERFLOW), ''
    pos = buf.read_pos
    if pos + count > buf.read_end:
        return set_error(buf, DECODE_TRUNCATED), ''
    buf.read_pos = pos + count
    return SUCCESS, str(buf.view[pos:pos + count], 'utf-8', 'surrogateescape')


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
    count = len(raw)
    if ceiling and count > ceiling:
        return set_error(buf, SEQUENCE_LENGTH_OVERFLOW)
    ec = wt_u32(buf, count)
    if ec:
        return ec
    buf.write(raw)
    return SUCCESS


def szof_str(value: str) -> int:
    count = len(value.encode('utf-8', 'surrogateescape'))
    return compact_size(count) + count
