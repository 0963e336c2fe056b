"""High-level encode/decode helpers over generated codec classes.

Generated methods report failures as error codes on the buffer. These
helpers turn them into :class:`EncodeError` and :class:`DecodeError`.
"""
import logging
from typing import Any, TypeVar

from pyadata.runtime.buffer import Buffer
from pyadata.runtime.error import DecodeError, EncodeError

logger = logging.getLogger(__name__)

T = TypeVar('T')


def encode_into(buf: Buffer, obj: Any) -> int:
    """Append the encoding of ``obj`` to ``buf`` and return the bytes written.

    On failure everything this call wrote is dropped again, so the buffer is
    left as it was before the call.

    Raises:
        EncodeError: If a member cannot be encoded.
    """
    start = buf.write_length
    buf.clear_error()
    ec = obj.write(buf)
    if ec:
        buf.truncate(start)
        error = EncodeError(ec, buf.trace)
        logger.debug(f'Failed to encode {type(obj).__name__}: {error}')
        raise error
    return buf.write_length - start


def encode(obj: Any) -> bytes:
    """Encode ``obj`` into a new byte string."""
    buf = Buffer()
    encode_into(buf, obj)
    return buf.get_write_data()


def decode(cls: type[T], data: Any) -> T:
    """Decode one ``cls`` frame from the start of ``data``.

    ``data`` may be any buffer-protocol object; trailing bytes after the
    frame are ignored.

    Raises:
        DecodeError: If the frame is malformed or truncated.
    """
    buf = data if isinstance(data, Buffer) else Buffer(data)
    buf.clear_error()
    obj = cls()
    ec = obj.read(buf)
    if ec:
        error = DecodeError(ec, buf.trace)
        logger.debug(f'Failed to decode {cls.__name__}: {error}')
        raise error
    return obj


def skip(cls: type, data: Any) -> int:
    """Skip one ``cls`` frame and return how many bytes it occupied."""
    buf = data if isinstance(data, Buffer) else Buffer(data)
    buf.clear_error()
    start = buf.read_length
    ec = cls.skip_read(buf)
    if ec:
        raise DecodeError(ec, buf.trace)
    return buf.read_length - start


def size_of(obj: Any) -> int:
    """Encoded size of ``obj`` in bytes, computed without writing."""
    return obj.size_of()
