"""Runtime support imported by generated codec modules."""
from pyadata.runtime.buffer import Buffer
from pyadata.runtime.error import (
    AdataError,
    DecodeError,
    EncodeError,
    ErrorCode,
    TraceRecord
)

__all__ = [
    'AdataError',
    'Buffer',
    'DecodeError',
    'EncodeError',
    'ErrorCode',
    'TraceRecord',
]
