from collections.abc import Iterable
from dataclasses import dataclass
from enum import IntEnum


class ErrorCode(IntEnum):
    """Result codes returned by every codec function. Zero is success."""
    SUCCESS = 0
    NEGATIVE_ASSIGN_TO_UNSIGNED = 1
    VALUE_TOO_LARGE = 2
    SEQUENCE_LENGTH_OVERFLOW = 3
    DECODE_TRUNCATED = 4
    UNDEFINED_MEMBER = 5


@dataclass(frozen=True, slots=True)
class TraceRecord:
    """Where a codec error happened: a member and, for elements, a 1-based index."""
    field: str
    index: int = -1

    def __str__(self) -> str:
        if self.index < 0:
            return self.field
        return f'{self.field}[{self.index}]'


def format_trace(trace: Iterable[TraceRecord]) -> str:
    """Render a trace (innermost record first) as an outermost-first path."""
    return '.'.join(str(record) for record in reversed(list(trace)))


class AdataError(Exception):
    """Base exception for codec failures surfaced by the high-level API."""
    def __init__(self, code: ErrorCode, trace: Iterable[TraceRecord] = ()):
        self.code = ErrorCode(code)
        self.trace = tuple(trace)
        message = self.code.name.lower()
        if self.trace:
            message = f'{message} at {format_trace(self.trace)}'
        super().__init__(message)


class EncodeError(AdataError):
    """Exception raised when an object cannot be encoded."""


class DecodeError(AdataError):
    """Exception raised when a byte stream cannot be decoded."""
