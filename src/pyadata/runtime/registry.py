"""Shared namespace registry for generated modules.

Every generated module merges its types into :data:`ns` under its namespace
path, so several modules sharing a namespace accumulate into one object and
types from previously loaded modules can be resolved by qualified name.
"""
import logging
import threading
from types import SimpleNamespace

logger = logging.getLogger(__name__)

ns = SimpleNamespace()
_lock = threading.Lock()


def merge_namespace(path: str, types: dict[str, type]) -> SimpleNamespace:
    """Merge ``types`` into the namespace object at ``path``, creating it if needed."""
    with _lock:
        node = ns
        for part in filter(None, path.split('.')):
            child = getattr(node, part, None)
            if child is None:
                child = SimpleNamespace()
                setattr(node, part, child)
            node = child
        for name, type_ in types.items():
            setattr(node, name, type_)
    logger.debug(f'Registered {len(types)} types under {path or "<root>"}')
    return node


def lookup(qualified_name: str) -> type:
    """Resolve a registered type such as ``'geo.Point'``."""
    node = ns
    for part in qualified_name.split('.'):
        node = getattr(node, part, None)
        if node is None:
            raise LookupError(f'Type {qualified_name!r} is not registered')
    if not isinstance(node, type):
        raise LookupError(f'{qualified_name!r} is a namespace, not a type')
    return node


def clear() -> None:
    """Forget every registered namespace."""
    with _lock:
        ns.__dict__.clear()


class FieldPool:
    """Member names packed into one NUL-separated string, addressed by offset."""

    __slots__ = ('_data',)

    def __init__(self, data: str):
        self._data = data

    def __getitem__(self, offset: int) -> str:
        return self._data[offset:self._data.index('\x00', offset)]

    def __len__(self) -> int:
        return self._data.count('\x00')
