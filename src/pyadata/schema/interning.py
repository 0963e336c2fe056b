"""Policies for how generated modules name members in error traces.

The choice never changes wire bytes, only the text each call site passes to
``trace_error`` and the table the module defines at load time.
"""
from __future__ import annotations

from enum import Enum

from pyadata.schema import SchemaDefinition

_TABLE = '_field_names'


class Interning(Enum):
    DIRECT = 'direct'
    POOLED = 'pooled'
    INDEXED = 'indexed'


class FieldNameTable:
    """Ordered set of member names, filled while walking a schema."""

    def __init__(self) -> None:
        self._names: dict[str, None] = {}

    def register(self, name: str) -> None:
        self._names.setdefault(name, None)

    def register_all(self, definition: SchemaDefinition) -> FieldNameTable:
        for type_def in definition.types:
            for member in type_def.members:
                self.register(member.name)
        return self

    @property
    def names(self) -> list[str]:
        return list(self._names)

    def __len__(self) -> int:
        return len(self._names)

    def __contains__(self, name: object) -> bool:
        return name in self._names


class DirectNames:
    """Embed each name as a string literal at its call site."""
    kind = Interning.DIRECT
    registry_imports = ()

    def __init__(self, table: FieldNameTable):
        self._table = table

    def preamble(self) -> list[str]:
        return []

    def reference(self, name: str) -> str:
        return repr(name)


class PooledNames:
    """Pack every distinct name once into a NUL-separated pool keyed by offset."""
    kind = Interning.POOLED
    registry_imports = ('FieldPool',)

    def __init__(self, table: FieldNameTable):
        self._offsets: dict[str, int] = {}
        offset = 0
        for name in table.names:
            self._offsets[name] = offset
            offset += len(name) + 1
        self._pool = ''.join(f'{name}\x00' for name in table.names)

    def preamble(self) -> list[str]:
        return [f'{_TABLE} = FieldPool({self._pool!r})']

    def reference(self, name: str) -> str:
        return f'{_TABLE}[{self._offsets[name]}]'


class IndexedNames:
    """Intern all names into one sorted tuple and reference them by index."""
    kind = Interning.INDEXED
    registry_imports = ()

    def __init__(self, table: FieldNameTable):
        self._names = sorted(table.names)
        self._index = {name: i for i, name in enumerate(self._names)}

    def preamble(self) -> list[str]:
        lines = [f'{_TABLE} = (']
        lines.extend(f'    {name!r},' for name in self._names)
        lines.append(')')
        return lines

    def reference(self, name: str) -> str:
        return f'{_TABLE}[{self._index[name]}]'


NameStrategy = DirectNames | PooledNames | IndexedNames

_STRATEGIES: dict[Interning, type] = {
    Interning.DIRECT: DirectNames,
    Interning.POOLED: PooledNames,
    Interning.INDEXED: IndexedNames,
}


def make_strategy(interning: Interning, definition: SchemaDefinition) -> NameStrategy:
    """Register every member name of ``definition`` and build the strategy."""
    table = FieldNameTable().register_all(definition)
    return _STRATEGIES[interning](table)
