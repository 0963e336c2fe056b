from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class BaseType(Enum):
    """Base type of a schema member."""
    INT8 = 'int8'
    UINT8 = 'uint8'
    INT16 = 'int16'
    UINT16 = 'uint16'
    INT32 = 'int32'
    UINT32 = 'uint32'
    INT64 = 'int64'
    UINT64 = 'uint64'
    FLOAT32 = 'float32'
    FLOAT64 = 'float64'
    STRING = 'string'
    LIST = 'list'
    MAP = 'map'
    TYPE = 'type'

    @property
    def is_integer(self) -> bool:
        return self in _INTEGER_BITS

    @property
    def is_signed(self) -> bool:
        return self.value.startswith('int')

    @property
    def bits(self) -> int:
        """Bit width of an integer or float type."""
        return _INTEGER_BITS.get(self) or _FLOAT_BITS[self]

    @property
    def is_float(self) -> bool:
        return self in _FLOAT_BITS

    @property
    def is_container(self) -> bool:
        return self in (BaseType.LIST, BaseType.MAP)

    @property
    def arity(self) -> int:
        """Number of template parameters the type takes."""
        if self is BaseType.LIST:
            return 1
        if self is BaseType.MAP:
            return 2
        return 0


_INTEGER_BITS = {
    BaseType.INT8: 8,
    BaseType.UINT8: 8,
    BaseType.INT16: 16,
    BaseType.UINT16: 16,
    BaseType.INT32: 32,
    BaseType.UINT32: 32,
    BaseType.INT64: 64,
    BaseType.UINT64: 64,
}
_FLOAT_BITS = {
    BaseType.FLOAT32: 32,
    BaseType.FLOAT64: 64,
}


@dataclass(frozen=True, slots=True)
class MemberDefinition:
    """A single member of a type, or a template parameter of a container.

    Attributes:
        name: Member name, unique within the owning type. Empty for
            template parameters.
        type: The member's base type.
        fixed: Encode integers with all of their bytes instead of the
            compact encoding.
        params: Element definitions for ``list`` (one) and ``map`` (two).
        size: Maximum element count (containers) or byte count (strings).
        deleted: The member is retired but keeps its presence bit.
        default: Literal text for the generated constructor.
        typename: Referenced type name when ``type`` is ``BaseType.TYPE``.
    """
    name: str
    type: BaseType
    fixed: bool = False
    params: tuple[MemberDefinition, ...] = ()
    size: int | None = None
    deleted: bool = False
    default: str | None = None
    typename: str | None = None


@dataclass(frozen=True, slots=True)
class TypeDefinition:
    """A named aggregate of ordered members."""
    name: str
    members: tuple[MemberDefinition, ...] = ()

    def member(self, name: str) -> MemberDefinition:
        for member in self.members:
            if member.name == name:
                return member
        raise KeyError(name)


@dataclass(frozen=True, slots=True)
class SchemaDefinition:
    """One schema definition unit: a namespace and the types declared in it.

    ``includes`` holds previously defined units whose types may be
    referenced by qualified name (``namespace.Type``).
    """
    namespace: str
    types: tuple[TypeDefinition, ...] = ()
    includes: tuple[SchemaDefinition, ...] = field(default=())

    def find(self, name: str) -> TypeDefinition | None:
        """Find a type by local or qualified name."""
        prefix = f'{self.namespace}.'
        if name.startswith(prefix):
            name = name[len(prefix):]
        for type_def in self.types:
            if type_def.name == name:
                return type_def
        return None

    def qualified_name(self, type_def: TypeDefinition) -> str:
        return f'{self.namespace}.{type_def.name}' if self.namespace else type_def.name
