"""Classify schema members into wire codecs and validate schema trees."""
from __future__ import annotations

import keyword
import logging
import math
import re
from dataclasses import dataclass
from enum import Enum

from pyadata.runtime import core
from pyadata.runtime.wide import is_safe
from pyadata.schema import (
    BaseType,
    MemberDefinition,
    SchemaDefinition,
    TypeDefinition
)
from pyadata.schema.error import SchemaError

logger = logging.getLogger(__name__)

MAX_MEMBERS = 64
SAFE_MASK_BITS = 53

# Names taken by generated methods or looked up in generated class bodies
RESERVED_NAMES = frozenset((
    'read', 'write', 'skip_read', 'size_of', '_tag', '_payload_size', '_field',
    'int', 'float', 'str', 'list', 'dict', 'ClassVar', 'int64', 'uint64',
))

# Module globals and method locals of a generated module that a type name would shadow
_MODULE_NAMES = frozenset((
    'dataclass', 'ClassVar', 'TYPES', 'FieldPool', 'lookup', 'merge_namespace',
    'int64', 'uint64', 'int', 'float', 'str', 'list', 'dict', 'range', 'len', 'enumerate',
    'self', 'buf', 'ec', 'tag', 'length', 'offset', 'read_len', 'size',
))
_LOOP_VAR = re.compile(r'[nivek]\d+')
_RUNTIME_NAMES = frozenset(name for name in vars(core) if not name.startswith('_'))

# Codec names shared by every generated type for framing and container counts
FRAMING_CODECS = ('u64', 'i32', 'u32')


class Tier(Enum):
    """Numeric capability of the runtime the generated module targets."""
    BASELINE = 'baseline'
    ACCELERATED = 'accelerated'

    @property
    def runtime_module(self) -> str:
        if self is Tier.BASELINE:
            return 'pyadata.runtime.core'
        return 'pyadata.runtime.fast'


_COMPACT_SUFFIX = {
    BaseType.INT8: 'i8',
    BaseType.UINT8: 'u8',
    BaseType.INT16: 'i16',
    BaseType.UINT16: 'u16',
    BaseType.INT32: 'i32',
    BaseType.UINT32: 'u32',
    BaseType.INT64: 'i64',
    BaseType.UINT64: 'u64',
}
_FLOAT_SUFFIX = {
    BaseType.FLOAT32: 'f32',
    BaseType.FLOAT64: 'f64',
}


@dataclass(frozen=True, slots=True)
class Codec:
    """Identity of a primitive codec in the runtime catalog.

    ``width`` is the encoded size for fixed-width codecs and None for
    variable-width ones.
    """
    suffix: str
    width: int | None = None
    ceiling: bool = False

    @property
    def read(self) -> str:
        return f'rd_{self.suffix}'

    @property
    def skip(self) -> str:
        return f'skip_rd_{self.suffix}'

    @property
    def write(self) -> str:
        return f'wt_{self.suffix}'

    @property
    def size(self) -> str:
        return f'szof_{self.suffix}'

    @property
    def names(self) -> tuple[str, str, str, str]:
        return self.read, self.skip, self.write, self.size


STRING_CODEC = Codec('str', ceiling=True)


def classify(member: MemberDefinition) -> Codec | None:
    """Return the primitive codec of a scalar member.

    Containers and nested types are composed by the emitters and have no
    primitive codec, so ``None`` is returned for them.
    """
    base = member.type
    if base.is_integer:
        suffix = _COMPACT_SUFFIX[base]
        if member.fixed:
            return Codec(f'fix_{suffix}', base.bits // 8)
        return Codec(suffix)
    if base.is_float:
        return Codec(_FLOAT_SUFFIX[base], base.bits // 8)
    if base is BaseType.STRING:
        return STRING_CODEC
    if base.is_container or base is BaseType.TYPE:
        return None
    raise SchemaError(f'Unknown base type {base!r}', member=member.name)


def ceiling(member: MemberDefinition) -> int:
    """Declared size ceiling of a string or container, 0 when unbounded."""
    if member.type is BaseType.STRING or member.type.is_container:
        return member.size or 0
    return 0


def codec_names(definition: SchemaDefinition) -> list[str]:
    """Sorted runtime names the generated module binds for ``definition``."""
    names: set[str] = set()
    for suffix in FRAMING_CODECS:
        codec = Codec(suffix)
        names.update((codec.read, codec.write, codec.size))

    def visit(member: MemberDefinition, deleted: bool) -> None:
        codec = classify(member)
        if codec is not None and deleted:
            names.add(codec.skip)
        elif codec is not None:
            # fixed-width sizes are folded into constants
            names.update((codec.read, codec.skip, codec.write))
            if codec.width is None:
                names.add(codec.size)
        for param in member.params:
            visit(param, deleted)

    for type_def in definition.types:
        for member in type_def.members:
            visit(member, member.deleted)
    return sorted(names)


# Literals ------------------------------------------------------------------

def int_literal(value: int, base: BaseType, tier: Tier) -> str:
    """Python expression for an integer constant.

    Baseline hosts hold integers in doubles, so magnitudes at or beyond 2**53
    are spelled as decimal text passed through the wide-integer helpers.
    """
    if tier is Tier.ACCELERATED or is_safe(value):
        return repr(value)
    helper = 'int64' if base.is_signed else 'uint64'
    return f"{helper}('{value}')"


def mask_literal(bit: int, tier: Tier) -> str:
    return int_literal(1 << bit, BaseType.UINT64, tier)


def parse_default(member: MemberDefinition, type_name: str | None = None) -> int | float | str | None:
    """Parse a member's default literal text, None when it has none."""
    text = member.default
    if text is None or text == '':
        return None
    base = member.type
    try:
        if base.is_integer:
            value = int(text, 0)
        elif base.is_float:
            value = float(text)
        elif base is BaseType.STRING:
            return text
        else:
            raise SchemaError('Only scalar members take a default value', type_name, member.name)
    except ValueError as e:
        raise SchemaError(f'Invalid default {text!r}: {e}', type_name, member.name) from e
    if base.is_integer:
        bits = base.bits
        lo, hi = (-(1 << (bits - 1)), (1 << (bits - 1)) - 1) if base.is_signed else (0, (1 << bits) - 1)
        if not lo <= value <= hi:
            raise SchemaError(f'Default {text!r} does not fit in {base.value}', type_name, member.name)
    return value


def default_literal(member: MemberDefinition, tier: Tier, type_name: str | None = None) -> str:
    """Python expression for the zero or declared default of a scalar member."""
    value = parse_default(member, type_name)
    base = member.type
    if base.is_integer:
        return int_literal(value or 0, base, tier)
    if base.is_float:
        value = float(value or 0.0)
        if not math.isfinite(value):
            return f"float('{value!r}')"
        return repr(value)
    if base is BaseType.STRING:
        return repr(value or '')
    raise SchemaError('Only scalar members take a default value', type_name, member.name)


# Resolution and validation -----------------------------------------------

def _resolve_qualified(definition: SchemaDefinition, typename: str) -> tuple[SchemaDefinition, TypeDefinition] | None:
    for type_def in definition.types:
        if definition.qualified_name(type_def) == typename:
            return definition, type_def
    for include in definition.includes:
        found = _resolve_qualified(include, typename)
        if found is not None:
            return found
    return None


def resolve(definition: SchemaDefinition, typename: str) -> tuple[SchemaDefinition, TypeDefinition] | None:
    """Find the unit and type a nested-type reference points at.

    Local types match by plain or qualified name; included types only by
    qualified name.
    """
    found = definition.find(typename)
    if found is not None:
        return definition, found
    for include in definition.includes:
        owner = _resolve_qualified(include, typename)
        if owner is not None:
            return owner
    return None


def is_local(definition: SchemaDefinition, typename: str) -> bool:
    return definition.find(typename) is not None


def foreign_alias(qualified_name: str) -> str:
    """Module-level name bound to an included type, e.g. ``_geo_Point``."""
    return '_' + qualified_name.replace('.', '_')


def _foreign_aliases(definition: SchemaDefinition) -> set[str]:
    aliases: set[str] = set()

    def visit(member: MemberDefinition) -> None:
        if member.type is BaseType.TYPE:
            found = resolve(definition, member.typename)
            if found is not None and found[0] is not definition:
                aliases.add(foreign_alias(found[0].qualified_name(found[1])))
        for param in member.params:
            visit(param)

    for type_def in definition.types:
        for member in type_def.members:
            visit(member)
    return aliases


def _validate_type_name(name: str) -> None:
    if not name.isidentifier() or keyword.iskeyword(name):
        raise SchemaError('Type name is not a valid identifier', name)
    if name.startswith('_') or name in _MODULE_NAMES or name in _RUNTIME_NAMES or _LOOP_VAR.fullmatch(name):
        raise SchemaError('Type name is reserved in generated modules', name)


def _validate_member(definition: SchemaDefinition, type_def: TypeDefinition,
                     member: MemberDefinition, owner: str) -> None:
    base = member.type
    if len(member.params) != base.arity:
        raise SchemaError(
            f'{base.value} takes {base.arity} template parameters, got {len(member.params)}',
            type_def.name, owner
        )
    if member.size is not None and member.size <= 0:
        raise SchemaError(f'Size ceiling must be positive, got {member.size}', type_def.name, owner)
    if base is BaseType.TYPE:
        if not member.typename:
            raise SchemaError('Nested type member has no type name', type_def.name, owner)
        if resolve(definition, member.typename) is None:
            raise SchemaError(f'Unresolved nested type {member.typename!r}', type_def.name, owner)
    if base is BaseType.MAP:
        key = member.params[0]
        if key.type.is_container or key.type is BaseType.TYPE:
            raise SchemaError(f'Map keys must be scalars or strings, got {key.type.value}', type_def.name, owner)
    if member.default is not None:
        if not (base.is_integer or base.is_float or base is BaseType.STRING):
            raise SchemaError('Only scalar members take a default value', type_def.name, owner)
        parse_default(member, type_def.name)
    for param in member.params:
        _validate_member(definition, type_def, param, owner)


def _by_value_edges(definition: SchemaDefinition, type_def: TypeDefinition) -> list[str]:
    """Local types embedded by value (not through a container) in ``type_def``."""
    edges = []
    for member in type_def.members:
        if member.deleted or member.type is not BaseType.TYPE:
            continue
        target = definition.find(member.typename)
        if target is not None and target.name not in edges:
            edges.append(target.name)
    return edges


def order_types(definition: SchemaDefinition) -> list[TypeDefinition]:
    """Order local types so by-value nested types precede their users.

    Declaration order is kept wherever the nesting allows it. Raises
    :class:`SchemaError` on self-embedding or a by-value cycle.
    """
    by_name = {type_def.name: type_def for type_def in definition.types}
    ordered: list[TypeDefinition] = []
    state: dict[str, int] = {}  # 1 visiting, 2 done

    def visit(type_def: TypeDefinition, path: list[str]) -> None:
        mark = state.get(type_def.name)
        if mark == 2:
            return
        if mark == 1:
            cycle = ' -> '.join(path[path.index(type_def.name):] + [type_def.name])
            raise SchemaError(f'Type embeds itself by value ({cycle})', type_def.name)
        state[type_def.name] = 1
        for edge in _by_value_edges(definition, type_def):
            visit(by_name[edge], path + [type_def.name])
        state[type_def.name] = 2
        ordered.append(type_def)

    for type_def in definition.types:
        visit(type_def, [])
    return ordered


def validate(definition: SchemaDefinition) -> None:
    """Check ``definition`` can be compiled, raising :class:`SchemaError` if not."""
    seen_types: set[str] = set()
    for type_def in definition.types:
        if type_def.name in seen_types:
            raise SchemaError('Duplicate type name', type_def.name)
        seen_types.add(type_def.name)
        _validate_type_name(type_def.name)
        if len(type_def.members) > MAX_MEMBERS:
            raise SchemaError(
                f'{len(type_def.members)} members exceed the {MAX_MEMBERS}-bit presence tag',
                type_def.name
            )
        seen_members: set[str] = set()
        for member in type_def.members:
            if not member.name.isidentifier() or keyword.iskeyword(member.name):
                raise SchemaError('Member name is not a valid identifier', type_def.name, member.name)
            if member.name in RESERVED_NAMES or member.name.startswith('__'):
                raise SchemaError('Member name is reserved for generated methods', type_def.name, member.name)
            if member.name in seen_members:
                raise SchemaError('Duplicate member name', type_def.name, member.name)
            seen_members.add(member.name)
            _validate_member(definition, type_def, member, member.name)
    # class bodies look up local types and included-type aliases by name
    shadowed = seen_types | _foreign_aliases(definition)
    for type_def in definition.types:
        for member in type_def.members:
            if member.name in shadowed:
                raise SchemaError('Member name shadows a type used by the generated module', type_def.name, member.name)
    order_types(definition)
    logger.debug(f'Validated {len(definition.types)} types in {definition.namespace or "<root>"}')
