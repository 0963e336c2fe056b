"""Compose member fragments into a generated class with its four codec operations.

A frame on the wire is ``[presence tag: u64][payload length: i32][payload]``.
Bit ``i`` of the tag is the ``i``-th declared member. Scalars always set
their bit, containers only when non-empty and deleted members never do.
"""
from __future__ import annotations

import logging
from typing import Callable

from pyadata.schema import BaseType, MemberDefinition, TypeDefinition
from pyadata.schema.classifier import (
    SAFE_MASK_BITS,
    Tier,
    default_literal,
    mask_literal
)
from pyadata.schema.field_emitter import FieldEmitter
from pyadata.schema.interning import NameStrategy

logger = logging.getLogger(__name__)

_TAB = '    '


def mask_name(bit: int) -> str:
    return f'_MASK_{bit}'


def mask_ref(bit: int) -> str:
    """Expression for the presence mask of ``bit``.

    Masks of bit 53 and above are module constants so no method body holds a
    literal a double cannot represent.
    """
    if bit >= SAFE_MASK_BITS:
        return mask_name(bit)
    return str(1 << bit)


def mask_definition(bit: int, tier: Tier) -> str:
    return f'{mask_name(bit)} = {mask_literal(bit, tier)}'


def wide_bits(type_def: TypeDefinition) -> list[int]:
    """Presence bits of ``type_def`` that need a module-level mask constant."""
    return list(range(SAFE_MASK_BITS, len(type_def.members)))


class TypeEmitter:
    """Emit the source of one generated dataclass.

    Args:
        type_def: Type to emit.
        qualified_name: Name recorded in ``__adata_name__``.
        tier: Runtime tier the literals are written for.
        names: Interning strategy for member names in traces.
        type_ref: Maps nested-type references to class expressions.
        strict_members: Fail reads whose tag carries unknown bits.
    """

    def __init__(self, type_def: TypeDefinition, qualified_name: str, tier: Tier,
                 names: NameStrategy, type_ref: Callable[[str], str],
                 strict_members: bool = False):
        self._type = type_def
        self._qualified_name = qualified_name
        self._tier = tier
        self._type_ref = type_ref
        self._strict = strict_members
        self._fields = FieldEmitter(names, type_ref)

    def _live_members(self) -> list[tuple[int, MemberDefinition]]:
        return [(bit, member) for bit, member in enumerate(self._type.members) if not member.deleted]

    def emit(self) -> str:
        logger.debug(f'Emitting {self._qualified_name} ({len(self._type.members)} members)')
        lines: list[str] = []
        lines.extend(self._emit_header())
        lines.append('')
        lines.extend(self._emit_skip_read())
        lines.append('')
        lines.extend(self._emit_read())
        lines.append('')
        lines.extend(self._emit_tag())
        lines.append('')
        lines.extend(self._emit_payload_size())
        lines.append('')
        lines.extend(self._emit_size_of())
        lines.append('')
        lines.extend(self._emit_write())
        return '\n'.join(lines)

    # Class header and fields ----------------------------------------------

    def _field_line(self, member: MemberDefinition) -> str:
        base = member.type
        if base is BaseType.LIST:
            return f'{_TAB}{member.name}: list = _field(default_factory=list)'
        if base is BaseType.MAP:
            return f'{_TAB}{member.name}: dict = _field(default_factory=dict)'
        if base is BaseType.TYPE:
            cls = self._type_ref(member.typename)
            return f'{_TAB}{member.name}: {cls} = _field(default_factory={cls})'
        if base.is_integer:
            annotation = 'int'
        elif base.is_float:
            annotation = 'float'
        else:
            annotation = 'str'
        literal = default_literal(member, self._tier, self._type.name)
        return f'{_TAB}{member.name}: {annotation} = {literal}'

    def _emit_header(self) -> list[str]:
        member_names = tuple(member.name for member in self._type.members)
        lines = [
            '@dataclass(slots=True)',
            f'class {self._type.name}:',
            f'{_TAB}__adata_name__: ClassVar[str] = {self._qualified_name!r}',
            f'{_TAB}__adata_members__: ClassVar[tuple[str, ...]] = {member_names!r}',
        ]
        live = self._live_members()
        if live:
            lines.append('')
        for _, member in live:
            lines.append(self._field_line(member))
        return lines

    # Reading --------------------------------------------------------------

    def _emit_frame_head(self) -> list[str]:
        pad = _TAB * 2
        lines = [
            f'{pad}ec, tag = rd_u64(buf)',
            f'{pad}if ec:',
            f'{pad}{_TAB}return ec',
            f'{pad}ec, length = rd_i32(buf)',
            f'{pad}if ec:',
            f'{pad}{_TAB}return ec',
            f'{pad}offset = get_rd_len(buf)',
        ]
        member_count = len(self._type.members)
        if self._strict and member_count < 64:
            lines.append(f'{pad}if tag >> {member_count}:')
            lines.append(f'{pad}{_TAB}return set_error(buf, UNDEFINED_MEMBER)')
        return lines

    def _emit_frame_tail(self) -> list[str]:
        pad = _TAB * 2
        return [
            f'{pad}if length >= 0:',
            f'{pad}{_TAB}read_len = get_rd_len(buf) - offset',
            f'{pad}{_TAB}if length > read_len:',
            f'{pad}{_TAB}{_TAB}ec = skip_rd_len(buf, length - read_len)',
            f'{pad}{_TAB}{_TAB}if ec:',
            f'{pad}{_TAB}{_TAB}{_TAB}return ec',
            f'{pad}return SUCCESS',
        ]

    def _emit_skip_read(self) -> list[str]:
        lines = [
            f'{_TAB}@staticmethod',
            f'{_TAB}def skip_read(buf):',
        ]
        lines.extend(self._emit_frame_head())
        for bit, member in enumerate(self._type.members):
            lines.append(f'{_TAB * 2}if tag & {mask_ref(bit)}:')
            lines.extend(self._fields.skip(member, 3))
        lines.extend(self._emit_frame_tail())
        return lines

    def _emit_read(self) -> list[str]:
        lines = [f'{_TAB}def read(self, buf):']
        lines.extend(self._emit_frame_head())
        for bit, member in enumerate(self._type.members):
            lines.append(f'{_TAB * 2}if tag & {mask_ref(bit)}:')
            if member.deleted:
                lines.extend(self._fields.skip(member, 3))
                continue
            lines.extend(self._fields.read(member, 3))
            if member.type is BaseType.LIST:
                lines.append(f'{_TAB * 2}else:')
                lines.append(f'{_TAB * 3}self.{member.name} = []')
            elif member.type is BaseType.MAP:
                lines.append(f'{_TAB * 2}else:')
                lines.append(f'{_TAB * 3}self.{member.name} = {{}}')
        lines.extend(self._emit_frame_tail())
        return lines

    # Writing --------------------------------------------------------------

    def _emit_tag(self) -> list[str]:
        pad = _TAB * 2
        scalar_bits = 0
        wide_scalars: list[int] = []
        containers: list[tuple[int, MemberDefinition]] = []
        for bit, member in self._live_members():
            if member.type.is_container:
                containers.append((bit, member))
            elif bit >= SAFE_MASK_BITS:
                wide_scalars.append(bit)
            else:
                scalar_bits |= 1 << bit
        lines = [
            f'{_TAB}def _tag(self):',
            f'{pad}tag = {scalar_bits}',
        ]
        for bit in wide_scalars:
            lines.append(f'{pad}tag |= {mask_ref(bit)}')
        for bit, member in containers:
            lines.append(f'{pad}if self.{member.name}:')
            lines.append(f'{pad}{_TAB}tag |= {mask_ref(bit)}')
        lines.append(f'{pad}return tag')
        return lines

    def _emit_payload_size(self) -> list[str]:
        pad = _TAB * 2
        lines = [
            f'{_TAB}def _payload_size(self, tag):',
            f'{pad}size = 0',
        ]
        for bit, member in self._live_members():
            if member.type.is_container:
                lines.append(f'{pad}if tag & {mask_ref(bit)}:')
                lines.extend(self._fields.size(member, 3))
            else:
                lines.extend(self._fields.size(member, 2))
        lines.append(f'{pad}return size')
        return lines

    def _emit_size_of(self) -> list[str]:
        pad = _TAB * 2
        return [
            f'{_TAB}def size_of(self):',
            f'{pad}tag = self._tag()',
            f'{pad}size = self._payload_size(tag)',
            f'{pad}return szof_u64(tag) + szof_i32(size) + size',
        ]

    def _emit_write(self) -> list[str]:
        pad = _TAB * 2
        lines = [
            f'{_TAB}def write(self, buf):',
            f'{pad}tag = self._tag()',
            f'{pad}ec = wt_u64(buf, tag)',
            f'{pad}if ec:',
            f'{pad}{_TAB}return ec',
            f'{pad}ec = wt_i32(buf, self._payload_size(tag))',
            f'{pad}if ec:',
            f'{pad}{_TAB}return ec',
        ]
        for bit, member in self._live_members():
            if member.type.is_container:
                lines.append(f'{pad}if tag & {mask_ref(bit)}:')
                lines.extend(self._fields.write(member, 3))
            else:
                lines.extend(self._fields.write(member, 2))
        lines.append(f'{pad}return SUCCESS')
        return lines
