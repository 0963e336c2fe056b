"""Emit the read, skip, write and size logic of a single member.

Every fragment is a list of source lines indented for a method body. Errors
are returned as codes: a failing call site records ``(name, index)`` on the
buffer trace and returns, where ``index`` is -1 for the member itself and the
1-based element position inside a container loop.
"""
from __future__ import annotations

from itertools import count
from typing import Callable

from pyadata.schema import BaseType, MemberDefinition
from pyadata.schema.classifier import ceiling, classify
from pyadata.schema.error import SchemaError
from pyadata.schema.interning import NameStrategy

_TAB = '    '


def fixed_width(member: MemberDefinition) -> int | None:
    """Encoded size of a scalar that never varies, None otherwise."""
    codec = classify(member)
    return codec.width if codec is not None else None


class FieldEmitter:
    """Emit member-level codec fragments for one type.

    Args:
        names: Interning strategy used to spell member names in traces.
        type_ref: Maps a nested-type reference to the expression naming its
            generated class.
    """

    def __init__(self, names: NameStrategy, type_ref: Callable[[str], str]):
        self._names = names
        self._type_ref = type_ref
        self._counter = count()

    def _new_suffix(self) -> int:
        return next(self._counter)

    def _check(self, lines: list[str], depth: int, ref: str, index: str) -> None:
        pad = _TAB * depth
        lines.append(f"{pad}if ec:")
        lines.append(f"{pad}{_TAB}trace_error(buf, {ref}, {index})")
        lines.append(f"{pad}{_TAB}return ec")

    def _check_ceiling(self, lines: list[str], depth: int, count_var: str,
                       member: MemberDefinition, ref: str, index: str) -> None:
        limit = ceiling(member)
        if not limit:
            return
        pad = _TAB * depth
        lines.append(f"{pad}if {count_var} > {limit}:")
        lines.append(f"{pad}{_TAB}ec = set_error(buf, SEQUENCE_LENGTH_OVERFLOW)")
        lines.append(f"{pad}{_TAB}trace_error(buf, {ref}, {index})")
        lines.append(f"{pad}{_TAB}return ec")

    @staticmethod
    def _ceiling_arg(member: MemberDefinition) -> str:
        limit = ceiling(member)
        return f", {limit}" if limit else ""

    # Read -----------------------------------------------------------------

    def read(self, member: MemberDefinition, depth: int) -> list[str]:
        """Decode ``member`` into ``self``; nested objects are read in place."""
        ref = self._names.reference(member.name)
        target = f"self.{member.name}"
        lines: list[str] = []
        if member.type is BaseType.TYPE:
            lines.append(f"{_TAB * depth}ec = {target}.read(buf)")
            self._check(lines, depth, ref, "-1")
        else:
            self._read_value(lines, member, target, ref, "-1", depth)
        return lines

    def _read_value(self, lines: list[str], member: MemberDefinition, target: str,
                    ref: str, index: str, depth: int) -> None:
        pad = _TAB * depth
        base = member.type
        codec = classify(member)

        if codec is not None:
            lines.append(f"{pad}ec, {target} = {codec.read}(buf{self._ceiling_arg(member)})")
            self._check(lines, depth, ref, index)

        elif base is BaseType.TYPE:
            lines.append(f"{pad}{target} = {self._type_ref(member.typename)}()")
            lines.append(f"{pad}ec = {target}.read(buf)")
            self._check(lines, depth, ref, index)

        elif base is BaseType.LIST:
            k = self._new_suffix()
            count_var, index_var, value_var, elem_var = f"n{k}", f"i{k}", f"v{k}", f"e{k}"
            lines.append(f"{pad}ec, {count_var} = rd_u32(buf)")
            self._check(lines, depth, ref, index)
            self._check_ceiling(lines, depth, count_var, member, ref, index)
            lines.append(f"{pad}{value_var} = []")
            lines.append(f"{pad}for {index_var} in range(1, {count_var} + 1):")
            self._read_value(lines, member.params[0], elem_var, ref, index_var, depth + 1)
            lines.append(f"{pad}{_TAB}{value_var}.append({elem_var})")
            lines.append(f"{pad}{target} = {value_var}")

        elif base is BaseType.MAP:
            k = self._new_suffix()
            count_var, index_var, value_var = f"n{k}", f"i{k}", f"v{k}"
            key_var, elem_var = f"k{k}", f"e{k}"
            lines.append(f"{pad}ec, {count_var} = rd_u32(buf)")
            self._check(lines, depth, ref, index)
            self._check_ceiling(lines, depth, count_var, member, ref, index)
            lines.append(f"{pad}{value_var} = {{}}")
            lines.append(f"{pad}for {index_var} in range(1, {count_var} + 1):")
            self._read_value(lines, member.params[0], key_var, ref, index_var, depth + 1)
            self._read_value(lines, member.params[1], elem_var, ref, index_var, depth + 1)
            lines.append(f"{pad}{_TAB}{value_var}[{key_var}] = {elem_var}")
            lines.append(f"{pad}{target} = {value_var}")

        else:
            raise SchemaError(f'Cannot read base type {base.value}', member=member.name)

    # Skip -----------------------------------------------------------------

    def skip(self, member: MemberDefinition, depth: int) -> list[str]:
        """Consume ``member``'s bytes without materializing a value."""
        ref = self._names.reference(member.name)
        lines: list[str] = []
        self._skip_value(lines, member, ref, "-1", depth)
        return lines

    def _skip_value(self, lines: list[str], member: MemberDefinition,
                    ref: str, index: str, depth: int) -> None:
        pad = _TAB * depth
        base = member.type
        codec = classify(member)

        if codec is not None:
            lines.append(f"{pad}ec = {codec.skip}(buf{self._ceiling_arg(member)})")
            self._check(lines, depth, ref, index)

        elif base is BaseType.TYPE:
            lines.append(f"{pad}ec = {self._type_ref(member.typename)}.skip_read(buf)")
            self._check(lines, depth, ref, index)

        elif base.is_container:
            k = self._new_suffix()
            count_var, index_var = f"n{k}", f"i{k}"
            lines.append(f"{pad}ec, {count_var} = rd_u32(buf)")
            self._check(lines, depth, ref, index)
            self._check_ceiling(lines, depth, count_var, member, ref, index)
            lines.append(f"{pad}for {index_var} in range(1, {count_var} + 1):")
            for param in member.params:
                self._skip_value(lines, param, ref, index_var, depth + 1)

        else:
            raise SchemaError(f'Cannot skip base type {base.value}', member=member.name)

    # Write ----------------------------------------------------------------

    def write(self, member: MemberDefinition, depth: int) -> list[str]:
        """Encode ``self.<member>``; container ceilings are checked before the count."""
        ref = self._names.reference(member.name)
        lines: list[str] = []
        self._write_value(lines, member, f"self.{member.name}", ref, "-1", depth)
        return lines

    def _write_value(self, lines: list[str], member: MemberDefinition, expr: str,
                     ref: str, index: str, depth: int) -> None:
        pad = _TAB * depth
        base = member.type
        codec = classify(member)

        if codec is not None:
            lines.append(f"{pad}ec = {codec.write}(buf, {expr}{self._ceiling_arg(member)})")
            self._check(lines, depth, ref, index)

        elif base is BaseType.TYPE:
            lines.append(f"{pad}ec = {expr}.write(buf)")
            self._check(lines, depth, ref, index)

        elif base is BaseType.LIST:
            k = self._new_suffix()
            count_var, index_var, elem_var = f"n{k}", f"i{k}", f"e{k}"
            lines.append(f"{pad}{count_var} = len({expr})")
            self._check_ceiling(lines, depth, count_var, member, ref, index)
            lines.append(f"{pad}ec = wt_u32(buf, {count_var})")
            self._check(lines, depth, ref, index)
            lines.append(f"{pad}for {index_var}, {elem_var} in enumerate({expr}, 1):")
            self._write_value(lines, member.params[0], elem_var, ref, index_var, depth + 1)

        elif base is BaseType.MAP:
            k = self._new_suffix()
            count_var, index_var, key_var, elem_var = f"n{k}", f"i{k}", f"k{k}", f"e{k}"
            lines.append(f"{pad}{count_var} = len({expr})")
            self._check_ceiling(lines, depth, count_var, member, ref, index)
            lines.append(f"{pad}ec = wt_u32(buf, {count_var})")
            self._check(lines, depth, ref, index)
            lines.append(f"{pad}for {index_var}, ({key_var}, {elem_var}) in enumerate({expr}.items(), 1):")
            self._write_value(lines, member.params[0], key_var, ref, index_var, depth + 1)
            self._write_value(lines, member.params[1], elem_var, ref, index_var, depth + 1)

        else:
            raise SchemaError(f'Cannot write base type {base.value}', member=member.name)

    # Size -----------------------------------------------------------------

    def size(self, member: MemberDefinition, depth: int) -> list[str]:
        """Add the encoded length of ``self.<member>`` to ``size``."""
        lines: list[str] = []
        self._size_value(lines, member, f"self.{member.name}", depth)
        return lines

    def _size_value(self, lines: list[str], member: MemberDefinition, expr: str, depth: int) -> None:
        pad = _TAB * depth
        base = member.type
        codec = classify(member)

        if codec is not None:
            if codec.width:
                lines.append(f"{pad}size += {codec.width}")
            else:
                lines.append(f"{pad}size += {codec.size}({expr})")

        elif base is BaseType.TYPE:
            lines.append(f"{pad}size += {expr}.size_of()")

        elif base is BaseType.LIST:
            lines.append(f"{pad}size += szof_u32(len({expr}))")
            width = fixed_width(member.params[0])
            if width:
                lines.append(f"{pad}size += {width} * len({expr})")
                return
            elem_var = f"e{self._new_suffix()}"
            lines.append(f"{pad}for {elem_var} in {expr}:")
            self._size_value(lines, member.params[0], elem_var, depth + 1)

        elif base is BaseType.MAP:
            lines.append(f"{pad}size += szof_u32(len({expr}))")
            key_width = fixed_width(member.params[0])
            value_width = fixed_width(member.params[1])
            if key_width and value_width:
                lines.append(f"{pad}size += {key_width + value_width} * len({expr})")
                return
            k = self._new_suffix()
            key_var, elem_var = f"k{k}", f"e{k}"
            lines.append(f"{pad}for {key_var}, {elem_var} in {expr}.items():")
            self._size_value(lines, member.params[0], key_var, depth + 1)
            self._size_value(lines, member.params[1], elem_var, depth + 1)

        else:
            raise SchemaError(f'Cannot size base type {base.value}', member=member.name)
