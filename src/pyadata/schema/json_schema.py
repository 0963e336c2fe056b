"""Read and write resolved schema trees as JSON.

A schema document looks like::

    {
        "namespace": "geo",
        "includes": [ ...nested schema documents... ],
        "types": [
            {"name": "Point", "members": [
                {"name": "x", "type": "int32", "fixed": true},
                {"name": "tags", "type": "list", "size": 8, "params": [{"type": "string"}]},
                {"name": "origin", "type": "geo.Anchor"}
            ]}
        ]
    }

Any member ``type`` that is not a builtin names a nested type.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pyadata.schema import (
    BaseType,
    MemberDefinition,
    SchemaDefinition,
    TypeDefinition
)
from pyadata.schema.error import SchemaFormatError

logger = logging.getLogger(__name__)

_BUILTINS = {base.value: base for base in BaseType if base is not BaseType.TYPE}


def _expect(value: Any, kind: type, what: str) -> Any:
    if not isinstance(value, kind):
        raise SchemaFormatError(f'{what} must be a {kind.__name__}, got {type(value).__name__}')
    return value


def _parse_member(raw: Any, where: str) -> MemberDefinition:
    _expect(raw, dict, where)
    name = _expect(raw.get('name', ''), str, f'{where} name')
    type_name = raw.get('type')
    if not type_name:
        raise SchemaFormatError(f'{where} has no type')
    _expect(type_name, str, f'{where} type')

    typename = raw.get('typename')
    if type_name in _BUILTINS:
        base = _BUILTINS[type_name]
    elif type_name == BaseType.TYPE.value:
        base = BaseType.TYPE
        if not typename:
            raise SchemaFormatError(f'{where} is a nested type without a typename')
    else:
        base = BaseType.TYPE
        typename = type_name

    size = raw.get('size')
    if size is not None and (isinstance(size, bool) or not isinstance(size, int)):
        raise SchemaFormatError(f'{where} size must be an integer')

    default = raw.get('default')
    if default is not None and not isinstance(default, str):
        # Numbers are accepted and kept as their literal text
        if isinstance(default, bool) or not isinstance(default, (int, float)):
            raise SchemaFormatError(f'{where} default must be a string or number')
        default = json.dumps(default)

    params = tuple(
        _parse_member(param, f'{where} parameter {i}')
        for i, param in enumerate(_expect(raw.get('params', []), list, f'{where} params'))
    )
    return MemberDefinition(
        name=name,
        type=base,
        fixed=bool(raw.get('fixed', False)),
        params=params,
        size=size,
        deleted=bool(raw.get('deleted', False)),
        default=default,
        typename=typename if base is BaseType.TYPE else None,
    )


def _parse_definition(raw: Any) -> SchemaDefinition:
    _expect(raw, dict, 'Schema')
    namespace = _expect(raw.get('namespace', ''), str, 'Schema namespace')
    types = []
    for i, raw_type in enumerate(_expect(raw.get('types', []), list, 'Schema types')):
        _expect(raw_type, dict, f'Type {i}')
        name = raw_type.get('name')
        if not name or not isinstance(name, str):
            raise SchemaFormatError(f'Type {i} has no name')
        members = tuple(
            _parse_member(member, f'{name} member {j}')
            for j, member in enumerate(_expect(raw_type.get('members', []), list, f'{name} members'))
        )
        types.append(TypeDefinition(name, members))
    includes = tuple(
        _parse_definition(include)
        for include in _expect(raw.get('includes', []), list, 'Schema includes')
    )
    return SchemaDefinition(namespace, tuple(types), includes)


def load_schema(source: str | Path | dict) -> SchemaDefinition:
    """Build a :class:`SchemaDefinition` from a path, JSON text or parsed dict.

    Raises:
        SchemaFormatError: If the document is not a valid schema tree.
    """
    if isinstance(source, dict):
        raw = source
    else:
        if isinstance(source, Path) or not source.lstrip().startswith('{'):
            text = Path(source).read_text(encoding='utf-8')
        else:
            text = source
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as e:
            raise SchemaFormatError(f'Invalid JSON: {e}') from e
    definition = _parse_definition(raw)
    logger.debug(f'Loaded schema {definition.namespace or "<root>"} with {len(definition.types)} types')
    return definition


def _dump_member(member: MemberDefinition) -> dict[str, Any]:
    raw: dict[str, Any] = {}
    if member.name:
        raw['name'] = member.name
    if member.type is BaseType.TYPE:
        raw['type'] = member.typename
    else:
        raw['type'] = member.type.value
    if member.fixed:
        raw['fixed'] = True
    if member.size is not None:
        raw['size'] = member.size
    if member.deleted:
        raw['deleted'] = True
    if member.default is not None:
        raw['default'] = member.default
    if member.params:
        raw['params'] = [_dump_member(param) for param in member.params]
    return raw


def dump_schema(definition: SchemaDefinition) -> dict[str, Any]:
    """Convert ``definition`` back into its JSON document form."""
    raw: dict[str, Any] = {'namespace': definition.namespace}
    if definition.includes:
        raw['includes'] = [dump_schema(include) for include in definition.includes]
    raw['types'] = [
        {'name': type_def.name, 'members': [_dump_member(member) for member in type_def.members]}
        for type_def in definition.types
    ]
    return raw
