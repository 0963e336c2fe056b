"""Compile schema definitions into Python codec modules."""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from types import ModuleType
from typing import Iterable

from pyadata.runtime.wide import is_safe
from pyadata.schema import SchemaDefinition
from pyadata.schema.classifier import (
    Tier,
    codec_names,
    foreign_alias,
    order_types,
    parse_default,
    resolve,
    validate
)
from pyadata.schema.interning import Interning, make_strategy
from pyadata.schema.type_emitter import (
    TypeEmitter,
    mask_definition,
    wide_bits
)

logger = logging.getLogger(__name__)

DEFAULT_INTERNING = {
    Tier.BASELINE: Interning.POOLED,
    Tier.ACCELERATED: Interning.INDEXED,
}
_RUNTIME_NAMES = ('SEQUENCE_LENGTH_OVERFLOW', 'SUCCESS', 'get_rd_len', 'set_error', 'skip_rd_len', 'trace_error')


@dataclass(frozen=True, slots=True)
class GeneratorOptions:
    """Generation-time configuration.

    Attributes:
        tier: Runtime tier the module targets.
        interning: How member names appear in error traces. Defaults to
            pooled names for the baseline tier and an indexed list for the
            accelerated tier.
        strict_members: Make ``read`` fail with ``UNDEFINED_MEMBER`` when the
            presence tag has bits beyond the declared members.
    """
    tier: Tier = Tier.BASELINE
    interning: Interning | None = None
    strict_members: bool = False

    def __post_init__(self):
        if self.interning is None:
            object.__setattr__(self, 'interning', DEFAULT_INTERNING[self.tier])


def module_name(definition: SchemaDefinition) -> str:
    """Name given to the loaded module of ``definition``."""
    base = definition.namespace.replace('.', '_') or 'adata'
    return f'{base}_adl'


def _wide_helpers(definition: SchemaDefinition, tier: Tier, masks: list[int]) -> list[str]:
    if tier is not Tier.BASELINE:
        return []
    helpers: set[str] = set()
    if masks:
        helpers.add('uint64')
    for type_def in definition.types:
        for member in type_def.members:
            if member.deleted or not member.type.is_integer:
                continue
            value = parse_default(member, type_def.name)
            if value is not None and not is_safe(value):
                helpers.add('int64' if member.type.is_signed else 'uint64')
    return sorted(helpers)


def _import_block(module: str, names: Iterable[str]) -> list[str]:
    lines = [f'from {module} import (']
    lines.extend(f'    {name},' for name in names)
    lines.append(')')
    return lines


def compile_module(definition: SchemaDefinition, options: GeneratorOptions | None = None) -> str:
    """Generate the source of the codec module for ``definition``.

    The output is a pure function of the definition and the options, so the
    same inputs always produce byte-identical source.

    Raises:
        SchemaError: If the definition cannot be compiled.
    """
    options = options or GeneratorOptions()
    validate(definition)
    tier = options.tier
    names = make_strategy(options.interning, definition)

    foreign: dict[str, str] = {}

    def type_ref(typename: str) -> str:
        owner, type_def = resolve(definition, typename)
        if owner is definition:
            return type_def.name
        qualified = owner.qualified_name(type_def)
        alias = foreign_alias(qualified)
        foreign[alias] = qualified
        return alias

    ordered = order_types(definition)
    bodies = []
    for type_def in ordered:
        emitter = TypeEmitter(
            type_def,
            definition.qualified_name(type_def),
            tier,
            names,
            type_ref,
            options.strict_members,
        )
        bodies.append(emitter.emit())

    masks = sorted({bit for type_def in definition.types for bit in wide_bits(type_def)})
    runtime_names = set(_RUNTIME_NAMES) | set(codec_names(definition))
    if options.strict_members:
        runtime_names.add('UNDEFINED_MEMBER')
    registry_names = sorted({'merge_namespace', *names.registry_imports, *(['lookup'] if foreign else [])})
    helpers = _wide_helpers(definition, tier, masks)

    lines = [
        f'# Generated by pyadata for namespace {definition.namespace!r}.',
        f'# tier: {tier.value}, interning: {options.interning.value}',
        '# DO NOT EDIT MANUALLY.',
        'from dataclasses import dataclass',
        'from dataclasses import field as _field',
        'from typing import ClassVar',
        '',
    ]
    lines.extend(_import_block(tier.runtime_module, sorted(runtime_names)))
    lines.append(f'from pyadata.runtime.registry import {", ".join(registry_names)}')
    if helpers:
        lines.append(f'from pyadata.runtime.wide import {", ".join(helpers)}')

    preamble = names.preamble()
    if preamble:
        lines.append('')
        lines.extend(preamble)
    if masks:
        lines.append('')
        lines.extend(mask_definition(bit, tier) for bit in masks)
    if foreign:
        lines.append('')
        lines.extend(f'{alias} = lookup({qualified!r})' for alias, qualified in sorted(foreign.items()))

    for body in bodies:
        lines.append('')
        lines.append('')
        lines.append(body)

    declared = [type_def.name for type_def in definition.types]
    lines.append('')
    lines.append('')
    if declared:
        lines.append(f'TYPES = ({", ".join(declared)},)')
    else:
        lines.append('TYPES = ()')
    lines.append('')
    registry = ', '.join(f'{name!r}: {name}' for name in declared)
    lines.append(f'merge_namespace({definition.namespace!r}, {{{registry}}})')
    lines.append('')

    logger.debug(
        f'Assembled module {module_name(definition)} with {len(ordered)} types '
        f'(tier={tier.value}, interning={options.interning.value})'
    )
    return '\n'.join(lines)


def compile_modules(definitions: Iterable[SchemaDefinition],
                    options: GeneratorOptions | None = None,
                    max_workers: int | None = None) -> list[str]:
    """Generate many modules concurrently, returning sources in input order."""
    definitions = list(definitions)
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        return list(executor.map(lambda definition: compile_module(definition, options), definitions))


def load_module(source: str, name: str = 'adata_adl') -> ModuleType:
    """Execute generated ``source`` as a fresh module.

    Loading registers the module's types in :mod:`pyadata.runtime.registry`.
    """
    module = ModuleType(name)
    code = compile(source, f'<{name}>', 'exec', dont_inherit=True)
    exec(code, module.__dict__)
    logger.debug(f'Loaded module {name} with {len(module.TYPES)} types')
    return module


def generate_module(definition: SchemaDefinition, options: GeneratorOptions | None = None) -> ModuleType:
    """Compile ``definition`` and load the result."""
    return load_module(compile_module(definition, options), module_name(definition))
