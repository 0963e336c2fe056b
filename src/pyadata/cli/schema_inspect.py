"""Show the wire layout of the types in a schema file."""

from pathlib import Path
from textwrap import dedent

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from pyadata.schema import BaseType, MemberDefinition, SchemaDefinition, TypeDefinition
from pyadata.schema.classifier import ceiling, classify, validate
from pyadata.schema.error import SchemaError
from pyadata.schema.json_schema import load_schema


def describe_type(member: MemberDefinition) -> str:
    """Schema spelling of a member type, e.g. ``map<string,list<int32>>``."""
    if member.type is BaseType.TYPE:
        return member.typename or "?"
    if member.params:
        return f"{member.type.value}<{','.join(describe_type(p) for p in member.params)}>"
    return member.type.value


def describe_codec(member: MemberDefinition) -> str:
    """Codec used on the wire for a member."""
    codec = classify(member)
    if codec is not None:
        return codec.suffix
    if member.type is BaseType.TYPE:
        return "frame"
    return f"u32 + {' '.join(describe_codec(p) for p in member.params)}"


def create_type_table(definition: SchemaDefinition, type_def: TypeDefinition) -> Table:
    """Create a table with one row per member of ``type_def``."""
    table = Table(
        title=definition.qualified_name(type_def),
        show_header=True,
        header_style="bold",
        box=None,
    )
    table.add_column("Bit", justify="right", style="cyan")
    table.add_column("Member", style="green")
    table.add_column("Type")
    table.add_column("Codec")
    table.add_column("Ceiling", justify="right")
    table.add_column("Default")
    table.add_column("Deleted")

    for bit, member in enumerate(type_def.members):
        limit = ceiling(member)
        table.add_row(
            str(bit),
            member.name,
            escape(describe_type(member)),
            escape(describe_codec(member)),
            str(limit) if limit else "-",
            escape(member.default) if member.default is not None else "-",
            "yes" if member.deleted else "",
        )
    return table


def inspect_schema(input_path: str | Path, console: Console | None = None) -> SchemaDefinition:
    """Print every type of the schema at ``input_path``."""
    console = console or Console()
    definition = load_schema(Path(input_path))
    validate(definition)

    console.print(f"\n[bold blue]{escape(definition.namespace or '<root>')}[/bold blue]")
    console.print(f"Types: {len(definition.types)}   Includes: {len(definition.includes)}\n")
    for type_def in definition.types:
        console.print(create_type_table(definition, type_def))
        console.print()
    return definition


def _run_inspect(args) -> SchemaDefinition:
    try:
        return inspect_schema(args.input)
    except (SchemaError, OSError) as e:
        Console(stderr=True).print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise SystemExit(1) from e


def add_parser(subparsers) -> None:
    parser = subparsers.add_parser(
        "inspect",
        help="Show the members, presence bits and codecs of a schema",
        description=dedent("""
            Validates a schema file and prints one table per type listing each
            member with its presence-tag bit, type, wire codec, size ceiling,
            default and whether it is deleted.
        """),
    )
    parser.add_argument("input", help="Path to the schema file (*.json)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log loading steps")
    parser.set_defaults(func=_run_inspect)
