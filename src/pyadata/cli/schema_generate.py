"""Generate codec modules from schema files."""

import logging
import sys
from pathlib import Path
from textwrap import dedent

from rich.console import Console
from rich.markup import escape

from pyadata.schema.classifier import Tier
from pyadata.schema.compiler import GeneratorOptions, compile_module, module_name
from pyadata.schema.error import SchemaError
from pyadata.schema.interning import Interning
from pyadata.schema.json_schema import load_schema

logger = logging.getLogger(__name__)


def generate_file(
    input_path: str | Path,
    output_path: str | Path | None = None,
    tier: Tier = Tier.BASELINE,
    interning: Interning | None = None,
    *,
    strict_members: bool = False,
) -> Path:
    """Compile the schema at ``input_path`` and write the generated module.

    Args:
        input_path: JSON schema document.
        output_path: Destination file. Defaults to ``<namespace>_adl.py``
            next to the input.
        tier: Runtime tier to target.
        interning: Member-name interning strategy, or None for the tier's
            default.
        strict_members: Reject frames carrying unknown presence bits.

    Returns:
        The path of the written module.
    """
    input_path = Path(input_path).resolve()
    definition = load_schema(input_path)
    options = GeneratorOptions(tier=tier, interning=interning, strict_members=strict_members)
    source = compile_module(definition, options)

    if output_path is None:
        output_path = input_path.with_name(f"{module_name(definition)}.py")
    output_path = Path(output_path)
    output_path.write_text(source, encoding="utf-8")
    logger.info(f"Wrote {output_path} ({len(definition.types)} types, {options.tier.value} tier)")
    return output_path


def _run_generate(args) -> Path | None:
    console = Console(stderr=True)
    tier = Tier(args.tier)
    interning = Interning(args.interning) if args.interning else None
    try:
        if args.output == "-":
            definition = load_schema(Path(args.input))
            options = GeneratorOptions(tier=tier, interning=interning, strict_members=args.strict_members)
            sys.stdout.write(compile_module(definition, options))
            return None
        return generate_file(
            args.input,
            args.output,
            tier,
            interning,
            strict_members=args.strict_members,
        )
    except (SchemaError, OSError) as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise SystemExit(1) from e


def add_parser(subparsers) -> None:
    parser = subparsers.add_parser(
        "generate",
        help="Generate a codec module from a schema file",
        description=dedent("""
            Compiles a resolved schema tree (JSON) into a Python module with
            one dataclass per type and its read, write, skip_read and size_of
            codec methods.

            The baseline tier keeps every literal exact in a double and uses
            pooled member names by default. The accelerated tier uses native
            64-bit literals and an indexed name list by default. Both tiers
            produce identical wire bytes.
        """),
    )
    parser.add_argument("input", help="Path to the schema file (*.json)")
    parser.add_argument(
        "-o", "--output",
        help="Output module path, or '-' for stdout (default: <namespace>_adl.py next to the input)",
    )
    parser.add_argument(
        "--tier",
        choices=[tier.value for tier in Tier],
        default=Tier.BASELINE.value,
        help="Runtime tier to target",
    )
    parser.add_argument(
        "--interning",
        choices=[interning.value for interning in Interning],
        help="How member names are stored for error traces (default depends on the tier)",
    )
    parser.add_argument(
        "--strict-members",
        action="store_true",
        help="Fail reads whose presence tag has bits beyond the known members",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log generation steps")
    parser.set_defaults(func=_run_generate)
