import argparse
import logging

from pyadata.cli import schema_generate, schema_inspect


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pyadata",
        description=(
            "Command line interface for pyadata. Generates codec modules from "
            "resolved schema trees and inspects their wire layout."
        ),
    )
    parser.set_defaults(func=lambda args: parser.print_help())

    subparsers = parser.add_subparsers(dest="command")
    schema_generate.add_parser(subparsers)
    schema_inspect.add_parser(subparsers)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if getattr(args, "verbose", False) else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    args.func(args)


if __name__ == "__main__":
    main()
