"""Command-line interface for mockable."""

import argparse
import json
import logging
import sys
from pathlib import Path

from mockable.diagnostics import GenerationError
from mockable.expander import expand_file
from mockable.interface_parser import parse_file
from mockable.signature import derive_signatures

logger = logging.getLogger(__name__)

COMMANDS = ("generate", "signatures")


def setup_logging(verbose: bool = False):
    """Configure logging to stderr."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="mockable",
        description="Generate tracking mocks for @mockable protocols",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log progress to stderr",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # generate subcommand
    generate_parser = subparsers.add_parser(
        "generate",
        help="Expand @mockable declarations and mock() calls in a module (default)",
    )
    generate_parser.add_argument(
        "input",
        type=Path,
        help="Python module to expand",
    )
    generate_parser.add_argument(
        "--output",
        "-o",
        type=Path,
        default=None,
        help="Output path for the expanded module (default: stdout)",
    )

    # signatures subcommand
    signatures_parser = subparsers.add_parser(
        "signatures",
        help="Print the tracker signatures of each @mockable protocol as JSON",
    )
    signatures_parser.add_argument(
        "input",
        type=Path,
        help="Python module to inspect",
    )

    return parser


def parse_args(args: list[str]) -> argparse.Namespace:
    """Parse command-line arguments; a bare path means ``generate``."""
    parser = create_parser()

    options = [a for a in args if a.startswith("-")]
    positional = [a for a in args if not a.startswith("-")]
    wants_help = "-h" in options or "--help" in options
    if positional and positional[0] not in COMMANDS and not wants_help:
        index = args.index(positional[0])
        args = args[:index] + ["generate"] + args[index:]

    return parser.parse_args(args)


def run_generate(input_path: Path, output: Path | None) -> int:
    """Run the generate command.

    Args:
        input_path: Module to expand
        output: Where to write the result, or None for stdout

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    logger.info(f"Generating mocks for {input_path}")
    try:
        expanded = expand_file(input_path)
    except GenerationError as e:
        e.filename = e.filename or str(input_path)
        print(e.format(), file=sys.stderr)
        return 1
    except (OSError, SyntaxError) as e:
        logger.error(f"Could not read {input_path}: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if output is None:
        sys.stdout.write(expanded)
        return 0

    try:
        output.write_text(expanded)
    except OSError as e:
        logger.error(f"Could not write {output}: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1
    logger.info(f"Expanded module written to {output}")
    print(f"Mocks written to: {output}", file=sys.stderr)
    return 0


def run_signatures(input_path: Path) -> int:
    """Run the signatures command."""
    try:
        declarations = parse_file(input_path)
        result = {
            d.name: derive_signatures(d.methods) for d in declarations if d.is_interface
        }
    except GenerationError as e:
        e.filename = e.filename or str(input_path)
        print(e.format(), file=sys.stderr)
        return 1
    except (OSError, SyntaxError) as e:
        logger.error(f"Could not read {input_path}: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(json.dumps(result, indent=2))
    return 0


def run_cli(args: list[str]) -> int:
    """Run the CLI with the given arguments.

    Args:
        args: Command-line arguments (without program name)

    Returns:
        Exit code (0 for success, non-zero for fatal errors)
    """
    try:
        parsed = parse_args(args)
    except SystemExit as e:
        return e.code if isinstance(e.code, int) else 1

    setup_logging(parsed.verbose)

    if parsed.command is None:
        # No command and no args - show help
        create_parser().print_help(sys.stderr)
        return 1

    if parsed.command == "generate":
        return run_generate(parsed.input, parsed.output)
    elif parsed.command == "signatures":
        return run_signatures(parsed.input)

    return 1


def main():
    """Entry point for the CLI."""
    sys.exit(run_cli(sys.argv[1:]))


if __name__ == "__main__":
    main()
