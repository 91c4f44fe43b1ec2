"""Command-line interface for autoimpl."""

import argparse
import logging
import sys
from pathlib import Path

from autoimpl.discovery.compilation import DiscoveryError
from autoimpl.engine.options import RenderStyle
from autoimpl.generator import generate_from_paths
from autoimpl.marker import ATTRIBUTE_HINT_NAME, marker_attribute_source

logger = logging.getLogger(__name__)

COMMANDS = ("generate", "attribute")


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
        prog="autoimpl",
        description="Generate C# implementations of [GenerateImplementation] interfaces",
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
        help="Generate implementations from C# sources (default)",
    )
    generate_parser.add_argument(
        "paths",
        nargs="+",
        type=Path,
        help=".cs files or directories to scan",
    )
    generate_parser.add_argument(
        "--output",
        "-o",
        type=Path,
        default=Path("./generated"),
        help="Directory for generated files (default: ./generated)",
    )
    generate_parser.add_argument(
        "--stdout",
        action="store_true",
        help="Print generated sources to stdout instead of writing files",
    )
    generate_parser.add_argument(
        "--style",
        choices=[s.value for s in RenderStyle],
        default=RenderStyle.FIELDS.value,
        help="Data member style (default: fields)",
    )
    generate_parser.add_argument(
        "--emit-attribute",
        action="store_true",
        help=f"Also write {ATTRIBUTE_HINT_NAME}",
    )
    generate_parser.add_argument(
        "--summary",
        action="store_true",
        help="Print a JSON summary of the run to stdout",
    )

    # attribute subcommand
    subparsers.add_parser(
        "attribute",
        help="Print the GenerateImplementation attribute source",
    )

    return parser


def parse_args(args: list[str]) -> argparse.Namespace:
    """Parse command-line arguments; a bare path implies ``generate``."""
    parser = create_parser()

    # Only top-level flags (no values) can precede the command
    first = next((i for i, a in enumerate(args) if not a.startswith("-")), None)
    if first is not None and args[first] not in COMMANDS:
        args = args[:first] + ["generate"] + args[first:]

    return parser.parse_args(args)


def write_output(directory: Path, hint_name: str, source: str) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / hint_name
    path.write_text(source, encoding="utf-8")
    logger.info(f"Wrote {path}")
    return path


def run_generate(
    paths: list[Path],
    output: Path,
    stdout: bool = False,
    style: str = RenderStyle.FIELDS.value,
    emit_attribute: bool = False,
    summary: bool = False,
) -> int:
    """Run the generate command.

    Args:
        paths: Files or directories to scan
        output: Directory for generated files
        stdout: Print sources instead of writing files
        style: Data member rendering style
        emit_attribute: Also emit the marker attribute source
        summary: Print a JSON summary to stdout

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    try:
        result = generate_from_paths(paths, style=RenderStyle(style))
    except DiscoveryError as e:
        logger.error(f"Discovery failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    for diagnostic in result.diagnostics:
        print(str(diagnostic), file=sys.stderr)
    for error in result.errors:
        print(f"Error: {error.interface}: {error.error}", file=sys.stderr)

    units = [(o.hint_name, o.source) for o in result.outputs]
    if emit_attribute:
        units.insert(0, (ATTRIBUTE_HINT_NAME, marker_attribute_source()))

    try:
        for hint_name, source in units:
            if stdout:
                print(f"// ----- {hint_name}")
                print(source)
            else:
                write_output(output, hint_name, source)
    except OSError as e:
        logger.error(f"Could not write output: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if summary:
        print(result.to_json())
    elif not stdout:
        print(
            f"Generated {len(result.outputs)} implementations in {output}",
            file=sys.stderr,
        )
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
        return e.code if e.code else 1

    setup_logging(parsed.verbose)

    if parsed.command is None:
        # No command and no args - show help
        create_parser().print_help(sys.stderr)
        return 1

    if parsed.command == "generate":
        return run_generate(
            parsed.paths,
            parsed.output,
            stdout=parsed.stdout,
            style=parsed.style,
            emit_attribute=parsed.emit_attribute,
            summary=parsed.summary,
        )
    elif parsed.command == "attribute":
        print(marker_attribute_source(), end="")
        return 0

    return 1


def main():
    """Entry point for the CLI."""
    sys.exit(run_cli(sys.argv[1:]))


if __name__ == "__main__":
    main()
