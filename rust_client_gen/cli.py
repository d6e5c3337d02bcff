#!/usr/bin/env python3
"""Command-line interface for the Rust client generator."""

import argparse
import contextlib
import shutil
import sys
import tempfile
from collections.abc import Generator
from pathlib import Path

from rust_client_gen.config import DEFAULT_REQUEST_TIMEOUT_SECONDS, DEFAULT_VERSION, GeneratorOptions
from rust_client_gen.errors import EXIT_SUCCESS, GeneratorError
from rust_client_gen.gen_logging import configure_gen_logging, get_logger
from rust_client_gen.generator.template_engine import RustCodeGenerator
from rust_client_gen.parser.loader import load_document
from rust_client_gen.utils.file_utils import (
    clean_output_directory,
    ensure_persistent_modules,
    generated_file_paths,
    run_cargo_fmt,
    write_files_to_disk,
)

logger = get_logger(__name__)


def _key_value(value: str) -> tuple[str, str]:
    """Parse a ``KEY=VALUE`` argument."""
    key, sep, mapped = value.partition("=")
    if not sep or not key or not mapped:
        raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got {value!r}")
    return key, mapped


def parse_command_line_args(args: list[str] | None = None) -> argparse.Namespace:
    """Create and configure the command line argument parser."""
    parser = argparse.ArgumentParser(
        prog="rust-client-gen",
        description="Generate a typed async Rust client from an OpenAPI v3 specification",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s spec.json --name kittycad --base-url https://api.kittycad.io
  %(prog)s spec.yaml -o ./client -n ramp-api -b https://api.ramp.com --token-endpoint https://api.ramp.com/v1/token
  %(prog)s spec.json -n oxide -b https://oxide.computer --tag-display-name internet_gateway=inetgw --fmt
        """,
    )
    parser.add_argument(
        "spec_file",
        type=Path,
        help="Path to OpenAPI specification file (JSON or YAML)",
        metavar="SPEC_FILE",
    )
    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        default=Path("."),
        help="Output directory of the generated crate (default: %(default)s)",
        dest="output_dir",
    )
    parser.add_argument("--base-url", "-b", required=True, help="Default base URL of the API")
    parser.add_argument("--name", "-n", required=True, help="Name of the generated crate")
    parser.add_argument(
        "--target-version",
        default=DEFAULT_VERSION,
        help="Version of the generated crate (default: %(default)s)",
    )
    parser.add_argument(
        "--description",
        "-d",
        help="Description of the generated crate (defaults to the spec title)",
    )
    parser.add_argument("--spec-url", help="URL of the published spec, linked from the crate docs")
    parser.add_argument("--repo-name", help="GitHub repository (owner/name) hosting the crate")
    parser.add_argument("--token-endpoint", help="OAuth2 token endpoint; enables OAuth2 authentication")
    parser.add_argument("--user-consent-endpoint", help="OAuth2 user consent endpoint")
    parser.add_argument(
        "--basic-auth",
        action="store_true",
        help="Authenticate with a username and password instead of a bearer token",
    )
    parser.add_argument(
        "--add-env-prefix",
        help="Additional prefix for the environment variables read by the client, tried first",
    )
    parser.add_argument(
        "--request-timeout-seconds",
        type=int,
        default=DEFAULT_REQUEST_TIMEOUT_SECONDS,
        help="Timeout of every request made by the client (default: %(default)s)",
    )
    parser.add_argument(
        "--date-time-format",
        help="chrono format string the server uses for date-times, when it is not RFC 3339",
    )
    parser.add_argument(
        "--tag-display-name",
        type=_key_value,
        action="append",
        default=[],
        metavar="TAG=NAME",
        dest="tag_display_names",
        help="Display name of a sum variant tag (repeatable)",
    )
    parser.add_argument("--fmt", action="store_true", help="Run `cargo fmt` on the generated crate")
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("--verbose", "-v", action="store_true", help="Enable verbose output")
    verbosity.add_argument("--quiet", "-q", action="store_true", help="Only print warnings and errors")

    return parser.parse_args(args)


@contextlib.contextmanager
def backup_and_clean_output_dir(output_dir: Path) -> Generator[None, None, None]:
    """A context manager to backup and clean the generated files of the output directory.

    Only the files a generation run owns are backed up and removed; persistent
    modules and unrelated files are never touched. On failure the original
    generated files are restored.
    """
    owned = generated_file_paths(output_dir)
    backup_dir = None
    if owned:
        backup_dir = Path(tempfile.mkdtemp())
        for path in owned:
            target = backup_dir / path.relative_to(output_dir)
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(path, target)

    clean_output_directory(output_dir)

    try:
        yield
    except Exception:
        logger.error("Generation failed. Restoring original content.")
        clean_output_directory(output_dir)
        if backup_dir:
            shutil.copytree(backup_dir, output_dir, dirs_exist_ok=True)
        raise
    finally:
        if backup_dir:
            shutil.rmtree(backup_dir)


def generate_rust_client_from_spec(*, spec_file: Path, output_dir: Path, args: argparse.Namespace) -> dict[Path, str]:
    """Load a specification and render the files of its client crate."""
    document = load_document(spec_file)
    options = GeneratorOptions.from_namespace(args, document.get("info"))
    logger.info(f"Generating `{options.package_name}` ({options.auth_mode.value} authentication)")
    return RustCodeGenerator().generate_client(document, output_dir, options)


def main(args: list[str] | None = None) -> int:
    """Generate a Rust client from an OpenAPI specification."""
    parsed_args = parse_command_line_args(args)
    configure_gen_logging(verbose=parsed_args.verbose, quiet=parsed_args.quiet)
    output_dir: Path = parsed_args.output_dir

    try:
        # Loading first keeps the output untouched when the spec is unusable
        document_files = generate_rust_client_from_spec(
            spec_file=parsed_args.spec_file,
            output_dir=output_dir,
            args=parsed_args,
        )
        with backup_and_clean_output_dir(output_dir):
            write_files_to_disk(document_files)
            ensure_persistent_modules(output_dir)
            if parsed_args.fmt:
                run_cargo_fmt(output_dir)

        logger.debug(f"Generated {len(document_files)} files:")
        for file_path in sorted(document_files):
            logger.debug(f"  {file_path}")
        logger.info(f"Rust client generated successfully in {output_dir}")
        return EXIT_SUCCESS

    except GeneratorError as e:
        logger.error(str(e))
        return e.exit_code


def run() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
