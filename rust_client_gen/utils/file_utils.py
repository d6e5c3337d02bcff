"""
File utilities for the Rust client generator.

This module provides the file, directory and subprocess operations used
when a generated crate is written to disk.
"""

import subprocess
from pathlib import Path
from typing import Final

from rust_client_gen.errors import GeneratorIOError
from rust_client_gen.gen_logging import get_logger

logger = get_logger(__name__)

# Modules under src/ that are owned by the crate author and never regenerated
PERSISTENT_MODULES: Final = ("tests", "methods")

# Files at the crate root that every generation run rewrites
GENERATED_ROOT_FILES: Final = ("Cargo.toml", "README.md")
PATCH_FILE_PATTERN: Final = "*.rs.patch.json"

_CARGO_FMT_CONFIG: Final = (
    "format_code_in_doc_comments=true,imports_granularity=Crate,"
    "group_imports=StdExternalCrate,format_strings=true,max_width=100"
)


def write_files_to_disk(files: dict[Path, str]) -> None:
    """Write generated files to disk.

    Args:
        files: Dictionary mapping file paths to their content.

    Raises:
        GeneratorIOError: If a file cannot be written.
    """
    for path, content in files.items():
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise GeneratorIOError(f"Failed to write {path}: {exc}") from exc
        logger.debug(f"  wrote {path}")


def persistent_module_paths(output_dir: Path) -> list[Path]:
    """Return the paths of the author-owned modules of a crate.

    Args:
        output_dir: Root directory of the generated crate.

    Returns:
        Paths of ``src/<module>.rs`` for every persistent module.
    """
    return [output_dir / "src" / f"{module}.rs" for module in PERSISTENT_MODULES]


def ensure_persistent_modules(output_dir: Path) -> None:
    """Create empty persistent modules so the generated `lib.rs` compiles.

    Args:
        output_dir: Root directory of the generated crate.
    """
    for path in persistent_module_paths(output_dir):
        if not path.exists():
            path.parent.mkdir(parents=True, exist_ok=True)
            path.touch()


def generated_file_paths(output_dir: Path) -> list[Path]:
    """Return the existing files of a crate that a generation run owns.

    These are the root ``Cargo.toml``, ``README.md`` and ``*.rs.patch.json``
    files and every ``src/*.rs`` module that is not persistent. Anything else
    in the output directory belongs to the user.

    Args:
        output_dir: Root directory of the generated crate.

    Returns:
        Sorted paths of the owned files currently on disk.
    """
    owned = [output_dir / name for name in GENERATED_ROOT_FILES]
    owned.extend(output_dir.glob(PATCH_FILE_PATTERN))
    src_dir = output_dir / "src"
    if src_dir.is_dir():
        owned.extend(path for path in src_dir.glob("*.rs") if path.stem not in PERSISTENT_MODULES)
    return sorted(path for path in owned if path.is_file())


def clean_output_directory(output_dir: Path) -> None:
    """Remove the files a previous generation run wrote.

    Persistent modules and files the generator does not own are left alone.

    Args:
        output_dir: Path to the output directory to clean.

    Raises:
        GeneratorIOError: If a file cannot be removed.
    """
    for path in generated_file_paths(output_dir):
        try:
            path.unlink()
        except OSError as exc:
            raise GeneratorIOError(f"Failed to remove {path}: {exc}") from exc
        logger.debug(f"  removed {path}")


def run_cargo_fmt(output_dir: Path) -> None:
    """Run `cargo fmt` in the generated crate.

    Args:
        output_dir: Root directory of the generated crate.

    Raises:
        GeneratorIOError: If cargo cannot be started or exits unsuccessfully.
    """
    logger.info("Running `cargo fmt`...")
    try:
        result = subprocess.run(
            ["cargo", "fmt", "--", "--config", _CARGO_FMT_CONFIG],
            cwd=output_dir,
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as exc:
        raise GeneratorIOError(f"Failed to run cargo fmt: {exc}") from exc

    if result.returncode != 0:
        raise GeneratorIOError(f"cargo fmt failed: {result.stderr.strip()}")
