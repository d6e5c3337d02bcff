"""
Utilities Module for Rust Client Generation

This module provides utility functions for file operations and string case
conversions used throughout the generator.
"""

from .file_utils import (
    GENERATED_ROOT_FILES,
    PATCH_FILE_PATTERN,
    PERSISTENT_MODULES,
    clean_output_directory,
    ensure_persistent_modules,
    generated_file_paths,
    persistent_module_paths,
    run_cargo_fmt,
    write_files_to_disk,
)
from .string_case import (
    RUST_KEYWORDS,
    constcase,
    escape_rust_keyword,
    pascalcase,
    snakecase,
    spinalcase,
)

__all__ = [
    "GENERATED_ROOT_FILES",
    "PATCH_FILE_PATTERN",
    "PERSISTENT_MODULES",
    "RUST_KEYWORDS",
    "clean_output_directory",
    "constcase",
    "ensure_persistent_modules",
    "escape_rust_keyword",
    "generated_file_paths",
    "pascalcase",
    "persistent_module_paths",
    "run_cargo_fmt",
    "snakecase",
    "spinalcase",
    "write_files_to_disk",
]
