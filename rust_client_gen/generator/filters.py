"""
Jinja2 filters for Rust code generation.

This module provides the custom filters registered on the template
environment: doc comments, string literals, version strings and
doc-text sanitising.
"""

from __future__ import annotations

import re
import textwrap
from typing import Final

# Semantic versioning constants
_MAX_SEMVER_PARTS: Final = 3
_DEFAULT_VERSION: Final = "0.1.0"

# Documentation patterns for Rust
_DOC_BULLET_PREFIXES: Final = frozenset({"* ", "- ", "+ "})

_TRAILING_SPACE_PATTERN: Final = re.compile(r"[ \t]+$", re.MULTILINE)


def rust_doc_comment(text: str | None, indent: int = 0, prefix: str = "///") -> str:
    """Convert text to Rust doc comment format.

    Args:
        text: The text to convert to doc comments.
        indent: Number of spaces for base indentation.
        prefix: Comment marker, ``///`` for items or ``//!`` for modules.

    Returns:
        Formatted Rust doc comment string.

    Example:
        >>> rust_doc_comment("This is a function")
        '/// This is a function'
        >>> rust_doc_comment("Crate docs\\n\\nMore", prefix="//!")
        '//! Crate docs\\n//!\\n//! More'
    """
    if not text:
        return ""

    indent_str = " " * indent
    result = []
    for line in text.strip("\n").split("\n"):
        line = line.rstrip()
        result.append(f"{indent_str}{prefix} {line}" if line else f"{indent_str}{prefix}")
    return "\n".join(result)


def rust_string_literal(text: str | None) -> str:
    """Format text as a Rust string literal.

    Examples:
        >>> rust_string_literal('say "hi"')
        '"say \\\\"hi\\\\""'
        >>> rust_string_literal("two\\nlines")
        '"two\\\\nlines"'
    """
    escaped = (
        (text or "")
        .replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )
    return f'"{escaped}"'


def sanitize_doc(text: str | None) -> str:
    """Normalise documentation text taken from an OpenAPI description.

    Removes common indentation (indented lines would otherwise render as
    code blocks in rustdoc), trailing whitespace and surrounding blank lines.
    Bullet lines keep their marker.

    Examples:
        >>> sanitize_doc("    Indented\\n    text  ")
        'Indented\\ntext'
    """
    if not text:
        return ""
    dedented = textwrap.dedent(text.replace("\r\n", "\n"))
    lines = []
    for line in _TRAILING_SPACE_PATTERN.sub("", dedented).split("\n"):
        stripped = line.lstrip()
        if any(stripped.startswith(p) for p in _DOC_BULLET_PREFIXES):
            lines.append(stripped)
        elif line.startswith("    ") and not stripped.startswith("```"):
            lines.append(stripped)
        else:
            lines.append(line)
    return "\n".join(lines).strip("\n")


def _parse_version_parts(version_str: str) -> list[str]:
    """Parse version string into numeric parts."""
    cleaned_version = version_str.lstrip("v")
    parts = [part.strip() for part in cleaned_version.split(".") if part.strip()]
    return [part if part.isdigit() else "0" for part in parts]


def ensure_semver(version_str: str | None) -> str:
    """Ensure version string is valid semantic versioning format.

    Args:
        version_str: Version string to validate and format.

    Returns:
        Valid semantic version string (e.g., "1.2.3").

    Examples:
        >>> ensure_semver("1")
        '1.0.0'
        >>> ensure_semver("1.2")
        '1.2.0'
        >>> ensure_semver("v1.2.3")
        '1.2.3'
    """
    if not version_str:
        return _DEFAULT_VERSION

    parts = _parse_version_parts(version_str)
    if not parts:
        return _DEFAULT_VERSION

    match len(parts):
        case 1:
            parts.extend(["0", "0"])
        case 2:
            parts.append("0")
        case n if n > _MAX_SEMVER_PARTS:
            parts = parts[:_MAX_SEMVER_PARTS]

    return ".".join(parts)


def first_line(text: str | None) -> str:
    """Return the first non-empty line of a text."""
    for line in (text or "").split("\n"):
        if line.strip():
            return line.strip()
    return ""


# Filter registry for easy import
FILTERS: Final = {
    "rust_doc_comment": rust_doc_comment,
    "rust_string_literal": rust_string_literal,
    "sanitize_doc": sanitize_doc,
    "ensure_semver": ensure_semver,
    "first_line": first_line,
}
