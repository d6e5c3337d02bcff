"""
String case conversion utilities for Rust client generation.

This module provides the case conversions used to turn OpenAPI names
(operation ids, component keys, property names, enum values) into Rust
identifiers and package names.

Based on https://github.com/okunishinishi/python-stringcase
with additional Rust-specific naming conventions.
"""

import re
from collections.abc import Callable
from typing import Final

# Regex patterns for case conversion
_DELIMITER_PATTERN: Final = re.compile(r"[^a-zA-Z0-9]+")
_ACRONYM_PATTERN: Final = re.compile(r"([A-Z])([A-Z][a-z])")
_LOWER_UPPER_PATTERN: Final = re.compile(r"([a-z0-9])([A-Z])")
_REPEATED_UNDERSCORE_PATTERN: Final = re.compile(r"_+")

# Reserved Rust keywords that cannot be used as plain identifiers
RUST_KEYWORDS: Final = frozenset(
    {
        # Strict keywords
        "as",
        "break",
        "const",
        "continue",
        "crate",
        "else",
        "enum",
        "extern",
        "false",
        "fn",
        "for",
        "if",
        "impl",
        "in",
        "let",
        "loop",
        "match",
        "mod",
        "move",
        "mut",
        "pub",
        "ref",
        "return",
        "self",
        "static",
        "struct",
        "super",
        "trait",
        "true",
        "type",
        "unsafe",
        "use",
        "where",
        "while",
        # Weak keywords
        "async",
        "await",
        "dyn",
        "union",
        "try",
        # Reserved keywords
        "abstract",
        "become",
        "box",
        "do",
        "final",
        "macro",
        "override",
        "priv",
        "typeof",
        "unsized",
        "virtual",
        "yield",
    }
)


def _convert_if_not_empty(string: str | None, conversion_func: Callable[[str], str]) -> str:
    """Safely convert a string, returning empty string if input is None or empty."""
    return conversion_func(string) if string else ""


def snakecase(string: str | None) -> str:
    """Convert string into snake_case.

    Handles camelCase with acronyms and treats every run of characters that
    are not ASCII letters or digits as a word boundary.

    Args:
        string: String to convert.

    Returns:
        Snake case string.

    Examples:
        >>> snakecase("HelloWorld")
        'hello_world'
        >>> snakecase("hello-world")
        'hello_world'
        >>> snakecase("getHTTPResponse")
        'get_http_response'
        >>> snakecase("meta/info")
        'meta_info'
    """

    def _snakecase(s: str) -> str:
        s = _DELIMITER_PATTERN.sub("_", s)
        s = _ACRONYM_PATTERN.sub(r"\1_\2", s)
        s = _LOWER_UPPER_PATTERN.sub(r"\1_\2", s)
        s = _REPEATED_UNDERSCORE_PATTERN.sub("_", s)
        return s.strip("_").lower()

    return _convert_if_not_empty(string, _snakecase)


def constcase(string: str | None) -> str:
    """Convert string into CONSTANT_CASE (upper snake case).

    Args:
        string: String to convert.

    Returns:
        Constant case string.

    Examples:
        >>> constcase("hello_world")
        'HELLO_WORLD'
        >>> constcase("kittycad")
        'KITTYCAD'
    """
    return snakecase(string).upper()


def pascalcase(string: str | None) -> str:
    """Convert string into PascalCase.

    Args:
        string: String to convert.

    Returns:
        PascalCase string.

    Examples:
        >>> pascalcase("hello_world")
        'HelloWorld'
        >>> pascalcase("In Progress")
        'InProgress'
        >>> pascalcase("getHTTPResponse")
        'GetHttpResponse'
    """

    def _pascalcase(s: str) -> str:
        return "".join(word.capitalize() for word in snakecase(s).split("_"))

    return _convert_if_not_empty(string, _pascalcase)


def spinalcase(string: str | None) -> str:
    """Convert string into spinal-case (kebab-case).

    Args:
        string: String to convert.

    Returns:
        Spinal case string.

    Examples:
        >>> spinalcase("hello_world")
        'hello-world'
    """
    return snakecase(string).replace("_", "-")


def escape_rust_keyword(name: str) -> str:
    """Escape Rust keywords with a trailing underscore if necessary.

    Args:
        name: The identifier name to check.

    Returns:
        The name with a trailing underscore if it's a Rust keyword, otherwise unchanged.

    Examples:
        >>> escape_rust_keyword("type")
        'type_'
        >>> escape_rust_keyword("name")
        'name'
    """
    return f"{name}_" if name in RUST_KEYWORDS else name

