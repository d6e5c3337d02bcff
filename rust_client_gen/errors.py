"""Exception hierarchy for the Rust client generator.

All exceptions inherit from :class:`GeneratorError`, which carries an
``exit_code`` attribute. The CLI catches ``GeneratorError``, prints the
message and exits with that code. Any error aborts the whole run, a
partially generated crate is never kept.

Subclass hierarchy::

    GeneratorError (exit 3)
    +-- GeneratorIOError             (exit 1)
    +-- MalformedDocumentError       (exit 2)
    +-- RefNotFoundError             (exit 3)
    +-- RefCycleError                (exit 3)
    +-- UnsupportedSchemaError       (exit 3)
    +-- UnsupportedMediaTypeError    (exit 3)
    +-- NameCollisionError           (exit 3)
"""

from __future__ import annotations

from typing import Final

EXIT_SUCCESS: Final = 0
EXIT_IO_ERROR: Final = 1
EXIT_MALFORMED_DOCUMENT: Final = 2
EXIT_GENERATION_ERROR: Final = 3


class GeneratorError(Exception):
    """Base exception for all generator errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERATION_ERROR

    def __init__(self, message: str, exit_code: int | None = None) -> None:
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class GeneratorIOError(GeneratorError):
    """Raised on filesystem or subprocess failures."""

    exit_code = EXIT_IO_ERROR


class MalformedDocumentError(GeneratorError):
    """Raised when the input document cannot be parsed or is structurally invalid."""

    exit_code = EXIT_MALFORMED_DOCUMENT


class RefNotFoundError(GeneratorError):
    """Raised for a dangling ``$ref`` or one pointing outside ``#/components/``."""

    def __init__(self, ref: str, location: str | None = None) -> None:
        message = f"reference `{ref}` not found in components"
        if location:
            message = f"{message} (at {location})"
        super().__init__(message)
        self.ref = ref


class RefCycleError(GeneratorError):
    """Raised when a chain of references loops without reaching a schema."""

    def __init__(self, chain: list[str]) -> None:
        super().__init__(f"reference cycle without a named schema: {' -> '.join(chain)}")
        self.chain = chain


class UnsupportedSchemaError(GeneratorError):
    """Raised for schema kinds or formats the lowering does not implement."""

    def __init__(self, name: str, kind: str) -> None:
        super().__init__(f"unsupported schema `{name}`: {kind}")
        self.name = name
        self.kind = kind


class UnsupportedMediaTypeError(GeneratorError):
    """Raised when a request or response media type cannot be mapped."""

    def __init__(self, operation_id: str, media_type: str, *, request: bool) -> None:
        role = "request body" if request else "response"
        super().__init__(f"unsupported media type for {role} of `{operation_id}`: {media_type}")
        self.operation_id = operation_id
        self.media_type = media_type


class NameCollisionError(GeneratorError):
    """Raised when two different schemas cannot be given distinct names."""

    def __init__(self, name: str, tried: list[str]) -> None:
        super().__init__(f"could not find a unique name for `{name}` (tried {', '.join(tried)})")
        self.name = name
