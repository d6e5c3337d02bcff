"""Load OpenAPI documents from a local file.

Supports JSON and YAML with detection from the file extension, falling back
to content-based detection. The loaded document is validated just enough to
drive the generator: it must be an object with a non-empty ``paths`` map.

The public function is :func:`load_document`.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml

from rust_client_gen.errors import GeneratorIOError, MalformedDocumentError
from rust_client_gen.gen_logging import get_logger

logger = get_logger(__name__)


def load_document(path: str | Path) -> dict[str, Any]:
    """Load and parse an OpenAPI document from a JSON or YAML file.

    Args:
        path: Path to the local file.

    Returns:
        The parsed document as a dictionary.

    Raises:
        GeneratorIOError: If the file is missing or unreadable.
        MalformedDocumentError: If the content is not a usable OpenAPI document.
    """
    file_path = Path(path)
    if not file_path.is_file():
        raise GeneratorIOError(f"Spec file not found: {file_path}")

    try:
        content = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise GeneratorIOError(f"Failed to read spec file {file_path}: {exc}") from exc

    if not content.strip():
        raise MalformedDocumentError(f"Spec file is empty: {file_path}")

    suffix = file_path.suffix.lower()
    hint = ""
    if suffix == ".json":
        hint = "json"
    elif suffix in (".yaml", ".yml"):
        hint = "yaml"

    document = parse_content(content, hint=hint)
    validate_document(document)
    logger.debug(f"Loaded {file_path} ({len(document['paths'])} paths)")
    return document


def parse_content(content: str, hint: str = "") -> dict[str, Any]:
    """Parse content as JSON or YAML.

    Tries JSON first (unless hint is 'yaml'), then falls back to YAML.

    Args:
        content: The raw string content.
        hint: Optional format hint ('json' or 'yaml').

    Returns:
        The parsed dictionary.

    Raises:
        MalformedDocumentError: If the content cannot be parsed as either format.
    """
    json_error: Exception | None = None
    yaml_error: Exception | None = None

    if hint != "yaml":
        try:
            result = json.loads(content)
        except json.JSONDecodeError as exc:
            json_error = exc
            if hint == "json":
                raise MalformedDocumentError(f"Invalid JSON: {exc}") from exc
        else:
            return _ensure_object(result)

    try:
        result = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        yaml_error = exc
    else:
        return _ensure_object(result)

    msg = "Failed to parse spec as JSON or YAML"
    if json_error:
        msg += f"\n  JSON error: {json_error}"
    if yaml_error:
        msg += f"\n  YAML error: {yaml_error}"
    raise MalformedDocumentError(msg)


def _ensure_object(result: Any) -> dict[str, Any]:
    if not isinstance(result, dict):
        kind = type(result).__name__ if result is not None else "empty document"
        raise MalformedDocumentError(f"Spec must be a JSON/YAML object (got {kind})")
    return result


def validate_document(document: dict[str, Any]) -> None:
    """Check the parts of the document the generator relies on.

    Raises:
        MalformedDocumentError: If the version is not 3.x or ``paths`` is missing or empty.
    """
    if "swagger" in document:
        raise MalformedDocumentError(
            f"Swagger {document['swagger']} is not supported. Only OpenAPI 3.x documents are supported."
        )

    version = str(document.get("openapi", ""))
    if not version.startswith("3."):
        raise MalformedDocumentError(f"Unsupported OpenAPI version: {version or 'missing'}")

    paths = document.get("paths")
    if not isinstance(paths, dict) or not paths:
        raise MalformedDocumentError("Spec has no `paths`")

    components = document.get("components", {})
    if not isinstance(components, dict) or not isinstance(components.get("schemas", {}), dict):
        raise MalformedDocumentError("`components.schemas` must be an object")
