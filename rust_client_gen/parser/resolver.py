"""Resolve schema references and canonicalise schemas for lowering.

``$ref`` pointers are followed lazily, one schema at a time; the document
itself is never mutated. Resolution canonicalises the shapes the lowering
cares about:

* single-part compositions (``allOf``/``anyOf``/``oneOf`` of length one)
  collapse to their sole variant,
* every spelling of nullability (``nullable: true``, a ``type`` list with
  ``"null"``, a ``null`` enum value or a ``{"type": "null"}`` composition
  variant) becomes the ``nullable`` flag of the result,
* boolean schemas become :attr:`SchemaKind.ANY`,
* objects declared by ``properties`` alone get the object kind.

Only references into ``#/components/`` are supported.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Final

from rust_client_gen.errors import (
    MalformedDocumentError,
    RefCycleError,
    RefNotFoundError,
    UnsupportedSchemaError,
)

COMPONENTS_PREFIX: Final = "#/components/"
SCHEMAS_PREFIX: Final = "#/components/schemas/"
COMPOSITION_KEYS: Final = ("oneOf", "allOf", "anyOf")


class SchemaKind(str, Enum):
    """Shape of a resolved schema."""

    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"
    ONE_OF = "oneOf"
    ALL_OF = "allOf"
    ANY_OF = "anyOf"
    ANY = "any"
    NOT = "not"


_TYPE_KINDS: Final = {
    "string": SchemaKind.STRING,
    "number": SchemaKind.NUMBER,
    "integer": SchemaKind.INTEGER,
    "boolean": SchemaKind.BOOLEAN,
    "array": SchemaKind.ARRAY,
    "object": SchemaKind.OBJECT,
}


@dataclass(frozen=True)
class ResolvedSchema:
    """A schema with references followed and nullability factored out.

    Attributes:
        kind: The shape of the schema.
        schema: The inline schema, without any null variant or null marker.
        nullable: Whether ``null`` is an accepted value.
        name: The component key of the first named schema on the reference chain.
    """

    kind: SchemaKind
    schema: dict[str, Any]
    nullable: bool = False
    name: str | None = None

    @property
    def description(self) -> str | None:
        return self.schema.get("description")


def is_ref(schema: Any) -> bool:
    return isinstance(schema, dict) and "$ref" in schema


def schema_key(ref: str) -> str | None:
    """Return the component key of a ``#/components/schemas/<key>`` pointer.

    Examples:
        >>> schema_key("#/components/schemas/Thing")
        'Thing'
        >>> schema_key("#/components/schemas/Thing/properties/id") is None
        True
        >>> schema_key("#/components/parameters/id") is None
        True
    """
    if not ref.startswith(SCHEMAS_PREFIX):
        return None
    key = ref[len(SCHEMAS_PREFIX) :]
    if not key or "/" in key:
        return None
    return key.replace("~1", "/").replace("~0", "~")


def is_null_schema(schema: Any) -> bool:
    """Check whether a composition variant only admits ``null``."""
    if not isinstance(schema, dict):
        return False
    return schema.get("type") == "null" or schema.get("enum") == [None]


class SchemaResolver:
    """Follow references within one OpenAPI document."""

    def __init__(self, document: dict[str, Any]) -> None:
        self.document = document
        components = document.get("components") or {}
        self.schemas: dict[str, Any] = components.get("schemas") or {}

    def lookup(self, ref: str, location: str | None = None) -> Any:
        """Return the raw node a pointer designates.

        Raises:
            RefNotFoundError: If the pointer is outside ``#/components/`` or dangling.
        """
        if not isinstance(ref, str) or not ref.startswith(COMPONENTS_PREFIX):
            raise RefNotFoundError(str(ref), location)

        node: Any = self.document
        for part in ref[2:].split("/"):
            part = part.replace("~1", "/").replace("~0", "~")
            if isinstance(node, dict) and part in node:
                node = node[part]
            elif isinstance(node, list) and part.isdigit() and int(part) < len(node):
                node = node[int(part)]
            else:
                raise RefNotFoundError(ref, location)
        return node

    def deref(self, obj: Any, location: str | None = None) -> Any:
        """Follow a chain of references to a non-reference node.

        Used for parameters, request bodies and responses, which may all be
        declared under ``#/components/``.

        Raises:
            RefNotFoundError: For a dangling pointer.
            RefCycleError: If the chain revisits a pointer.
        """
        seen: list[str] = []
        while is_ref(obj):
            ref = obj["$ref"]
            if ref in seen:
                raise RefCycleError([*seen, ref])
            seen.append(ref)
            obj = self.lookup(ref, location)
        return obj

    def resolve(self, schema: Any, location: str | None = None) -> ResolvedSchema:
        """Resolve a schema reference or inline schema.

        Args:
            schema: A ``$ref`` object, an inline schema or a boolean schema.
            location: Where the schema was found, for diagnostics.

        Returns:
            The canonical resolved schema.

        Raises:
            RefNotFoundError: For a dangling or external pointer.
            RefCycleError: When the chain revisits a pointer before reaching an inline schema.
            MalformedDocumentError: When a schema is not an object.
        """
        nullable = False
        name: str | None = None
        seen: list[str] = []
        current = schema

        while True:
            if isinstance(current, bool):
                return ResolvedSchema(SchemaKind.ANY, {}, nullable, name)
            if not isinstance(current, dict):
                raise MalformedDocumentError(f"schema at {location or '<inline>'} is not an object")

            if "$ref" in current:
                ref = current["$ref"]
                if ref in seen:
                    raise RefCycleError([*seen, ref])
                seen.append(ref)
                if name is None:
                    name = schema_key(ref)
                nullable = nullable or current.get("nullable") is True
                current = self.lookup(ref, location)
                continue

            current, is_nullable = self._strip_null(self._normalise(current))
            nullable = nullable or is_nullable

            single = self._single_variant(current)
            if single is not None:
                current = single
                continue

            return ResolvedSchema(self._kind(current, name or location), current, nullable, name)

    @staticmethod
    def _normalise(schema: dict[str, Any]) -> dict[str, Any]:
        """Rewrite shorthand spellings into the shapes the lowering handles."""
        if "const" in schema and "enum" not in schema:
            schema = {**schema, "enum": [schema["const"]]}
            del schema["const"]
            if isinstance(schema["enum"][0], str):
                schema.setdefault("type", "string")

        # Properties declared beside allOf form one more part of the intersection.
        if "allOf" in schema and "properties" in schema:
            own = {"type": "object", "properties": schema["properties"]}
            if "required" in schema:
                own["required"] = schema["required"]
            schema = {
                key: value
                for key, value in schema.items()
                if key not in ("properties", "required", "type")
            }
            schema["allOf"] = [*schema["allOf"], own]
        return schema

    @staticmethod
    def _strip_null(schema: dict[str, Any]) -> tuple[dict[str, Any], bool]:
        nullable = False
        result = schema

        if result.get("nullable") is True:
            nullable = True
            result = {key: value for key, value in result.items() if key != "nullable"}

        schema_type = result.get("type")
        if isinstance(schema_type, list):
            rest = [t for t in schema_type if t != "null"]
            nullable = nullable or len(rest) != len(schema_type)
            result = dict(result)
            if len(rest) == 1:
                result["type"] = rest[0]
            elif rest:
                result["type"] = rest
            else:
                del result["type"]
        elif schema_type == "null":
            nullable = True
            result = {key: value for key, value in result.items() if key != "type"}

        if isinstance(result.get("enum"), list) and None in result["enum"]:
            nullable = True
            result = {**result, "enum": [value for value in result["enum"] if value is not None]}
            if not result["enum"]:
                del result["enum"]

        for key in COMPOSITION_KEYS:
            variants = result.get(key)
            if not isinstance(variants, list):
                continue
            kept = [variant for variant in variants if not is_null_schema(variant)]
            if len(kept) != len(variants):
                nullable = True
                result = {**result, key: kept}
            if not kept:
                result = {k: v for k, v in result.items() if k != key}

        return result, nullable

    @staticmethod
    def _single_variant(schema: dict[str, Any]) -> Any | None:
        for key in COMPOSITION_KEYS:
            variants = schema.get(key)
            if isinstance(variants, list) and len(variants) == 1:
                return variants[0]
        return None

    @staticmethod
    def _kind(schema: dict[str, Any], name: str | None) -> SchemaKind:
        if "oneOf" in schema:
            return SchemaKind.ONE_OF
        if "allOf" in schema:
            return SchemaKind.ALL_OF
        if "anyOf" in schema:
            return SchemaKind.ANY_OF

        schema_type = schema.get("type")
        if schema_type is None:
            if "not" in schema:
                return SchemaKind.NOT
            if "properties" in schema or "additionalProperties" in schema:
                return SchemaKind.OBJECT
            if "items" in schema:
                return SchemaKind.ARRAY
            if schema.get("enum") and all(isinstance(value, str) for value in schema["enum"]):
                return SchemaKind.STRING
            return SchemaKind.ANY

        if isinstance(schema_type, list):
            return SchemaKind.ANY

        if schema_type not in _TYPE_KINDS:
            raise UnsupportedSchemaError(name or "<inline>", f"type `{schema_type}`")
        return _TYPE_KINDS[schema_type]
