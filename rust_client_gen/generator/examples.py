"""
Example value synthesis.

:class:`ExampleSynthesiser` produces deterministic example values for a
schema, either as JSON (the fake-data generator) or as a Rust constructor
expression for the generated types (used in docstring examples). The
random source is re-seeded on every top-level call, so the same input
always yields the same example.
"""

from __future__ import annotations

import random
import string
from typing import Any, Final

from rust_client_gen.generator.rust_types import (
    CRATE_TYPES_PREFIX,
    FLOAT_TYPES,
    INTEGER_TYPES,
    box_inner,
    is_option,
    map_value,
    strip_option,
    vec_item,
)
from rust_client_gen.generator.type_space import AliasDef, EnumDef, FieldDef, StructDef, SumDef, TypeSpace
from rust_client_gen.parser.resolver import SchemaKind, SchemaResolver, is_ref

DEFAULT_SEED: Final = 20_240_101

SAMPLE_STRING: Final = "some-string"
SAMPLE_UUID: Final = "d9797f8d-9ad6-4e08-90d7-2ec17e13471c"
SAMPLE_PHONE: Final = "+1555-555-5555"
SAMPLE_BASE64: Final = "some-base64-encoded-string"

# Fixed JSON literals for string formats
JSON_FORMAT_EXAMPLES: Final = {
    "date-time": "2021-01-01T00:00:00Z",
    "partial-date-time": "2021-01-01T00:00:00",
    "date": "2021-01-01",
    "time": "12:00:00",
    "password": "some-password",
    "byte": "c29tZS1iYXNlNjQtZW5jb2RlZC1zdHJpbmc",
    "binary": SAMPLE_STRING,
    "ipv4": "203.0.113.1",
    "ipv6": "2001:db8:8:4::2",
    "ip": "2001:db8:8:4::2",
    "uri": "https://example.com/foo/bar",
    "url": "https://example.com/foo/bar",
    "uri-template": "https://example.com/{folder}/{file}.json",
    "email": "email@example.com",
    "hostname": "example.com",
    "id": "some-id",
    "phone": SAMPLE_PHONE,
    "uuid": SAMPLE_UUID,
}

# Rust literals for String-typed formats
RUST_STRING_FORMAT_EXAMPLES: Final = {
    "password": "some-password",
    "uri": "https://example.com/foo/bar",
    "url": "https://example.com/foo/bar",
    "uri-template": "https://example.com/{folder}/{file}.json",
    "email": "email@example.com",
    "hostname": "example.com",
    "id": "some-id",
}

# Rust constructor expressions for primitive types
RUST_PRIMITIVE_EXAMPLES: Final = {
    "chrono::DateTime<chrono::Utc>": "chrono::Utc::now()",
    "chrono::NaiveDateTime": "chrono::Utc::now().naive_utc()",
    "chrono::NaiveDate": "chrono::Utc::now().date_naive()",
    "chrono::NaiveTime": "chrono::Utc::now().time()",
    "uuid::Uuid": f'uuid::Uuid::from_str("{SAMPLE_UUID}")?',
    "base64::Base64Data": f'{CRATE_TYPES_PREFIX}base64::Base64Data("{SAMPLE_BASE64}".as_bytes().to_vec())',
    "bytes::Bytes": f'bytes::Bytes::from("{SAMPLE_STRING}")',
    "phone_number::PhoneNumber": f'{CRATE_TYPES_PREFIX}phone_number::PhoneNumber::from_str("{SAMPLE_PHONE}")?',
    "std::net::Ipv4Addr": 'std::net::Ipv4Addr::from_str("203.0.113.1")?',
    "std::net::Ipv6Addr": 'std::net::Ipv6Addr::from_str("2001:db8:8:4::2")?',
    "std::net::IpAddr": 'std::net::IpAddr::from_str("2001:db8:8:4::2")?',
    "serde_json::Value": f'serde_json::Value::String("{SAMPLE_STRING}".to_string())',
}

_WORD_LENGTH: Final = 8


class ExampleSynthesiser:
    """Deterministic example values for schemas and generated types."""

    def __init__(self, resolver: SchemaResolver, type_space: TypeSpace, seed: int = DEFAULT_SEED) -> None:
        self.resolver = resolver
        self.type_space = type_space
        self.seed = seed
        self._random = random.Random(seed)

    # JSON

    def example_json(self, schema: Any) -> Any:
        """Return a JSON value conforming to a schema."""
        self._random = random.Random(self.seed)
        return self._json(schema, frozenset())

    def _json(self, schema: Any, visiting: frozenset[str]) -> Any:
        if is_ref(schema):
            ref = schema["$ref"]
            if ref in visiting:
                return None
            visiting = visiting | {ref}

        resolved = self.resolver.resolve(schema)
        if resolved.name is not None:
            ref = f"#/components/schemas/{resolved.name}"
            if ref in visiting and not is_ref(schema):
                return None
            visiting = visiting | {ref}

        value = resolved.schema
        match resolved.kind:
            case SchemaKind.STRING:
                if value.get("enum"):
                    return self._random.choice(value["enum"])
                if value.get("format") in JSON_FORMAT_EXAMPLES:
                    return JSON_FORMAT_EXAMPLES[value["format"]]
                return "".join(self._random.choice(string.ascii_lowercase) for _ in range(_WORD_LENGTH))
            case SchemaKind.INTEGER:
                return 4
            case SchemaKind.NUMBER:
                return 3.14
            case SchemaKind.BOOLEAN:
                return self._random.choice([True, False])
            case SchemaKind.ARRAY:
                items = value.get("items")
                return [self._json(items, visiting)] if items is not None else [SAMPLE_STRING]
            case SchemaKind.OBJECT:
                if value.get("properties"):
                    return {key: self._json(prop, visiting) for key, prop in value["properties"].items()}
                additional = value.get("additionalProperties")
                if isinstance(additional, dict) and additional:
                    return {"some-key": self._json(additional, visiting)}
                return {}
            case SchemaKind.ONE_OF | SchemaKind.ANY_OF:
                key = "oneOf" if resolved.kind == SchemaKind.ONE_OF else "anyOf"
                return self._json(value[key][0], visiting)
            case SchemaKind.ALL_OF:
                merged: dict[str, Any] = {}
                for part in value["allOf"]:
                    part_value = self._json(part, visiting)
                    if not isinstance(part_value, dict):
                        return part_value
                    merged.update(part_value)
                return merged
            case _:
                return SAMPLE_STRING

    # Rust

    def example_rust(self, schema: Any, rust_type: str) -> str:
        """Return a Rust expression of the given type.

        Args:
            schema: The schema the type was derived from, used to pick format-specific literals.
            rust_type: Unqualified Rust type expression, as produced by the renderer.

        Returns:
            A constructor expression with generated types qualified by ``crate::types::``.
        """
        self._random = random.Random(self.seed)
        return self._rust(rust_type, schema, frozenset())

    def _rust(self, rust_type: str, schema: Any, visiting: frozenset[str]) -> str:
        rust_type = rust_type.replace(CRATE_TYPES_PREFIX, "").strip()

        if is_option(rust_type):
            inner = strip_option(rust_type)
            if self._recursive(inner, visiting):
                return "None"
            return f"Some({self._rust(inner, schema, visiting)})"

        inner = box_inner(rust_type)
        if inner is not None:
            return f"Box::new({self._rust(inner, schema, visiting)})"

        item = vec_item(rust_type)
        if item is not None:
            if self._recursive(item, visiting):
                return "vec![]"
            return f"vec![{self._rust(item, self._items_schema(schema), visiting)}]"

        value = map_value(rust_type)
        if value is not None:
            expr = self._rust(value, self._additional_schema(schema), visiting)
            return f'std::collections::HashMap::from([("some-key".to_string(), {expr})])'

        if rust_type in self.type_space:
            return self._named(rust_type, visiting)
        return self._primitive(rust_type, schema)

    def _recursive(self, rust_type: str, visiting: frozenset[str]) -> bool:
        inner = box_inner(rust_type) or rust_type
        return inner in visiting

    def _primitive(self, rust_type: str, schema: Any) -> str:
        if rust_type == "String":
            schema_format = self._format(schema)
            literal = RUST_STRING_FORMAT_EXAMPLES.get(schema_format, SAMPLE_STRING)
            return f'"{literal}".to_string()'
        if rust_type == "bool":
            return self._random.choice(["true", "false"])
        if rust_type in INTEGER_TYPES:
            return f"4 as {rust_type}"
        if rust_type in FLOAT_TYPES:
            return f"3.14 as {rust_type}"
        return RUST_PRIMITIVE_EXAMPLES.get(rust_type, "Default::default()")

    def _named(self, name: str, visiting: frozenset[str]) -> str:
        entry = self.type_space[name]
        visiting = visiting | {name}
        qualified = f"{CRATE_TYPES_PREFIX}{name}"
        match entry.definition:
            case AliasDef(target=target, schema=schema):
                return self._rust(target, schema, visiting)
            case EnumDef(variants=variants):
                return f"{qualified}::{self._random.choice(variants).name}"
            case StructDef(fields=fields):
                return f"{qualified} {{{self._fields(fields, visiting)}}}"
            case SumDef(variants=variants):
                variant = variants[0]
                if variant.payload_type is not None:
                    payload = self._rust(variant.payload_type, variant.payload_schema, visiting)
                    return f"{qualified}::{variant.name}({payload})"
                if variant.fields:
                    return f"{qualified}::{variant.name} {{{self._fields(variant.fields, visiting)}}}"
                return f"{qualified}::{variant.name} {{}}"
            case _:
                return "Default::default()"

    def _fields(self, fields: list[FieldDef], visiting: frozenset[str]) -> str:
        if not fields:
            return ""
        rendered = ", ".join(f"{field.ident}: {self._rust(field.rust_type, field.schema, visiting)}" for field in fields)
        return f" {rendered} "

    # Schema navigation for nested types

    def _resolved_schema(self, schema: Any) -> dict[str, Any]:
        if schema is None:
            return {}
        return self.resolver.resolve(schema).schema

    def _format(self, schema: Any) -> str | None:
        return self._resolved_schema(schema).get("format")

    def _items_schema(self, schema: Any) -> Any:
        return self._resolved_schema(schema).get("items")

    def _additional_schema(self, schema: Any) -> Any:
        additional = self._resolved_schema(schema).get("additionalProperties")
        return additional if isinstance(additional, dict) else None
