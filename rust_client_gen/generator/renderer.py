"""
Lowering of resolved schemas into Rust type definitions.

:class:`TypeRenderer` turns a schema into a Rust type expression, naming
and rendering every struct, enum and sum it needs along the way. Rendered
definitions are stored on the :class:`~rust_client_gen.generator.type_space.TypeSpace`
entries and assembled into ``types.rs`` by the code generator.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from rust_client_gen.errors import RefNotFoundError, UnsupportedSchemaError
from rust_client_gen.gen_logging import get_logger
from rust_client_gen.generator.naming import cardinal, clean_property_name, proper_name
from rust_client_gen.generator.rust_types import (
    DISPLAY_PRIMITIVES,
    FLOAT_TYPES,
    INTEGER_FORMATS,
    INTEGER_TYPES,
    NUMBER_FORMATS,
    STRING_FORMATS,
    base_type,
    is_box,
    is_option,
    is_vec,
    map_value,
    option_of,
    strip_option,
)
from rust_client_gen.generator.type_space import (
    AliasDef,
    Definition,
    EnumDef,
    EnumVariantDef,
    FieldDef,
    NameHint,
    StructDef,
    SumDef,
    SumVariantDef,
    TypeEntry,
    TypeKind,
    TypeSpace,
)
from rust_client_gen.parser.resolver import SCHEMAS_PREFIX as COMPONENT_SOURCE_PREFIX
from rust_client_gen.parser.resolver import ResolvedSchema, SchemaKind, SchemaResolver, is_ref

if TYPE_CHECKING:
    from rust_client_gen.generator.template_engine import RustTemplateEngine

logger = get_logger(__name__)

ObjectShape = tuple[dict[str, Any], set[str]]

# Payload types that implement both Display and FromStr
_STRING_COERCIBLE = (DISPLAY_PRIMITIVES - {"base64::Base64Data"}) | INTEGER_TYPES | FLOAT_TYPES


def _unique_variant_name(candidate: str, seen: dict[str, int]) -> str:
    """Suffix a variant name with a counter when an earlier variant already took it."""
    if candidate in seen:
        seen[candidate] += 1
        candidate = f"{candidate}{seen[candidate]}"
    seen.setdefault(candidate, 1)
    return candidate


class TypeRenderer:
    """Lower schemas into named Rust types stored in a TypeSpace."""

    def __init__(
        self,
        resolver: SchemaResolver,
        type_space: TypeSpace,
        template_engine: RustTemplateEngine,
        tag_display_names: dict[str, str] | None = None,
        date_time_format: str | None = None,
    ) -> None:
        self.resolver = resolver
        self.type_space = type_space
        self.template_engine = template_engine
        self.tag_display_names = tag_display_names or {}
        self.date_time_format = date_time_format
        self._rendering: list[str] = []

    # Entry points

    def render_components(self) -> None:
        """Reserve every component name, then render every component."""
        for key, schema in self.resolver.schemas.items():
            self.type_space.reserve_component(key, schema)
        for key in self.resolver.schemas:
            self.component_type(key)
        logger.debug(f"  rendered {len(self.resolver.schemas)} component schemas")

    def component_type(self, key: str) -> str:
        """Return the name of a component schema, rendering it on first use."""
        if key not in self.resolver.schemas:
            raise RefNotFoundError(f"#/components/schemas/{key}")
        try:
            name = self.type_space.component_name(key)
        except KeyError:
            name = self.type_space.reserve_component(key, self.resolver.schemas[key]).name

        entry = self.type_space[name]
        if entry.kind is None and name not in self._rendering:
            self._render_component(entry, key)
        return name

    def type_for(self, schema: Any, hint: NameHint, location: str | None = None) -> str:
        """Return the Rust type expression for a schema.

        Args:
            schema: A reference, inline schema or boolean schema.
            hint: Name candidate for any named type the schema needs.
            location: Where the schema was found, for diagnostics.

        Returns:
            A type expression with generated types unqualified (``Option<Vec<Thing>>``).
        """
        resolved = self.resolver.resolve(schema, location)
        if resolved.name is not None:
            rust_type = self.component_type(resolved.name)
        else:
            rust_type = self._inline_type(resolved, hint, location)
        return option_of(rust_type) if resolved.nullable else rust_type

    def describe(self, schema: Any) -> str | None:
        """Return the description of a schema, looking through references."""
        if isinstance(schema, dict) and schema.get("description"):
            return schema["description"]
        if is_ref(schema):
            return self.resolver.resolve(schema).description
        return None

    # Inline types

    def _inline_type(self, resolved: ResolvedSchema, hint: NameHint, location: str | None) -> str:
        schema = resolved.schema
        match resolved.kind:
            case SchemaKind.STRING:
                if schema.get("enum"):
                    return self._named(resolved, hint, location)
                return self._format_type(STRING_FORMATS, schema, hint, "string")
            case SchemaKind.INTEGER:
                return self._format_type(INTEGER_FORMATS, schema, hint, "integer")
            case SchemaKind.NUMBER:
                return self._format_type(NUMBER_FORMATS, schema, hint, "number")
            case SchemaKind.BOOLEAN:
                return "bool"
            case SchemaKind.ARRAY:
                items = schema.get("items")
                if items is None:
                    return "Vec<serde_json::Value>"
                return f"Vec<{self.type_for(items, hint, location)}>"
            case SchemaKind.OBJECT:
                value_schema = self._dictionary_value(schema)
                if value_schema is not None:
                    return f"std::collections::HashMap<String, {self.type_for(value_schema, hint, location)}>"
                if not schema.get("properties"):
                    return "serde_json::Value"
                return self._named(resolved, hint, location)
            case SchemaKind.ONE_OF | SchemaKind.ALL_OF | SchemaKind.ANY_OF:
                return self._named(resolved, hint, location)
            case SchemaKind.NOT:
                raise UnsupportedSchemaError(location or hint.candidate, "`not`")
            case _:
                return "serde_json::Value"

    @staticmethod
    def _format_type(table: dict[str | None, str], schema: dict[str, Any], hint: NameHint, kind: str) -> str:
        schema_format = schema.get("format")
        if schema_format not in table:
            raise UnsupportedSchemaError(hint.candidate, f"{kind} format `{schema_format}`")
        return table[schema_format]

    @staticmethod
    def _dictionary_value(schema: dict[str, Any]) -> Any | None:
        """The value schema of a property-less object with typed additional properties."""
        additional = schema.get("additionalProperties")
        if schema.get("properties") or not isinstance(additional, dict) or not additional:
            return None
        return additional

    def _named(self, resolved: ResolvedSchema, hint: NameHint, location: str | None) -> str:
        entry, created = self.type_space.intern(hint, resolved.schema, location or hint.candidate)
        if created:
            self._rendering.append(entry.name)
            try:
                definition = self._definition(entry.name, resolved, hint, location)
            finally:
                self._rendering.pop()
            self._store(entry, definition)
        elif entry.kind is None and entry.source.startswith(COMPONENT_SOURCE_PREFIX):
            self.component_type(entry.source[len(COMPONENT_SOURCE_PREFIX) :])
        return entry.name

    # Named definitions

    def _render_component(self, entry: TypeEntry, key: str) -> None:
        location = f"{COMPONENT_SOURCE_PREFIX}{key}"
        raw = self.resolver.schemas[key]
        resolved = self.resolver.resolve(raw, location)
        self._rendering.append(entry.name)
        try:
            if resolved.name is not None:
                definition: Definition = AliasDef(
                    entry.name, self.component_type(resolved.name), raw, self.describe(raw)
                )
            else:
                definition = self._definition(entry.name, resolved, NameHint(key), location, component=True)
        finally:
            self._rendering.pop()
        self._store(entry, definition)

    def _definition(
        self,
        name: str,
        resolved: ResolvedSchema,
        hint: NameHint,
        location: str | None,
        *,
        component: bool = False,
    ) -> Definition:
        schema = resolved.schema
        description = schema.get("description")
        match resolved.kind:
            case SchemaKind.STRING if schema.get("enum"):
                return self._enum(name, schema, description)
            case SchemaKind.OBJECT if component and self._dictionary_value(schema) is None:
                return self._struct(
                    name, schema.get("properties") or {}, set(schema.get("required", [])), description, hint, location
                )
            case SchemaKind.OBJECT if schema.get("properties"):
                return self._struct(
                    name, schema["properties"], set(schema.get("required", [])), description, hint, location
                )
            case SchemaKind.ONE_OF:
                return self._one_of(name, schema, description, hint, location)
            case SchemaKind.ALL_OF | SchemaKind.ANY_OF:
                shape = self._object_shape(resolved)
                if shape is not None:
                    properties, required = shape
                    return self._struct(name, properties, required, description, hint, location)
                key = "allOf" if resolved.kind == SchemaKind.ALL_OF else "anyOf"
                return self._untagged(name, schema[key], description, hint, location)
            case _:
                target = self._inline_type(resolved, NameHint(f"{name} Item", hint.qualifiers), location)
                return AliasDef(name, target, schema, description)

    def _enum(self, name: str, schema: dict[str, Any], description: str | None) -> EnumDef:
        values = [str(value) for value in schema["enum"] if value is not None]
        variants: list[EnumVariantDef] = []
        seen: dict[str, int] = {}
        for value in values:
            variant_name = _unique_variant_name(proper_name(value), seen)
            variants.append(EnumVariantDef(variant_name, value))

        default = None
        if len(variants) == 1:
            default = variants[0].name
        elif schema.get("default") in values:
            default = variants[values.index(schema["default"])].name
        return EnumDef(name, variants, description, default)

    def _struct(
        self,
        name: str,
        properties: dict[str, Any],
        required: set[str],
        description: str | None,
        hint: NameHint,
        location: str | None,
    ) -> StructDef:
        return StructDef(name, self._fields(name, properties, required, hint, location), description)

    def _fields(
        self,
        parent: str,
        properties: dict[str, Any],
        required: set[str],
        hint: NameHint,
        location: str | None,
    ) -> list[FieldDef]:
        fields: list[FieldDef] = []
        idents: set[str] = set()
        for key, prop in properties.items():
            rust_type = self.type_for(prop, hint.child(key, parent), f"{location or parent}/properties/{key}")
            optional = key not in required or is_option(rust_type)
            rust_type = self._indirect(rust_type)
            if optional:
                rust_type = option_of(rust_type)

            ident = clean_property_name(key)
            if ident in idents:
                ident = f"{ident}_{len(fields)}"
            idents.add(ident)

            fields.append(
                FieldDef(
                    ident=ident,
                    json_name=key,
                    rust_type=rust_type,
                    schema=prop,
                    description=self.describe(prop),
                    optional=optional,
                    tabled_skip=not self._displayable(rust_type),
                )
            )
        return fields

    def _indirect(self, rust_type: str) -> str:
        """Box a field that refers directly to a type still being rendered."""
        inner = strip_option(rust_type)
        if inner not in self._rendering:
            return rust_type
        return f"Option<Box<{inner}>>" if is_option(rust_type) else f"Box<{inner}>"

    def _displayable(self, rust_type: str) -> bool:
        if is_option(rust_type) or is_vec(rust_type) or is_box(rust_type) or map_value(rust_type):
            return False
        if rust_type in DISPLAY_PRIMITIVES or rust_type == "serde_json::Value":
            return True
        entry = self.type_space.entries.get(rust_type)
        if entry is None:
            return False
        if isinstance(entry.definition, AliasDef):
            return self._displayable(entry.definition.target)
        return entry.kind not in (None, TypeKind.ALIAS)

    def _object_shape(self, resolved: ResolvedSchema) -> ObjectShape | None:
        """Properties and required set of an object, or of an intersection of objects."""
        schema = resolved.schema
        if resolved.kind == SchemaKind.OBJECT:
            if self._dictionary_value(schema) is not None:
                return None
            return dict(schema.get("properties") or {}), set(schema.get("required", []))
        if resolved.kind not in (SchemaKind.ALL_OF, SchemaKind.ANY_OF):
            return None

        key = "allOf" if resolved.kind == SchemaKind.ALL_OF else "anyOf"
        properties: dict[str, Any] = {}
        required: set[str] = set()
        for part in schema[key]:
            shape = self._object_shape(self.resolver.resolve(part))
            if shape is None:
                return None
            properties.update(shape[0])
            required |= shape[1]
        if resolved.kind == SchemaKind.ANY_OF:
            required = set()
        return properties, required

    # Sums

    def _one_of(
        self,
        name: str,
        schema: dict[str, Any],
        description: str | None,
        hint: NameHint,
        location: str | None,
    ) -> Definition:
        variants = schema["oneOf"]
        resolved = [self.resolver.resolve(variant) for variant in variants]

        if all(r.kind == SchemaKind.STRING and len(r.schema.get("enum", [])) == 1 for r in resolved):
            return self._documented_enum(name, resolved, description)

        shapes = [self._object_shape(r) for r in resolved]
        if all(shape is not None for shape in shapes):
            object_shapes: list[ObjectShape] = [shape for shape in shapes if shape is not None]
            tag = self._discriminator(schema, object_shapes)
            if tag is not None:
                return self._tagged(name, tag, object_shapes, resolved, description, hint, location)
        return self._untagged(name, variants, description, hint, location)

    @staticmethod
    def _documented_enum(name: str, resolved: list[ResolvedSchema], description: str | None) -> EnumDef:
        variants = [
            EnumVariantDef(proper_name(str(r.schema["enum"][0])), str(r.schema["enum"][0]), r.description)
            for r in resolved
        ]
        default = variants[0].name if len(variants) == 1 else None
        return EnumDef(name, variants, description, default)

    def _tag_value(self, prop: Any) -> str | None:
        resolved = self.resolver.resolve(prop)
        values = resolved.schema.get("enum", [])
        if resolved.kind == SchemaKind.STRING and len(values) == 1:
            return str(values[0])
        return None

    def _discriminator(self, schema: dict[str, Any], shapes: list[ObjectShape]) -> str | None:
        """Find a property holding a distinct single-valued enum in every variant."""
        declared = (schema.get("discriminator") or {}).get("propertyName")
        candidates = [declared] if declared else list(shapes[0][0])
        for key in candidates:
            values = []
            for properties, _ in shapes:
                value = self._tag_value(properties[key]) if key in properties else None
                if value is None:
                    break
                values.append(value)
            else:
                if len(set(values)) == len(values):
                    return key
        return None

    def _tagged(
        self,
        name: str,
        tag: str,
        shapes: list[ObjectShape],
        resolved: list[ResolvedSchema],
        description: str | None,
        hint: NameHint,
        location: str | None,
    ) -> SumDef:
        others = [set(properties) - {tag} for properties, _ in shapes]
        content_keys = set().union(*others)
        content = next(iter(content_keys)) if len(content_keys) == 1 and all(len(o) == 1 for o in others) else None

        variants: list[SumVariantDef] = []
        seen: dict[str, int] = {}
        for (properties, required), variant_schema in zip(shapes, resolved, strict=True):
            tag_value = self._tag_value(properties[tag]) or tag
            variant_name = _unique_variant_name(proper_name(tag_value), seen)
            variant = SumVariantDef(name=variant_name, tag_value=tag_value, description=variant_schema.description)
            if content is not None:
                payload = self.type_for(properties[content], hint.child(tag_value, name), location)
                if content not in required:
                    payload = option_of(payload)
                variant.payload_type = self._indirect(payload)
                variant.payload_schema = properties[content]
            else:
                own = {key: value for key, value in properties.items() if key != tag}
                variant.fields = self._fields(f"{variant_name} {name}", own, required, hint, location)
            variants.append(variant)

        display_as_tag = content is not None and all(
            variant.payload_type is not None and self._string_coercible(variant.payload_type) for variant in variants
        )
        return SumDef(name, variants, tag, content, description, display_as_tag)

    def _string_coercible(self, rust_type: str) -> bool:
        if rust_type in _STRING_COERCIBLE:
            return True
        entry = self.type_space.entries.get(rust_type)
        return entry is not None and entry.kind == TypeKind.ENUM

    def _untagged(
        self,
        name: str,
        variants: list[Any],
        description: str | None,
        hint: NameHint,
        location: str | None,
    ) -> SumDef:
        result: list[SumVariantDef] = []
        seen: set[str] = set()
        for index, variant in enumerate(variants):
            resolved = self.resolver.resolve(variant)
            title = variant.get("title") if isinstance(variant, dict) else None
            title = title or resolved.schema.get("title")
            shape = self._object_shape(resolved)
            first_property = next(iter(shape[0]), None) if shape else None

            label = title or first_property or resolved.kind.value
            payload = self._indirect(self.type_for(variant, hint.child(label, name), location))
            if resolved.name is not None:
                variant_name = base_type(payload)
            elif title:
                variant_name = proper_name(title)
            else:
                variant_name = self._variant_name_from_type(payload)

            if variant_name in seen:
                suffix = first_property or cardinal(index)
                variant_name = f"{variant_name}{proper_name(suffix)}"
            seen.add(variant_name)
            result.append(
                SumVariantDef(name=variant_name, payload_type=payload, payload_schema=variant, description=resolved.description)
            )
        return SumDef(name, result, description=description)

    @staticmethod
    def _variant_name_from_type(rust_type: str) -> str:
        """Name an untagged variant after its payload type.

        Examples:
            >>> TypeRenderer._variant_name_from_type("Vec<String>")
            'VecString'
            >>> TypeRenderer._variant_name_from_type("chrono::DateTime<chrono::Utc>")
            'DateTimeUtc'
        """
        words = rust_type.replace("std::collections::", "").replace("chrono::", "").replace("::", " ")
        return proper_name(words.replace("<", " ").replace(">", " ").replace(",", " "))

    # Rendering

    def _store(self, entry: TypeEntry, definition: Definition) -> None:
        match definition:
            case StructDef():
                entry.kind = TypeKind.STRUCT
                template = "models/struct.rs.j2"
            case EnumDef():
                entry.kind = TypeKind.ENUM
                template = "models/enum.rs.j2"
            case SumDef(tag=None):
                entry.kind = TypeKind.UNTAGGED_SUM
                template = "models/sum.rs.j2"
            case SumDef():
                entry.kind = TypeKind.TAGGED_SUM
                template = "models/sum.rs.j2"
            case AliasDef():
                entry.kind = TypeKind.ALIAS
                template = "models/alias.rs.j2"
        entry.definition = definition
        entry.rendered = self.template_engine.render_template(
            template,
            {
                "definition": definition,
                "tag_display_names": self.tag_display_names,
                "date_time_format": self.date_time_format,
            },
        )
        logger.debug(f"  {entry.kind.value} {entry.name}")
