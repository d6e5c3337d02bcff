"""
The set of named Rust types generated for one document.

Every schema that needs a name (components, inline objects, enums and sums)
is interned here. Interning is keyed by the schema's structure with
documentation stripped, so equal schemas proposed under the same name share
one entry while different schemas get distinct names.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Final

from rust_client_gen.errors import NameCollisionError
from rust_client_gen.generator.naming import type_name
from rust_client_gen.generator.rust_types import CRATE_TYPES_PREFIX, SUPPORT_MODULES

# Keys that do not change the shape of a schema
_DOC_KEYS: Final = frozenset({"description", "title", "example", "examples", "externalDocs", "deprecated"})

_IDENT_PATTERN: Final = re.compile(r"(?<![\w:'])([A-Za-z_]\w*)")


class TypeKind(str, Enum):
    ALIAS = "alias"
    STRUCT = "struct"
    TAGGED_SUM = "tagged-sum"
    UNTAGGED_SUM = "untagged-sum"
    ENUM = "enum"
    PRIMITIVE = "primitive"


@dataclass
class FieldDef:
    """A struct field (or a field of a struct-like sum variant)."""

    ident: str
    json_name: str
    rust_type: str
    schema: Any
    description: str | None = None
    optional: bool = False
    tabled_skip: bool = False

    @property
    def renamed(self) -> bool:
        return self.ident != self.json_name


@dataclass
class StructDef:
    name: str
    fields: list[FieldDef]
    description: str | None = None


@dataclass
class EnumVariantDef:
    name: str
    value: str
    description: str | None = None

    @property
    def renamed(self) -> bool:
        return self.name != self.value


@dataclass
class EnumDef:
    name: str
    variants: list[EnumVariantDef]
    description: str | None = None
    default: str | None = None


@dataclass
class SumVariantDef:
    """A variant of a tagged or untagged sum.

    A variant carries either a single payload (``payload_type``), a set of
    named fields, or nothing (unit variant).
    """

    name: str
    tag_value: str | None = None
    payload_type: str | None = None
    payload_schema: Any = None
    fields: list[FieldDef] = field(default_factory=list)
    description: str | None = None

    @property
    def renamed(self) -> bool:
        return self.tag_value is not None and self.tag_value != self.name


@dataclass
class SumDef:
    name: str
    variants: list[SumVariantDef]
    tag: str | None = None
    content: str | None = None
    description: str | None = None
    display_as_tag: bool = False

    @property
    def tagged(self) -> bool:
        return self.tag is not None


@dataclass
class AliasDef:
    name: str
    target: str
    schema: Any = None
    description: str | None = None


Definition = StructDef | EnumDef | SumDef | AliasDef


@dataclass
class TypeEntry:
    """A named type: what it was derived from and its rendered Rust source."""

    name: str
    kind: TypeKind | None
    source: str
    key: str
    definition: Definition | None = None
    rendered: str | None = None


def structural_key(schema: Any) -> str:
    """Return a key equal for schemas that differ only in documentation.

    Examples:
        >>> structural_key({"type": "string", "description": "a"}) == structural_key({"type": "string"})
        True
    """
    return json.dumps(_strip_docs(schema), sort_keys=True, default=str)


def _strip_docs(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _strip_docs(item) for key, item in value.items() if key not in _DOC_KEYS}
    if isinstance(value, list):
        return [_strip_docs(item) for item in value]
    return value


@dataclass(frozen=True)
class NameHint:
    """A candidate name plus the qualifiers appended, in order, on collision."""

    candidate: str
    qualifiers: tuple[str, ...] = ()

    def child(self, candidate: str, parent: str) -> NameHint:
        """Hint for a type nested inside the type named ``parent``."""
        return NameHint(candidate, (parent, *self.qualifiers))

    def names(self) -> list[str]:
        names = [type_name(self.candidate)]
        suffix = self.candidate
        for qualifier in self.qualifiers:
            suffix = f"{suffix} {qualifier}"
            names.append(type_name(suffix))
        return names


class TypeSpace:
    """Ordered registry of generated types, keyed by display name."""

    def __init__(self) -> None:
        self.entries: dict[str, TypeEntry] = {}
        self._components: dict[str, str] = {}
        self.pagination_impls: dict[str, str] = {}

    def __contains__(self, name: str) -> bool:
        return name in self.entries

    def __getitem__(self, name: str) -> TypeEntry:
        return self.entries[name]

    def __len__(self) -> int:
        return len(self.entries)

    def reserve_component(self, key: str, schema: Any) -> TypeEntry:
        """Reserve the name of a component schema before anything else is named.

        Raises:
            NameCollisionError: If a structurally different component already holds the name.
        """
        name = type_name(key)
        structure = structural_key(schema)
        existing = self.entries.get(name)
        if existing is not None and existing.key != structure:
            raise NameCollisionError(key, [name])
        entry = existing or TypeEntry(name=name, kind=None, source=f"#/components/schemas/{key}", key=structure)
        self.entries[name] = entry
        self._components[key] = name
        return entry

    def component_name(self, key: str) -> str:
        return self._components[key]

    def intern(self, hint: NameHint, schema: Any, source: str) -> tuple[TypeEntry, bool]:
        """Find or create the entry for an inline schema.

        Args:
            hint: Candidate name and collision qualifiers.
            schema: The schema the type is derived from.
            source: Where the schema came from, for diagnostics.

        Returns:
            The entry and whether it was newly created.

        Raises:
            NameCollisionError: If every candidate name is taken by a different schema.
        """
        structure = structural_key(schema)
        tried = hint.names()
        for name in tried:
            existing = self.entries.get(name)
            if existing is None:
                entry = TypeEntry(name=name, kind=None, source=source, key=structure)
                self.entries[name] = entry
                return entry, True
            if existing.key == structure:
                return existing, False
        raise NameCollisionError(hint.candidate, tried)

    def rendered(self) -> list[TypeEntry]:
        """Entries with rendered source, in name order."""
        return sorted((entry for entry in self.entries.values() if entry.rendered), key=lambda entry: entry.name)

    def qualify(self, rust_type: str) -> str:
        """Prefix generated types and support modules with ``crate::types::``.

        Examples:
            >>> space = TypeSpace()
            >>> _ = space.reserve_component("Thing", {"type": "object"})
            >>> space.qualify("Option<Vec<Thing>>")
            'Option<Vec<crate::types::Thing>>'
            >>> space.qualify("base64::Base64Data")
            'crate::types::base64::Base64Data'
            >>> space.qualify("chrono::DateTime<chrono::Utc>")
            'chrono::DateTime<chrono::Utc>'
        """

        def _replace(match: re.Match[str]) -> str:
            ident = match.group(1)
            if ident in self.entries or ident in SUPPORT_MODULES:
                return f"{CRATE_TYPES_PREFIX}{ident}"
            return ident

        return _IDENT_PATTERN.sub(_replace, rust_type)
