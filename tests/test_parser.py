"""Tests for document loading, reference resolution and operation parsing."""

import json
from pathlib import Path
from typing import Any

import pytest
import yaml

from conftest import minimal_document
from rust_client_gen.errors import (
    GeneratorIOError,
    MalformedDocumentError,
    RefCycleError,
    RefNotFoundError,
    UnsupportedSchemaError,
)
from rust_client_gen.parser.document import DocumentParser
from rust_client_gen.parser.loader import load_document
from rust_client_gen.parser.resolver import SchemaKind, SchemaResolver


class TestLoader:
    def test_loads_json(self, machine_api_path: Path) -> None:
        document = load_document(machine_api_path)
        assert document["info"]["title"] == "Machine API"

    def test_loads_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "spec.yaml"
        path.write_text(yaml.safe_dump(minimal_document()), encoding="utf-8")
        assert "/ping" in load_document(path)["paths"]

    def test_yaml_content_with_unknown_extension(self, tmp_path: Path) -> None:
        path = tmp_path / "spec.txt"
        path.write_text(yaml.safe_dump(minimal_document()), encoding="utf-8")
        assert load_document(path)["openapi"] == "3.0.3"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(GeneratorIOError) as excinfo:
            load_document(tmp_path / "missing.json")
        assert excinfo.value.exit_code == 1

    @pytest.mark.parametrize(
        "content",
        [
            "{not json",
            "",
            "[1, 2, 3]",
            json.dumps({"swagger": "2.0", "paths": {"/a": {}}}),
            json.dumps({"openapi": "3.0.0", "paths": {}}),
        ],
    )
    def test_malformed_documents(self, tmp_path: Path, content: str) -> None:
        path = tmp_path / "spec.json"
        path.write_text(content, encoding="utf-8")
        with pytest.raises(MalformedDocumentError) as excinfo:
            load_document(path)
        assert excinfo.value.exit_code == 2


class TestSchemaResolver:
    @pytest.fixture
    def resolver(self) -> SchemaResolver:
        return SchemaResolver(
            minimal_document(
                {
                    "Thing": {"type": "object", "properties": {"id": {"type": "string"}}},
                    "ThingAlias": {"$ref": "#/components/schemas/Thing"},
                    "Loop": {"$ref": "#/components/schemas/Loop"},
                    "MaybeThing": {"nullable": True, "allOf": [{"$ref": "#/components/schemas/Thing"}]},
                }
            )
        )

    def test_follows_references(self, resolver: SchemaResolver) -> None:
        resolved = resolver.resolve({"$ref": "#/components/schemas/ThingAlias"})
        assert resolved.kind == SchemaKind.OBJECT
        assert resolved.name == "ThingAlias"
        assert "id" in resolved.schema["properties"]

    def test_dangling_reference(self, resolver: SchemaResolver) -> None:
        with pytest.raises(RefNotFoundError) as excinfo:
            resolver.resolve({"$ref": "#/components/schemas/Nope"}, "somewhere")
        assert "somewhere" in str(excinfo.value)
        assert excinfo.value.exit_code == 3

    def test_external_reference(self, resolver: SchemaResolver) -> None:
        with pytest.raises(RefNotFoundError):
            resolver.resolve({"$ref": "other.json#/components/schemas/Thing"})

    def test_reference_cycle(self, resolver: SchemaResolver) -> None:
        with pytest.raises(RefCycleError) as excinfo:
            resolver.resolve({"$ref": "#/components/schemas/Loop"})
        assert excinfo.value.chain[-1] == "#/components/schemas/Loop"

    @pytest.mark.parametrize(
        "schema",
        [
            {"type": "string", "nullable": True},
            {"type": ["string", "null"]},
            {"oneOf": [{"type": "string"}, {"type": "null"}]},
            {"anyOf": [{"type": "null"}, {"type": "string"}]},
        ],
    )
    def test_nullability_spellings(self, resolver: SchemaResolver, schema: dict[str, Any]) -> None:
        resolved = resolver.resolve(schema)
        assert resolved.nullable
        assert resolved.kind == SchemaKind.STRING

    def test_single_part_composition_collapses(self, resolver: SchemaResolver) -> None:
        resolved = resolver.resolve({"$ref": "#/components/schemas/MaybeThing"})
        assert resolved.nullable
        assert resolved.kind == SchemaKind.OBJECT
        assert resolved.name == "MaybeThing"

    def test_boolean_schema_is_any(self, resolver: SchemaResolver) -> None:
        assert resolver.resolve(True).kind == SchemaKind.ANY

    def test_properties_without_type_is_object(self, resolver: SchemaResolver) -> None:
        assert resolver.resolve({"properties": {"a": {"type": "string"}}}).kind == SchemaKind.OBJECT

    def test_unknown_type(self, resolver: SchemaResolver) -> None:
        with pytest.raises(UnsupportedSchemaError):
            resolver.resolve({"type": "file"})

    def test_resolution_does_not_mutate_document(self, resolver: SchemaResolver) -> None:
        before = json.dumps(resolver.document, sort_keys=True)
        resolver.resolve({"$ref": "#/components/schemas/MaybeThing"})
        resolver.resolve({"type": ["integer", "null"]})
        assert json.dumps(resolver.document, sort_keys=True) == before


class TestDocumentParser:
    @pytest.fixture
    def parsed(self, machine_api: dict[str, Any]):
        return DocumentParser(SchemaResolver(machine_api)).parse()

    def test_operations_in_path_and_method_order(self, parsed) -> None:
        assert [operation.operation_id for operation in parsed.operations] == [
            "list_api_calls",
            "get_api_call",
            "delete_api_call",
            "create_proprietary_to_kcl",
            "create_text_to_cad",
            "ping",
        ]

    def test_only_used_tags_are_kept(self, parsed) -> None:
        assert [tag.module for tag in parsed.tags] == ["api_calls", "meta", "ml"]
        api_calls = parsed.tags[0]
        assert api_calls.external_docs_url == "https://docs.example.com/api/api-calls"

    def test_shared_path_parameters_are_merged(self, parsed) -> None:
        get_api_call = parsed.operations[1]
        assert [param.name for param in get_api_call.path_parameters] == ["id"]
        assert get_api_call.path_parameters[0].required

    def test_success_response(self, parsed) -> None:
        list_api_calls = parsed.operations[0]
        assert list_api_calls.success_response.status_code == "200"
        assert "4XX" in list_api_calls.responses

    def test_multipart_request_body(self, parsed) -> None:
        convert = parsed.operations[3]
        assert convert.request_body.is_multipart

    def test_missing_operation_id(self) -> None:
        document = minimal_document(paths={"/a": {"get": {"responses": {}}}})
        with pytest.raises(MalformedDocumentError):
            DocumentParser(SchemaResolver(document)).parse()
