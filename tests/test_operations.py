"""Tests for lowering operations into client methods, pagination and examples."""

from typing import Any

import pytest

from conftest import minimal_document
from rust_client_gen.config import GeneratorOptions
from rust_client_gen.errors import NameCollisionError, UnsupportedMediaTypeError
from rust_client_gen.generator.client import ClientBoilerplate
from rust_client_gen.generator.examples import SAMPLE_UUID, ExampleSynthesiser
from rust_client_gen.generator.operations import (
    ArgumentKind,
    BodyKind,
    FunctionDef,
    OperationLowerer,
    ResponseKind,
)
from rust_client_gen.generator.pagination import PaginationAnalyser
from rust_client_gen.generator.renderer import TypeRenderer
from rust_client_gen.generator.template_engine import RustTemplateEngine
from rust_client_gen.generator.type_space import TypeSpace
from rust_client_gen.parser.document import DocumentParser
from rust_client_gen.parser.resolver import SchemaResolver


def lower(
    document: dict[str, Any], options: GeneratorOptions, template_engine: RustTemplateEngine
) -> dict[str, FunctionDef]:
    """Lower every operation of a document, keyed by operation id."""
    resolver = SchemaResolver(document)
    parsed = DocumentParser(resolver).parse()
    type_space = TypeSpace()
    renderer = TypeRenderer(resolver, type_space, template_engine)
    renderer.render_components()
    lowerer = OperationLowerer(
        renderer,
        PaginationAnalyser(type_space, template_engine),
        ExampleSynthesiser(resolver, type_space),
        options,
        ClientBoilerplate(options, template_engine).auth_statement,
    )
    functions = lowerer.lower_all(parsed.operations, parsed.tags)
    return {function.operation.operation_id: function for group in functions.values() for function in group}


class TestOperationLowering:
    @pytest.fixture
    def functions(
        self, machine_api: dict[str, Any], options: GeneratorOptions, template_engine: RustTemplateEngine
    ) -> dict[str, FunctionDef]:
        return lower(machine_api, options, template_engine)

    def test_optional_query_arguments_are_alphabetical(self, functions: dict[str, FunctionDef]) -> None:
        list_api_calls = functions["list_api_calls"]
        assert list_api_calls.name == "list"
        assert [(arg.ident, arg.rust_type) for arg in list_api_calls.arguments] == [
            ("limit", "Option<u32>"),
            ("page_token", "Option<String>"),
            ("sort_by", "Option<crate::types::CreatedAtSortMode>"),
        ]

    def test_header_parameters_are_ignored(self, functions: dict[str, FunctionDef]) -> None:
        assert "x_request_id" not in [arg.ident for arg in functions["list_api_calls"].arguments]

    def test_paginated_operation_gets_a_stream(self, functions: dict[str, FunctionDef]) -> None:
        list_api_calls = functions["list_api_calls"]
        pagination = list_api_calls.pagination
        assert pagination is not None
        assert pagination.page_parameter == "page_token"
        assert pagination.item_type == "ApiCallWithPrice"
        assert list_api_calls.stream_item_type == "crate::types::ApiCallWithPrice"
        assert [arg.ident for arg in list_api_calls.stream_arguments] == ["limit", "sort_by"]
        assert list_api_calls.stream_call_arguments == ["limit.clone()", "None", "sort_by.clone()"]

    def test_uuid_path_parameter_is_taken_by_value(self, functions: dict[str, FunctionDef]) -> None:
        get_api_call = functions["get_api_call"]
        assert get_api_call.name == "get"
        (argument,) = get_api_call.arguments
        assert argument.kind == ArgumentKind.PATH
        assert argument.rust_type == "uuid::Uuid"
        assert argument.path_value() == '&format!("{}", id)'
        assert get_api_call.path == "api-calls/{id}"
        assert get_api_call.pagination is None

    def test_no_content_response(self, functions: dict[str, FunctionDef]) -> None:
        delete_api_call = functions["delete_api_call"]
        assert delete_api_call.response_kind == ResponseKind.NONE
        assert delete_api_call.response_type == "()"
        assert "**NOTE:** This operation is marked as deprecated." in delete_api_call.docs

    def test_multipart_without_typed_body(self, functions: dict[str, FunctionDef]) -> None:
        convert = functions["create_proprietary_to_kcl"]
        assert [(arg.ident, arg.rust_type) for arg in convert.arguments] == [
            ("attachments", "Vec<crate::types::multipart::Attachment>"),
            ("code_option", "Option<crate::types::CodeOption>"),
        ]
        assert convert.body.kind == BodyKind.MULTIPART
        assert convert.body.argument is None
        assert convert.response_type == "crate::types::KclModel"

    def test_json_body_argument(self, functions: dict[str, FunctionDef]) -> None:
        create = functions["create_text_to_cad"]
        assert [(arg.ident, arg.rust_type) for arg in create.arguments] == [
            ("body", "&crate::types::TextToCadCreateBody"),
        ]
        assert create.body.kind == BodyKind.JSON

    def test_docs_list_parameters(self, functions: dict[str, FunctionDef]) -> None:
        docs = functions["list_api_calls"].docs
        assert docs.startswith("List API calls.\n\nThis endpoint requires authentication by a user.")
        assert "- `limit: Option<u32>`: Maximum number of items returned by a single call" in docs
        assert "- `id: uuid::Uuid`" in functions["get_api_call"].docs
        assert "(required)" in functions["get_api_call"].docs

    def test_lib_docs_link(self, functions: dict[str, FunctionDef]) -> None:
        assert functions["list_api_calls"].lib_docs_link == (
            "https://docs.rs/kittycad/latest/kittycad/api_calls/struct.ApiCalls.html#method.list"
        )

    def test_unsupported_request_media_type(self, options: GeneratorOptions, template_engine: RustTemplateEngine) -> None:
        document = minimal_document(
            paths={
                "/upload": {
                    "post": {
                        "operationId": "upload",
                        "requestBody": {"content": {"application/xml": {"schema": {"type": "object"}}}},
                        "responses": {"204": {"description": "ok"}},
                    }
                }
            }
        )
        with pytest.raises(UnsupportedMediaTypeError) as excinfo:
            lower(document, options, template_engine)
        assert excinfo.value.media_type == "application/xml"
        assert excinfo.value.exit_code == 3

    def test_octet_stream_and_text(self, options: GeneratorOptions, template_engine: RustTemplateEngine) -> None:
        document = minimal_document(
            paths={
                "/file": {
                    "post": {
                        "operationId": "convert_file",
                        "requestBody": {
                            "content": {"application/octet-stream": {"schema": {"type": "string", "format": "binary"}}}
                        },
                        "responses": {"200": {"description": "ok", "content": {"text/plain": {}}}},
                    }
                }
            }
        )
        convert = lower(document, options, template_engine)["convert_file"]
        assert convert.body.kind == BodyKind.BYTES
        assert convert.arguments[0].rust_type == "&bytes::Bytes"
        assert convert.response_kind == ResponseKind.TEXT

    def test_required_array_query_is_comma_joined(
        self, options: GeneratorOptions, template_engine: RustTemplateEngine
    ) -> None:
        document = minimal_document(
            paths={
                "/things": {
                    "get": {
                        "operationId": "get_things_by_ids",
                        "tags": ["things"],
                        "parameters": [
                            {
                                "name": "ids",
                                "in": "query",
                                "required": True,
                                "schema": {"type": "array", "items": {"type": "string"}},
                            }
                        ],
                        "responses": {"204": {"description": "ok"}},
                    }
                }
            }
        )
        (argument,) = lower(document, options, template_engine)["get_things_by_ids"].arguments
        assert argument.required
        assert argument.rust_type == "Vec<String>"
        assert argument.query_value(argument.ident) == (
            'ids.iter().map(|item| item.to_string()).collect::<Vec<String>>().join(",")'
        )

    def test_method_name_collision(self, options: GeneratorOptions, template_engine: RustTemplateEngine) -> None:
        document = minimal_document(
            paths={
                "/things": {
                    "get": {"operationId": "get_things", "tags": ["things"], "responses": {"204": {"description": "ok"}}}
                },
                "/thing": {
                    "get": {"operationId": "get_thing", "tags": ["things"], "responses": {"204": {"description": "ok"}}}
                },
            }
        )
        with pytest.raises(NameCollisionError) as excinfo:
            lower(document, options, template_engine)
        assert excinfo.value.exit_code == 3
        assert "things::get" in str(excinfo.value)

    def test_websocket_operation(self, options: GeneratorOptions, template_engine: RustTemplateEngine) -> None:
        document = minimal_document(
            paths={
                "/ws/executor/term": {
                    "get": {
                        "operationId": "create_executor_term",
                        "tags": ["executor"],
                        "x-dropshot-websocket": {},
                        "responses": {"default": {"description": "upgrade"}},
                    }
                }
            }
        )
        term = lower(document, options, template_engine)["create_executor_term"]
        assert term.websocket
        assert term.response_kind == ResponseKind.NONE
        assert "let (_upgraded, headers) = client" in term.example


class TestExamples:
    @pytest.fixture
    def functions(
        self, machine_api: dict[str, Any], options: GeneratorOptions, template_engine: RustTemplateEngine
    ) -> dict[str, FunctionDef]:
        return lower(machine_api, options, template_engine)

    def test_examples_are_deterministic(
        self, machine_api: dict[str, Any], options: GeneratorOptions, template_engine: RustTemplateEngine
    ) -> None:
        first = {name: function.example for name, function in lower(machine_api, options, template_engine).items()}
        second = {name: function.example for name, function in lower(machine_api, options, template_engine).items()}
        assert first == second

    def test_example_uses_the_crate_name(self, functions: dict[str, FunctionDef]) -> None:
        example = functions["get_api_call"].example
        assert example.startswith("use std::str::FromStr;\nasync fn example_api_calls_get() -> anyhow::Result<()> {")
        assert "let client = kittycad::Client::new_from_env();" in example
        assert f'uuid::Uuid::from_str("{SAMPLE_UUID}")?' in example
        assert "let result: kittycad::types::ApiCallWithPrice = client" in example
        assert "crate::types::" not in example

    def test_stream_example(self, functions: dict[str, FunctionDef]) -> None:
        stream_docs = functions["list_api_calls"].stream_docs
        assert "use futures_util::TryStreamExt;" in stream_docs
        assert "let mut stream = api_calls.list_stream(" in stream_docs

    def test_multipart_example(self, functions: dict[str, FunctionDef]) -> None:
        example = functions["create_proprietary_to_kcl"].example
        assert "vec![kittycad::types::multipart::Attachment {" in example

    def test_json_examples(self, machine_api: dict[str, Any]) -> None:
        resolver = SchemaResolver(machine_api)
        examples = ExampleSynthesiser(resolver, TypeSpace())
        schema = {"$ref": "#/components/schemas/ApiCallWithPrice"}
        value = examples.example_json(schema)
        assert value == examples.example_json(schema)
        assert value["id"] == SAMPLE_UUID
        assert value["created_at"] == "2021-01-01T00:00:00Z"
        assert value["minutes"] == 4
        assert value["status"] in ["Completed", "Failed", "In Progress", "Queued", "Uploaded"]
        assert value["labels"] == {"some-key": value["labels"]["some-key"]}

    def test_json_example_of_a_recursive_schema(self) -> None:
        document = minimal_document(
            {"Node": {"type": "object", "properties": {"next": {"$ref": "#/components/schemas/Node"}}}}
        )
        examples = ExampleSynthesiser(SchemaResolver(document), TypeSpace())
        assert examples.example_json({"$ref": "#/components/schemas/Node"}) == {"next": None}
