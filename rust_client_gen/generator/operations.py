"""
Lowering of OpenAPI operations into Rust client methods.

Each operation becomes a :class:`FunctionDef`: its argument list, the
request it builds, how the response is decoded, its documentation with a
synthesised example and, for paginated list endpoints, a ``_stream``
sibling. The definitions are rendered per tag by ``apis/tag.rs.j2``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Final

from rust_client_gen.config import AuthMode
from rust_client_gen.errors import NameCollisionError, UnsupportedMediaTypeError
from rust_client_gen.gen_logging import get_logger
from rust_client_gen.generator.filters import sanitize_doc
from rust_client_gen.generator.naming import proper_name
from rust_client_gen.generator.rust_types import (
    DISPLAY_PRIMITIVES,
    is_option,
    is_vec,
    strip_option,
)
from rust_client_gen.generator.type_space import NameHint, TypeKind
from rust_client_gen.parser.document import Operation, Parameter
from rust_client_gen.parser.resolver import SchemaKind

if TYPE_CHECKING:
    from rust_client_gen.config import GeneratorOptions
    from rust_client_gen.generator.examples import ExampleSynthesiser
    from rust_client_gen.generator.pagination import PaginationAnalyser, PaginationShape
    from rust_client_gen.generator.renderer import TypeRenderer
    from rust_client_gen.parser.document import TagInfo

logger = get_logger(__name__)

JSON_MEDIA_TYPES: Final = frozenset({"application/json", "application/scim+json", "application/vnd.github.v3.object"})
OCTET_STREAM_MEDIA_TYPE: Final = "application/octet-stream"
FORM_MEDIA_TYPE: Final = "application/x-www-form-urlencoded"

ATTACHMENTS_TYPE: Final = "Vec<crate::types::multipart::Attachment>"
PHONE_NUMBER_TYPE: Final = "phone_number::PhoneNumber"

EXAMPLE_ATTACHMENT: Final = """vec![crate::types::multipart::Attachment {
    name: "thing".to_string(),
    filename: Some("myfile.json".to_string()),
    content_type: Some("application/json".to_string()),
    data: std::fs::read("myfile.json").unwrap(),
}]"""

_TO_STRING: Final = ".to_string()"


class ArgumentKind(str, Enum):
    ATTACHMENTS = "attachments"
    PATH = "path"
    QUERY = "query"
    BODY = "body"


class BodyKind(str, Enum):
    JSON = "json"
    FORM = "form"
    BYTES = "bytes"
    TEXT = "text"
    MULTIPART = "multipart"


class ResponseKind(str, Enum):
    NONE = "none"
    JSON = "json"
    BYTES = "bytes"
    TEXT = "text"


@dataclass
class ArgumentDef:
    """One argument of a generated method.

    Attributes:
        ident: The Rust identifier.
        kind: Where the argument goes in the request.
        rust_type: The type in the method signature, crate-qualified.
        value_type: The unqualified declared type without ``Option``.
        schema: The schema the type was derived from.
        wire_name: The parameter name in the path template or query string.
        required: Whether the signature type is not an ``Option``.
    """

    ident: str
    kind: ArgumentKind
    rust_type: str
    value_type: str
    schema: Any = None
    wire_name: str = ""
    required: bool = True
    description: str | None = None

    @property
    def borrowed_str(self) -> bool:
        return self.rust_type == "&'a str"

    @property
    def is_phone(self) -> bool:
        return self.value_type == PHONE_NUMBER_TYPE

    def query_value(self, var: str) -> str:
        """Rust expression turning ``var`` (the argument or its unwrapped value) into a ``String``."""
        if is_vec(self.value_type):
            return f'{var}.iter().map(|item| item.to_string()).collect::<Vec<String>>().join(",")'
        if self.value_type == "String":
            return f"{var}.to_string()"
        return f'format!("{{}}", {var})'

    def path_value(self) -> str:
        """Rust expression substituted for the ``{name}`` placeholder."""
        if self.borrowed_str:
            return self.ident
        return f'&format!("{{}}", {self.ident})'


@dataclass
class RequestBodyDef:
    kind: BodyKind
    media_type: str
    argument: ArgumentDef | None = None


@dataclass
class FunctionDef:
    """A generated client method and everything needed to render it."""

    operation: Operation
    name: str
    tag_module: str
    method: str
    path: str
    arguments: list[ArgumentDef]
    response_type: str
    response_kind: ResponseKind
    body: RequestBodyDef | None = None
    pagination: PaginationShape | None = None
    auth: str = ""
    docs: str = ""
    stream_docs: str = ""
    example: str = ""
    lib_docs_link: str = ""
    stream_item_type: str | None = None

    @property
    def websocket(self) -> bool:
        return self.operation.websocket

    @property
    def path_arguments(self) -> list[ArgumentDef]:
        return [arg for arg in self.arguments if arg.kind == ArgumentKind.PATH]

    @property
    def query_arguments(self) -> list[ArgumentDef]:
        return [arg for arg in self.arguments if arg.kind == ArgumentKind.QUERY]

    @property
    def has_attachments(self) -> bool:
        return any(arg.kind == ArgumentKind.ATTACHMENTS for arg in self.arguments)

    @property
    def stream_arguments(self) -> list[ArgumentDef]:
        """Arguments of the ``_stream`` sibling: everything but the page token."""
        page = self.pagination.page_parameter if self.pagination else None
        return [arg for arg in self.arguments if not (arg.kind == ArgumentKind.QUERY and arg.wire_name == page)]

    @property
    def stream_call_arguments(self) -> list[str]:
        """Arguments the stream passes to the base method, ``None`` for the page token."""
        page = self.pagination.page_parameter if self.pagination else None
        values = []
        for arg in self.arguments:
            if arg.kind == ArgumentKind.QUERY and arg.wire_name == page:
                values.append("None")
            elif arg.rust_type.startswith("&"):
                values.append(arg.ident)
            else:
                values.append(f"{arg.ident}.clone()")
        return values

    @property
    def cloned_stream_arguments(self) -> list[ArgumentDef]:
        """Owned arguments that closures of the stream must clone per page."""
        return [arg for arg in self.stream_arguments if not arg.rust_type.startswith("&")]


class OperationLowerer:
    """Lower operations into FunctionDefs grouped by tag module."""

    def __init__(
        self,
        renderer: TypeRenderer,
        pagination: PaginationAnalyser,
        examples: ExampleSynthesiser,
        options: GeneratorOptions,
        auth_statement: str,
    ) -> None:
        self.renderer = renderer
        self.type_space = renderer.type_space
        self.pagination = pagination
        self.examples = examples
        self.options = options
        self.auth_statement = auth_statement

    def lower_all(self, operations: list[Operation], tags: list[TagInfo]) -> dict[str, list[FunctionDef]]:
        """Lower every operation, keyed by tag module in tag order.

        Raises:
            NameCollisionError: If two operations of a tag get the same method name.
        """
        modules = {tag.name: tag.module for tag in tags}
        functions: dict[str, list[FunctionDef]] = {tag.module: [] for tag in tags}
        # method name -> operation id, per module
        taken: dict[str, dict[str, str]] = {tag.module: {} for tag in tags}
        for operation in operations:
            module = modules[operation.tag]
            function = self.lower(operation, module)
            names = [function.name, f"{function.name}_stream"] if function.pagination else [function.name]
            for name in names:
                if name in taken[module]:
                    raise NameCollisionError(f"{module}::{name}", [taken[module][name], operation.operation_id])
                taken[module][name] = operation.operation_id
            functions[module].append(function)
        return functions

    def lower(self, operation: Operation, tag_module: str) -> FunctionDef:
        """Lower a single operation.

        Raises:
            UnsupportedMediaTypeError: If the request or response media type cannot be mapped.
        """
        arguments: list[ArgumentDef] = []
        body = self._request_body(operation)
        if body is not None and body.kind == BodyKind.MULTIPART:
            arguments.append(ArgumentDef("attachments", ArgumentKind.ATTACHMENTS, ATTACHMENTS_TYPE, ATTACHMENTS_TYPE))

        arguments.extend(self._parameter_argument(operation, param) for param in operation.path_parameters)
        query = [self._parameter_argument(operation, param) for param in operation.query_parameters]
        arguments.extend(sorted((arg for arg in query if arg.required), key=lambda arg: arg.ident))
        arguments.extend(sorted((arg for arg in query if not arg.required), key=lambda arg: arg.ident))
        if body is not None and body.argument is not None:
            arguments.append(body.argument)

        for param in operation.parameters:
            if param.location not in ("path", "query"):
                logger.warning(f"  ignoring {param.location} parameter `{param.name}` of {operation.operation_id}")

        response_kind, response_type = self._response(operation)
        function = FunctionDef(
            operation=operation,
            name=operation.fn_name,
            tag_module=tag_module,
            method=operation.method,
            path=operation.path.lstrip("/"),
            arguments=arguments,
            response_type=self.type_space.qualify(response_type) if response_kind != ResponseKind.NONE else "()",
            response_kind=response_kind,
            body=body,
            auth=self.auth_statement,
        )

        if response_kind == ResponseKind.JSON and not operation.websocket:
            optional_query = {arg.wire_name: arg.value_type for arg in function.query_arguments if not arg.required}
            function.pagination = self.pagination.analyse(operation.method, response_type, optional_query)
            if function.pagination is not None:
                function.stream_item_type = self.type_space.qualify(function.pagination.item_type or "")

        self._document(function)
        logger.debug(f"  {tag_module}::{function.name}{' (+stream)' if function.pagination else ''}")
        return function

    # Arguments

    def _parameter_argument(self, operation: Operation, param: Parameter) -> ArgumentDef:
        hint = NameHint(f"{operation.operation_id} Parameter {param.name}", (operation.operation_id,))
        location = f"{operation.method} {operation.path} parameter {param.name}"
        declared = self.renderer.type_for(param.schema, hint, location)
        value_type = strip_option(declared)
        qualified = self.type_space.qualify(value_type)
        description = param.description or self.renderer.describe(param.schema)

        if param.location == "path":
            if value_type == "String":
                rust_type = "&'a str"
            elif self._by_value(value_type):
                rust_type = qualified
            else:
                rust_type = f"&'a {qualified}"
            return ArgumentDef(
                param.rust_name, ArgumentKind.PATH, rust_type, value_type, param.schema, param.name, True, description
            )

        required = param.required and not is_option(declared)
        if required:
            rust_type = "&'a str" if value_type == "String" else qualified
        else:
            rust_type = f"Option<{qualified}>"
        return ArgumentDef(
            param.rust_name, ArgumentKind.QUERY, rust_type, value_type, param.schema, param.name, required, description
        )

    def _by_value(self, value_type: str) -> bool:
        if value_type in DISPLAY_PRIMITIVES:
            return True
        entry = self.type_space.entries.get(value_type)
        return entry is not None and entry.kind == TypeKind.ENUM

    def _request_body(self, operation: Operation) -> RequestBodyDef | None:
        request_body = operation.request_body
        if request_body is None:
            return None

        media_type = request_body.media_type
        schema = request_body.schema
        hint = NameHint(f"{operation.operation_id} Request", (operation.operation_id,))
        location = f"{operation.method} {operation.path} request body"

        if request_body.is_multipart:
            if not self._typed_multipart(schema):
                return RequestBodyDef(BodyKind.MULTIPART, media_type)
            return RequestBodyDef(BodyKind.MULTIPART, media_type, self._body_argument(schema, hint, location))
        if media_type in JSON_MEDIA_TYPES or media_type.endswith("+json"):
            return RequestBodyDef(BodyKind.JSON, media_type, self._body_argument(schema, hint, location))
        if media_type == FORM_MEDIA_TYPE:
            return RequestBodyDef(BodyKind.FORM, media_type, self._body_argument(schema, hint, location))
        if media_type == OCTET_STREAM_MEDIA_TYPE:
            argument = ArgumentDef("body", ArgumentKind.BODY, "&bytes::Bytes", "bytes::Bytes", schema)
            return RequestBodyDef(BodyKind.BYTES, media_type, argument)
        if schema is not None and self.renderer.resolver.resolve(schema, location).kind == SchemaKind.STRING:
            argument = ArgumentDef("body", ArgumentKind.BODY, "&String", "String", schema)
            return RequestBodyDef(BodyKind.TEXT, media_type, argument)
        raise UnsupportedMediaTypeError(operation.operation_id, media_type, request=True)

    def _body_argument(self, schema: Any, hint: NameHint, location: str) -> ArgumentDef:
        value_type = strip_option(self.renderer.type_for(schema or {}, hint, location))
        return ArgumentDef("body", ArgumentKind.BODY, f"&{self.type_space.qualify(value_type)}", value_type, schema)

    def _typed_multipart(self, schema: Any) -> bool:
        """Whether a multipart body carries a JSON part besides the attachments."""
        if schema is None:
            return False
        resolved = self.renderer.resolver.resolve(schema)
        if self._binary(resolved.schema):
            return False
        properties = resolved.schema.get("properties") or {}
        if resolved.kind == SchemaKind.OBJECT and properties:
            return not all(self._binary(self.renderer.resolver.resolve(prop).schema) for prop in properties.values())
        return resolved.kind != SchemaKind.OBJECT

    def _binary(self, schema: dict[str, Any]) -> bool:
        if schema.get("format") == "binary":
            return True
        items = schema.get("items")
        return schema.get("type") == "array" and items is not None and self._binary(self.renderer.resolver.resolve(items).schema)

    # Response

    def _response(self, operation: Operation) -> tuple[ResponseKind, str]:
        response = operation.success_response
        if operation.websocket or response is None or not response.content:
            return ResponseKind.NONE, "()"

        media_type, schema = next(iter(response.content.items()))
        location = f"{operation.method} {operation.path} response {response.status_code}"
        if media_type in JSON_MEDIA_TYPES or media_type.endswith("+json"):
            if schema is None:
                return ResponseKind.JSON, "serde_json::Value"
            hint = NameHint(f"{operation.operation_id} Response", (operation.operation_id,))
            return ResponseKind.JSON, self.renderer.type_for(schema, hint, location)
        if media_type == OCTET_STREAM_MEDIA_TYPE:
            return ResponseKind.BYTES, "bytes::Bytes"
        if schema is None and media_type.startswith("text/"):
            return ResponseKind.TEXT, "String"
        if schema is not None and self.renderer.resolver.resolve(schema, location).kind == SchemaKind.STRING:
            return ResponseKind.TEXT, "String"
        raise UnsupportedMediaTypeError(operation.operation_id, media_type, request=False)

    # Documentation

    def _document(self, function: FunctionDef) -> None:
        docs = self._docs(function)
        example = self._example(function)
        function.example = self._external(example)
        function.docs = f"{docs}\n\n```rust,no_run\n{function.example}\n```"
        if function.pagination is not None:
            stream_example = self._external(self._example(function, stream=True))
            function.stream_docs = f"{docs}\n\n```rust,no_run\n{stream_example}\n```"

        module = function.tag_module
        function.lib_docs_link = (
            f"https://docs.rs/{self.options.package_name}/latest/{self.options.code_package_name}/"
            f"{module}/struct.{proper_name(module)}.html#method.{function.name}"
        )

    @staticmethod
    def _docs(function: FunctionDef) -> str:
        operation = function.operation
        docs = operation.summary or f"Perform a `{operation.method}` request to `{operation.path}`."
        description = sanitize_doc(operation.description)
        if description:
            docs = f"{docs}\n\n{description}"

        parameters = function.path_arguments + function.query_arguments
        if parameters:
            lines = []
            for arg in parameters:
                line = f"- `{arg.ident}: {arg.rust_type}`"
                if arg.description:
                    line = f"{line}: {sanitize_doc(arg.description)}"
                if arg.required:
                    line = f"{line} (required)"
                lines.append(line)
            docs = f"{docs}\n\n**Parameters:**\n\n" + "\n".join(lines)

        if operation.deprecated:
            docs = f"{docs}\n\n**NOTE:** This operation is marked as deprecated."

        external = operation.external_docs or {}
        if external.get("url"):
            target = f"{external['url']}|{external['description']}" if external.get("description") else external["url"]
            docs = f"{docs}\n\nSee <{target}> for more information."
        return docs

    def _example_argument(self, arg: ArgumentDef) -> str:
        if arg.kind == ArgumentKind.ATTACHMENTS:
            return EXAMPLE_ATTACHMENT
        if arg.borrowed_str:
            return self.examples.example_rust(arg.schema, "String").removesuffix(_TO_STRING)
        if not arg.required:
            return self.examples.example_rust(arg.schema, f"Option<{arg.value_type}>")
        value = self.examples.example_rust(arg.schema, arg.value_type)
        return f"&{value}" if arg.rust_type.startswith("&") else value

    def _example(self, function: FunctionDef, *, stream: bool = False) -> str:
        crate = self.options.code_package_name
        module = function.tag_module
        arguments = function.stream_arguments if stream else function.arguments
        values = [self._example_argument(arg) for arg in arguments]
        fn_name = f"{function.name}_stream" if stream else function.name

        if stream:
            body = (
                f"    let mut {module} = client.{module}();\n"
                f"    let mut stream = {module}.{fn_name}({self._call_arguments(values, 4)});\n"
                "    loop {\n"
                "        match stream.try_next().await {\n"
                "            Ok(Some(item)) => {\n"
                '                println!("{:?}", item);\n'
                "            }\n"
                "            Ok(None) => {\n"
                "                break;\n"
                "            }\n"
                "            Err(err) => {\n"
                "                return Err(err.into());\n"
                "            }\n"
                "        }\n"
                "    }\n\n"
                "    Ok(())\n"
            )
        else:
            call = f"client\n        .{module}()\n        .{fn_name}({self._call_arguments(values, 8)})\n        .await?;\n"
            if function.websocket:
                body = f"    let (_upgraded, headers) = {call}    println!(\"{{:?}}\", headers);\n    Ok(())\n"
            elif function.response_kind == ResponseKind.NONE:
                body = f"    {call}    Ok(())\n"
            else:
                body = f"    let result: {function.response_type} = {call}    println!(\"{{:?}}\", result);\n    Ok(())\n"

        suffix = "_stream" if stream else ""
        code = (
            f"async fn example_{module}_{function.name}{suffix}() -> anyhow::Result<()> {{\n"
            f"    let client = {crate}::Client::new_from_env({self._from_env_arguments()});\n"
            f"{body}}}"
        )
        imports = []
        if stream:
            imports.append("use futures_util::TryStreamExt;")
        if "::from_str(" in code:
            imports.append("use std::str::FromStr;")
        return "\n".join([*imports, code])

    def _from_env_arguments(self) -> str:
        if self.options.auth_mode == AuthMode.OAUTH2:
            return 'String::from("token"), String::from("refresh-token")'
        return ""

    @staticmethod
    def _call_arguments(values: list[str], indent: int) -> str:
        if not values:
            return ""
        pad = " " * indent
        inner = f"{pad}    "
        lines = []
        for value in values:
            indented = value.replace("\n", f"\n{inner}")
            lines.append(f"\n{inner}{indented},")
        return "".join(lines) + f"\n{pad}"

    def _external(self, code: str) -> str:
        """Rewrite crate-internal paths as seen from a dependent crate."""
        return code.replace("crate::types::", f"{self.options.code_package_name}::types::")

