"""
OpenAPI document model for Rust client generation.

This module walks the ``paths`` of an OpenAPI 3.x document and extracts the
operations, parameters, request bodies and responses the generator lowers
into Rust functions. Schemas are kept as raw dictionaries; they are lowered
later through the :class:`~rust_client_gen.parser.resolver.SchemaResolver`.
"""

from dataclasses import dataclass, field
from typing import Any, Final

from rust_client_gen.errors import MalformedDocumentError
from rust_client_gen.gen_logging import get_logger
from rust_client_gen.generator.naming import clean_property_name, clean_tag_name, operation_fn_name
from rust_client_gen.parser.resolver import SchemaResolver

logger = get_logger(__name__)

# HTTP methods supported by OpenAPI, in the order operations are emitted
_HTTP_METHODS: Final = ("get", "put", "post", "delete", "options", "head", "patch", "trace")

# Extension marking an operation as a websocket upgrade, usually with an empty object value
WEBSOCKET_EXTENSION: Final = "x-dropshot-websocket"

DEFAULT_TAG: Final = "default"

MULTIPART_MEDIA_TYPE: Final = "multipart/form-data"


@dataclass
class Parameter:
    """Represents an OpenAPI parameter."""

    name: str
    location: str
    schema: Any
    required: bool
    description: str | None = None
    deprecated: bool = False
    rust_name: str = field(init=False)

    def __post_init__(self) -> None:
        self.rust_name = clean_property_name(self.name)


@dataclass
class RequestBody:
    """The selected media type of an operation's request body."""

    media_type: str
    schema: Any | None
    required: bool = True
    description: str | None = None

    @property
    def is_multipart(self) -> bool:
        return self.media_type == MULTIPART_MEDIA_TYPE


@dataclass
class Response:
    """Represents an OpenAPI response."""

    status_code: str
    description: str
    content: dict[str, Any | None] = field(default_factory=dict)

    @property
    def is_success(self) -> bool:
        return self.status_code.startswith("2")


@dataclass
class Operation:
    """Represents an OpenAPI operation."""

    operation_id: str
    method: str
    path: str
    tag: str
    summary: str | None
    description: str | None
    parameters: list[Parameter]
    request_body: RequestBody | None
    responses: dict[str, Response]
    deprecated: bool = False
    websocket: bool = False
    external_docs: dict[str, Any] | None = None
    fn_name: str = field(init=False)

    def __post_init__(self) -> None:
        self.fn_name = operation_fn_name(self.operation_id, self.tag)

    @property
    def path_parameters(self) -> list[Parameter]:
        """Path parameters in the order they appear in the path template."""
        params = [p for p in self.parameters if p.location == "path"]
        return sorted(params, key=lambda p: self._placeholder_position(p.name))

    @property
    def query_parameters(self) -> list[Parameter]:
        return [p for p in self.parameters if p.location == "query"]

    @property
    def success_response(self) -> Response | None:
        """The first 2xx response, in status code order."""
        successes = sorted((r for r in self.responses.values() if r.is_success), key=lambda r: r.status_code)
        return successes[0] if successes else None

    def _placeholder_position(self, name: str) -> int:
        position = self.path.find(f"{{{name}}}")
        return position if position >= 0 else len(self.path)


@dataclass
class TagInfo:
    """A tag that groups at least one operation."""

    name: str
    module: str
    description: str | None = None
    external_docs_url: str | None = None


@dataclass
class ParsedDocument:
    """Represents a parsed OpenAPI document."""

    info: dict[str, Any]
    operations: list[Operation]
    tags: list[TagInfo]
    schemas: dict[str, Any]
    external_docs_url: str | None = None


class DocumentParser:
    """Parser for the operations of an OpenAPI 3.x document."""

    def __init__(self, resolver: SchemaResolver) -> None:
        self.resolver = resolver

    def parse(self) -> ParsedDocument:
        """Parse the document the resolver was built from.

        Raises:
            MalformedDocumentError: If an operation has no ``operationId``.
        """
        document = self.resolver.document
        operations = self._parse_operations(document.get("paths", {}))
        return ParsedDocument(
            info=document.get("info", {}),
            operations=operations,
            tags=self._collect_tags(document.get("tags", []), operations),
            schemas=self.resolver.schemas,
            external_docs_url=(document.get("externalDocs") or {}).get("url"),
        )

    def _parse_operations(self, paths: dict[str, Any]) -> list[Operation]:
        operations: list[Operation] = []
        for path, path_item in paths.items():
            path_item = self.resolver.deref(path_item, location=path)
            if not isinstance(path_item, dict):
                raise MalformedDocumentError(f"path item `{path}` is not an object")
            shared = path_item.get("parameters", [])
            for method in _HTTP_METHODS:
                if method in path_item:
                    operations.append(self._parse_operation(path, method, path_item[method], shared))
        return operations

    def _parse_operation(
        self,
        path: str,
        method: str,
        operation_data: dict[str, Any],
        shared_parameters: list[Any],
    ) -> Operation:
        """Parse a single operation."""
        location = f"{method.upper()} {path}"
        operation_id = operation_data.get("operationId")
        if not operation_id:
            raise MalformedDocumentError(f"operation {location} has no operationId")

        tags = operation_data.get("tags") or [DEFAULT_TAG]
        operation = Operation(
            operation_id=operation_id,
            method=method.upper(),
            path=path,
            tag=tags[0],
            summary=operation_data.get("summary"),
            description=operation_data.get("description"),
            parameters=self._parse_parameters(shared_parameters, operation_data.get("parameters", []), location),
            request_body=self._parse_request_body(operation_data.get("requestBody"), location),
            responses=self._parse_responses(operation_data.get("responses", {}), location),
            deprecated=bool(operation_data.get("deprecated", False)),
            websocket=operation_data.get(WEBSOCKET_EXTENSION, False) is not False,
            external_docs=operation_data.get("externalDocs"),
        )
        logger.debug(f"  {location} -> {clean_tag_name(operation.tag)}::{operation.fn_name}")
        return operation

    def _parse_parameters(self, shared: list[Any], own: list[Any], location: str) -> list[Parameter]:
        """Merge path-item and operation parameters, the operation winning on (name, in)."""
        merged: dict[tuple[str, str], Parameter] = {}
        for raw in [*shared, *own]:
            data = self.resolver.deref(raw, location)
            if not isinstance(data, dict) or "name" not in data or "in" not in data:
                raise MalformedDocumentError(f"invalid parameter in {location}")
            param_location = data["in"]
            merged[(data["name"], param_location)] = Parameter(
                name=data["name"],
                location=param_location,
                schema=self._parameter_schema(data),
                required=bool(data.get("required", param_location == "path")),
                description=data.get("description"),
                deprecated=bool(data.get("deprecated", False)),
            )
        return list(merged.values())

    @staticmethod
    def _parameter_schema(data: dict[str, Any]) -> Any:
        if "schema" in data:
            return data["schema"]
        # Parameters may carry their schema in a single-entry content map
        for media in (data.get("content") or {}).values():
            if isinstance(media, dict) and "schema" in media:
                return media["schema"]
        return {"type": "string"}

    def _parse_request_body(self, raw: Any, location: str) -> RequestBody | None:
        if raw is None:
            return None
        data = self.resolver.deref(raw, location)
        content = data.get("content") or {}
        for media_type, media in content.items():
            schema = (media or {}).get("schema")
            if schema is not None or media_type == MULTIPART_MEDIA_TYPE:
                return RequestBody(
                    media_type=media_type,
                    schema=schema,
                    required=bool(data.get("required", False)),
                    description=data.get("description"),
                )
        return None

    def _parse_responses(self, raw: dict[str, Any], location: str) -> dict[str, Response]:
        responses: dict[str, Response] = {}
        for status_code, response_data in raw.items():
            data = self.resolver.deref(response_data, location)
            content = {
                media_type: (media or {}).get("schema") for media_type, media in (data.get("content") or {}).items()
            }
            responses[str(status_code)] = Response(
                status_code=str(status_code),
                description=data.get("description", ""),
                content=content,
            )
        return responses

    @staticmethod
    def _collect_tags(declared: list[dict[str, Any]], operations: list[Operation]) -> list[TagInfo]:
        """Union of declared tags and tags used by operations, keeping only used ones."""
        used = {operation.tag for operation in operations}
        tags: dict[str, TagInfo] = {}
        for tag in declared:
            name = tag.get("name")
            if name in used and name not in tags:
                tags[name] = TagInfo(
                    name=name,
                    module=clean_tag_name(name),
                    description=tag.get("description"),
                    external_docs_url=(tag.get("externalDocs") or {}).get("url"),
                )
        for operation in operations:
            if operation.tag not in tags:
                tags[operation.tag] = TagInfo(name=operation.tag, module=clean_tag_name(operation.tag))
        return sorted(tags.values(), key=lambda tag: tag.module)
