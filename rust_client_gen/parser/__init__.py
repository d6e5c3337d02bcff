"""
OpenAPI Parser Module for Rust Client Generation

This module loads OpenAPI documents, resolves their schema references and
extracts the operations and tags the generator works from.
"""

from .document import DocumentParser, Operation, Parameter, ParsedDocument, RequestBody, Response, TagInfo
from .loader import load_document
from .resolver import ResolvedSchema, SchemaKind, SchemaResolver

__all__ = [
    "DocumentParser",
    "Operation",
    "Parameter",
    "ParsedDocument",
    "RequestBody",
    "ResolvedSchema",
    "Response",
    "SchemaKind",
    "SchemaResolver",
    "TagInfo",
    "load_document",
]
