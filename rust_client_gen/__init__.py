"""
Rust OpenAPI Client Generator

A Jinja2-based generator that produces typed async Rust API clients from
OpenAPI 3.x documents.
"""

from .config import GeneratorOptions
from .generator import RustCodeGenerator, RustTemplateEngine
from .parser import DocumentParser, ParsedDocument, SchemaResolver, load_document

__version__ = "1.0.0"

__all__ = [
    "DocumentParser",
    "GeneratorOptions",
    "ParsedDocument",
    "RustCodeGenerator",
    "RustTemplateEngine",
    "SchemaResolver",
    "load_document",
]
