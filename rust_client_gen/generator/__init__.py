"""
Rust Code Generator Module

This module provides Jinja2-based code generation for Rust API clients
from OpenAPI specifications.
"""

from .template_engine import RustCodeGenerator, RustTemplateEngine

__all__ = [
    "RustCodeGenerator",
    "RustTemplateEngine",
]
