"""Shared fixtures for the generator test suite."""

import copy
import json
from pathlib import Path
from typing import Any

import pytest

from rust_client_gen.config import GeneratorOptions
from rust_client_gen.generator.renderer import TypeRenderer
from rust_client_gen.generator.template_engine import RustCodeGenerator, RustTemplateEngine
from rust_client_gen.generator.type_space import TypeSpace
from rust_client_gen.parser.resolver import SchemaResolver

FIXTURES_DIR = Path(__file__).parent / "fixtures"
OUTPUT_DIR = Path("out")


def minimal_document(schemas: dict[str, Any] | None = None, paths: dict[str, Any] | None = None) -> dict[str, Any]:
    """A valid document with the given schemas and a single trivial operation."""
    return {
        "openapi": "3.0.3",
        "info": {"title": "Test API", "version": "1.0.0"},
        "paths": paths
        or {
            "/ping": {
                "get": {
                    "operationId": "ping",
                    "responses": {"204": {"description": "ok"}},
                }
            }
        },
        "components": {"schemas": schemas or {}},
    }


@pytest.fixture(scope="session")
def template_engine() -> RustTemplateEngine:
    return RustTemplateEngine()


@pytest.fixture(scope="session")
def machine_api_path() -> Path:
    return FIXTURES_DIR / "machine_api.json"


@pytest.fixture
def machine_api(machine_api_path: Path) -> dict[str, Any]:
    """The machine API document, fresh for every test."""
    return json.loads(machine_api_path.read_text(encoding="utf-8"))


@pytest.fixture
def options() -> GeneratorOptions:
    return GeneratorOptions(name="kittycad", base_url="https://api.kittycad.io/", description="A fully generated client.")


@pytest.fixture
def generated(machine_api: dict[str, Any], options: GeneratorOptions, template_engine: RustTemplateEngine) -> dict[str, str]:
    """Files generated for the machine API, keyed by their posix path relative to the crate root."""
    original = copy.deepcopy(machine_api)
    files = RustCodeGenerator(template_engine).generate_client(machine_api, OUTPUT_DIR, options)
    assert machine_api == original, "generation must not mutate the input document"
    return {path.relative_to(OUTPUT_DIR).as_posix(): content for path, content in files.items()}


@pytest.fixture
def make_renderer(template_engine: RustTemplateEngine):
    """Build a renderer over a document made of the given component schemas."""

    def _make(schemas: dict[str, Any], **kwargs: Any) -> TypeRenderer:
        resolver = SchemaResolver(minimal_document(schemas))
        return TypeRenderer(resolver, TypeSpace(), template_engine, **kwargs)

    return _make
