"""
Rust Template Engine for OpenAPI Client Generation

This module uses Jinja2 templates to generate a Rust API client crate
from an OpenAPI 3.x document: the type lowering, operation lowering and
client boilerplate are wired together here and rendered into files.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape

from rust_client_gen.config import GeneratorOptions
from rust_client_gen.gen_logging import get_logger
from rust_client_gen.generator.client import ClientBoilerplate
from rust_client_gen.generator.examples import ExampleSynthesiser
from rust_client_gen.generator.filters import FILTERS
from rust_client_gen.generator.naming import proper_name
from rust_client_gen.generator.operations import FunctionDef, OperationLowerer
from rust_client_gen.generator.pagination import PaginationAnalyser
from rust_client_gen.generator.renderer import TypeRenderer
from rust_client_gen.generator.rust_types import SUPPORT_MODULES, is_option
from rust_client_gen.generator.spec_patch import annotate_document, document_patch
from rust_client_gen.generator.type_space import TypeSpace
from rust_client_gen.parser.document import DocumentParser, ParsedDocument
from rust_client_gen.parser.resolver import SchemaResolver

logger = get_logger(__name__)


class RustTemplateEngine:
    """Template engine for generating Rust code."""

    def __init__(self, template_dir: Path | None = None) -> None:
        """Initialize the template engine."""
        if template_dir is None:
            current_dir = Path(__file__).parent
            template_dir = current_dir.parent / "templates"

        self.template_dir = Path(template_dir)
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape(["html", "xml"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )

        self._register_filters()
        self._register_globals()

    def _register_filters(self) -> None:
        """Register custom Jinja2 filters for Rust code generation."""
        self.env.filters.update(FILTERS)
        self.env.filters["proper_name"] = proper_name

    def _register_globals(self) -> None:
        """Register global functions available in templates."""
        globals_map: dict[str, Any] = {
            "is_option": is_option,
        }
        self.env.globals.update(globals_map)

    def render_template(self, template_name: str, context: dict[str, Any]) -> str:
        """Render a template with the given context."""
        template = self.env.get_template(template_name)
        return template.render(**context)

    def support_module(self, name: str) -> str:
        """Return the Rust source of a support module shipped with the templates."""
        return (self.template_dir / "support" / f"{name}.rs").read_text(encoding="utf-8")


class RustCodeGenerator:
    """Main code generator for Rust clients."""

    def __init__(self, template_engine: RustTemplateEngine | None = None) -> None:
        """Initialize the code generator."""
        self.template_engine = template_engine or RustTemplateEngine()

    def generate_client(
        self,
        document: dict[str, Any],
        output_dir: Path,
        options: GeneratorOptions,
    ) -> dict[Path, str]:
        """Generate a complete Rust client crate from an OpenAPI document.

        Args:
            document: The loaded and validated OpenAPI document.
            output_dir: The crate root the returned paths are relative to.
            options: Generator options.

        Returns:
            File paths mapped to their content.

        Raises:
            GeneratorError: On any lowering failure. Nothing is returned partially.
        """
        output_dir = Path(output_dir)
        resolver = SchemaResolver(document)
        parsed = DocumentParser(resolver).parse()
        logger.info(f"Parsed {len(parsed.operations)} operations in {len(parsed.tags)} tags")

        type_space = TypeSpace()
        renderer = TypeRenderer(
            resolver,
            type_space,
            self.template_engine,
            tag_display_names=options.tag_display_names,
            date_time_format=options.date_time_format,
        )
        renderer.render_components()

        client = ClientBoilerplate(options, self.template_engine)
        lowerer = OperationLowerer(
            renderer,
            PaginationAnalyser(type_space, self.template_engine),
            ExampleSynthesiser(resolver, type_space),
            options,
            client.auth_statement,
        )
        functions = lowerer.lower_all(parsed.operations, parsed.tags)
        logger.info(f"Rendered {len(type_space.rendered())} types")

        context = {
            "options": options,
            "info": parsed.info,
            "document": parsed,
            "crate_docs": client.render_crate_docs(parsed.info, parsed.tags),
            "output_path": "" if str(output_dir) == "." else output_dir.as_posix(),
        }

        files: dict[Path, str] = {}
        files.update(self._generate_project_files(context, output_dir))
        files.update(self._generate_base_files(context, client, parsed, output_dir))
        files.update(self._generate_model_files(type_space, output_dir))
        files.update(self._generate_api_files(functions, parsed, context, output_dir))

        all_functions = [function for group in functions.values() for function in group]
        annotated = annotate_document(document, all_functions, client.install_snippet(), client.example_client())
        files[output_dir / f"{options.name}.rs.patch.json"] = document_patch(document, annotated)
        return files

    def _generate_project_files(self, context: dict[str, Any], output_dir: Path) -> dict[Path, str]:
        """Generate project configuration files."""
        return {
            output_dir / "Cargo.toml": self.template_engine.render_template("base/Cargo.toml.j2", context),
            output_dir / "README.md": self.template_engine.render_template("base/README.md.j2", context),
        }

    def _generate_base_files(
        self,
        context: dict[str, Any],
        client: ClientBoilerplate,
        parsed: ParsedDocument,
        output_dir: Path,
    ) -> dict[Path, str]:
        """Generate lib.rs and, when a date-time format is configured, utils.rs."""
        src_dir = output_dir / "src"
        lib_context = {
            **context,
            "tags": [{"tag": tag, "struct_name": proper_name(tag.module)} for tag in parsed.tags],
            "client": client.render_client(parsed.info, parsed.tags),
        }
        files = {src_dir / "lib.rs": self.template_engine.render_template("base/lib.rs.j2", lib_context)}
        if context["options"].date_time_format:
            files[src_dir / "utils.rs"] = self.template_engine.render_template("base/utils.rs.j2", context)
        return files

    def _generate_model_files(self, type_space: TypeSpace, output_dir: Path) -> dict[Path, str]:
        """Generate types.rs: support modules, generated types and Pagination impls."""
        types_context = {
            "support_modules": [
                {"name": name, "source": self.template_engine.support_module(name)} for name in SUPPORT_MODULES
            ],
            "entries": type_space.rendered(),
            "pagination_impls": [type_space.pagination_impls[name] for name in sorted(type_space.pagination_impls)],
        }
        return {output_dir / "src" / "types.rs": self.template_engine.render_template("models/types.rs.j2", types_context)}

    def _generate_api_files(
        self,
        functions: dict[str, list[FunctionDef]],
        parsed: ParsedDocument,
        context: dict[str, Any],
        output_dir: Path,
    ) -> dict[Path, str]:
        """Generate one module per tag."""
        files = {}
        src_dir = output_dir / "src"
        for tag in parsed.tags:
            tag_context = {
                **context,
                "tag": tag,
                "struct_name": proper_name(tag.module),
                "functions": functions[tag.module],
            }
            files[src_dir / f"{tag.module}.rs"] = self.template_engine.render_template("apis/tag.rs.j2", tag_context)
        return files
