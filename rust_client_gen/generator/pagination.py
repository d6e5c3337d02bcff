"""
Pagination inference.

A GET operation is paginated when its response object carries a page of
items plus a token for the next page, and the request accepts that token
as a query parameter. Paginated responses get an ``impl Pagination`` and
their operations an extra ``<fn>_stream`` method.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from rust_client_gen.generator.rust_types import is_option, strip_option, vec_item
from rust_client_gen.generator.type_space import FieldDef, StructDef, TypeSpace

if TYPE_CHECKING:
    from rust_client_gen.generator.template_engine import RustTemplateEngine

ITEMS_FIELDS: Final = ("items", "data")
NEXT_PAGE_FIELDS: Final = ("next_page", "next")
PAGE_PARAMETERS: Final = ("page_token", "page")


@dataclass
class PaginationShape:
    """What a response type and an operation offer for pagination."""

    response_type: str | None = None
    items_field: FieldDef | None = None
    item_type: str | None = None
    next_page_field: FieldDef | None = None
    page_parameter: str | None = None
    page_parameter_type: str | None = None

    @property
    def paginatable(self) -> bool:
        return self.items_field is not None and self.next_page_field is not None

    @property
    def next_page_token_expr(self) -> str:
        """Rust expression turning the next-page field into ``Option<String>``."""
        assert self.next_page_field is not None
        ident = self.next_page_field.ident
        rust_type = self.next_page_field.rust_type
        if rust_type == "Option<String>":
            return f"self.{ident}.clone()"
        if is_option(rust_type):
            return f"self.{ident}.as_ref().map(|token| token.to_string())"
        if rust_type == "String":
            return f"Some(self.{ident}.clone())"
        return f"Some(self.{ident}.to_string())"

    @property
    def items_expr(self) -> str:
        assert self.items_field is not None
        ident = self.items_field.ident
        if is_option(self.items_field.rust_type):
            return f"self.{ident}.clone().unwrap_or_default()"
        return f"self.{ident}.clone()"


class PaginationAnalyser:
    """Detect paginated operations and render their Pagination impls."""

    def __init__(self, type_space: TypeSpace, template_engine: RustTemplateEngine) -> None:
        self.type_space = type_space
        self.template_engine = template_engine

    def response_shape(self, response_type: str) -> PaginationShape:
        """Inspect a response type for an items field and a next-page field."""
        shape = PaginationShape(response_type=response_type)
        entry = self.type_space.entries.get(response_type)
        if entry is None or not isinstance(entry.definition, StructDef):
            return shape

        fields = {field.json_name: field for field in entry.definition.fields}
        for name in ITEMS_FIELDS:
            field = fields.get(name)
            item_type = vec_item(strip_option(field.rust_type)) if field else None
            if field is not None and item_type is not None:
                shape.items_field = field
                shape.item_type = item_type
                break
        for name in NEXT_PAGE_FIELDS:
            if name in fields:
                shape.next_page_field = fields[name]
                break
        return shape

    def analyse(self, method: str, response_type: str | None, query_parameters: dict[str, str]) -> PaginationShape | None:
        """Return the pagination shape of an operation, or None if it does not paginate.

        Args:
            method: The upper-case HTTP method.
            response_type: The unqualified Rust response type.
            query_parameters: Query parameter names mapped to their Rust types.
        """
        if method != "GET" or response_type is None:
            return None
        shape = self.response_shape(response_type)
        if not shape.paginatable:
            return None
        for name in PAGE_PARAMETERS:
            if name in query_parameters:
                shape.page_parameter = name
                shape.page_parameter_type = query_parameters[name]
                break
        else:
            return None

        self._register(shape)
        return shape

    def _register(self, shape: PaginationShape) -> None:
        assert shape.response_type is not None
        if shape.response_type in self.type_space.pagination_impls:
            return
        self.type_space.pagination_impls[shape.response_type] = self.template_engine.render_template(
            "models/pagination.rs.j2", {"shape": shape}
        )
