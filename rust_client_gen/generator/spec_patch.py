"""
The annotated document and its JSON patch.

Each operation of a copy of the input document receives an ``x-rust``
extension with its usage example and a link to its rendered docs; the
``info`` object receives install and client snippets. The difference to the
input is written next to the crate as an RFC 6902 patch.
"""

from __future__ import annotations

import copy
import json
from typing import Any, Final

import jsonpatch

from rust_client_gen.generator.operations import FunctionDef

RUST_EXTENSION: Final = "x-rust"


def annotate_document(
    document: dict[str, Any],
    functions: list[FunctionDef],
    install: str,
    client: str,
) -> dict[str, Any]:
    """Return a deep copy of the document with ``x-rust`` extensions added.

    Args:
        document: The input document, left untouched.
        functions: Lowered functions, each knowing its path and method.
        install: The Cargo.toml dependency snippet.
        client: The client construction snippet.
    """
    annotated = copy.deepcopy(document)
    annotated.setdefault("info", {})[RUST_EXTENSION] = {"install": install, "client": client}

    paths = annotated.get("paths", {})
    for function in functions:
        operation = function.operation
        path_item = paths.get(operation.path)
        if not isinstance(path_item, dict):
            continue
        target = path_item.get(operation.method.lower())
        if isinstance(target, dict):
            target[RUST_EXTENSION] = {"example": function.example, "libDocsLink": function.lib_docs_link}
    return annotated


def document_patch(original: dict[str, Any], annotated: dict[str, Any]) -> str:
    """Serialise the RFC 6902 patch turning ``original`` into ``annotated``."""
    patch = jsonpatch.make_patch(original, annotated)
    return json.dumps(patch.patch, indent=2) + "\n"
