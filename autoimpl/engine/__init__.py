"""Interface flattening and implementation synthesis."""

from autoimpl.engine.diagnostics import INDEXER_INFO, Diagnostic, Severity
from autoimpl.engine.flattener import (
    ConstructedInterface,
    FlattenedMembers,
    MemberCategory,
    flatten,
    flatten_all,
    interface_identity,
    member_identity,
)
from autoimpl.engine.options import (
    GenerationOptions,
    RenderStyle,
    default_type_name,
    find_marker_attribute,
    parse_options,
)
from autoimpl.engine.references import resolve_imports, resolve_namespace_imports
from autoimpl.engine.synthesizer import synthesize
from autoimpl.engine.type_renderer import is_builtin, render_type

__all__ = [
    # Flattening
    "ConstructedInterface",
    "FlattenedMembers",
    "MemberCategory",
    "flatten",
    "flatten_all",
    "interface_identity",
    "member_identity",
    # Imports and rendering
    "resolve_imports",
    "resolve_namespace_imports",
    "render_type",
    "is_builtin",
    # Options
    "GenerationOptions",
    "RenderStyle",
    "default_type_name",
    "find_marker_attribute",
    "parse_options",
    # Synthesis
    "synthesize",
    "Diagnostic",
    "Severity",
    "INDEXER_INFO",
]
