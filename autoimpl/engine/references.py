"""Compute the using directives a generated implementation needs."""

import logging
import re
from collections.abc import Iterable, Iterator

from autoimpl.engine.flattener import FlattenedMembers, flatten_all
from autoimpl.engine.type_renderer import CORE_NAMESPACE
from autoimpl.models import Event, InterfaceDecl, Method, Property, TypeRef

logger = logging.getLogger(__name__)

USING_STATIC_PATTERN = re.compile(r"^\s*(?:global\s+)?using\s+static\s")


def member_types(flattened: FlattenedMembers) -> Iterator[TypeRef]:
    """Yield every top-level type mentioned by a member signature."""
    for member in flattened.all_members():
        if isinstance(member, Property):
            yield member.type
            for parameter in member.parameters:
                yield parameter.type
        elif isinstance(member, Method):
            yield member.return_type
            for parameter in member.parameters:
                yield parameter.type
        elif isinstance(member, Event):
            yield member.type


def namespaces_of(types: Iterable[TypeRef]) -> set[str]:
    """Namespaces needed to name the given types and everything nested in them."""
    namespaces = set()
    for type_ref in types:
        for nested in type_ref.walk():
            if nested.is_array or nested.is_type_parameter:
                continue
            if not nested.namespace or nested.namespace == CORE_NAMESPACE:
                continue
            namespaces.add(nested.namespace)
    return namespaces


def declared_usings(root: InterfaceDecl) -> set[str]:
    """Using directives written at the root's declaration site, minus ``using static``."""
    usings = set()
    for using in root.usings:
        if USING_STATIC_PATTERN.match(using):
            logger.debug(f"Dropping static import {using!r} from {root.name}")
            continue
        usings.add(" ".join(using.split()))
    return usings


def resolve_imports(
    root: InterfaceDecl, flattened: FlattenedMembers | None = None
) -> list[str]:
    """Resolve the sorted using directives for the implementation of root.

    Args:
        root: The annotated interface
        flattened: Its flattened members, computed when not given

    Returns:
        Unique ``using X;`` directives in lexicographic order
    """
    if flattened is None:
        flattened = flatten_all(root)

    usings = declared_usings(root)
    for namespace in namespaces_of(member_types(flattened)):
        usings.add(f"using {namespace};")

    imports = sorted(usings, key=lambda using: using.rstrip(";"))
    logger.debug(f"Resolved {len(imports)} imports for {root.name}")
    return imports


def resolve_namespace_imports(root: InterfaceDecl, imports: Iterable[str] = ()) -> list[str]:
    """Directives written inside the root's namespace block, minus ``using static``.

    They may name namespaces relative to the enclosing one, so they are
    emitted inside the generated namespace block. Directives already in
    ``imports`` are left out.
    """
    imported = set(imports)
    usings = set()
    for using in root.namespace_usings:
        if USING_STATIC_PATTERN.match(using):
            logger.debug(f"Dropping static import {using!r} from {root.name}")
            continue
        using = " ".join(using.split())
        if using not in imported:
            usings.add(using)
    return sorted(usings, key=lambda using: using.rstrip(";"))
