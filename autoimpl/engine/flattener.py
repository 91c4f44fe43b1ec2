"""Collect every member visible through an interface inheritance graph."""

import logging
import re
from collections.abc import Callable, Hashable, Iterator
from dataclasses import dataclass, field, replace
from enum import Enum

from autoimpl.engine.type_renderer import render_type
from autoimpl.models import (
    BaseInterface,
    Event,
    InterfaceDecl,
    Member,
    Method,
    Parameter,
    Property,
    TypeRef,
)

logger = logging.getLogger(__name__)


class MemberCategory(Enum):
    PROPERTIES = Property
    METHODS = Method
    EVENTS = Event


@dataclass
class FlattenedMembers:
    """All members of a root interface, split by category."""

    properties: list[Property] = field(default_factory=list)
    methods: list[Method] = field(default_factory=list)
    events: list[Event] = field(default_factory=list)

    @property
    def data_properties(self) -> list[Property]:
        return [p for p in self.properties if not p.is_indexer]

    @property
    def indexers(self) -> list[Property]:
        return [p for p in self.properties if p.is_indexer]

    def all_members(self) -> list[Member]:
        return [*self.properties, *self.methods, *self.events]


def interface_identity(decl: InterfaceDecl) -> Hashable:
    """Identity of an interface for the visited set.

    Named interfaces are identified by their qualified name so that two
    handles to the same declaration collapse; anonymous ones by object.
    """
    return decl.full_name or id(decl)


def member_identity(member: Member) -> Hashable:
    """Identity of a declared member: where it is declared and its signature."""
    if isinstance(member, Property):
        signature = tuple(_type_key(p.type) for p in member.parameters)
        return ("property", _declared_in(member), member.name, signature)
    if isinstance(member, Method):
        signature = tuple(
            (p.ref_kind.value, _type_key(p.type)) for p in member.parameters
        )
        return (
            "method",
            _declared_in(member),
            member.name,
            len(member.type_parameters),
            signature,
        )
    return ("event", _declared_in(member), member.name)


def _declared_in(member: Member) -> Hashable:
    # Hand-built members without a declaring type are only equal to themselves
    return member.declaring_type or id(member)


def _type_key(type_ref) -> str:
    if type_ref.is_array:
        return f"{_type_key(type_ref.element_type)}[{',' * (type_ref.array_rank - 1)}]"
    key = type_ref.full_name
    if type_ref.type_arguments:
        key += "<" + ",".join(_type_key(a) for a in type_ref.type_arguments) + ">"
    return key


def substitute(type_ref: TypeRef, mapping: dict[str, TypeRef]) -> TypeRef:
    """Replace the type parameters named in mapping, at any depth.

    ``T?`` bound to a non-nullable type keeps its annotation.
    """
    if not mapping:
        return type_ref
    if type_ref.is_type_parameter:
        bound = mapping.get(type_ref.name)
        if bound is None:
            return type_ref
        if type_ref.nullable and not bound.is_nullable:
            return replace(bound, nullable=True)
        return bound
    if type_ref.is_array:
        return replace(type_ref, element_type=substitute(type_ref.element_type, mapping))
    if type_ref.type_arguments:
        return replace(
            type_ref, type_arguments=[substitute(a, mapping) for a in type_ref.type_arguments]
        )
    return type_ref


def _substitute_parameters(
    parameters: list[Parameter], mapping: dict[str, TypeRef]
) -> list[Parameter]:
    return [replace(p, type=substitute(p.type, mapping)) for p in parameters]


def _substitute_clause(clause: str, mapping: dict[str, TypeRef]) -> str:
    return re.sub(
        r"\b\w+\b",
        lambda m: render_type(mapping[m.group(0)]) if m.group(0) in mapping else m.group(0),
        clause,
    )


def _substitute_member(
    member: Member, mapping: dict[str, TypeRef], declaring_type: str
) -> Member:
    if isinstance(member, Method):
        # Method type parameters shadow the interface's
        mapping = {k: v for k, v in mapping.items() if k not in member.type_parameters}
        return replace(
            member,
            return_type=substitute(member.return_type, mapping),
            parameters=_substitute_parameters(member.parameters, mapping),
            constraint_clauses=[
                _substitute_clause(c, mapping) for c in member.constraint_clauses
            ],
            declaring_type=declaring_type,
        )
    if isinstance(member, Property):
        return replace(
            member,
            type=substitute(member.type, mapping),
            parameters=_substitute_parameters(member.parameters, mapping),
            declaring_type=declaring_type,
        )
    return replace(member, type=substitute(member.type, mapping), declaring_type=declaring_type)


@dataclass
class ConstructedInterface:
    """An interface reached through the hierarchy, with its type parameters bound.

    The root, and bases named without type arguments, have an empty
    substitution and keep their members as declared.
    """

    decl: InterfaceDecl
    substitution: dict[str, TypeRef] = field(default_factory=dict)

    @property
    def type_arguments(self) -> list[TypeRef]:
        return [self.substitution[p] for p in self.decl.type_parameters if p in self.substitution]

    @property
    def display_name(self) -> str:
        """Qualified name with its arguments, e.g. ``Acme.IRepository`1<Acme.Product>``."""
        if not self.substitution:
            return self.decl.full_name
        arguments = ",".join(_type_key(a) for a in self.type_arguments)
        return f"{self.decl.full_name}<{arguments}>"

    def members(self) -> list[Member]:
        """Declared members with the type arguments substituted in."""
        if not self.substitution:
            return list(self.decl.members)
        return [
            _substitute_member(m, self.substitution, self.display_name)
            for m in self.decl.members
        ]

    def bases(self) -> Iterator["ConstructedInterface"]:
        for entry in self.decl.bases:
            if isinstance(entry, BaseInterface):
                bound = {
                    name: substitute(argument, self.substitution)
                    for name, argument in entry.substitution().items()
                }
                yield ConstructedInterface(entry.decl, bound)
            else:
                yield ConstructedInterface(entry)


def iter_constructed(
    root: InterfaceDecl,
    identity: Callable[[InterfaceDecl], Hashable] = interface_identity,
) -> list[ConstructedInterface]:
    """Return the root and its transitive bases in depth-first pre-order.

    An interface appears once per distinct set of type arguments, even when
    reached by several paths. A base that is also one of its own ancestors
    closes a cycle and is not entered again.
    """
    visited: set[Hashable] = set()
    ordered: list[ConstructedInterface] = []
    stack: list[tuple[ConstructedInterface, frozenset]] = [
        (ConstructedInterface(root), frozenset())
    ]

    while stack:
        constructed, ancestors = stack.pop()
        decl_key = identity(constructed.decl)
        key = (decl_key, tuple(_type_key(a) for a in constructed.type_arguments))
        if key in visited or decl_key in ancestors:
            logger.debug(f"Skipping already visited interface {constructed.display_name}")
            continue
        visited.add(key)
        ordered.append(constructed)
        # Reversed so the first declared base is popped next
        path = ancestors | {decl_key}
        stack.extend((base, path) for base in reversed(list(constructed.bases())))

    return ordered


def iter_interfaces(
    root: InterfaceDecl,
    identity: Callable[[InterfaceDecl], Hashable] = interface_identity,
) -> list[InterfaceDecl]:
    """Return the declarations visited by ``iter_constructed``, in the same order."""
    return [constructed.decl for constructed in iter_constructed(root, identity)]


def flatten(
    root: InterfaceDecl,
    category: MemberCategory,
    identity: Callable[[Member], Hashable] = member_identity,
    interface_identity: Callable[[InterfaceDecl], Hashable] = interface_identity,
) -> list[Member]:
    """Flatten one category of members over the inheritance graph of root.

    Members inherited through a constructed base such as
    ``IRepository<Product>`` have the type arguments substituted in.

    Args:
        root: The interface to start from
        category: Which kind of member to collect
        identity: Oracle deciding whether two members are the same declaration
        interface_identity: Oracle deciding whether two interfaces are the same

    Returns:
        Members in visitation order, first occurrence of each identity kept
    """
    seen: set[Hashable] = set()
    result: list[Member] = []

    for constructed in iter_constructed(root, interface_identity):
        for member in constructed.members():
            if not isinstance(member, category.value):
                continue
            key = identity(member)
            if key in seen:
                continue
            seen.add(key)
            result.append(member)

    return result


def flatten_all(
    root: InterfaceDecl,
    identity: Callable[[Member], Hashable] = member_identity,
    interface_identity: Callable[[InterfaceDecl], Hashable] = interface_identity,
) -> FlattenedMembers:
    """Flatten properties, methods and events of root in one call."""
    flattened = FlattenedMembers(
        properties=flatten(root, MemberCategory.PROPERTIES, identity, interface_identity),
        methods=flatten(root, MemberCategory.METHODS, identity, interface_identity),
        events=flatten(root, MemberCategory.EVENTS, identity, interface_identity),
    )
    logger.debug(
        f"Flattened {root.name}: {len(flattened.properties)} properties, "
        f"{len(flattened.methods)} methods, {len(flattened.events)} events"
    )
    return flattened
