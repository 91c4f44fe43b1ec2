"""Symbol model for interface declarations and generated output."""

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum


@dataclass
class SourceLocation:
    """Where a declaration was found."""

    path: str
    line: int

    def __str__(self) -> str:
        return f"{self.path}:{self.line}"


@dataclass
class TypeRef:
    """A reference to a named type.

    Arrays carry their element in ``element_type``; their ``name`` is only
    informational. Generic types carry their ordered ``type_arguments``.
    Types nested in another type name the enclosing types, outermost first,
    in ``containing_type`` (``Order`` for ``Acme.Order.Status``). Tuples
    written as ``(int Id, string)`` keep one ``tuple_names`` entry per
    element, ``None`` where the element is unnamed.
    """

    name: str
    namespace: str | None = None
    nullable: bool = False
    type_arguments: list["TypeRef"] = field(default_factory=list)
    element_type: "TypeRef | None" = None
    array_rank: int = 1
    is_type_parameter: bool = False
    containing_type: str | None = None
    tuple_names: list[str | None] = field(default_factory=list)

    @property
    def is_array(self) -> bool:
        return self.element_type is not None

    @property
    def is_generic(self) -> bool:
        return bool(self.type_arguments)

    @property
    def is_tuple(self) -> bool:
        """True for tuple syntax, which renders as ``(T1 a, T2 b)``."""
        return bool(self.tuple_names) and len(self.tuple_names) == len(self.type_arguments)

    @property
    def full_name(self) -> str:
        """Namespace-qualified name without generic arguments."""
        name = self.name
        if self.containing_type:
            name = f"{self.containing_type}.{name}"
        if self.namespace:
            return f"{self.namespace}.{name}"
        return name

    @property
    def is_nullable_value_wrapper(self) -> bool:
        """True for System.Nullable<T>, i.e. ``T?`` on a value type."""
        return (
            self.namespace == "System"
            and self.name == "Nullable"
            and len(self.type_arguments) == 1
        )

    @property
    def is_nullable(self) -> bool:
        return self.nullable or self.is_nullable_value_wrapper

    def walk(self) -> Iterator["TypeRef"]:
        """Yield this reference and every nested argument or element type."""
        yield self
        if self.element_type is not None:
            yield from self.element_type.walk()
        for argument in self.type_arguments:
            yield from argument.walk()


class LiteralKind(Enum):
    STRING = "string"
    CHAR = "char"
    BOOLEAN = "boolean"
    NULL = "null"
    OTHER = "other"


@dataclass
class LiteralValue:
    """A parameter default value. ``OTHER`` values keep their source text."""

    kind: LiteralKind
    value: str | bool | int | float | None = None


class RefKind(Enum):
    NONE = ""
    REF = "ref"
    OUT = "out"
    IN = "in"


@dataclass
class Parameter:
    type: TypeRef
    name: str
    ref_kind: RefKind = RefKind.NONE
    default: LiteralValue | None = None
    is_params: bool = False


@dataclass
class Property:
    """A property or, when ``is_indexer`` is set, an indexer.

    ``has_setter`` is set for both ``set`` and ``init``; ``has_init`` tells
    them apart.
    """

    type: TypeRef
    name: str
    is_indexer: bool = False
    has_getter: bool = True
    has_setter: bool = False
    has_init: bool = False
    parameters: list[Parameter] = field(default_factory=list)
    declaring_type: str = ""
    location: SourceLocation | None = None


@dataclass
class Method:
    name: str
    return_type: TypeRef
    parameters: list[Parameter] = field(default_factory=list)
    type_parameters: list[str] = field(default_factory=list)
    constraint_clauses: list[str] = field(default_factory=list)  # "where T : class"
    declaring_type: str = ""
    location: SourceLocation | None = None


@dataclass
class Event:
    name: str
    type: TypeRef
    declaring_type: str = ""
    location: SourceLocation | None = None


Member = Property | Method | Event


@dataclass
class AttributeUsage:
    """An attribute applied to a declaration, with literal arguments.

    ``named`` holds both ``name: value`` constructor arguments and
    ``Name = value`` property assignments, keyed as written.
    """

    name: str
    positional: list = field(default_factory=list)
    named: dict = field(default_factory=dict)

    @property
    def simple_name(self) -> str:
        return self.name.rsplit(".", 1)[-1].removeprefix("global::")


@dataclass(eq=False)
class InterfaceDecl:
    """A declared interface: its own members and its direct bases.

    Compared by identity. ``bases`` may form a cycle in malformed input,
    so it is left out of the repr. A base used with type arguments, as in
    ``IRepository<Product>``, is held as a ``BaseInterface``.

    ``usings`` are the compilation-unit directives of the declaring files;
    ``namespace_usings`` are those written inside a namespace block, which
    only resolve relative to that namespace.
    """

    name: str
    namespace: str | None = None
    members: list[Member] = field(default_factory=list)
    bases: list["InterfaceDecl | BaseInterface"] = field(default_factory=list, repr=False)
    type_parameters: list[str] = field(default_factory=list)
    constraint_clauses: list[str] = field(default_factory=list)
    usings: list[str] = field(default_factory=list)
    namespace_usings: list[str] = field(default_factory=list)
    attributes: list[AttributeUsage] = field(default_factory=list)
    location: SourceLocation | None = None

    @property
    def full_name(self) -> str:
        """Qualified name, with generic arity as in ``IRepository`1``."""
        name = self.name
        if self.type_parameters:
            name = f"{name}`{len(self.type_parameters)}"
        if self.namespace:
            return f"{self.namespace}.{name}"
        return name

    def as_type_ref(self) -> TypeRef:
        """A reference to this interface, closed over its own type parameters."""
        return TypeRef(
            name=self.name,
            namespace=self.namespace,
            type_arguments=[
                TypeRef(name=p, is_type_parameter=True) for p in self.type_parameters
            ],
        )


@dataclass
class BaseInterface:
    """A generic base interface together with the arguments it is constructed with."""

    decl: InterfaceDecl
    type_arguments: list[TypeRef] = field(default_factory=list)

    def substitution(self) -> dict[str, TypeRef]:
        """Map the base's type parameter names to the supplied arguments."""
        return dict(zip(self.decl.type_parameters, self.type_arguments))


@dataclass
class OutputUnit:
    """One generated source file."""

    hint_name: str
    type_name: str
    namespace: str | None
    source: str
