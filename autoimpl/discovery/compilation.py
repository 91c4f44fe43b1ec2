"""Link scanned C# files into resolved interface declarations."""

import logging
import re
from collections import defaultdict
from dataclasses import dataclass, field, replace
from pathlib import Path

from autoimpl.discovery.attributes import parse_attribute_lists
from autoimpl.discovery.member_parser import parse_members
from autoimpl.discovery.scanner import DeclaredType, InterfaceSyntax, ScannedFile, scan_source
from autoimpl.discovery.type_parser import TypeSyntaxError, parse_type
from autoimpl.models import BaseInterface, InterfaceDecl, SourceLocation, TypeRef

logger = logging.getLogger(__name__)

USING_PATTERN = re.compile(
    r"^(?P<global>global\s+)?using\s+(?P<static>static\s+)?"
    r"(?:(?P<alias>@?\w+)\s*=\s*)?(?P<target>[^;]+?)\s*;$"
)

# Framework types commonly named without qualification: (name, arity) -> namespace
WELL_KNOWN_TYPES = {
    **{
        (name, 0): "System"
        for name in (
            "String", "Object", "Boolean", "Char", "Byte", "SByte", "Int16", "Int32",
            "Int64", "UInt16", "UInt32", "UInt64", "Single", "Double", "Decimal",
            "DateTime", "DateTimeOffset", "DateOnly", "TimeOnly", "Guid", "TimeSpan",
            "Uri", "Version", "Exception", "Type", "EventArgs", "EventHandler",
            "Action", "IDisposable", "IAsyncDisposable", "IntPtr", "UIntPtr",
        )
    },
    ("EventHandler", 1): "System",
    ("Nullable", 1): "System",
    ("Lazy", 1): "System",
    ("IEquatable", 1): "System",
    ("IComparable", 1): "System",
    ("IObservable", 1): "System",
    ("IObserver", 1): "System",
    **{("Action", n): "System" for n in range(1, 9)},
    **{("Func", n): "System" for n in range(1, 10)},
    **{("Tuple", n): "System" for n in range(1, 8)},
    **{("ValueTuple", n): "System" for n in range(1, 8)},
    **{
        (name, 1): "System.Collections.Generic"
        for name in (
            "List", "IList", "IEnumerable", "ICollection", "IReadOnlyList",
            "IReadOnlyCollection", "HashSet", "ISet", "IReadOnlySet", "Queue", "Stack",
            "LinkedList", "SortedSet", "IEnumerator", "IComparer", "IEqualityComparer",
            "IAsyncEnumerable", "IAsyncEnumerator",
        )
    },
    **{
        (name, 2): "System.Collections.Generic"
        for name in (
            "Dictionary", "IDictionary", "IReadOnlyDictionary", "KeyValuePair",
            "SortedDictionary", "SortedList",
        )
    },
    ("IEnumerable", 0): "System.Collections",
    ("IList", 0): "System.Collections",
    ("ICollection", 0): "System.Collections",
    ("IDictionary", 0): "System.Collections",
    ("ObservableCollection", 1): "System.Collections.ObjectModel",
    ("ReadOnlyCollection", 1): "System.Collections.ObjectModel",
    ("IQueryable", 1): "System.Linq",
    ("IGrouping", 2): "System.Linq",
    ("ILookup", 2): "System.Linq",
    ("Task", 0): "System.Threading.Tasks",
    ("Task", 1): "System.Threading.Tasks",
    ("ValueTask", 0): "System.Threading.Tasks",
    ("ValueTask", 1): "System.Threading.Tasks",
    ("CancellationToken", 0): "System.Threading",
    ("Stream", 0): "System.IO",
    ("TextReader", 0): "System.IO",
    ("TextWriter", 0): "System.IO",
    ("FileInfo", 0): "System.IO",
    ("PropertyChangedEventHandler", 0): "System.ComponentModel",
    ("INotifyPropertyChanged", 0): "System.ComponentModel",
    ("Expression", 1): "System.Linq.Expressions",
}

VALUE_TYPES = {
    ("System", name)
    for name in (
        "Boolean", "Char", "Byte", "SByte", "Int16", "Int32", "Int64", "UInt16",
        "UInt32", "UInt64", "Single", "Double", "Decimal", "DateTime", "DateTimeOffset",
        "DateOnly", "TimeOnly", "Guid", "TimeSpan", "IntPtr", "UIntPtr", "ValueTuple",
    )
} | {
    ("System.Threading", "CancellationToken"),
    ("System.Threading.Tasks", "ValueTask"),
    ("System.Collections.Generic", "KeyValuePair"),
}


class DiscoveryError(Exception):
    """Error loading declarations."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path


@dataclass
class _Scope:
    """Names visible from a declaration."""

    namespace: str | None
    imported: list[str] = field(default_factory=list)
    aliases: dict[str, str] = field(default_factory=dict)
    type_parameters: tuple[str, ...] = ()


def _enclosing_namespaces(namespace: str | None) -> list[str | None]:
    """``A.B`` gives ``["A.B", "A", None]``: innermost first, global last."""
    if not namespace:
        return [None]
    parts = namespace.split(".")
    return [".".join(parts[:i]) for i in range(len(parts), 0, -1)] + [None]


def _interface_key(namespace: str | None, name: str, arity: int) -> str:
    key = f"{name}`{arity}" if arity else name
    return f"{namespace}.{key}" if namespace else key


class Compilation:
    """A set of C# sources analysed together.

    Interfaces are built lazily on first access and cached; adding a source
    invalidates the cache.
    """

    def __init__(self):
        self._files: list[ScannedFile] = []
        self._interfaces: dict[str, InterfaceDecl] | None = None
        self._index: dict[tuple[str, int], list[DeclaredType]] = defaultdict(list)

    @classmethod
    def from_sources(cls, sources: dict[str, str]) -> "Compilation":
        """Build a compilation from ``{path: text}``."""
        compilation = cls()
        for path, text in sources.items():
            compilation.add_source(text, path)
        return compilation

    @classmethod
    def from_paths(cls, paths: list[Path]) -> "Compilation":
        """Build a compilation from ``.cs`` files and directories searched recursively."""
        compilation = cls()
        for path in paths:
            compilation.add_path(Path(path))
        return compilation

    @property
    def files(self) -> list[ScannedFile]:
        return list(self._files)

    def add_source(self, text: str, path: str = "<memory>") -> ScannedFile:
        scanned = scan_source(text, path)
        self._files.append(scanned)
        self._interfaces = None
        return scanned

    def add_file(self, path: Path) -> ScannedFile:
        """Read and scan one file.

        Raises:
            DiscoveryError: If the file cannot be read
        """
        logger.info(f"Reading declarations from {path}")
        try:
            text = path.read_text(encoding="utf-8-sig")
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Cannot read {path}: {e}")
            raise DiscoveryError(f"Cannot read {path}: {e}", path=str(path)) from e
        return self.add_source(text, str(path))

    def add_path(self, path: Path):
        """Add a file, or every ``.cs`` file below a directory."""
        if path.is_dir():
            files = sorted(p for p in path.rglob("*.cs") if p.is_file())
            logger.info(f"Found {len(files)} source files under {path}")
            for file_path in files:
                self.add_file(file_path)
        elif path.exists():
            self.add_file(path)
        else:
            raise DiscoveryError(f"No such file or directory: {path}", path=str(path))

    def interfaces(self) -> list[InterfaceDecl]:
        """All interfaces declared in the compilation, partial parts merged."""
        if self._interfaces is None:
            self._interfaces = self._build()
        return list(self._interfaces.values())

    def candidates(self) -> list[InterfaceDecl]:
        """Interfaces carrying at least one attribute."""
        return [decl for decl in self.interfaces() if decl.attributes]

    def get_interface(self, full_name: str) -> InterfaceDecl | None:
        """Look up an interface by qualified name, e.g. ``Acme.IRepository`1``."""
        self.interfaces()
        return self._interfaces.get(full_name)

    def _build(self) -> dict[str, InterfaceDecl]:
        self._index = defaultdict(list)
        global_usings: list[str] = []
        groups: dict[str, list[InterfaceSyntax]] = defaultdict(list)

        for scanned in self._files:
            for declared in scanned.declared_types:
                self._index[(declared.name, declared.arity)].append(declared)
            global_usings.extend(u for u in scanned.usings if u.startswith("global "))
            for syntax in scanned.interfaces:
                key = _interface_key(
                    syntax.namespace, syntax.name, len(syntax.type_parameters)
                )
                groups[key].append(syntax)

        interfaces = {key: self._declare(key, parts) for key, parts in groups.items()}
        self._interfaces = interfaces

        for key, parts in groups.items():
            decl = interfaces[key]
            for syntax in parts:
                scope = self._scope_for(syntax, global_usings)
                decl.members.extend(
                    parse_members(
                        syntax.body,
                        self._resolver(scope),
                        declaring_type=key,
                        path=syntax.path,
                        first_line=syntax.body_line,
                    )
                )
                for base_text in syntax.base_list:
                    base = self._resolve_base(base_text, scope, decl)
                    if base is not None and base not in decl.bases:
                        decl.bases.append(base)

        logger.info(f"Discovered {len(interfaces)} interfaces in {len(self._files)} files")
        return interfaces

    def _declare(self, key: str, parts: list[InterfaceSyntax]) -> InterfaceDecl:
        first = parts[0]
        if len(parts) > 1 and not all(p.is_partial for p in parts):
            logger.warning(
                f"{key} is declared {len(parts)} times without 'partial'; merging"
            )

        usings = []
        namespace_usings = []
        constraint_clauses = []
        for part in parts:
            for using in part.usings:
                if not using.startswith("global ") and using not in usings:
                    usings.append(using)
            for using in part.namespace_usings:
                if using not in namespace_usings:
                    namespace_usings.append(using)
            for clause in part.constraint_clauses:
                if clause not in constraint_clauses:
                    constraint_clauses.append(clause)

        return InterfaceDecl(
            name=first.name,
            namespace=first.namespace,
            type_parameters=list(first.type_parameters),
            constraint_clauses=constraint_clauses,
            usings=usings,
            namespace_usings=namespace_usings,
            attributes=parse_attribute_lists([a for p in parts for a in p.attributes]),
            location=SourceLocation(first.path, first.line),
        )

    def _scope_for(self, syntax: InterfaceSyntax, global_usings: list[str]) -> _Scope:
        scope = _Scope(
            namespace=syntax.namespace,
            type_parameters=tuple(syntax.type_parameters),
        )
        directives = [(using, False) for using in [*global_usings, *syntax.usings]]
        directives += [(using, True) for using in syntax.namespace_usings]
        for using, in_namespace in directives:
            match = USING_PATTERN.match(using)
            if not match or match.group("static"):
                continue
            target = match.group("target").removeprefix("global::")
            if match.group("alias"):
                scope.aliases[match.group("alias").lstrip("@")] = target
                continue
            # Directives inside a namespace may name it relative to the enclosing ones
            outers = _enclosing_namespaces(syntax.namespace) if in_namespace else [None]
            for outer in outers:
                namespace = f"{outer}.{target}" if outer else target
                if namespace not in scope.imported:
                    scope.imported.append(namespace)
        return scope

    def _resolver(self, scope: _Scope):
        def resolve(text: str, method_type_parameters: tuple[str, ...]) -> TypeRef:
            inner = replace(
                scope, type_parameters=scope.type_parameters + method_type_parameters
            )
            return self._resolve(parse_type(text), inner)

        return resolve

    def _resolve_base(
        self, text: str, scope: _Scope, decl: InterfaceDecl
    ) -> InterfaceDecl | BaseInterface | None:
        try:
            type_ref = self._resolve(parse_type(text), scope)
        except TypeSyntaxError as e:
            logger.warning(f"Cannot parse base type {text!r} of {decl.name}: {e}")
            return None

        key = _interface_key(type_ref.namespace, type_ref.name, len(type_ref.type_arguments))
        base = self._interfaces.get(key)
        if base is None:
            logger.warning(
                f"Base type {text} of {decl.name} is not an interface declared in "
                "the sources; its members will not be implemented"
            )
            return None
        if type_ref.type_arguments:
            return BaseInterface(base, type_ref.type_arguments)
        return base

    def _resolve(self, type_ref: TypeRef, scope: _Scope) -> TypeRef:
        if type_ref.is_array:
            return replace(
                type_ref, element_type=self._resolve(type_ref.element_type, scope)
            )

        arguments = [self._resolve(a, scope) for a in type_ref.type_arguments]
        resolved = replace(type_ref, type_arguments=arguments)
        arity = len(arguments)

        if type_ref.namespace is None:
            if not arity and type_ref.name in scope.type_parameters:
                return replace(resolved, is_type_parameter=True)
            if not arity and type_ref.name in scope.aliases:
                target = self._resolve(
                    parse_type(scope.aliases[type_ref.name]), replace(scope, aliases={})
                )
                resolved = replace(target, nullable=target.nullable or type_ref.nullable)
            else:
                declared = self._lookup(type_ref.name, arity, scope)
                if declared is not None:
                    resolved.namespace = declared.namespace
                elif (type_ref.name, arity) in WELL_KNOWN_TYPES:
                    resolved.namespace = WELL_KNOWN_TYPES[(type_ref.name, arity)]
                else:
                    logger.debug(f"Could not resolve type {type_ref.name}; keeping it as written")
        else:
            resolved = self._resolve_qualified(resolved, arity, scope)

        return self._wrap_nullable_value(resolved)

    def _resolve_qualified(self, type_ref: TypeRef, arity: int, scope: _Scope) -> TypeRef:
        """Resolve ``Qualifier.Name`` where the qualifier is a namespace, a type or an alias.

        A qualifier that names none of these is kept as the namespace.
        """
        qualifier = type_ref.namespace
        outers = _enclosing_namespaces(scope.namespace)
        head, _, rest = qualifier.partition(".")
        if head in scope.aliases:
            target = scope.aliases[head].removeprefix("global::")
            qualifier = f"{target}.{rest}" if rest else target
            # Alias targets are fully qualified
            outers = [None]
            scope = replace(scope, aliases={})

        declared = self._lookup_qualified(qualifier, type_ref.name, arity, outers)
        if declared is not None:
            return replace(type_ref, namespace=declared.namespace)

        container = self._find_container(qualifier, outers, scope)
        nested = self._nested_in(container, type_ref.name, arity) if container else None
        if nested is not None:
            return replace(
                type_ref, namespace=nested.namespace, containing_type=nested.containing
            )
        return replace(type_ref, namespace=qualifier)

    def _lookup(self, name: str, arity: int, scope: _Scope) -> DeclaredType | None:
        candidates = [c for c in self._index.get((name, arity), []) if c.containing is None]
        if not candidates:
            return None
        by_namespace = {c.namespace: c for c in candidates}
        for namespace in _enclosing_namespaces(scope.namespace):
            if namespace in by_namespace:
                return by_namespace[namespace]
        for namespace in scope.imported:
            if namespace in by_namespace:
                return by_namespace[namespace]
        if len(by_namespace) == 1:
            return candidates[0]
        logger.debug(f"Ambiguous type {name}: found in {sorted(map(str, by_namespace))}")
        return None

    def _lookup_qualified(
        self, qualifier: str, name: str, arity: int, outers: list[str | None]
    ) -> DeclaredType | None:
        by_namespace = {
            c.namespace: c for c in self._index.get((name, arity), []) if c.containing is None
        }
        for outer in outers:
            namespace = f"{outer}.{qualifier}" if outer else qualifier
            if namespace in by_namespace:
                return by_namespace[namespace]
        return None

    def _find_container(
        self, qualifier: str, outers: list[str | None], scope: _Scope
    ) -> DeclaredType | None:
        """Find the declared type named by a qualifier such as ``Order`` or ``Acme.Order.Line``."""
        prefix, _, name = qualifier.rpartition(".")
        if not prefix:
            return self._lookup(name, 0, scope)
        declared = self._lookup_qualified(prefix, name, 0, outers)
        if declared is not None:
            return declared
        outer = self._find_container(prefix, outers, scope)
        return self._nested_in(outer, name, 0) if outer else None

    def _nested_in(self, container: DeclaredType, name: str, arity: int) -> DeclaredType | None:
        for candidate in self._index.get((name, arity), []):
            if (
                candidate.namespace == container.namespace
                and candidate.containing == container.nested_path
            ):
                return candidate
        return None

    def _is_value_type(self, type_ref: TypeRef) -> bool:
        if (type_ref.namespace, type_ref.name) in VALUE_TYPES and not type_ref.containing_type:
            return True
        return any(
            declared.namespace == type_ref.namespace
            and declared.containing == type_ref.containing_type
            and declared.is_value_type
            for declared in self._index.get(
                (type_ref.name, len(type_ref.type_arguments)), []
            )
        )

    def _wrap_nullable_value(self, type_ref: TypeRef) -> TypeRef:
        """``int?`` is ``System.Nullable<int>``; ``string?`` stays an annotation."""
        if not type_ref.nullable or type_ref.is_array or type_ref.is_type_parameter:
            return type_ref
        if not self._is_value_type(type_ref):
            return type_ref
        return TypeRef(
            name="Nullable",
            namespace="System",
            type_arguments=[replace(type_ref, nullable=False)],
        )
