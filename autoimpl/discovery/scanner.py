"""Find namespaces, using directives and type declarations in C# source."""

import logging
import re
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

# Comments, or string/char literals which must be kept intact
COMMENT_OR_LITERAL_PATTERN = re.compile(
    r'//[^\n]*|/\*.*?\*/|@"(?:[^"]|"")*"|"(?:\\.|[^"\\\n])*"|\'(?:\\.|[^\'\\\n])+\'',
    re.DOTALL,
)

ATTRIBUTE_LIST = r"\[[^\[\]]*(?:\[[^\[\]]*\][^\[\]]*)*\]"

TYPE_MODIFIERS = (
    r"(?:(?:public|internal|private|protected|partial|static|sealed|abstract"
    r"|readonly|unsafe|new|file|ref)\s+)*"
)

DECLARATION_PATTERN = re.compile(
    r"(?P<using>\b(?:global\s+)?using\s+(?:static\s+)?[\w.:@]+(?:\s*=\s*[^;]+)?\s*;)"
    r"|(?P<namespace>\bnamespace\s+(?P<ns_name>[\w.]+)\s*(?P<ns_term>[;{]))"
    rf"|(?P<type>(?P<attributes>(?:{ATTRIBUTE_LIST}\s*)*)(?P<modifiers>{TYPE_MODIFIERS})"
    r"(?P<kind>\binterface|\bclass|\bstruct|\benum|\brecord(?:\s+(?:class|struct))?"
    r"|\bdelegate)\b)"
)

NAME_PATTERN = re.compile(r"\s*(@?\w+)\s*(?:<(?P<params>[^<>]*)>)?")

DELEGATE_PATTERN = re.compile(r"[^;(]*?(@?\w+)\s*(?:<(?P<params>[^<>]*)>)?\s*\(")

VALUE_TYPE_KINDS = {"struct", "enum", "record struct"}


@dataclass
class DeclaredType:
    """Any named type declared in source, for name resolution.

    ``containing`` is the dotted path of enclosing types for nested types,
    ``None`` for types declared directly in a namespace.
    """

    name: str
    namespace: str | None
    arity: int
    kind: str
    containing: str | None = None

    @property
    def is_value_type(self) -> bool:
        return self.kind in VALUE_TYPE_KINDS

    @property
    def nested_path(self) -> str:
        """Name qualified by its containing types, e.g. ``Order.Status``."""
        return f"{self.containing}.{self.name}" if self.containing else self.name


@dataclass
class InterfaceSyntax:
    """An interface declaration as written, before semantic analysis.

    ``usings`` are the file's compilation-unit directives and
    ``namespace_usings`` those written inside its enclosing namespace blocks.
    """

    name: str
    namespace: str | None
    type_parameters: list[str]
    attributes: list[str]
    modifiers: list[str]
    base_list: list[str]
    constraint_clauses: list[str]
    body: str
    usings: list[str]
    namespace_usings: list[str]
    path: str
    line: int
    body_line: int

    @property
    def is_partial(self) -> bool:
        return "partial" in self.modifiers


@dataclass
class ScannedFile:
    path: str
    usings: list[str] = field(default_factory=list)
    declared_types: list[DeclaredType] = field(default_factory=list)
    interfaces: list[InterfaceSyntax] = field(default_factory=list)


def strip_comments(text: str) -> str:
    """Blank out comments, keeping literals and line numbers."""

    def replace(match: re.Match) -> str:
        token = match.group(0)
        if token.startswith("//") or token.startswith("/*"):
            return re.sub(r"[^\n]", " ", token)
        return token

    return COMMENT_OR_LITERAL_PATTERN.sub(replace, text)


def skip_literal(text: str, index: int) -> int:
    """If a string or char literal starts at index, return the index after it."""
    match = COMMENT_OR_LITERAL_PATTERN.match(text, index)
    if match and text[index] in "@\"'":
        return match.end()
    return index


def find_closing(text: str, open_index: int, opener: str = "{", closer: str = "}") -> int:
    """Return the index of the bracket closing the one at open_index.

    Returns -1 when the text ends first.
    """
    depth = 0
    index = open_index
    while index < len(text):
        next_index = skip_literal(text, index)
        if next_index != index:
            index = next_index
            continue
        char = text[index]
        if char == opener:
            depth += 1
        elif char == closer:
            depth -= 1
            if depth == 0:
                return index
        index += 1
    return -1


def split_top_level(text: str, separator: str = ",") -> list[str]:
    """Split text on separator outside brackets and literals."""
    parts = []
    depth = 0
    start = 0
    index = 0
    while index < len(text):
        next_index = skip_literal(text, index)
        if next_index != index:
            index = next_index
            continue
        char = text[index]
        if char in "<([{":
            depth += 1
        elif char in ">)]}":
            depth -= 1
        elif char == separator and depth == 0:
            parts.append(text[start:index])
            start = index + 1
        index += 1
    parts.append(text[start:])
    return [p.strip() for p in parts if p.strip()]


def line_of(text: str, index: int) -> int:
    return text.count("\n", 0, index) + 1


def _type_parameter_names(params: str | None) -> list[str]:
    if not params:
        return []
    names = []
    for param in split_top_level(params):
        # Drop variance and attributes: [Foo] out T
        param = re.sub(ATTRIBUTE_LIST, "", param)
        names.append(param.split()[-1])
    return names


def _join_namespace(outer: str | None, inner: str) -> str:
    return f"{outer}.{inner}" if outer else inner


class _FileScanner:
    def __init__(self, text: str, path: str):
        self.text = text
        self.path = path
        self.result = ScannedFile(path=path)

    def scan(self) -> ScannedFile:
        self._scan_region(0, len(self.text), None, [])
        logger.debug(
            f"Scanned {self.path}: {len(self.result.declared_types)} types, "
            f"{len(self.result.interfaces)} interfaces"
        )
        return self.result

    def _scan_region(self, start: int, end: int, namespace: str | None, usings: list[str]):
        """Scan a compilation unit or namespace body.

        ``usings`` holds the directives written inside enclosing namespace
        blocks; compilation-unit directives go to the file result instead.
        """
        usings = list(usings)
        pos = start
        while pos < end:
            match = DECLARATION_PATTERN.search(self.text, pos, end)
            if not match:
                return

            if match.group("using"):
                directive = " ".join(match.group("using").split())
                if namespace is None:
                    self.result.usings.append(directive)
                else:
                    usings.append(directive)
                pos = match.end()

            elif match.group("namespace"):
                name = _join_namespace(namespace, match.group("ns_name"))
                if match.group("ns_term") == ";":
                    # File scoped: applies to the rest of the file
                    namespace = name
                    pos = match.end()
                    continue
                open_index = match.end() - 1
                close_index = find_closing(self.text, open_index)
                if close_index == -1:
                    close_index = end
                self._scan_region(open_index + 1, close_index, name, usings)
                pos = close_index + 1

            else:
                pos = self._scan_type(match, end, namespace, usings)

    def _scan_nested(self, start: int, end: int, namespace: str | None, containing: str):
        """Record types declared directly in a type body, skipping member bodies."""
        pos = start
        while pos < end:
            match = DECLARATION_PATTERN.search(self.text, pos, end)
            if not match:
                return
            stop = self._skip_to_brace(pos, match.start())
            if stop > match.start():
                # The match is inside a string literal
                pos = stop
            elif stop < match.start():
                close_index = find_closing(self.text, stop)
                pos = end if close_index == -1 else close_index + 1
            elif not match.group("type") or self.text[pos:stop].rstrip().endswith((":", ",")):
                # Not a declaration, e.g. the constraint in "where T : class"
                pos = match.end()
            else:
                pos = self._scan_type(match, end, namespace, [], containing)

    def _scan_type(
        self,
        match: re.Match,
        end: int,
        namespace: str | None,
        usings: list[str],
        containing: str | None = None,
    ) -> int:
        kind = " ".join(match.group("kind").split())
        after = match.end()

        if kind == "delegate":
            delegate = DELEGATE_PATTERN.match(self.text, after)
            if delegate:
                params = _type_parameter_names(delegate.group("params"))
                self.result.declared_types.append(
                    DeclaredType(
                        delegate.group(1).lstrip("@"), namespace, len(params), kind, containing
                    )
                )
            semicolon = self.text.find(";", after, end)
            return end if semicolon == -1 else semicolon + 1

        name_match = NAME_PATTERN.match(self.text, after)
        if not name_match:
            return after
        name = name_match.group(1).lstrip("@")
        type_parameters = _type_parameter_names(name_match.group("params"))
        self.result.declared_types.append(
            DeclaredType(name, namespace, len(type_parameters), kind, containing)
        )

        body_start = self._find_body_start(name_match.end(), end)
        if body_start == -1:
            return end
        if self.text[body_start] == ";":
            return body_start + 1
        body_end = find_closing(self.text, body_start)
        if body_end == -1:
            logger.warning(f"Unterminated {kind} {name} in {self.path}")
            body_end = end

        if kind == "interface" and containing is None:
            header = self.text[name_match.end():body_start]
            self.result.interfaces.append(
                self._interface_syntax(
                    match, name, type_parameters, header, body_start, body_end,
                    namespace, usings,
                )
            )
        if kind != "enum":
            self._scan_nested(
                body_start + 1, body_end, namespace, _join_namespace(containing, name)
            )
        return body_end + 1

    def _skip_to_brace(self, start: int, stop: int) -> int:
        """Advance to the first ``{`` before stop, skipping literals.

        Returns stop when there is none, or the end of the literal that
        stop falls inside.
        """
        index = start
        while index < stop:
            next_index = skip_literal(self.text, index)
            if next_index != index:
                index = next_index
                continue
            if self.text[index] == "{":
                return index
            index += 1
        return index

    def _find_body_start(self, start: int, end: int) -> int:
        """Find the brace opening a type body, or ``;`` for bodiless records."""
        depth = 0
        index = start
        while index < end:
            next_index = skip_literal(self.text, index)
            if next_index != index:
                index = next_index
                continue
            char = self.text[index]
            if char == "(":
                depth += 1
            elif char == ")":
                depth -= 1
            elif char in "{;" and depth == 0:
                return index
            index += 1
        return -1

    def _interface_syntax(
        self,
        match: re.Match,
        name: str,
        type_parameters: list[str],
        header: str,
        body_start: int,
        body_end: int,
        namespace: str | None,
        usings: list[str],
    ) -> InterfaceSyntax:
        constraint_clauses = []
        where = re.search(r"\bwhere\b", header)
        if where:
            constraint_clauses = [
                f"where {c.strip()}" for c in re.split(r"\bwhere\b", header[where.start():])
                if c.strip()
            ]
            header = header[:where.start()]
        base_list = []
        if ":" in header:
            base_list = split_top_level(header.split(":", 1)[1])

        return InterfaceSyntax(
            name=name,
            namespace=namespace,
            type_parameters=type_parameters,
            attributes=re.findall(ATTRIBUTE_LIST, match.group("attributes")),
            modifiers=match.group("modifiers").split(),
            base_list=base_list,
            constraint_clauses=constraint_clauses,
            body=self.text[body_start + 1:body_end],
            usings=list(self.result.usings),
            namespace_usings=list(usings),
            path=self.path,
            line=line_of(self.text, match.start("kind")),
            body_line=line_of(self.text, body_start + 1),
        )


def scan_source(text: str, path: str = "<memory>") -> ScannedFile:
    """Scan one C# source file.

    Args:
        text: File contents
        path: Path reported in locations

    Returns:
        ScannedFile with its usings, declared types and interface syntax
    """
    return _FileScanner(strip_comments(text), path).scan()
