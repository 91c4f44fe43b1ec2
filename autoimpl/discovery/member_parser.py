"""Parse the body of a C# interface into member models."""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass

from autoimpl.discovery.scanner import (
    ATTRIBUTE_LIST,
    find_closing,
    skip_literal,
    split_top_level,
)
from autoimpl.discovery.type_parser import TypeSyntaxError
from autoimpl.models import (
    Event,
    LiteralKind,
    LiteralValue,
    Member,
    Method,
    Parameter,
    Property,
    RefKind,
    SourceLocation,
    TypeRef,
)

logger = logging.getLogger(__name__)

# (type text, method type parameters in scope) -> resolved TypeRef
TypeResolver = Callable[[str, tuple[str, ...]], TypeRef]

MEMBER_MODIFIERS = {
    "public", "internal", "protected", "private", "new", "abstract", "virtual",
    "sealed", "override", "extern", "unsafe", "readonly", "required", "partial",
    "static", "async",
}

NESTED_TYPE_PATTERN = re.compile(r"^(?:interface|class|struct|enum|record|delegate)\b")
LEADING_ATTRIBUTES_PATTERN = re.compile(rf"^\s*(?:{ATTRIBUTE_LIST}\s*)+")
TYPE_AND_NAME_PATTERN = re.compile(r"^(?P<type>.*\S)\s+(?P<name>@?\w+)$", re.DOTALL)
METHOD_NAME_PATTERN = re.compile(r"(?P<name>@?\w+)\s*(?:<(?P<params>[^<>]*)>)?\s*$")
CONSTRAINT_PATTERN = re.compile(r"\)\s*(?P<clauses>\bwhere\b.*)$", re.DOTALL)

PARAMETER_MODIFIERS = {
    "ref": RefKind.REF,
    "out": RefKind.OUT,
    "in": RefKind.IN,
}

# Escapes in string and char literals other than \uXXXX and \xH
SIMPLE_ESCAPES = {
    "n": "\n", "t": "\t", "r": "\r", "0": "\0", "a": "\a", "b": "\b", "f": "\f", "v": "\v",
}


class MemberSyntaxError(ValueError):
    """A member declaration that cannot be understood."""


@dataclass
class _Segment:
    text: str
    offset: int


def split_members(body: str) -> list[_Segment]:
    """Split an interface body into one text segment per member."""
    segments = []
    start = 0
    index = 0
    paren_depth = 0
    while index < len(body):
        next_index = skip_literal(body, index)
        if next_index != index:
            index = next_index
            continue
        char = body[index]
        if char in "([":
            paren_depth += 1
        elif char in ")]":
            paren_depth -= 1
        elif char == ";" and paren_depth == 0:
            segments.append(_Segment(body[start:index + 1], start))
            start = index + 1
        elif char == "{" and paren_depth == 0:
            close = find_closing(body, index)
            if close == -1:
                close = len(body) - 1
            end = close + 1
            # A trailing ";" or "= value;" initializer stays with the member
            tail = re.match(r"\s*(?:=[^;{]*)?;", body[end:])
            if tail:
                end += tail.end()
            segments.append(_Segment(body[start:end], start))
            start = end
            index = end
            continue
        index += 1
    if body[start:].strip():
        segments.append(_Segment(body[start:], start))
    return [s for s in segments if s.text.strip().strip(";").strip()]


def _strip_modifiers(text: str) -> tuple[str, set[str]]:
    text = LEADING_ATTRIBUTES_PATTERN.sub("", text).strip()
    modifiers = set()
    while True:
        word = re.match(r"(\w+)\s+", text)
        if not word or word.group(1) not in MEMBER_MODIFIERS:
            return text, modifiers
        modifiers.add(word.group(1))
        text = text[word.end():]


def parse_literal(text: str) -> LiteralValue:
    """Parse a default value expression."""
    text = text.strip()
    if text == "null":
        return LiteralValue(LiteralKind.NULL)
    if text in ("true", "false"):
        return LiteralValue(LiteralKind.BOOLEAN, text == "true")
    if text.startswith('@"') and text.endswith('"'):
        return LiteralValue(LiteralKind.STRING, text[2:-1].replace('""', '"'))
    if text.startswith('"') and text.endswith('"') and len(text) >= 2:
        return LiteralValue(LiteralKind.STRING, _unescape(text[1:-1]))
    if text.startswith("'") and text.endswith("'") and len(text) >= 3:
        return LiteralValue(LiteralKind.CHAR, _unescape(text[1:-1]))
    return LiteralValue(LiteralKind.OTHER, text)


def _unescape(text: str) -> str:
    def replace(match: re.Match) -> str:
        token = match.group(1)
        if token[0] in "uUx" and len(token) > 1:
            return chr(int(token[1:], 16))
        return SIMPLE_ESCAPES.get(token, token)

    return re.sub(r"\\(u[0-9a-fA-F]{4}|U[0-9a-fA-F]{8}|x[0-9a-fA-F]{1,4}|.)", replace, text)


def parse_parameter(
    text: str, resolve: TypeResolver, type_parameters: tuple[str, ...] = ()
) -> Parameter:
    """Parse one parameter: ``ref int count``, ``string name = "x"``."""
    text = LEADING_ATTRIBUTES_PATTERN.sub("", text).strip()
    default = None
    parts = split_top_level(text, "=")
    if len(parts) == 2:
        text, default = parts[0], parse_literal(parts[1])

    ref_kind = RefKind.NONE
    is_params = False
    while True:
        word = re.match(r"(\w+)\s+", text)
        if not word:
            break
        keyword = word.group(1)
        if keyword in PARAMETER_MODIFIERS:
            ref_kind = PARAMETER_MODIFIERS[keyword]
        elif keyword == "params":
            is_params = True
        elif keyword not in ("this", "scoped", "readonly"):
            break
        text = text[word.end():]

    match = TYPE_AND_NAME_PATTERN.match(text.strip())
    if not match:
        raise MemberSyntaxError(f"Cannot parse parameter {text!r}")
    return Parameter(
        type=resolve(match.group("type"), type_parameters),
        name=match.group("name"),
        ref_kind=ref_kind,
        default=default,
        is_params=is_params,
    )


def _parse_parameters(
    text: str, resolve: TypeResolver, type_parameters: tuple[str, ...] = ()
) -> list[Parameter]:
    return [parse_parameter(p, resolve, type_parameters) for p in split_top_level(text)]


def _accessors(block: str) -> tuple[bool, bool, bool]:
    """Return whether a getter, a setter and an init-only setter are declared."""
    has_getter = re.search(r"\bget\b", block) is not None
    has_set = re.search(r"\bset\b", block) is not None
    has_init = re.search(r"\binit\b", block) is not None
    return has_getter, has_set or has_init, has_init and not has_set


def _parse_method(head: str, resolve: TypeResolver) -> Method:
    constraint_clauses = []
    constraints = CONSTRAINT_PATTERN.search(head)
    if constraints:
        constraint_clauses = [
            f"where {c.strip()}"
            for c in re.split(r"\bwhere\b", constraints.group("clauses"))
            if c.strip()
        ]
        head = head[:constraints.start() + 1]

    head = head.rstrip()
    if not head.endswith(")"):
        raise MemberSyntaxError(f"Cannot parse method {head!r}")
    open_index = _find_opening(head, len(head) - 1)
    before = head[:open_index].rstrip()
    name_match = METHOD_NAME_PATTERN.search(before)
    if not name_match:
        raise MemberSyntaxError(f"Cannot find method name in {head!r}")

    type_parameters = tuple(
        p.split()[-1] for p in split_top_level(name_match.group("params") or "")
    )
    return_type_text = before[:name_match.start()].strip()
    return Method(
        name=name_match.group("name"),
        return_type=resolve(return_type_text, type_parameters),
        parameters=_parse_parameters(
            head[open_index + 1:-1], resolve, type_parameters
        ),
        type_parameters=list(type_parameters),
        constraint_clauses=constraint_clauses,
    )


def _find_opening(text: str, close_index: int) -> int:
    depth = 0
    for index in range(close_index, -1, -1):
        if text[index] == ")":
            depth += 1
        elif text[index] == "(":
            depth -= 1
            if depth == 0:
                return index
    raise MemberSyntaxError(f"Unbalanced parentheses in {text!r}")


def _top_level_brace(text: str) -> int:
    depth = 0
    index = 0
    while index < len(text):
        next_index = skip_literal(text, index)
        if next_index != index:
            index = next_index
            continue
        char = text[index]
        if char in "([":
            depth += 1
        elif char in ")]":
            depth -= 1
        elif char == "{" and depth == 0:
            return index
        index += 1
    return -1


def parse_member(text: str, resolve: TypeResolver) -> Member | None:
    """Parse one member declaration.

    Returns:
        The member, or None for static members and nested types

    Raises:
        MemberSyntaxError: If the text is not a recognizable member
    """
    text, modifiers = _strip_modifiers(text.strip().rstrip(";").strip())
    if "static" in modifiers:
        logger.debug(f"Skipping static member: {text.splitlines()[0]}")
        return None
    if NESTED_TYPE_PATTERN.match(text):
        logger.debug(f"Skipping nested type: {text.splitlines()[0]}")
        return None

    event = re.match(r"event\s+", text)
    if event:
        declaration = text[event.end():]
        brace = _top_level_brace(declaration)
        if brace != -1:
            declaration = declaration[:brace]
        match = TYPE_AND_NAME_PATTERN.match(declaration.strip())
        if not match:
            raise MemberSyntaxError(f"Cannot parse event {text!r}")
        return Event(name=match.group("name"), type=resolve(match.group("type"), ()))

    brace = _top_level_brace(text)
    arrow = text.find("=>")
    if brace != -1:
        head, block = text[:brace].strip(), text[brace:]
    elif arrow != -1:
        # Expression-bodied default implementation
        head, block = text[:arrow].strip(), "get"
    else:
        head, block = text, None

    is_method_head = head.endswith(")") or CONSTRAINT_PATTERN.search(head) is not None
    if block is None or is_method_head:
        return _parse_method(head, resolve)

    has_getter, has_setter, has_init = _accessors(block)
    indexer = re.match(r"^(?P<type>.*?)\s*\bthis\s*\[(?P<params>.*)\]$", head, re.DOTALL)
    if indexer:
        return Property(
            type=resolve(indexer.group("type"), ()),
            name="this[]",
            is_indexer=True,
            has_getter=has_getter,
            has_setter=has_setter,
            parameters=_parse_parameters(indexer.group("params"), resolve),
        )

    match = TYPE_AND_NAME_PATTERN.match(head)
    if not match:
        raise MemberSyntaxError(f"Cannot parse property {head!r}")
    return Property(
        type=resolve(match.group("type"), ()),
        name=match.group("name"),
        has_getter=has_getter,
        has_setter=has_setter,
        has_init=has_init,
    )


def parse_members(
    body: str,
    resolve: TypeResolver,
    declaring_type: str = "",
    path: str = "<memory>",
    first_line: int = 1,
) -> list[Member]:
    """Parse every member in an interface body.

    Members that cannot be parsed are skipped with a warning.

    Args:
        body: Text between the interface braces, comments removed
        resolve: Resolves type text in the interface's scope
        declaring_type: Qualified name of the interface
        path: Source path for locations
        first_line: Line number where body starts

    Returns:
        Members in declaration order
    """
    members = []
    for segment in split_members(body):
        stripped = segment.text.lstrip()
        line = first_line + body.count("\n", 0, segment.offset + len(segment.text) - len(stripped))
        try:
            member = parse_member(segment.text, resolve)
        except (MemberSyntaxError, TypeSyntaxError) as e:
            logger.warning(f"{path}:{line}: skipping member of {declaring_type}: {e}")
            continue
        if member is None:
            continue
        member.declaring_type = declaring_type
        member.location = SourceLocation(path, line)
        members.append(member)
    return members
