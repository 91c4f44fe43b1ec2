"""Parse attribute lists such as ``[GenerateImplementation("Order", useRecord: false)]``."""

import logging
import re

from autoimpl.discovery.member_parser import parse_literal
from autoimpl.discovery.scanner import split_top_level
from autoimpl.models import AttributeUsage, LiteralKind

logger = logging.getLogger(__name__)

TARGET_PATTERN = re.compile(
    r"^\s*(?:assembly|module|type|return|field|method|param|property|event)\s*:(?!:)"
)
ATTRIBUTE_PATTERN = re.compile(r"^(?P<name>[\w.:@]+)\s*(?:\((?P<args>.*)\))?$", re.DOTALL)
COLON_ARGUMENT_PATTERN = re.compile(r"^(?P<name>@?\w+)\s*:(?!:)\s*(?P<value>.*)$", re.DOTALL)
EQUALS_ARGUMENT_PATTERN = re.compile(r"^(?P<name>@?\w+)\s*=(?!=)\s*(?P<value>.*)$", re.DOTALL)
NAMEOF_PATTERN = re.compile(r"^nameof\s*\(\s*(?:[\w.]+\.)?(?P<name>\w+)\s*\)$")


def argument_value(text: str):
    """Convert an attribute argument expression to a Python value.

    Strings, chars, booleans and null become Python values; ``nameof(X)``
    becomes ``"X"``; anything else is kept as source text.
    """
    nameof = NAMEOF_PATTERN.match(text.strip())
    if nameof:
        return nameof.group("name")
    literal = parse_literal(text)
    if literal.kind is LiteralKind.NULL:
        return None
    return literal.value


def parse_attribute(text: str) -> AttributeUsage | None:
    """Parse a single attribute, e.g. ``Foo(1, Bar = true)``."""
    match = ATTRIBUTE_PATTERN.match(text.strip())
    if not match:
        logger.debug(f"Unrecognized attribute syntax: {text!r}")
        return None

    usage = AttributeUsage(name=match.group("name"))
    for argument in split_top_level(match.group("args") or ""):
        named = COLON_ARGUMENT_PATTERN.match(argument) or EQUALS_ARGUMENT_PATTERN.match(
            argument
        )
        if named:
            usage.named[named.group("name").lstrip("@")] = argument_value(
                named.group("value")
            )
        else:
            usage.positional.append(argument_value(argument))
    return usage


def parse_attribute_lists(lists: list[str]) -> list[AttributeUsage]:
    """Parse attribute lists as written before a declaration.

    Args:
        lists: Attribute list texts including their square brackets

    Returns:
        Every attribute in every list, in source order
    """
    attributes = []
    for attribute_list in lists:
        inner = attribute_list.strip()[1:-1]
        inner = TARGET_PATTERN.sub("", inner)
        for text in split_top_level(inner):
            usage = parse_attribute(text)
            if usage is not None:
                attributes.append(usage)
    return attributes
