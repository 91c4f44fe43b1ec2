"""Discover annotated interface declarations in C# source files."""

from autoimpl.discovery.attributes import parse_attribute_lists
from autoimpl.discovery.compilation import Compilation, DiscoveryError
from autoimpl.discovery.member_parser import parse_members
from autoimpl.discovery.scanner import scan_source, strip_comments
from autoimpl.discovery.type_parser import TypeSyntaxError, parse_type

__all__ = [
    # Compilation
    "Compilation",
    "DiscoveryError",
    # Parsing
    "scan_source",
    "strip_comments",
    "parse_type",
    "parse_members",
    "parse_attribute_lists",
    "TypeSyntaxError",
]
