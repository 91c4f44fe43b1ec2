"""Read generation options from the marker attribute on an interface."""

import logging
from dataclasses import dataclass
from enum import Enum

from autoimpl.models import AttributeUsage, InterfaceDecl

logger = logging.getLogger(__name__)

MARKER_NAMES = ("GenerateImplementation", "GenerateImplementationAttribute")


class RenderStyle(Enum):
    """How data members are rendered.

    FIELDS emits ``required`` init-only properties. POSITIONAL emits a
    primary constructor for records or an assigning constructor for classes.
    """

    FIELDS = "fields"
    POSITIONAL = "positional"


@dataclass
class GenerationOptions:
    type_name: str
    use_record: bool = True
    style: RenderStyle = RenderStyle.FIELDS


def find_marker_attribute(decl: InterfaceDecl) -> AttributeUsage | None:
    """Return the GenerateImplementation attribute on decl, if any."""
    for attribute in decl.attributes:
        if attribute.simple_name in MARKER_NAMES:
            return attribute
    return None


def default_type_name(interface_name: str) -> str:
    """Strip the conventional ``I`` prefix: ``IProduct`` becomes ``Product``."""
    if (
        len(interface_name) > 1
        and interface_name[0] == "I"
        and interface_name[1].isupper()
    ):
        return interface_name[1:]
    return interface_name


def _usable_name(value) -> str | None:
    if isinstance(value, str) and value.strip():
        return value
    return None


def parse_options(
    decl: InterfaceDecl,
    attribute: AttributeUsage | None,
    style: RenderStyle = RenderStyle.FIELDS,
) -> GenerationOptions:
    """Work out the output type name and shape for decl.

    Args:
        decl: The annotated interface
        attribute: Its marker attribute, or None for all defaults
        style: Rendering style for data members

    Returns:
        GenerationOptions; ``type_name`` may still be blank when the
        interface name itself is blank
    """
    class_name = None
    use_record = True

    if attribute is not None:
        if len(attribute.positional) > 0:
            class_name = _usable_name(attribute.positional[0]) or class_name
        if len(attribute.positional) > 1 and isinstance(attribute.positional[1], bool):
            use_record = attribute.positional[1]

        for key, value in attribute.named.items():
            if key in ("UseRecord", "useRecord") and isinstance(value, bool):
                use_record = value
            elif key in ("ClassName", "className"):
                class_name = _usable_name(value) or class_name
            else:
                logger.debug(f"Ignoring unknown attribute argument {key!r} on {decl.name}")

    if class_name is None:
        class_name = default_type_name(decl.name)

    return GenerationOptions(type_name=class_name, use_record=use_record, style=style)
