"""Synthesize a C# implementation for an annotated interface."""

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from autoimpl.engine.diagnostics import INDEXER_INFO, Diagnostic
from autoimpl.engine.flattener import FlattenedMembers, flatten_all
from autoimpl.engine.options import (
    GenerationOptions,
    RenderStyle,
    find_marker_attribute,
    parse_options,
)
from autoimpl.engine.references import resolve_imports, resolve_namespace_imports
from autoimpl.engine.type_renderer import render_type
from autoimpl.models import (
    Event,
    InterfaceDecl,
    LiteralKind,
    LiteralValue,
    Method,
    OutputUnit,
    Parameter,
    Property,
)

logger = logging.getLogger(__name__)

INDENT = "    "
NOT_IMPLEMENTED = "throw new System.NotImplementedException()"

# Parameter names that need a verbatim prefix
RESERVED_PARAMETER_NAMES = {"value", "event", "class", "object", "string", "params"}

# Characters with a simple escape sequence in a char literal
CHAR_ESCAPES = {
    "\\": "\\\\", "'": "\\'", "\0": "\\0", "\a": "\\a", "\b": "\\b",
    "\f": "\\f", "\n": "\\n", "\r": "\\r", "\t": "\\t", "\v": "\\v",
}


def _escape_char(char: str) -> str:
    if char in CHAR_ESCAPES:
        return CHAR_ESCAPES[char]
    if ord(char) < 0x20 or 0x7F <= ord(char) <= 0x9F or char in "\u2028\u2029":
        return f"\\u{ord(char):04x}"
    return char


def format_default(literal: LiteralValue) -> str:
    """Format a parameter default value as a C# literal."""
    if literal.kind is LiteralKind.NULL or literal.value is None:
        return "null"
    if literal.kind is LiteralKind.STRING:
        return '@"' + str(literal.value).replace('"', '""') + '"'
    if literal.kind is LiteralKind.CHAR:
        return "'" + "".join(_escape_char(c) for c in str(literal.value)) + "'"
    if literal.kind is LiteralKind.BOOLEAN:
        return "true" if literal.value else "false"
    return str(literal.value)


def to_parameter_name(property_name: str) -> str:
    """Camel-case a property name for use as a constructor parameter."""
    if not property_name:
        return "value"
    if len(property_name) == 1:
        return property_name.lower()
    candidate = property_name[0].lower() + property_name[1:]
    if candidate in RESERVED_PARAMETER_NAMES:
        return f"@{candidate}"
    return candidate


def needs_required(prop: Property) -> bool:
    """Non-nullable data must be supplied at construction."""
    return not prop.type.is_nullable


def render_parameter(parameter: Parameter, imports: list[str]) -> str:
    modifier = f"{parameter.ref_kind.value} " if parameter.ref_kind.value else ""
    if parameter.is_params:
        modifier = "params " + modifier
    text = f"{modifier}{render_type(parameter.type, imports)} {parameter.name}"
    if parameter.default is not None:
        text += f" = {format_default(parameter.default)}"
    return text


class _SourceWriter:
    """Line buffer with indentation, in the spirit of a StringBuilder."""

    def __init__(self):
        self._lines: list[str] = []
        self._level = 0

    def line(self, text: str = ""):
        self._lines.append(f"{INDENT * self._level}{text}" if text else "")

    def open(self, *header: str):
        for text in header:
            self.line(text)
        self.line("{")
        self._level += 1

    def close(self):
        self._level -= 1
        self.line("}")

    def blank_separated(self, blocks: list[list[str]]):
        """Write blocks of lines with one blank line between them."""
        for index, block in enumerate(blocks):
            if index:
                self.line()
            for text in block:
                self.line(text)

    def text(self) -> str:
        return "\n".join(self._lines) + "\n"


def _setter_keyword(prop: Property) -> str:
    """``set`` when the interface declares one, ``init`` otherwise."""
    return "set" if prop.has_setter and not prop.has_init else "init"


def _data_member_block(
    properties: list[Property], options: GenerationOptions, imports: list[str]
) -> list[str]:
    lines = []
    for prop in properties:
        type_text = render_type(prop.type, imports)
        required = ""
        if options.style is RenderStyle.FIELDS and needs_required(prop):
            required = "required "
        lines.append(
            f"public {required}{type_text} {prop.name} {{ get; {_setter_keyword(prop)}; }}"
        )
    return lines


def _settable_positional_block(properties: list[Property], imports: list[str]) -> list[str]:
    """Redeclare settable record parameters, whose generated properties are init-only."""
    return [
        f"public {render_type(p.type, imports)} {p.name} {{ get; set; }} = {p.name};"
        for p in properties
        if _setter_keyword(p) == "set"
    ]


def _constructor_block(
    properties: list[Property], options: GenerationOptions, imports: list[str]
) -> list[str]:
    parameters = ", ".join(
        f"{render_type(p.type, imports)} {to_parameter_name(p.name)}"
        for p in properties
    )
    lines = [f"public {options.type_name}({parameters})", "{"]
    for prop in properties:
        lines.append(f"{INDENT}{prop.name} = {to_parameter_name(prop.name)};")
    lines.append("}")
    return lines


def _indexer_block(indexer: Property, imports: list[str]) -> list[str]:
    parameters = ", ".join(render_parameter(p, imports) for p in indexer.parameters)
    lines = [f"public {render_type(indexer.type, imports)} this[{parameters}]", "{"]
    if indexer.has_getter:
        lines.append(f"{INDENT}get => {NOT_IMPLEMENTED};")
    if indexer.has_setter:
        lines.append(f"{INDENT}set => {NOT_IMPLEMENTED};")
    lines.append("}")
    return lines


def _method_block(method: Method, imports: list[str]) -> list[str]:
    parameters = ", ".join(render_parameter(p, imports) for p in method.parameters)
    generic = f"<{', '.join(method.type_parameters)}>" if method.type_parameters else ""
    header = (
        f"public {render_type(method.return_type, imports)} "
        f"{method.name}{generic}({parameters})"
    )
    lines = [header]
    lines.extend(f"{INDENT}{clause}" for clause in method.constraint_clauses)
    lines.extend(["{", f"{INDENT}{NOT_IMPLEMENTED};", "}"])
    return lines


def _event_block(events: list[Event], imports: list[str]) -> list[str]:
    return [f"public event {render_type(e.type, imports)} {e.name};" for e in events]


def _type_header(
    decl: InterfaceDecl,
    options: GenerationOptions,
    data_properties: list[Property],
    imports: list[str],
) -> str:
    kind = "record" if options.use_record else "class"
    name = options.type_name
    if decl.type_parameters:
        name += f"<{', '.join(decl.type_parameters)}>"
    if options.style is RenderStyle.POSITIONAL and options.use_record:
        primary = ", ".join(
            f"{render_type(p.type, imports)} {p.name}" for p in data_properties
        )
        name += f"({primary})"
    return f"public partial {kind} {name} : {render_type(decl.as_type_ref(), imports)}"


def render_implementation(
    decl: InterfaceDecl,
    options: GenerationOptions,
    flattened: FlattenedMembers,
    imports: list[str],
    generated_at: datetime,
    namespace_imports: list[str] | None = None,
) -> str:
    """Render the full source file for the implementation of decl.

    ``namespace_imports`` are written inside the namespace block, where
    directives relative to that namespace still resolve.
    """
    data_properties = flattened.data_properties
    writer = _SourceWriter()

    for using in imports:
        writer.line(using)
    if imports:
        writer.line()

    if decl.namespace:
        writer.open(f"namespace {decl.namespace}")
        for using in namespace_imports or []:
            writer.line(using)
        if namespace_imports:
            writer.line()

    writer.line("// <auto-generated/>")
    writer.line(f"// Generated by autoimpl at {generated_at.isoformat()}")
    writer.line()

    writer.open(
        _type_header(decl, options, data_properties, imports),
        *(f"{INDENT}{clause}" for clause in decl.constraint_clauses),
    )

    blocks: list[list[str]] = []
    positional_record = options.style is RenderStyle.POSITIONAL and options.use_record
    if positional_record:
        settable = _settable_positional_block(data_properties, imports)
        if settable:
            blocks.append(settable)
    elif data_properties:
        blocks.append(_data_member_block(data_properties, options, imports))
        if options.style is RenderStyle.POSITIONAL:
            blocks.append(_constructor_block(data_properties, options, imports))
    blocks.extend(_indexer_block(i, imports) for i in flattened.indexers)
    blocks.extend(_method_block(m, imports) for m in flattened.methods)
    if flattened.events:
        blocks.append(_event_block(flattened.events, imports))
    writer.blank_separated(blocks)

    writer.close()
    if decl.namespace:
        writer.close()

    return writer.text()


def synthesize(
    decl: InterfaceDecl,
    *,
    style: RenderStyle = RenderStyle.FIELDS,
    report: Callable[[Diagnostic], None] | None = None,
    generated_at: datetime | None = None,
) -> OutputUnit | None:
    """Generate the implementation of one annotated interface.

    Args:
        decl: Candidate interface declaration
        style: Rendering style for data members
        report: Receives advisory diagnostics; logged when omitted
        generated_at: Timestamp for the banner, now when omitted

    Returns:
        The generated OutputUnit, or None when decl is skipped
    """
    attribute = find_marker_attribute(decl)
    if attribute is None:
        logger.debug(f"Skipping {decl.name}: no GenerateImplementation attribute")
        return None

    options = parse_options(decl, attribute, style)
    if not options.type_name.strip():
        logger.debug(f"Skipping {decl.name}: no usable type name")
        return None

    flattened = flatten_all(decl)
    for indexer in flattened.indexers:
        diagnostic = Diagnostic.create(
            INDEXER_INFO, indexer.location, decl.name, indexer.name
        )
        if report is not None:
            report(diagnostic)
        else:
            logger.info(str(diagnostic))

    imports = resolve_imports(decl, flattened)
    namespace_imports = resolve_namespace_imports(decl, imports)
    generated_at = generated_at or datetime.now(UTC)
    source = render_implementation(
        decl, options, flattened, imports, generated_at, namespace_imports
    )

    prefix = f"{decl.namespace}." if decl.namespace else ""
    logger.info(f"Generated {prefix}{options.type_name} from {decl.name}")
    return OutputUnit(
        hint_name=f"{prefix}{options.type_name}.g.cs",
        type_name=options.type_name,
        namespace=decl.namespace,
        source=source,
    )
