"""Render type references as C# source text."""

from collections.abc import Iterable

from autoimpl.models import TypeRef

CORE_NAMESPACE = "System"

# Core runtime types written with their C# keyword
KEYWORD_ALIASES = {
    "String": "string",
    "Int16": "short",
    "Int32": "int",
    "Int64": "long",
    "UInt16": "ushort",
    "UInt32": "uint",
    "UInt64": "ulong",
    "Byte": "byte",
    "SByte": "sbyte",
    "Single": "float",
    "Double": "double",
    "Decimal": "decimal",
    "Boolean": "bool",
    "Char": "char",
    "Object": "object",
    "Void": "void",
    "IntPtr": "nint",
    "UIntPtr": "nuint",
}

# Core runtime types written with their bare name
SHORT_NAMES = {"DateTime", "DateTimeOffset", "Guid", "TimeSpan"}


def is_builtin(type_ref: TypeRef) -> bool:
    """Whether a type is a well-known core runtime type rendered by short name."""
    return type_ref.namespace == CORE_NAMESPACE and (
        type_ref.name in KEYWORD_ALIASES or type_ref.name in SHORT_NAMES
    ) and not type_ref.type_arguments and not type_ref.containing_type


def render_type(type_ref: TypeRef, imports: Iterable[str] = ()) -> str:
    """Render a type reference.

    Everything is fully qualified except core runtime primitives, so the
    output resolves regardless of the directives in scope. ``imports`` is
    accepted for callers that have it at hand; qualification does not
    depend on it.

    Args:
        type_ref: The type to render
        imports: The using directives of the generated file

    Returns:
        C# type syntax
    """
    if type_ref.is_array:
        commas = "," * (type_ref.array_rank - 1)
        text = f"{render_type(type_ref.element_type, imports)}[{commas}]"
        return text + "?" if type_ref.nullable else text

    if type_ref.is_nullable_value_wrapper:
        return render_type(type_ref.type_arguments[0], imports) + "?"

    if type_ref.is_tuple:
        elements = [
            f"{render_type(a, imports)} {n}" if n else render_type(a, imports)
            for a, n in zip(type_ref.type_arguments, type_ref.tuple_names)
        ]
        text = f"({', '.join(elements)})"
    elif type_ref.type_arguments:
        arguments = ", ".join(render_type(a, imports) for a in type_ref.type_arguments)
        text = f"{_render_name(type_ref)}<{arguments}>"
    else:
        text = _render_name(type_ref)
    if type_ref.nullable:
        text += "?"
    return text


def _render_name(type_ref: TypeRef) -> str:
    if type_ref.is_type_parameter:
        return type_ref.name
    if is_builtin(type_ref):
        return KEYWORD_ALIASES.get(type_ref.name, type_ref.name)
    return type_ref.full_name
