"""Parse C# type syntax into TypeRef trees."""

import re

from autoimpl.models import TypeRef

# C# keywords and the System types they stand for
KEYWORD_TYPES = {
    "string": "String",
    "short": "Int16",
    "int": "Int32",
    "long": "Int64",
    "ushort": "UInt16",
    "uint": "UInt32",
    "ulong": "UInt64",
    "byte": "Byte",
    "sbyte": "SByte",
    "float": "Single",
    "double": "Double",
    "decimal": "Decimal",
    "bool": "Boolean",
    "char": "Char",
    "object": "Object",
    "void": "Void",
    "nint": "IntPtr",
    "nuint": "UIntPtr",
    "dynamic": "Object",
}

TOKEN_PATTERN = re.compile(r"\s*(global::|@?\w+|::|[.,<>?\[\]()*])")


class TypeSyntaxError(ValueError):
    """Type text that cannot be parsed."""


class _TypeParser:
    def __init__(self, text: str):
        self.text = text
        self.tokens = self._tokenize(text)
        self.pos = 0

    def _tokenize(self, text: str) -> list[str]:
        tokens = []
        index = 0
        while index < len(text):
            match = TOKEN_PATTERN.match(text, index)
            if not match:
                if text[index:].strip():
                    raise TypeSyntaxError(f"Unexpected character in type {text!r}")
                break
            tokens.append(match.group(1))
            index = match.end()
        return tokens

    def peek(self) -> str | None:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def take(self, expected: str | None = None) -> str:
        token = self.peek()
        if token is None or (expected is not None and token != expected):
            raise TypeSyntaxError(
                f"Expected {expected or 'a token'} in type {self.text!r}, got {token!r}"
            )
        self.pos += 1
        return token

    def parse(self) -> TypeRef:
        type_ref = self.parse_type()
        if self.peek() is not None:
            raise TypeSyntaxError(f"Trailing tokens in type {self.text!r}")
        return type_ref

    def parse_type(self) -> TypeRef:
        if self.peek() == "(":
            type_ref = self.parse_tuple()
        else:
            type_ref = self.parse_named()
        return self.parse_suffixes(type_ref)

    def parse_tuple(self) -> TypeRef:
        self.take("(")
        elements = [self.parse_tuple_element()]
        while self.peek() == ",":
            self.take(",")
            elements.append(self.parse_tuple_element())
        self.take(")")
        return TypeRef(
            name="ValueTuple",
            namespace="System",
            type_arguments=[element for element, _ in elements],
            tuple_names=[name for _, name in elements],
        )

    def parse_tuple_element(self) -> tuple[TypeRef, str | None]:
        element = self.parse_type()
        token = self.peek()
        if token is None or token in (",", ")"):
            return element, None
        self.take()
        if not re.fullmatch(r"@?\w+", token):
            raise TypeSyntaxError(f"Expected a tuple element name in {self.text!r}, got {token!r}")
        return element, token

    def parse_named(self) -> TypeRef:
        if self.peek() == "global::":
            self.take()
        parts = [self._identifier()]
        while self.peek() in (".", "::"):
            self.take()
            parts.append(self._identifier())

        arguments = []
        if self.peek() == "<":
            self.take("<")
            arguments.append(self.parse_type())
            while self.peek() == ",":
                self.take(",")
                arguments.append(self.parse_type())
            self.take(">")

        name = parts[-1]
        if len(parts) == 1 and name in KEYWORD_TYPES and not arguments:
            return TypeRef(name=KEYWORD_TYPES[name], namespace="System")
        namespace = ".".join(parts[:-1]) or None
        return TypeRef(name=name, namespace=namespace, type_arguments=arguments)

    def parse_suffixes(self, type_ref: TypeRef) -> TypeRef:
        while self.peek() in ("?", "[", "*"):
            token = self.take()
            if token == "?":
                type_ref.nullable = True
            elif token == "[":
                rank = 1
                while self.peek() == ",":
                    self.take(",")
                    rank += 1
                self.take("]")
                type_ref = TypeRef(
                    name=f"{type_ref.name}[]", element_type=type_ref, array_rank=rank
                )
            else:
                raise TypeSyntaxError(f"Pointer types are not supported: {self.text!r}")
        return type_ref

    def _identifier(self) -> str:
        token = self.take()
        if not re.fullmatch(r"@?\w+", token):
            raise TypeSyntaxError(f"Expected a name in type {self.text!r}, got {token!r}")
        return token.lstrip("@")


def parse_type(text: str) -> TypeRef:
    """Parse C# type syntax.

    Keywords resolve to their System type. Qualified names keep their
    qualifier as namespace; simple names are left for the caller to resolve.

    Args:
        text: Type text such as ``List<Product?>[]``

    Returns:
        An unresolved TypeRef

    Raises:
        TypeSyntaxError: If the text is not a supported type
    """
    text = text.strip()
    if not text:
        raise TypeSyntaxError("Empty type")
    return _TypeParser(text).parse()
