"""Advisory diagnostics raised while generating implementations."""

from dataclasses import dataclass
from enum import Enum

from autoimpl.models import SourceLocation


class Severity(Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class DiagnosticDescriptor:
    id: str
    title: str
    message_format: str
    category: str
    severity: Severity


@dataclass
class Diagnostic:
    """A reported diagnostic with its formatted message."""

    id: str
    severity: Severity
    message: str
    location: SourceLocation | None = None

    @classmethod
    def create(
        cls,
        descriptor: DiagnosticDescriptor,
        location: SourceLocation | None,
        *args: str,
    ) -> "Diagnostic":
        return cls(
            id=descriptor.id,
            severity=descriptor.severity,
            message=descriptor.message_format.format(*args),
            location=location,
        )

    def __str__(self) -> str:
        prefix = f"{self.location}: " if self.location else ""
        return f"{prefix}{self.severity.value} {self.id}: {self.message}"


INDEXER_INFO = DiagnosticDescriptor(
    id="GI0001",
    title="Indexers in interfaces are not supported by positional generation",
    message_format=(
        "Interface '{0}' has indexer '{1}'. "
        "It will be generated with NotImplementedException."
    ),
    category="GenerateImplementation",
    severity=Severity.INFO,
)
