"""Batch driver that runs synthesis over every candidate interface."""

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from autoimpl.discovery.compilation import Compilation
from autoimpl.engine.diagnostics import Diagnostic
from autoimpl.engine.options import RenderStyle
from autoimpl.engine.synthesizer import synthesize
from autoimpl.models import OutputUnit

logger = logging.getLogger(__name__)


@dataclass
class GenerationError:
    """A non-fatal error while generating one interface."""

    interface: str
    error: str


@dataclass
class GenerationResult:
    """Everything produced by one generation run."""

    generated_at: str
    outputs: list[OutputUnit] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)
    errors: list[GenerationError] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Summarize the run for JSON output, without generated sources."""
        return {
            "generated_at": self.generated_at,
            "outputs": [
                {
                    "hint_name": o.hint_name,
                    "type_name": o.type_name,
                    "namespace": o.namespace,
                }
                for o in self.outputs
            ],
            "diagnostics": [
                {
                    "id": d.id,
                    "severity": d.severity.value,
                    "message": d.message,
                    "location": str(d.location) if d.location else None,
                }
                for d in self.diagnostics
            ],
            "errors": [asdict(e) for e in self.errors],
        }

    def to_json(self, indent: int = 2) -> str:
        """Serialize the summary to a JSON string."""
        return json.dumps(self.to_dict(), indent=indent)


def generate(
    compilation: Compilation,
    *,
    style: RenderStyle = RenderStyle.FIELDS,
    generated_at: datetime | None = None,
) -> GenerationResult:
    """Generate implementations for every annotated interface.

    Candidates without the marker attribute or without a usable name are
    skipped silently. A failure on one interface is recorded and the run
    continues with the next.

    Args:
        compilation: The sources to generate from
        style: Rendering style for data members
        generated_at: Timestamp for the generated banners, now when omitted

    Returns:
        GenerationResult with outputs, diagnostics and errors
    """
    generated_at = generated_at or datetime.now(UTC)
    result = GenerationResult(generated_at=generated_at.isoformat())

    candidates = compilation.candidates()
    logger.info(f"Generating implementations for {len(candidates)} candidates")

    for decl in candidates:
        try:
            output = synthesize(
                decl,
                style=style,
                report=result.diagnostics.append,
                generated_at=generated_at,
            )
        except Exception as e:
            logger.warning(f"Error generating {decl.name}: {e}")
            result.errors.append(GenerationError(interface=decl.full_name, error=str(e)))
            continue
        if output is not None:
            result.outputs.append(output)

    logger.info(
        f"Generation complete: {len(result.outputs)} outputs, "
        f"{len(result.diagnostics)} diagnostics, {len(result.errors)} errors"
    )
    return result


def generate_from_paths(
    paths: list[Path],
    *,
    style: RenderStyle = RenderStyle.FIELDS,
    generated_at: datetime | None = None,
) -> GenerationResult:
    """Load ``.cs`` files and directories, then generate.

    Raises:
        DiscoveryError: If a path cannot be read
    """
    compilation = Compilation.from_paths(paths)
    return generate(compilation, style=style, generated_at=generated_at)
