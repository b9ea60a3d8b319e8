"""Core type definitions for the prompt pipeline."""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List, Hashable, Type, TYPE_CHECKING
from enum import Enum

if TYPE_CHECKING:
    from ..exclusions.exclusion_set import ExclusionSet


class PipelineStage(Enum):
    """Stages a render passes through, in order."""
    IDLE = "idle"
    CONTENT_RESOLVED = "content_resolved"
    VARIABLES_RESOLVED = "variables_resolved"
    INPUT_PROCESSED = "input_processed"
    RENDERED = "rendered"
    OUTPUT_PROCESSED = "output_processed"
    DONE = "done"


@dataclass
class Fragment:
    """
    A named, reusable block of template source.

    ``owner`` is ``None`` for global fragments, otherwise the owner token
    the fragment is scoped to.
    """
    slug: str
    content: str
    owner: Optional[Hashable] = None
    active: bool = True

    @property
    def is_global(self) -> bool:
        return self.owner is None


@dataclass
class PromptTemplate:
    """A stored top-level template, optionally belonging to an owner entity."""
    name: str
    content: str
    slug: Optional[str] = None
    owner: Optional[Any] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ProcessorSpec:
    """
    A processor to run, by registered name, with its configuration.

    ``factory`` is set when a processor class was passed directly
    instead of a registered name.
    """
    name: str
    config: Dict[str, Any] = field(default_factory=dict)
    factory: Optional[Type] = None


@dataclass
class ResolutionContext:
    """Fragments currently being rendered, outermost first."""
    chain: List[str] = field(default_factory=list)
    depth: int = 0


@dataclass
class RenderRequest:
    """Everything a single render needs, assembled by the pipeline."""
    content: str
    variables: Dict[str, Any]
    exclusions: "ExclusionSet"
    owner: Optional[Any] = None
    input_processors: List[ProcessorSpec] = field(default_factory=list)
    output_processors: List[ProcessorSpec] = field(default_factory=list)


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating a template."""
    valid: bool
    errors: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.valid

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @property
    def first_error(self) -> Optional[str]:
        return self.errors[0] if self.errors else None
