"""
PromptPipeline - Sandboxed prompt templating for LLM applications

Renders a restricted Jinja2 dialect against caller variables, composes
reusable fragments, and cleans up input and output with text processors.

Basic Usage:
    >>> from promptpipeline import PromptPipeline
    >>> pp = PromptPipeline()
    >>>
    >>> # Render a template string
    >>> pp.render_string("Hello {{ name }}!", {"name": "World"})
    'Hello World!'
    >>>
    >>> # Compose with fragments
    >>> _ = pp.register_fragment("greeting", "Hi {{ name }}.")
    >>> pp.render_string("{{ fragment('greeting') }} Welcome.", {"name": "Ada"})
    'Hi Ada. Welcome.'
    >>>
    >>> # Clean up model output
    >>> pp.process_output("<answer> 42 </answer>", [{"extract_xml_tag": {"tag": "answer"}}])
    '42'

For more control, use the individual modules:
    - promptpipeline.rendering: Template engine, sandbox and fragment resolver
    - promptpipeline.processing: Input/output processors and the Pipeline builder
    - promptpipeline.exclusions: Exclusion sets and the global registry
    - promptpipeline.structure: MarkupBuilder for tagged prompt sections
"""

from typing import Optional, Dict, Any, List, Union

from .core.config import Settings, get_settings, normalize_processor_entries
from .core.logging import configure_logging
from .core.base import FragmentStore
from .core.types import Fragment, PromptTemplate, ValidationResult, PipelineStage
from .core.exceptions import (
    PromptPipelineError,
    TemplateSyntaxError,
    TemplateRenderError,
    SandboxViolation,
    FragmentNotFound,
    FragmentDepthExceeded,
    CircularFragmentReference,
    MissingVariable,
    ProcessorFailure,
    PipelineError,
    ConfigurationError,
)
from .exclusions import ExclusionSet, GlobalExclusions, global_exclusions
from .rendering import TemplateEngine, FragmentResolver, InMemoryFragmentStore, VariableResolver
from .processing import Pipeline
from .structure import MarkupBuilder


__version__ = "1.0.0"
__all__ = [
    # Main class
    "PromptPipeline",
    # Core types
    "Fragment",
    "PromptTemplate",
    "ValidationResult",
    "PipelineStage",
    "ExclusionSet",
    # Exceptions
    "PromptPipelineError",
    "TemplateSyntaxError",
    "TemplateRenderError",
    "SandboxViolation",
    "FragmentNotFound",
    "FragmentDepthExceeded",
    "CircularFragmentReference",
    "MissingVariable",
    "ProcessorFailure",
    "PipelineError",
    "ConfigurationError",
    # Individual components (for advanced use)
    "TemplateEngine",
    "FragmentResolver",
    "InMemoryFragmentStore",
    "VariableResolver",
    "GlobalExclusions",
    "global_exclusions",
    "Pipeline",
    "MarkupBuilder",
    "Settings",
    "configure_logging",
]


class PromptPipeline:
    """
    Main interface for rendering prompts.

    Holds one engine, fragment resolver and variable resolver and hands
    them to every pipeline it builds.

    Example:
        >>> pp = PromptPipeline()
        >>> pp.from_string("{{ task('Summarize') }}").render()
        '<task>Summarize</task>'
    """

    def __init__(
        self,
        store: Optional[FragmentStore] = None,
        settings: Optional[Settings] = None,
        exclusions: Optional[GlobalExclusions] = None,
    ):
        """
        Initialize the PromptPipeline.

        Args:
            store: Fragment storage backend (None for runtime fragments only)
            settings: Settings to use instead of the environment-loaded ones
            exclusions: Global exclusion registry (defaults to the process-wide one)
        """
        self.settings = settings or get_settings()
        self.global_exclusions = exclusions or global_exclusions
        self.fragments = FragmentResolver(
            store=store,
            settings=self.settings,
            global_exclusions=self.global_exclusions,
        )
        self.engine = TemplateEngine(
            fragment_resolver=self.fragments,
            settings=self.settings,
            global_exclusions=self.global_exclusions,
        )
        self.variables = VariableResolver().load_from_config(self.settings)

    def _pipeline_kwargs(self) -> Dict[str, Any]:
        return {
            "engine": self.engine,
            "variable_resolver": self.variables,
            "settings": self.settings,
            "global_exclusions": self.global_exclusions,
        }

    # Pipeline builders
    def make(self, template: PromptTemplate) -> Pipeline:
        return Pipeline.make(template, **self._pipeline_kwargs())

    def from_string(self, source: str) -> Pipeline:
        return Pipeline.from_string(source, **self._pipeline_kwargs())

    def for_output(self, output: str) -> Pipeline:
        return Pipeline.for_output(output, **self._pipeline_kwargs())

    # One-shot operations
    def render_template(
        self,
        template: PromptTemplate,
        variables: Optional[Dict[str, Any]] = None,
        exclusions: Optional[ExclusionSet] = None
    ) -> str:
        """
        Render a stored template through the full pipeline.

        Args:
            template: Template to render; its owner scopes fragment lookup
            variables: Caller variables (highest precedence)
            exclusions: Extra fragments and tags to suppress

        Returns:
            Processed output
        """
        pipeline = self.make(template).with_variables(variables or {})
        if exclusions is not None:
            pipeline.with_exclusions(exclusions)
        return pipeline.render()

    def render_string(
        self,
        source: str,
        variables: Optional[Dict[str, Any]] = None,
        exclusions: Optional[ExclusionSet] = None
    ) -> str:
        """Render a template string through the full pipeline."""
        pipeline = self.from_string(source).with_variables(variables or {})
        if exclusions is not None:
            pipeline.with_exclusions(exclusions)
        return pipeline.render()

    def process_output(
        self,
        output: str,
        processors: Optional[List[Union[str, Dict[str, Any]]]] = None
    ) -> str:
        """
        Run output processors over text that was not rendered here.

        Args:
            output: Text to process, typically a model response
            processors: Processor names or ``{name: config}`` maps, run after the configured defaults
        """
        pipeline = self.for_output(output)
        for entry in normalize_processor_entries(processors):
            pipeline.output_processor(entry.name, entry.config)
        return pipeline.run()

    def validate(self, source: str) -> bool:
        return self.engine.validate(source)

    def get_errors(self, source: str) -> List[str]:
        return self.engine.get_errors(source)

    def register_fragment(self, slug: str, content: str) -> "PromptPipeline":
        self.fragments.register(slug, content)
        return self
