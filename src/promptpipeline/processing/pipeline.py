"""Fluent render pipeline: variables, input processors, render, output processors."""

import logging
from typing import Optional, Dict, Any, List, Union, Type

from ..core.base import BaseProcessor, ExclusionProvider
from ..core.config import Settings, get_settings
from ..core.exceptions import PipelineError, ProcessorFailure
from ..core.registry import input_processor_registry, output_processor_registry, ProcessorRegistry
from ..core.types import PipelineStage, ProcessorSpec, PromptTemplate, RenderRequest, ValidationResult
from ..exclusions.exclusion_set import ExclusionSet
from ..exclusions.manager import GlobalExclusions, global_exclusions as default_global_exclusions
from ..rendering.engine import TemplateEngine
from ..rendering.variables import VariableResolver
from . import input as _input_processors  # noqa: F401  (registers built-ins)
from . import output as _output_processors  # noqa: F401  (registers built-ins)

logger = logging.getLogger(__name__)

ProcessorRef = Union[str, Type[BaseProcessor]]


class Pipeline:
    """
    One render of one template, configured fluently.

    Example:
        >>> Pipeline.from_string("Hello {{ name }}!") \\
        ...     .with_variables({"name": "World"}) \\
        ...     .output_processor("trim") \\
        ...     .render()
        'Hello World!'

    Any failure aborts the render; no partial output is returned.
    """

    def __init__(
        self,
        engine: Optional[TemplateEngine] = None,
        variable_resolver: Optional[VariableResolver] = None,
        settings: Optional[Settings] = None,
        global_exclusions: Optional[GlobalExclusions] = None
    ):
        """
        Initialize the pipeline.

        Args:
            engine: Template engine to render with; a new one is created if omitted
            variable_resolver: Provider chain; defaults to the configured providers
            settings: Settings for default processors and exclusions
            global_exclusions: Process-wide exclusion registry
        """
        self.settings = settings or get_settings()
        self.global_exclusions = global_exclusions or default_global_exclusions
        self.engine = engine or TemplateEngine(
            settings=self.settings,
            global_exclusions=self.global_exclusions,
        )
        self.variable_resolver = variable_resolver or VariableResolver().load_from_config(self.settings)
        self.stage = PipelineStage.IDLE

        self._template: Optional[PromptTemplate] = None
        self._source: Optional[str] = None
        self._raw_output: Optional[str] = None
        self._variables: Dict[str, Any] = {}
        self._owner: Optional[Any] = None
        self._input_specs: List[ProcessorSpec] = []
        self._output_specs: List[ProcessorSpec] = []
        self._exclusions: Optional[ExclusionSet] = None
        self._exclusion_provider: Optional[ExclusionProvider] = None
        self._excluded_fragments: List[str] = []
        self._excluded_tags: List[str] = []
        self._use_default_processors = True

    # Builders
    @classmethod
    def make(cls, template: PromptTemplate, **kwargs) -> "Pipeline":
        """Pipeline for a stored template; its owner scopes fragment lookup."""
        pipeline = cls(**kwargs)
        pipeline._template = template
        return pipeline

    @classmethod
    def from_string(cls, source: str, **kwargs) -> "Pipeline":
        pipeline = cls(**kwargs)
        pipeline._source = source
        return pipeline

    @classmethod
    def for_output(cls, output: str, **kwargs) -> "Pipeline":
        """Output-only pipeline: ``run()`` applies output processors to ``output``."""
        pipeline = cls(**kwargs)
        pipeline._raw_output = output
        return pipeline

    # Configuration
    def with_variables(self, variables: Dict[str, Any]) -> "Pipeline":
        self._variables.update(variables)
        return self

    def with_owner(self, owner: Any) -> "Pipeline":
        self._owner = owner
        return self

    def input_processor(self, processor: ProcessorRef, config: Optional[Dict[str, Any]] = None) -> "Pipeline":
        self._input_specs.append(self._spec(processor, config))
        return self

    def output_processor(self, processor: ProcessorRef, config: Optional[Dict[str, Any]] = None) -> "Pipeline":
        self._output_specs.append(self._spec(processor, config))
        return self

    def without_default_processors(self) -> "Pipeline":
        self._use_default_processors = False
        return self

    def with_exclusions(self, exclusions: ExclusionSet) -> "Pipeline":
        self._exclusions = exclusions
        return self

    def with_exclusion_provider(self, provider: ExclusionProvider) -> "Pipeline":
        self._exclusion_provider = provider
        return self

    def exclude_fragments(self, slugs: List[str]) -> "Pipeline":
        self._excluded_fragments.extend(slugs)
        return self

    def exclude_tags(self, tags: List[str]) -> "Pipeline":
        self._excluded_tags.extend(tags)
        return self

    # Execution
    def render(self) -> str:
        """
        Render the template and return the processed output.

        Raises:
            PipelineError: No template was given
            ProcessorFailure: An input or output processor failed
            PromptPipelineError: Any engine or fragment failure, unwrapped
        """
        self._advance(PipelineStage.IDLE)
        content = self._template_content()
        self._advance(PipelineStage.CONTENT_RESOLVED)

        owner = self._resolve_owner()
        variables = self.variable_resolver.resolve(self._variables, owner)
        self._advance(PipelineStage.VARIABLES_RESOLVED)

        request = RenderRequest(
            content=content,
            variables=variables,
            exclusions=self._build_exclusions(),
            owner=owner,
            input_processors=self._processor_specs(self.settings.processors.input, self._input_specs),
            output_processors=self._processor_specs(self.settings.processors.output, self._output_specs),
        )

        request.variables = self._run_input_processors(request.input_processors, request.variables)
        self._advance(PipelineStage.INPUT_PROCESSED)

        output = self._render(request)
        self._advance(PipelineStage.RENDERED)

        output = self._run_output_processors(request.output_processors, output)
        self._advance(PipelineStage.OUTPUT_PROCESSED)
        self._advance(PipelineStage.DONE)
        return output

    def run(self) -> str:
        """
        Apply output processors to the text given to ``for_output``.

        Raises:
            PipelineError: The pipeline was built for a template
        """
        if self._raw_output is None:
            raise PipelineError(
                "run() can only be called on output-only pipelines. Use render() for template pipelines.",
                step="run",
            )

        self._advance(PipelineStage.IDLE)
        specs = self._processor_specs(self.settings.processors.output, self._output_specs)
        output = self._run_output_processors(specs, self._raw_output)
        self._advance(PipelineStage.OUTPUT_PROCESSED)
        self._advance(PipelineStage.DONE)
        return output

    def validate(self) -> ValidationResult:
        """Check that the template parses. Only the engine is involved."""
        errors = self.engine.get_errors(self._template_content())
        return ValidationResult(valid=not errors, errors=errors)

    # Internals
    def _advance(self, stage: PipelineStage) -> None:
        self.stage = stage
        logger.debug("Pipeline stage: %s", stage.value)

    def _template_content(self) -> str:
        if self._template is not None:
            return self._template.content
        if self._source is not None:
            return self._source
        raise PipelineError("No template provided.", step="content")

    def _resolve_owner(self) -> Optional[Any]:
        if self._owner is not None:
            return self._owner
        if self._template is not None:
            return self._template.owner
        return None

    def _build_exclusions(self) -> ExclusionSet:
        exclusions = ExclusionSet.from_config(self.settings)

        if self._exclusions is not None:
            exclusions = exclusions.merge(self._exclusions)

        if self._exclusion_provider is not None:
            exclusions = exclusions.merge(ExclusionSet(
                self._exclusion_provider.excluded_fragments(),
                self._exclusion_provider.excluded_tags(),
            ))

        if self._excluded_fragments or self._excluded_tags:
            exclusions = exclusions.merge(ExclusionSet(self._excluded_fragments, self._excluded_tags))

        return exclusions.merge(self.global_exclusions.to_set())

    def _render(self, request: RenderRequest) -> str:
        previous_exclusions = self.engine.exclusions
        previous_owner = self.engine.fragments.owner

        self.engine.set_exclusions(request.exclusions)
        self.engine.set_owner(request.owner)
        try:
            # engine.render resets the fragment resolution chain
            return self.engine.render(request.content, request.variables)
        finally:
            self.engine.set_exclusions(previous_exclusions)
            self.engine.set_owner(previous_owner)

    def _spec(self, processor: ProcessorRef, config: Optional[Dict[str, Any]]) -> ProcessorSpec:
        if isinstance(processor, str):
            return ProcessorSpec(name=processor, config=dict(config or {}))
        name = getattr(processor, "name", None) or processor.__name__
        return ProcessorSpec(name=name, config=dict(config or {}), factory=processor)

    def _processor_specs(self, defaults: List[Any], call_site: List[ProcessorSpec]) -> List[ProcessorSpec]:
        specs: List[ProcessorSpec] = []
        if self._use_default_processors:
            specs.extend(ProcessorSpec(name=entry.name, config=dict(entry.config)) for entry in defaults)
        specs.extend(call_site)
        return specs

    def _create(self, registry: ProcessorRegistry, spec: ProcessorSpec) -> Any:
        if spec.factory is not None:
            return spec.factory(spec.config)
        return registry.create_processor(spec.name, spec.config)

    def _run_input_processors(self, specs: List[ProcessorSpec], variables: Dict[str, Any]) -> Dict[str, Any]:
        for spec in specs:
            logger.debug("Running input processor %s", spec.name)
            try:
                processor = self._create(input_processor_registry, spec)
                variables = processor.process(variables)
            except Exception as e:
                raise ProcessorFailure(spec.name, str(e), cause=e) from e
        return variables

    def _run_output_processors(self, specs: List[ProcessorSpec], output: str) -> str:
        for spec in specs:
            logger.debug("Running output processor %s", spec.name)
            try:
                processor = self._create(output_processor_registry, spec)
                output = processor.process(output)
            except Exception as e:
                raise ProcessorFailure(spec.name, str(e), cause=e) from e
        return output
