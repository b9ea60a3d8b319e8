"""Core module - foundational types, contracts, configuration and errors."""

from .types import (
    Fragment,
    PromptTemplate,
    PipelineStage,
    ProcessorSpec,
    RenderRequest,
    ResolutionContext,
    ValidationResult,
)
from .base import (
    BaseProcessor,
    InputProcessor,
    OutputProcessor,
    VariableProvider,
    ExclusionProvider,
    FragmentStore,
)
from .config import Settings, MissingVariableBehavior, ProcessorEntry, get_settings, reload_settings
from .exceptions import (
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
from .logging import configure_logging
from .registry import (
    Registry,
    ProcessorRegistry,
    VariableProviderRegistry,
    input_processor_registry,
    output_processor_registry,
    variable_provider_registry,
)

__all__ = [
    # Types
    "Fragment",
    "PromptTemplate",
    "PipelineStage",
    "ProcessorSpec",
    "RenderRequest",
    "ResolutionContext",
    "ValidationResult",
    # Contracts
    "BaseProcessor",
    "InputProcessor",
    "OutputProcessor",
    "VariableProvider",
    "ExclusionProvider",
    "FragmentStore",
    # Configuration
    "Settings",
    "MissingVariableBehavior",
    "ProcessorEntry",
    "get_settings",
    "reload_settings",
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
    # Logging
    "configure_logging",
    # Registry
    "Registry",
    "ProcessorRegistry",
    "VariableProviderRegistry",
    "input_processor_registry",
    "output_processor_registry",
    "variable_provider_registry",
]
