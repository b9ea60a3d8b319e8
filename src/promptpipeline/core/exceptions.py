"""Custom exceptions for the prompt pipeline."""

from typing import Optional, Dict, Any, List


class PromptPipelineError(Exception):
    """Base exception for all prompt pipeline errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class TemplateSyntaxError(PromptPipelineError):
    """Template could not be parsed or compiled."""

    def __init__(
        self,
        message: str,
        line: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        line_info = f" on line {line}" if line is not None else ""
        super().__init__(f"Template syntax error{line_info}: {message}", details, cause)
        self.line = line
        if line is not None:
            self.details["line"] = line


class TemplateRenderError(PromptPipelineError):
    """Template failed while rendering for a reason other than syntax."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(f"Template render failure: {message}", details, cause)


class SandboxViolation(PromptPipelineError):
    """A template used a construct the sandbox policy does not allow."""

    KINDS = ("filter", "function", "tag", "method", "property")

    def __init__(
        self,
        kind: str,
        name: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        if kind not in self.KINDS:
            raise ValueError(f"Unknown sandbox violation kind: {kind}")

        if kind in ("method", "property"):
            message = f"{kind.capitalize()} '{name}' is not accessible in templates."
        else:
            message = f"{kind.capitalize()} '{name}' is not allowed in templates."

        super().__init__(message, details, cause)
        self.kind = kind
        self.name = name


class FragmentNotFound(PromptPipelineError):
    """No fragment source knows the requested slug."""

    def __init__(self, slug: str):
        super().__init__(f"Fragment '{slug}' not found.")
        self.slug = slug


class FragmentDepthExceeded(PromptPipelineError):
    """Fragment nesting went past the configured maximum depth."""

    def __init__(self, max_depth: int):
        super().__init__(f"Fragment nesting exceeded maximum depth of {max_depth}.")
        self.max_depth = max_depth


class CircularFragmentReference(PromptPipelineError):
    """A fragment (directly or indirectly) includes itself."""

    def __init__(self, chain: List[str]):
        super().__init__(
            f"Circular fragment reference detected: {' -> '.join(chain)}"
        )
        self.chain = list(chain)


class MissingVariable(PromptPipelineError):
    """A template referenced a variable that was not provided."""

    def __init__(self, name: str):
        super().__init__(f"Required variable '{name}' was not provided.")
        self.name = name


class ProcessorFailure(PromptPipelineError):
    """An input or output processor raised while running."""

    def __init__(
        self,
        processor_name: str,
        message: str,
        cause: Optional[Exception] = None
    ):
        super().__init__(
            f"Processor '{processor_name}' failed: {message}",
            {"processor": processor_name},
            cause
        )
        self.processor_name = processor_name
        self.original_message = message


class PipelineError(PromptPipelineError):
    """Pipeline was used incorrectly (e.g. no template to render)."""

    def __init__(
        self,
        message: str,
        step: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(message, details, cause)
        self.step = step
        if step:
            self.details["step"] = step


class ConfigurationError(PromptPipelineError):
    """Error in configuration."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(message, details, cause)
        self.config_key = config_key
        if config_key:
            self.details["config_key"] = config_key
