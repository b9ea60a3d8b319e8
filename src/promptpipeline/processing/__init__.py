"""Text processors and the render pipeline."""

from .input import (
    TrimWhitespace,
    SanitizeInput,
    NormalizeLineBreaks,
    EscapeXmlContent,
    JsonEncodeArrays,
)
from .output import (
    TrimOutput,
    NormalizeWhitespace,
    StripMarkdownFences,
    ExtractXmlTag,
    ExtractJsonBlock,
    Deduplicate,
)
from .pipeline import Pipeline

__all__ = [
    # Input processors
    "TrimWhitespace",
    "SanitizeInput",
    "NormalizeLineBreaks",
    "EscapeXmlContent",
    "JsonEncodeArrays",
    # Output processors
    "TrimOutput",
    "NormalizeWhitespace",
    "StripMarkdownFences",
    "ExtractXmlTag",
    "ExtractJsonBlock",
    "Deduplicate",
    # Pipeline
    "Pipeline",
]
