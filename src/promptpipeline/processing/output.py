"""Output processors: transform the rendered text after rendering."""

import json
import re

from ..core.base import OutputProcessor
from ..core.exceptions import ConfigurationError
from ..core.registry import output_processor_registry
from ..dedup import deduplicate, resolve_strategy_name, STRATEGIES


@output_processor_registry.register("trim", aliases=["trim_output"])
class TrimOutput(OutputProcessor):
    name = "trim"
    description = "Strip leading and trailing whitespace"

    def process(self, output: str) -> str:
        return output.strip()


@output_processor_registry.register("normalize_whitespace")
class NormalizeWhitespace(OutputProcessor):
    """
    Collapse repeated spaces, cap blank lines and strip line endings.

    Config:
        max_newlines: Longest run of newlines to keep (default 2)
        preserve_indentation: Leave leading spaces alone (default True)
    """

    name = "normalize_whitespace"
    description = "Collapse spaces and excessive newlines"

    def _validate_config(self) -> None:
        max_newlines = self.config.get("max_newlines", 2)
        if not isinstance(max_newlines, int) or max_newlines < 1:
            raise ConfigurationError(
                "normalize_whitespace 'max_newlines' must be a positive integer",
                config_key="max_newlines"
            )

    def process(self, output: str) -> str:
        max_newlines = self.config.get("max_newlines", 2)

        if self.config.get("preserve_indentation", True):
            output = re.sub(r"(?<=\S) {2,}", " ", output)
        else:
            output = re.sub(r" {2,}", " ", output)

        output = "\n".join(line.rstrip() for line in output.split("\n"))
        output = re.sub(r"\n{%d,}" % (max_newlines + 1), "\n" * max_newlines, output)

        return output.strip()


@output_processor_registry.register("strip_markdown_fences")
class StripMarkdownFences(OutputProcessor):
    name = "strip_markdown_fences"
    description = "Unwrap (or drop) fenced code blocks"

    _FENCE = re.compile(r"```(?:\w+)?\s*([\s\S]*?)\s*```")

    def process(self, output: str) -> str:
        if self.config.get("preserve_content", True):
            return self._FENCE.sub(r"\1", output)
        return self._FENCE.sub("", output)


@output_processor_registry.register("extract_xml_tag")
class ExtractXmlTag(OutputProcessor):
    """Return the trimmed content of the first ``<tag>...</tag>``, or the input unchanged."""

    name = "extract_xml_tag"
    description = "Extract the content of a tag"

    def process(self, output: str) -> str:
        tag = self.config.get("tag")
        if not tag:
            return output

        escaped = re.escape(tag)
        match = re.search(r"<%s[^>]*>([\s\S]*?)</%s>" % (escaped, escaped), output)
        if match:
            return match.group(1).strip()
        return output


@output_processor_registry.register("extract_json_block")
class ExtractJsonBlock(OutputProcessor):
    """
    Pull a JSON document out of model output.

    Tries a fenced block first, then the widest ``{...}`` or ``[...]`` span.
    Falls back to the raw text when ``fallback_raw`` (default) is set,
    otherwise to an empty string.
    """

    name = "extract_json_block"
    description = "Extract a JSON block from text"

    _FENCED = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")
    _BARE = re.compile(r"(\{[\s\S]*\}|\[[\s\S]*\])")

    def process(self, output: str) -> str:
        match = self._FENCED.search(output)
        if match and self._is_json(match.group(1).strip()):
            return match.group(1).strip()

        match = self._BARE.search(output)
        if match and self._is_json(match.group(1)):
            return match.group(1)

        return output if self.config.get("fallback_raw", True) else ""

    @staticmethod
    def _is_json(candidate: str) -> bool:
        try:
            json.loads(candidate)
        except ValueError:
            return False
        return True


@output_processor_registry.register("deduplicate", aliases=["dedupe", "dedup"])
class Deduplicate(OutputProcessor):
    """
    Run deduplication strategies in order.

    Config:
        strategies: Strategy names; defaults to the configured default strategies
        whitespace, blank_lines, duplicate_lines, duplicate_sentences:
            Per-strategy option maps (camelCase keys are accepted too)
    """

    name = "deduplicate"
    description = "Remove repeated whitespace, blank lines, lines and sentences"

    def _validate_config(self) -> None:
        strategies = self.config.get("strategies")
        if strategies is not None and not isinstance(strategies, (list, tuple)):
            raise ConfigurationError("deduplicate 'strategies' must be a list", config_key="strategies")

    def process(self, output: str) -> str:
        options = {
            key: value for key, value in self.config.items()
            if resolve_strategy_name(key) in STRATEGIES
        }
        return deduplicate(output, self.config.get("strategies"), options)
