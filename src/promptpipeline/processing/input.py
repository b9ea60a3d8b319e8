"""Input processors: transform the variable map before rendering."""

import re
from typing import Dict, Any, Callable
from xml.sax.saxutils import escape

from ..core.base import InputProcessor
from ..core.exceptions import ConfigurationError
from ..core.registry import input_processor_registry
from ..structure.markup_builder import to_json

_XML_ENTITIES = {'"': "&quot;", "'": "&apos;"}


def map_strings(value: Any, func: Callable[[str], str]) -> Any:
    """Apply ``func`` to every string inside nested dicts and lists."""
    if isinstance(value, str):
        return func(value)
    if isinstance(value, dict):
        return {key: map_strings(item, func) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return type(value)(map_strings(item, func) for item in value)
    return value


@input_processor_registry.register("trim", aliases=["trim_whitespace"])
class TrimWhitespace(InputProcessor):
    """Strip surrounding whitespace from string variables."""

    name = "trim"
    description = "Trim whitespace from string values (nested values too unless recursive=False)"

    def process(self, variables: Dict[str, Any]) -> Dict[str, Any]:
        if self.config.get("recursive", True):
            return map_strings(variables, str.strip)

        return {
            key: value.strip() if isinstance(value, str) else value
            for key, value in variables.items()
        }


@input_processor_registry.register("sanitize", aliases=["sanitize_input"])
class SanitizeInput(InputProcessor):
    """
    Remove NUL bytes from string variables.

    With ``strict`` also strips template delimiters (``{{ }}``, ``{% %}``,
    ``{# #}``) so user data cannot smuggle template code into fragments.
    """

    name = "sanitize"
    description = "Remove NUL bytes and, in strict mode, template delimiters"

    _DELIMITERS = [
        re.compile(r"\{\{.*?\}\}", re.DOTALL),
        re.compile(r"\{%.*?%\}", re.DOTALL),
        re.compile(r"\{#.*?#\}", re.DOTALL),
    ]

    def process(self, variables: Dict[str, Any]) -> Dict[str, Any]:
        return map_strings(variables, self._sanitize)

    def _sanitize(self, value: str) -> str:
        value = value.replace("\0", "")
        if self.config.get("strict", False):
            for pattern in self._DELIMITERS:
                value = pattern.sub("", value)
        return value


@input_processor_registry.register("normalize_line_breaks")
class NormalizeLineBreaks(InputProcessor):
    name = "normalize_line_breaks"
    description = "Convert CRLF and CR line breaks to LF"

    def process(self, variables: Dict[str, Any]) -> Dict[str, Any]:
        return map_strings(variables, lambda s: s.replace("\r\n", "\n").replace("\r", "\n"))


@input_processor_registry.register(
    "escape_xml",
    aliases=["escape_markup", "escape_xml_content"]
)
class EscapeXmlContent(InputProcessor):
    """
    Entity-escape ``& < > " '`` in string variables.

    Escapes every string (recursively) unless ``keys`` names the top-level
    variables to escape.
    """

    name = "escape_xml"
    description = "Escape markup characters in string values"

    def _validate_config(self) -> None:
        keys = self.config.get("keys", [])
        if not isinstance(keys, (list, tuple)):
            raise ConfigurationError("escape_xml 'keys' must be a list", config_key="keys")

    def process(self, variables: Dict[str, Any]) -> Dict[str, Any]:
        keys = self.config.get("keys") or []
        if not keys:
            return map_strings(variables, self._escape)

        result = dict(variables)
        for key in keys:
            if isinstance(result.get(key), str):
                result[key] = self._escape(result[key])
        return result

    @staticmethod
    def _escape(value: str) -> str:
        return escape(value, _XML_ENTITIES)


@input_processor_registry.register("json_encode_arrays")
class JsonEncodeArrays(InputProcessor):
    name = "json_encode_arrays"
    description = "Encode list and dict variables as JSON strings"

    def process(self, variables: Dict[str, Any]) -> Dict[str, Any]:
        pretty = self.config.get("pretty", False)
        return {
            key: to_json(value, pretty=pretty) if isinstance(value, (list, dict)) else value
            for key, value in variables.items()
        }
