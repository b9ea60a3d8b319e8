"""Fluent builder for nested, tagged prompt sections."""

import html
import json
import re
from typing import Optional, Dict, Any, List, Union, Callable

Content = Union[str, Callable[["MarkupBuilder"], Any], None]

COT_BASIC = "Think step-by-step before providing your answer."
COT_STRUCTURED = (
    "Use <thinking> tags to show your reasoning process, "
    "then provide your final answer in <answer> tags."
)

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def to_snake_case(name: str) -> str:
    """Convert ``patientDemographics`` to ``patient_demographics``."""
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def bullet_list(items: List[Any], bullet: str = "-") -> str:
    """Convert a list to bullet points."""
    return "\n".join(f"{bullet} {item}" for item in items)


def numbered_list(items: List[Any]) -> str:
    """Convert a list to numbered items."""
    return "\n".join(f"{i}. {item}" for i, item in enumerate(items, 1))


def to_json(value: Any, pretty: bool = False) -> str:
    """Compact JSON, or four-space indented when ``pretty``."""
    if pretty:
        return json.dumps(value, indent=4)
    return json.dumps(value, separators=(",", ":"))


class MarkupBuilder:
    """
    Accumulates tagged text blocks and joins them into one prompt string.

    Example:
        >>> MarkupBuilder.make().task("Summarize").constraints(["Be brief"]).build()
        '<task>Summarize</task>\\n<constraints>\\n- Be brief\\n</constraints>'
    """

    def __init__(self, snake_case: bool = True, newlines: bool = True):
        self._parts: List[str] = []
        self._snake_case = snake_case
        self._newlines = newlines

    @classmethod
    def make(cls) -> "MarkupBuilder":
        return cls()

    @classmethod
    def from_settings(cls, settings=None) -> "MarkupBuilder":
        """Create a builder using the configured case and newline modes."""
        if settings is None:
            from ..core.config import get_settings
            settings = get_settings()
        return cls(
            snake_case=settings.structure.xml_method_case == "snake",
            newlines=settings.structure.xml_newlines,
        )

    # Core building blocks
    def tag(self, name: str, content: Content = None, attributes: Optional[Dict[str, Any]] = None) -> "MarkupBuilder":
        """
        Add a tag with optional content and attributes.

        ``content`` may be a callable receiving a child builder; the child
        inherits this builder's case and newline modes.
        """
        if callable(content):
            nested = MarkupBuilder(snake_case=self._snake_case, newlines=self._newlines)
            content(nested)
            content = nested.build()

        self._parts.append(self.wrap(name, content, attributes))
        return self

    def raw(self, content: str) -> "MarkupBuilder":
        """Add raw content without wrapping."""
        self._parts.append(content)
        return self

    def blank(self) -> "MarkupBuilder":
        """Add a blank line."""
        self._parts.append("")
        return self

    def when(
        self,
        condition: bool,
        name: str,
        content: Content = None,
        attributes: Optional[Dict[str, Any]] = None
    ) -> "MarkupBuilder":
        """Conditionally add a tag."""
        if condition:
            self.tag(name, content, attributes)
        return self

    def open(self, name: str, attributes: Optional[Dict[str, Any]] = None) -> "MarkupBuilder":
        self._parts.append(self.open_tag(name, attributes))
        return self

    def close(self, name: str) -> "MarkupBuilder":
        self._parts.append(self.close_tag(name))
        return self

    def cdata(self, content: str) -> "MarkupBuilder":
        self._parts.append(f"<![CDATA[{content}]]>")
        return self

    def build(self) -> str:
        """Build and return the final string."""
        separator = "\n" if self._newlines else ""
        return separator.join(self._parts)

    def to_list(self) -> List[str]:
        """Get parts as a list (for inspection)."""
        return list(self._parts)

    # Modes
    def preserve_case(self) -> "MarkupBuilder":
        self._snake_case = False
        return self

    def use_snake_case(self) -> "MarkupBuilder":
        self._snake_case = True
        return self

    def compact(self) -> "MarkupBuilder":
        self._newlines = False
        return self

    def expanded(self) -> "MarkupBuilder":
        self._newlines = True
        return self

    # System & instructions
    def system_instructions(self, content: Content = None) -> "MarkupBuilder":
        return self.tag("system_instructions", content)

    def instructions(self, content: Content = None) -> "MarkupBuilder":
        return self.tag("instructions", content)

    def task(self, content: Content = None) -> "MarkupBuilder":
        return self.tag("task", content)

    def context(self, content: Content = None, label: Optional[str] = None) -> "MarkupBuilder":
        return self.tag("context", content, {"label": label} if label is not None else None)

    def constraints(self, items: List[Any]) -> "MarkupBuilder":
        return self.tag("constraints", bullet_list(items))

    def rules(self, items: List[Any]) -> "MarkupBuilder":
        return self.tag("rules", bullet_list(items))

    # Chain of thought
    def thinking(self, content: Optional[str] = None) -> "MarkupBuilder":
        return self.tag("thinking", content or "")

    def reasoning(self, content: Optional[str] = None) -> "MarkupBuilder":
        return self.tag("reasoning", content or "")

    def answer(self, content: Optional[str] = None) -> "MarkupBuilder":
        return self.tag("answer", content or "")

    def scratchpad(self, content: Optional[str] = None) -> "MarkupBuilder":
        return self.tag("scratchpad", content or "")

    def cot_basic(self) -> "MarkupBuilder":
        return self.raw(COT_BASIC)

    def cot_guided(self, steps: List[Any]) -> "MarkupBuilder":
        return self.raw("Follow these steps:\n" + numbered_list(steps))

    def cot_structured(self) -> "MarkupBuilder":
        return self.raw(COT_STRUCTURED)

    # Documents
    def document(self, content: Content = None, attributes: Optional[Dict[str, Any]] = None) -> "MarkupBuilder":
        return self.tag("document", content, attributes)

    def documents(
        self,
        docs: List[Dict[str, Any]],
        content_key: str = "content",
        name_key: Optional[str] = "name"
    ) -> "MarkupBuilder":
        """Add several documents inside a ``<documents>`` wrapper."""
        self.open("documents")

        for doc in docs:
            attributes = {}
            if name_key is not None and name_key in doc:
                attributes["name"] = doc[name_key]

            self.tag(
                "document",
                lambda xml, doc=doc: xml.document_content(doc.get(content_key, "")),
                attributes,
            )

        return self.close("documents")

    def document_content(self, content: Content = None) -> "MarkupBuilder":
        return self.tag("document_content", content)

    def source(self, value: str) -> "MarkupBuilder":
        return self.tag("source", value)

    # Examples (multishot)
    def example(self, content: Union[str, Dict[str, Any]], label: Optional[str] = None) -> "MarkupBuilder":
        attributes = {"label": label} if label is not None else None

        if isinstance(content, dict):
            def pair(xml: "MarkupBuilder") -> None:
                if "input" in content:
                    xml.tag("input", content["input"])
                if "output" in content:
                    xml.tag("output", content["output"])

            return self.tag("example", pair, attributes)

        return self.tag("example", content, attributes)

    def examples(self, examples: List[Union[str, Dict[str, Any]]]) -> "MarkupBuilder":
        self.open("examples")
        for example in examples:
            self.example(example)
        return self.close("examples")

    def example_pair(self, input: str, output: str, label: Optional[str] = None) -> "MarkupBuilder":
        return self.example({"input": input, "output": output}, label)

    # Output & user input
    def output_format(self, schema: Union[str, Dict[str, Any], List[Any]]) -> "MarkupBuilder":
        content = schema if isinstance(schema, str) else to_json(schema, pretty=True)
        return self.tag("output_format", content)

    def user_message(self, content: Content = None) -> "MarkupBuilder":
        return self.tag("user_message", content)

    def query(self, content: Content = None) -> "MarkupBuilder":
        return self.tag("query", content)

    # Dispatch by name
    def call(self, name: str, *args: Any, **kwargs: Any) -> "MarkupBuilder":
        """
        Add a section by name.

        Known wrapper names (snake_case or camelCase) go to their handler;
        any other name becomes a generic tag, converted to snake_case unless
        case preservation is on.
        """
        handler = WRAPPERS.get(name) or WRAPPERS.get(to_snake_case(name))
        if handler is not None:
            return handler(self, *args, **kwargs)

        tag_name = to_snake_case(name) if self._snake_case else name
        content = args[0] if len(args) > 0 else kwargs.get("content")
        attributes = args[1] if len(args) > 1 else kwargs.get("attributes")
        return self.tag(tag_name, content, attributes)

    # Static helpers
    @staticmethod
    def wrap(name: str, content: Optional[Any] = None, attributes: Optional[Dict[str, Any]] = None) -> str:
        """Render one complete tag; multi-line content goes on its own lines."""
        open_tag = MarkupBuilder.open_tag(name, attributes)
        close_tag = MarkupBuilder.close_tag(name)

        if content is None or content == "":
            return open_tag + close_tag

        content = str(content)
        if "\n" in content:
            return f"{open_tag}\n{content}\n{close_tag}"

        return f"{open_tag}{content}{close_tag}"

    @staticmethod
    def open_tag(name: str, attributes: Optional[Dict[str, Any]] = None) -> str:
        if not attributes:
            return f"<{name}>"

        attr_string = "".join(
            f' {key}="{html.escape(str(value), quote=True)}"'
            for key, value in attributes.items()
        )
        return f"<{name}{attr_string}>"

    @staticmethod
    def close_tag(name: str) -> str:
        return f"</{name}>"


WRAPPERS: Dict[str, Callable[..., MarkupBuilder]] = {
    "system_instructions": MarkupBuilder.system_instructions,
    "instructions": MarkupBuilder.instructions,
    "task": MarkupBuilder.task,
    "context": MarkupBuilder.context,
    "constraints": MarkupBuilder.constraints,
    "rules": MarkupBuilder.rules,
    "thinking": MarkupBuilder.thinking,
    "reasoning": MarkupBuilder.reasoning,
    "answer": MarkupBuilder.answer,
    "scratchpad": MarkupBuilder.scratchpad,
    "cot_basic": MarkupBuilder.cot_basic,
    "cot_guided": MarkupBuilder.cot_guided,
    "cot_structured": MarkupBuilder.cot_structured,
    "document": MarkupBuilder.document,
    "documents": MarkupBuilder.documents,
    "document_content": MarkupBuilder.document_content,
    "source": MarkupBuilder.source,
    "example": MarkupBuilder.example,
    "examples": MarkupBuilder.examples,
    "example_pair": MarkupBuilder.example_pair,
    "output_format": MarkupBuilder.output_format,
    "user_message": MarkupBuilder.user_message,
    "query": MarkupBuilder.query,
    "cdata": MarkupBuilder.cdata,
}
