"""Sandboxed Jinja2 template engine for prompt rendering."""

import hashlib
import logging
from collections import OrderedDict
from typing import Dict, Any, List, Optional, Callable

import jinja2
from jinja2 import Template, nodes, pass_context
from jinja2.exceptions import SecurityError
from jinja2.runtime import Context

from ..core.config import Settings, get_settings
from ..core.exceptions import (
    PromptPipelineError,
    TemplateSyntaxError,
    TemplateRenderError,
    SandboxViolation,
)
from ..dedup import create_strategy, deduplicate
from ..exclusions.exclusion_set import ExclusionSet
from ..exclusions.manager import GlobalExclusions, global_exclusions as default_global_exclusions
from ..structure.markup_builder import (
    MarkupBuilder,
    COT_BASIC,
    COT_STRUCTURED,
    bullet_list,
    numbered_list,
    to_json,
)
from .fragments import FragmentResolver
from .sandbox import SandboxPolicy, PromptEnvironment, UNDEFINED_BEHAVIORS

logger = logging.getLogger(__name__)


class TemplateEngine:
    """
    Sandboxed Jinja2 engine for rendering prompt templates.

    Templates get a curated set of functions for structured markup,
    chain-of-thought scaffolding, documents, examples and fragments. File
    inclusion and template inheritance are refused. Markup functions
    return an empty string when their tag is excluded.

    Example:
        >>> engine = TemplateEngine()
        >>> engine.render("Hello {{ name }}!", {"name": "World"})
        'Hello World!'
    """

    def __init__(
        self,
        fragment_resolver: Optional[FragmentResolver] = None,
        settings: Optional[Settings] = None,
        global_exclusions: Optional[GlobalExclusions] = None
    ):
        """
        Initialize the template engine.

        Args:
            fragment_resolver: Resolver used by ``fragment()``; one is created if omitted
            settings: Settings to read sandbox, cache and dedup options from
            global_exclusions: Process-wide exclusion registry
        """
        self.settings = settings or get_settings()
        self.global_exclusions = global_exclusions or default_global_exclusions
        self.fragments = fragment_resolver or FragmentResolver(
            settings=self.settings,
            global_exclusions=self.global_exclusions,
        )
        self.exclusions = ExclusionSet()
        self.policy = SandboxPolicy.from_settings(self.settings)
        self._cache: "OrderedDict[str, Template]" = OrderedDict()

        self.env = PromptEnvironment(
            undefined=UNDEFINED_BEHAVIORS[self.settings.missing_variable_behavior],
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            extensions=["jinja2.ext.do"],
        )
        self.env.globals.clear()
        self.env.globals.update(SandboxPolicy.GENERIC_FUNCTIONS)

        self._register_functions()
        self._register_filters()
        self.policy.prune_filters(self.env.filters)

    # Exclusions & owner
    def set_exclusions(self, exclusions: ExclusionSet) -> "TemplateEngine":
        """Bind the exclusions for the next render (fragments go to the resolver)."""
        self.exclusions = exclusions
        self.fragments.set_excluded(exclusions)
        return self

    def set_owner(self, owner: Optional[Any]) -> "TemplateEngine":
        self.fragments.set_owner(owner)
        return self

    def is_tag_excluded(self, tag: str) -> bool:
        return self.exclusions.is_tag_excluded(tag) or self.global_exclusions.is_tag_excluded(tag)

    # Rendering
    def render(self, template: str, variables: Optional[Dict[str, Any]] = None) -> str:
        """
        Render a top-level template string.

        Resets fragment resolution state first; nested fragment renders do
        not go through here.

        Raises:
            TemplateSyntaxError: The template does not parse
            SandboxViolation: The template uses a disallowed construct
            MissingVariable: A variable is missing and the behavior is ``error``
            TemplateRenderError: Any other failure while rendering
        """
        self.fragments.reset()
        return self._render(template, variables or {})

    def _render(self, source: str, variables: Dict[str, Any]) -> str:
        compiled = self._compile(source)
        try:
            return compiled.render(variables)
        except PromptPipelineError:
            raise
        except jinja2.TemplateSyntaxError as e:
            raise TemplateSyntaxError(e.message or str(e), e.lineno, cause=e) from e
        except SecurityError as e:
            raise SandboxViolation("method", str(e), cause=e) from e
        except (jinja2.TemplateError, TypeError, ValueError, LookupError, AttributeError, ArithmeticError) as e:
            raise TemplateRenderError(str(e), cause=e) from e

    def _compile(self, source: str) -> Template:
        key = hashlib.sha256(source.encode("utf-8")).hexdigest()
        use_cache = self.settings.cache.enabled

        if use_cache and key in self._cache:
            logger.debug("Template cache hit %s", key[:12])
            self._cache.move_to_end(key)
            return self._cache[key]

        try:
            ast = self.env.parse(source)
        except jinja2.TemplateSyntaxError as e:
            blocked = self.policy.blocked_tag_in(e.message or "")
            if blocked:
                raise SandboxViolation("tag", blocked, cause=e) from e
            raise TemplateSyntaxError(e.message or str(e), e.lineno, cause=e) from e

        self.policy.check(ast)

        try:
            compiled = self.env.from_string(ast)
        except jinja2.TemplateSyntaxError as e:
            raise TemplateSyntaxError(e.message or str(e), e.lineno, cause=e) from e

        if use_cache:
            self._cache[key] = compiled
            # Least recently used first
            while len(self._cache) > self.settings.cache.max_size:
                self._cache.popitem(last=False)
        return compiled

    def clear_cache(self) -> None:
        self._cache.clear()

    # Validation
    def validate(self, template: str) -> bool:
        """True when rendering would not fail with a syntax error. Never raises."""
        return not self.get_errors(template)

    def get_errors(self, template: str) -> List[str]:
        """
        Syntax errors for a template; empty when valid. Never raises.

        Templates the sandbox refuses are compiled no further, since
        rendering them fails with ``SandboxViolation`` instead.
        """
        try:
            ast = self.env.parse(template)
            if self._violates_policy(ast):
                return []
            self.env.compile(ast)
        except jinja2.TemplateSyntaxError as e:
            return [TemplateSyntaxError(e.message or str(e), e.lineno).message]
        return []

    def _violates_policy(self, ast: nodes.Template) -> bool:
        try:
            self.policy.check(ast)
        except SandboxViolation:
            return True
        return False

    # Extension
    def add_filter(self, name: str, func: Callable) -> None:
        """
        Add a custom filter and allow it in templates.

        Args:
            name: Filter name to use in templates
            func: Filter function
        """
        self.policy.allow_filter(name)
        self.env.filters[name] = func
        self.clear_cache()

    def add_function(self, name: str, func: Callable) -> None:
        """Add a custom function and allow it in templates."""
        self.policy.allow_function(name)
        self.env.globals[name] = func
        self.clear_cache()

    # Markup helpers
    def _tag(self, name: str, content: Any = None, attributes: Optional[Dict[str, Any]] = None) -> str:
        if self.is_tag_excluded(name):
            return ""
        return MarkupBuilder.wrap(name, content, attributes)

    def _open(self, name: str, attributes: Optional[Dict[str, Any]] = None) -> str:
        if self.is_tag_excluded(name):
            return ""
        return MarkupBuilder.open_tag(name, attributes)

    def _close(self, name: str) -> str:
        if self.is_tag_excluded(name):
            return ""
        return MarkupBuilder.close_tag(name)

    def _build(self, name: str, build: Callable[[MarkupBuilder], Any]) -> str:
        if self.is_tag_excluded(name):
            return ""
        builder = MarkupBuilder()
        build(builder)
        return builder.build()

    def _register_functions(self) -> None:
        """Register template functions and allow them in the sandbox."""

        def labelled(label: Optional[str]) -> Optional[Dict[str, Any]]:
            return {"label": label} if label else None

        functions: Dict[str, Callable] = {
            # Generic markup
            "tag": self._tag,
            "xml": self._tag,
            "tag_open": self._open,
            "xml_open": self._open,
            "tag_close": self._close,
            "xml_close": self._close,
            "cdata": lambda content: f"<![CDATA[{content}]]>",
            # Sections
            "system_instructions": lambda content=None: self._tag("system_instructions", content),
            "instructions": lambda content=None: self._tag("instructions", content),
            "context": lambda content=None, label=None: self._tag("context", content, labelled(label)),
            "task": lambda content=None: self._tag("task", content),
            "constraints": lambda items: self._tag("constraints", bullet_list(items)),
            "rules": lambda items: self._tag("rules", bullet_list(items)),
            "output_format": lambda content=None: self._tag(
                "output_format", to_json(content, pretty=True) if isinstance(content, (dict, list)) else content
            ),
            "user_message": lambda content=None: self._tag("user_message", content),
            "query": lambda content=None: self._tag("query", content),
            # Chain of thought
            "thinking": lambda content=None: self._tag("thinking", content or ""),
            "thinking_open": lambda: self._open("thinking"),
            "thinking_close": lambda: self._close("thinking"),
            "reasoning": lambda content=None: self._tag("reasoning", content or ""),
            "answer": lambda content=None: self._tag("answer", content or ""),
            "answer_open": lambda: self._open("answer"),
            "answer_close": lambda: self._close("answer"),
            "scratchpad": lambda content=None: self._tag("scratchpad", content or ""),
            "cot_basic": lambda: COT_BASIC,
            "cot_guided": lambda steps: "Follow these steps:\n" + numbered_list(steps),
            "cot_structured": lambda: COT_STRUCTURED,
            # Documents
            "document": lambda content=None, attributes=None: self._tag("document", content, attributes),
            "documents": lambda docs, content_key="content", name_key="name": self._build(
                "documents", lambda xml: xml.documents(docs, content_key, name_key)
            ),
            "documents_open": lambda: self._open("documents"),
            "documents_close": lambda: self._close("documents"),
            "document_content": lambda content=None: self._tag("document_content", content),
            "source": lambda value=None: self._tag("source", value),
            # Examples
            "examples": lambda examples: self._build("examples", lambda xml: xml.examples(examples)),
            "examples_open": lambda: self._open("examples"),
            "examples_close": lambda: self._close("examples"),
            "example": lambda content, label=None: self._build("example", lambda xml: xml.example(content, label)),
            "example_pair": lambda input, output, label=None: self._build(
                "example", lambda xml: xml.example_pair(input, output, label)
            ),
            # Fragments & utilities
            "fragment": self._fragment_function(),
            "json": to_json,
            **self._dedup_callables(),
        }

        for name, func in functions.items():
            self.policy.allow_function(name)
            self.env.globals[name] = func

    def _register_filters(self) -> None:
        """Register custom filters (Jinja built-ins stay available through the policy)."""
        self.env.filters["json"] = to_json
        self.env.filters.update(self._dedup_callables())

    def _dedup_callables(self) -> Dict[str, Callable[[Any], str]]:
        dedup_settings = self.settings.deduplication

        def strategy(name: str) -> Callable[[Any], str]:
            return lambda content: create_strategy(name, settings=dedup_settings).apply(str(content))

        return {
            "deduplicate": lambda content: deduplicate(str(content), settings=dedup_settings),
            "deduplicate_whitespace": strategy("whitespace"),
            "deduplicate_lines": strategy("duplicate_lines"),
            "deduplicate_blank_lines": strategy("blank_lines"),
            "deduplicate_sentences": strategy("duplicate_sentences"),
        }

    def _fragment_function(self) -> Callable:

        @pass_context
        def fragment(context: Context, slug: str, vars: Optional[Dict[str, Any]] = None) -> str:
            if self.fragments.is_excluded(slug):
                return ""

            # Inherit the caller's variables, without the registered functions
            variables = {
                key: value for key, value in context.get_all().items()
                if self.env.globals.get(key) is not value
            }
            variables.update(vars or {})

            content = self.fragments.resolve(slug, variables)
            logger.debug("Rendering fragment %s", slug)
            with self.fragments.resolving(slug):
                return self._render(content, variables)

        return fragment
