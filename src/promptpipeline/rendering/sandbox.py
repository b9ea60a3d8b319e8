"""Sandbox policy and restricted Jinja2 environment for prompt templates."""

import re
from collections.abc import Mapping
from typing import Optional, Iterable, Dict, Any, Type, FrozenSet, TYPE_CHECKING

from jinja2 import nodes
from jinja2.runtime import LoopContext, Undefined, ChainableUndefined, StrictUndefined
from jinja2.sandbox import SandboxedEnvironment, safe_range
from jinja2.utils import Cycler, Joiner, missing

from ..core.config import MissingVariableBehavior
from ..core.exceptions import SandboxViolation, MissingVariable

if TYPE_CHECKING:
    from ..core.config import Settings


# Statement nodes produced by each template tag
TAG_NODES: Dict[Type[nodes.Node], str] = {
    nodes.If: "if",
    nodes.For: "for",
    nodes.Assign: "set",
    nodes.AssignBlock: "set",
    nodes.Block: "block",
    nodes.With: "with",
    nodes.FilterBlock: "filter",
    nodes.ExprStmt: "do",
    nodes.ScopedEvalContextModifier: "autoescape",
    nodes.Include: "include",
    nodes.Extends: "extends",
    nodes.Import: "import",
    nodes.FromImport: "from",
    nodes.Macro: "macro",
    nodes.CallBlock: "call",
}

_UNKNOWN_TAG = re.compile(r"unknown tag '(\w+)'")


class SandboxPolicy:
    """
    Allow and deny lists for tags, filters and functions.

    Deny-listed names can never be allowed, whatever the configuration says.
    Tests (``is defined``, ``is even`` ...) are not restricted.
    """

    ALLOWED_TAGS: FrozenSet[str] = frozenset({
        "if", "for", "set", "block", "autoescape", "filter", "do", "with",
    })

    BLOCKED_TAGS: FrozenSet[str] = frozenset({
        "include", "extends", "embed", "import", "from", "macro", "call", "use", "sandbox",
    })

    BLOCKED_FUNCTIONS: FrozenSet[str] = frozenset({
        "include", "parent", "super", "block", "attribute",
        "template_from_string", "self", "caller",
    })

    BLOCKED_FILTERS: FrozenSet[str] = frozenset({"attr"})

    DEFAULT_FILTERS: FrozenSet[str] = frozenset({
        # String
        "capitalize", "lower", "upper", "title", "trim", "striptags",
        "escape", "e", "safe", "replace", "format", "indent", "wordwrap",
        "wordcount", "truncate", "center", "string",
        # Collections
        "join", "reverse", "slice", "first", "last", "length", "count",
        "sort", "list", "dictsort", "items", "batch", "map", "select",
        "reject", "selectattr", "rejectattr", "groupby", "sum", "unique",
        "min", "max",
        # Numbers
        "abs", "round", "int", "float",
        # Defaults & encoding
        "default", "d", "tojson",
        # Prompt helpers
        "json", "deduplicate", "deduplicate_whitespace", "deduplicate_lines",
        "deduplicate_blank_lines", "deduplicate_sentences",
    })

    GENERIC_FUNCTIONS: Dict[str, Any] = {
        "range": safe_range,
        "dict": dict,
        "cycler": Cycler,
        "joiner": Joiner,
        "min": min,
        "max": max,
    }

    def __init__(
        self,
        allowed_filters: Optional[Iterable[str]] = None,
        allowed_functions: Optional[Iterable[str]] = None
    ):
        self._filters = set(self.DEFAULT_FILTERS)
        self._functions = set(self.GENERIC_FUNCTIONS)
        for name in allowed_filters or []:
            self.allow_filter(name)
        for name in allowed_functions or []:
            self.allow_function(name)

    @classmethod
    def from_settings(cls, settings: "Settings") -> "SandboxPolicy":
        return cls(settings.sandbox.allowed_filters, settings.sandbox.allowed_functions)

    def allow_filter(self, name: str) -> None:
        if name in self.BLOCKED_FILTERS:
            raise SandboxViolation("filter", name)
        self._filters.add(name)

    def allow_function(self, name: str) -> None:
        if name in self.BLOCKED_FUNCTIONS:
            raise SandboxViolation("function", name)
        self._functions.add(name)

    def is_tag_allowed(self, tag: str) -> bool:
        return tag in self.ALLOWED_TAGS and tag not in self.BLOCKED_TAGS

    def is_filter_allowed(self, name: str) -> bool:
        return name in self._filters and name not in self.BLOCKED_FILTERS

    def is_function_allowed(self, name: str) -> bool:
        return name in self._functions and name not in self.BLOCKED_FUNCTIONS

    @property
    def allowed_filters(self) -> FrozenSet[str]:
        return frozenset(self._filters)

    @property
    def allowed_functions(self) -> FrozenSet[str]:
        return frozenset(self._functions)

    def check(self, ast: nodes.Template) -> None:
        """
        Walk a parsed template and reject anything outside the policy.

        Raises:
            SandboxViolation: On the first disallowed tag, filter or function
        """
        for node in ast.find_all(nodes.Node):
            for node_type, tag in TAG_NODES.items():
                if isinstance(node, node_type) and not self.is_tag_allowed(tag):
                    raise SandboxViolation("tag", tag)

            if isinstance(node, nodes.Filter) and not self.is_filter_allowed(node.name):
                raise SandboxViolation("filter", node.name)

            # map('name', ...) applies another filter by name
            if isinstance(node, nodes.Filter) and node.name == "map" and node.args:
                first = node.args[0]
                if isinstance(first, nodes.Const) and isinstance(first.value, str):
                    if not self.is_filter_allowed(first.value):
                        raise SandboxViolation("filter", first.value)

            if isinstance(node, nodes.Call) and isinstance(node.node, nodes.Name):
                if not self.is_function_allowed(node.node.name):
                    raise SandboxViolation("function", node.node.name)

            if isinstance(node, nodes.Name) and node.name in ("self", "caller"):
                raise SandboxViolation("function", node.name)

    def prune_filters(self, filters: Dict[str, Any]) -> None:
        """Drop every filter the policy does not allow from an environment's table."""
        for name in list(filters):
            if not self.is_filter_allowed(name):
                del filters[name]

    def blocked_tag_in(self, message: str) -> Optional[str]:
        """Name of a deny-listed tag the parser rejected as unknown, if any."""
        match = _UNKNOWN_TAG.search(message)
        if match and match.group(1) in self.BLOCKED_TAGS:
            return match.group(1)
        return None


class PromptEnvironment(SandboxedEnvironment):
    """
    Sandboxed environment that only exposes mapping keys and loop helpers.

    ``user.name`` reads ``user["name"]`` when ``user`` is a mapping; any
    other attribute access on a real object raises ``SandboxViolation``.
    """

    SAFE_HELPER_TYPES = (LoopContext, Cycler, Joiner)

    def is_safe_attribute(self, obj: Any, attr: str, value: Any) -> bool:
        if not isinstance(obj, self.SAFE_HELPER_TYPES):
            return False
        return super().is_safe_attribute(obj, attr, value)

    def getattr(self, obj: Any, attribute: str) -> Any:
        if attribute.startswith("_") and not isinstance(obj, Mapping):
            raise SandboxViolation("property", attribute)

        if isinstance(obj, Undefined):
            try:
                return getattr(obj, attribute)
            except AttributeError:
                return self.undefined(obj=obj, name=attribute)

        if isinstance(obj, Mapping):
            if attribute in obj:
                return obj[attribute]
            if not hasattr(obj, attribute):
                return self.undefined(obj=obj, name=attribute)

        try:
            value = getattr(obj, attribute)
        except AttributeError:
            return self.undefined(obj=obj, name=attribute)

        if self.is_safe_attribute(obj, attribute, value):
            return value

        raise SandboxViolation("method" if callable(value) else "property", attribute)

    def getitem(self, obj: Any, argument: Any) -> Any:
        try:
            return obj[argument]
        except (AttributeError, TypeError, LookupError):
            if isinstance(argument, str) and not isinstance(obj, Mapping):
                return self.getattr(obj, argument)
        return self.undefined(obj=obj, name=argument)


class KeepUndefined(ChainableUndefined):
    """Renders a missing variable back as its own placeholder."""

    __slots__ = ()

    def __str__(self) -> str:
        if self._undefined_name is None:
            return ""
        return "{{ %s }}" % self._undefined_name

    def __getattr__(self, name: str) -> Any:
        if name[:2] == "__":
            raise AttributeError(name)
        return self._chain(name)

    def __getitem__(self, key: Any) -> "KeepUndefined":
        return self._chain(key)

    def _chain(self, part: Any) -> "KeepUndefined":
        if self._undefined_name is None:
            return KeepUndefined(name=str(part))
        return KeepUndefined(name=f"{self._undefined_name}.{part}")


class ErrorUndefined(StrictUndefined):
    """Raises ``MissingVariable`` on any use of a missing variable."""

    __slots__ = ()

    def __init__(self, hint=None, obj=missing, name=None, exc=None):
        super().__init__(hint, obj, name, _missing_variable(name))


def _missing_variable(name: Optional[str]):
    def factory(message: str) -> MissingVariable:
        return MissingVariable(name if name is not None else message)
    return factory


UNDEFINED_BEHAVIORS: Dict[MissingVariableBehavior, Type[Undefined]] = {
    MissingVariableBehavior.EMPTY: ChainableUndefined,
    MissingVariableBehavior.ERROR: ErrorUndefined,
    MissingVariableBehavior.KEEP: KeepUndefined,
}
