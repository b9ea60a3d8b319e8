"""Template rendering: engine, sandbox, fragments and variables."""

from .engine import TemplateEngine
from .fragments import FragmentResolver, InMemoryFragmentStore
from .sandbox import SandboxPolicy, PromptEnvironment, KeepUndefined, ErrorUndefined
from .variables import VariableResolver

__all__ = [
    "TemplateEngine",
    "FragmentResolver",
    "InMemoryFragmentStore",
    "SandboxPolicy",
    "PromptEnvironment",
    "KeepUndefined",
    "ErrorUndefined",
    "VariableResolver",
]
