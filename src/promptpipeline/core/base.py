"""Abstract base classes for processors and external collaborators."""

from abc import ABC, abstractmethod
from typing import Optional, Dict, Any, List, Hashable

from .types import Fragment


class BaseProcessor(ABC):
    """
    Abstract base class for all text processors.

    Processors are pure and stateless across invocations; everything they
    need comes from the config map handed to the constructor.
    """

    name: str = "base_processor"
    description: str = "Base processor"

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        self._validate_config()

    def _validate_config(self) -> None:
        """Override to validate configuration. Raises ConfigurationError if invalid."""
        pass


class InputProcessor(BaseProcessor):
    """Transforms the variable map before rendering."""

    @abstractmethod
    def process(self, variables: Dict[str, Any]) -> Dict[str, Any]:
        """
        Process input variables.

        Args:
            variables: The full variable map

        Returns:
            The transformed variable map
        """
        pass


class OutputProcessor(BaseProcessor):
    """Transforms the rendered text after rendering."""

    @abstractmethod
    def process(self, output: str) -> str:
        """
        Process rendered output.

        Args:
            output: The full rendered string

        Returns:
            The transformed string
        """
        pass


class VariableProvider(ABC):
    """Supplies variables to every template."""

    @abstractmethod
    def get_variables(self) -> Dict[str, Any]:
        pass


class ExclusionProvider(ABC):
    """Supplies fragment slugs and tag names to exclude from a render."""

    @abstractmethod
    def excluded_fragments(self) -> List[str]:
        pass

    @abstractmethod
    def excluded_tags(self) -> List[str]:
        pass


class FragmentStore(ABC):
    """
    Storage backend for fragments.

    Implementations only return active fragments.
    """

    @abstractmethod
    def find_scoped(self, owner: Hashable, slug: str) -> Optional[Fragment]:
        """Find an active fragment belonging to ``owner``."""
        pass

    @abstractmethod
    def find_global(self, slug: str) -> Optional[Fragment]:
        """Find an active fragment with no owner."""
        pass

    @abstractmethod
    def list_all(self, owner: Optional[Hashable] = None) -> List[Fragment]:
        """List active fragments visible to ``owner`` (global ones always)."""
        pass
