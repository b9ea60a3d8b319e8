"""Registry pattern for pluggable processors and variable providers."""

from typing import Dict, Type, TypeVar, Generic, Optional, Callable, List, Any
from abc import ABC

T = TypeVar('T')


class Registry(Generic[T], ABC):
    """
    Generic registry for managing pluggable components.

    Supports registration via decorators or explicit registration,
    with optional aliasing for convenience.
    """

    def __init__(self):
        self._items: Dict[str, Type[T]] = {}
        self._aliases: Dict[str, str] = {}

    def register(
        self,
        name: str,
        aliases: Optional[List[str]] = None
    ) -> Callable[[Type[T]], Type[T]]:
        """
        Decorator to register a class.

        Usage:
            @registry.register("my_item", aliases=["mi"])
            class MyItem:
                ...
        """
        def decorator(cls: Type[T]) -> Type[T]:
            self.register_class(name, cls, aliases)
            return cls
        return decorator

    def register_class(
        self,
        name: str,
        cls: Type[T],
        aliases: Optional[List[str]] = None
    ) -> None:
        """Explicitly register a class (non-decorator form)."""
        self._items[name] = cls

        for alias in (aliases or []):
            self._aliases[alias] = name

    def resolve_name(self, name: str) -> str:
        """
        Map an alias to its registered name.

        Hyphenated spellings resolve like their snake_case form
        (``extract-xml-tag`` is ``extract_xml_tag``).
        """
        if name in self._aliases:
            return self._aliases[name]
        if name in self._items:
            return name
        snake = name.replace("-", "_")
        return self._aliases.get(snake, snake)

    def get_class(self, name: str) -> Type[T]:
        """Get a registered class by name or alias."""
        resolved_name = self.resolve_name(name)

        if resolved_name not in self._items:
            available = list(self._items.keys())
            raise KeyError(
                f"'{name}' not found in registry. Available: {available}"
            )

        return self._items[resolved_name]

    def create(self, name: str, *args, **kwargs) -> T:
        """Create a new instance."""
        cls = self.get_class(name)
        return cls(*args, **kwargs)

    def list_registered(self) -> List[str]:
        """List all registered names."""
        return list(self._items.keys())

    def list_all(self) -> List[str]:
        """List all names including aliases."""
        return list(self._items.keys()) + list(self._aliases.keys())

    def is_registered(self, name: str) -> bool:
        """Check if a name is registered."""
        return self.resolve_name(name) in self._items

    def unregister(self, name: str) -> None:
        """Unregister an item by name or alias."""
        name = self.resolve_name(name)
        self._items.pop(name, None)

        # Remove any aliases pointing to this name
        aliases_to_remove = [
            alias for alias, target in self._aliases.items()
            if target == name
        ]
        for alias in aliases_to_remove:
            del self._aliases[alias]


class ProcessorRegistry(Registry):
    """Specialized registry for input or output processors."""

    def __init__(self, side: str):
        super().__init__()
        self.side = side

    def create_processor(self, name: str, config: Optional[Dict[str, Any]] = None) -> Any:
        """Instantiate a processor by name with its config map."""
        if not self.is_registered(name):
            raise KeyError(
                f"Unknown {self.side} processor '{name}'. Available: {self.list_registered()}"
            )
        return self.create(name, config or {})


class VariableProviderRegistry(Registry):
    """Specialized registry for variable providers."""
    pass


# Global registry instances
input_processor_registry = ProcessorRegistry("input")
output_processor_registry = ProcessorRegistry("output")
variable_provider_registry = VariableProviderRegistry()
