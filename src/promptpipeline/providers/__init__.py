"""Built-in variable providers."""

from .datetime_provider import DateTimeVariables
from .environment_provider import EnvironmentVariables
from ..core.registry import variable_provider_registry

__all__ = [
    "DateTimeVariables",
    "EnvironmentVariables",
    "list_providers",
]


def list_providers() -> list:
    """List all registered variable provider names."""
    return variable_provider_registry.list_registered()
