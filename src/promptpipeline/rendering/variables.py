"""Merge variables from providers, the owner and the caller."""

import logging
from typing import Dict, Any, List, Iterable, Optional, TYPE_CHECKING

from ..core.base import VariableProvider
from ..core.registry import variable_provider_registry
from .. import providers as _builtin_providers  # noqa: F401  (registers built-ins)

if TYPE_CHECKING:
    from ..core.config import Settings

logger = logging.getLogger(__name__)


class VariableResolver:
    """
    Builds the variable map for a render.

    Precedence, lowest first: registered providers in registration order,
    the owner's ``derived_variables()``, then the caller's variables. Each
    layer is a shallow merge over the previous one.
    """

    def __init__(self, providers: Optional[Iterable[VariableProvider]] = None):
        self._providers: List[VariableProvider] = list(providers or [])

    def register_provider(self, provider: VariableProvider) -> "VariableResolver":
        self._providers.append(provider)
        return self

    def register_providers(self, providers: Iterable[VariableProvider]) -> "VariableResolver":
        for provider in providers:
            self.register_provider(provider)
        return self

    def clear_providers(self) -> "VariableResolver":
        self._providers = []
        return self

    @property
    def providers(self) -> List[VariableProvider]:
        return list(self._providers)

    def load_from_config(self, settings: Optional["Settings"] = None) -> "VariableResolver":
        """Register the providers named in ``settings.providers``; unknown names are skipped."""
        if settings is None:
            from ..core.config import get_settings
            settings = get_settings()

        for name in settings.providers:
            if not variable_provider_registry.is_registered(name):
                logger.warning("Skipping unknown variable provider %s", name)
                continue
            cls = variable_provider_registry.get_class(name)
            factory = getattr(cls, "from_settings", None)
            self.register_provider(factory(settings) if factory is not None else cls())

        return self

    def resolve(
        self,
        user_variables: Optional[Dict[str, Any]] = None,
        owner: Optional[Any] = None
    ) -> Dict[str, Any]:
        variables: Dict[str, Any] = {}

        for provider in self._providers:
            variables.update(provider.get_variables())

        derived = getattr(owner, "derived_variables", None) if owner is not None else None
        if callable(derived):
            variables.update(derived() or {})

        variables.update(user_variables or {})
        return variables
