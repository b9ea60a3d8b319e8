"""Application environment variables."""

from typing import Dict, Any, Optional

from ..core.base import VariableProvider
from ..core.config import AppSettings, Settings, get_settings
from ..core.registry import variable_provider_registry


@variable_provider_registry.register("environment", aliases=["env", "app"])
class EnvironmentVariables(VariableProvider):
    """Exposes application name, environment, debug flag and URL."""

    def __init__(self, app: Optional[AppSettings] = None):
        self._app = app

    @classmethod
    def from_settings(cls, settings: Settings) -> "EnvironmentVariables":
        return cls(settings.app)

    def get_variables(self) -> Dict[str, Any]:
        app = self._app or get_settings().app
        return {
            "app_name": app.name,
            "app_env": app.env,
            "app_debug": app.debug,
            "app_url": app.url,
        }
