"""Tests for variable providers and the variable resolver."""

from datetime import datetime, timezone

from promptpipeline.core.base import VariableProvider
from promptpipeline.core.config import AppSettings
from promptpipeline.providers import DateTimeVariables, EnvironmentVariables, list_providers
from promptpipeline.rendering import VariableResolver


class StaticProvider(VariableProvider):
    """Provider returning a fixed map."""

    def __init__(self, variables):
        self.variables = variables

    def get_variables(self):
        return dict(self.variables)


class TestProviders:
    """Tests for built-in providers."""

    def test_datetime(self):
        """Test date and time keys from a fixed clock."""
        clock = lambda: datetime(2024, 3, 5, 14, 30, 15, tzinfo=timezone.utc)
        variables = DateTimeVariables(clock).get_variables()
        assert variables["current_date"] == "2024-03-05"
        assert variables["current_time"] == "14:30:15"
        assert variables["current_datetime"] == "2024-03-05 14:30:15"
        assert variables["current_year"] == 2024
        assert variables["current_month"] == 3
        assert variables["current_day"] == 5
        assert variables["current_day_of_week"] == "Tuesday"
        assert variables["current_timezone"] == "UTC"
        assert variables["current_timestamp"] == 1709649015

    def test_datetime_default_clock(self):
        """Test the default clock produces every key."""
        assert len(DateTimeVariables().get_variables()) == 9

    def test_environment(self):
        """Test application values are exposed."""
        app = AppSettings(name="demo", env="testing", debug=True, url="https://example.test")
        assert EnvironmentVariables(app).get_variables() == {
            "app_name": "demo",
            "app_env": "testing",
            "app_debug": True,
            "app_url": "https://example.test",
        }

    def test_environment_from_env(self, monkeypatch):
        """Test PP_APP_ variables are read."""
        monkeypatch.setenv("PP_APP_NAME", "from-env")
        assert EnvironmentVariables().get_variables()["app_name"] == "from-env"

    def test_registered(self):
        """Test built-ins are registered."""
        assert {"datetime", "environment"} <= set(list_providers())


class TestVariableResolver:
    """Tests for variable merging."""

    def test_precedence(self, owner):
        """Test providers < owner < caller."""
        resolver = VariableResolver([
            StaticProvider({"company": "Provider", "tone": "casual", "lang": "en"}),
        ])
        variables = resolver.resolve({"tone": "friendly"}, owner)
        assert variables == {"company": "Acme", "tone": "friendly", "lang": "en"}

    def test_later_providers_win(self):
        """Test providers merge in registration order."""
        resolver = VariableResolver().register_providers([
            StaticProvider({"a": 1}),
            StaticProvider({"a": 2}),
        ])
        assert resolver.resolve()["a"] == 2

    def test_owner_without_derived_variables(self):
        """Test owners without derived variables are ignored."""
        assert VariableResolver().resolve({"a": 1}, owner=object()) == {"a": 1}

    def test_shallow_merge(self):
        """Test nested maps are replaced, not merged."""
        resolver = VariableResolver([StaticProvider({"user": {"name": "x", "id": 1}})])
        assert resolver.resolve({"user": {"name": "y"}}) == {"user": {"name": "y"}}

    def test_load_from_config(self, make_settings):
        """Test configured providers are registered and unknown ones skipped."""
        resolver = VariableResolver().load_from_config(make_settings(providers=["datetime", "nope"]))
        assert len(resolver.providers) == 1
        assert isinstance(resolver.providers[0], DateTimeVariables)
        assert "current_date" in resolver.resolve()

    def test_clear(self):
        """Test providers can be cleared."""
        resolver = VariableResolver([StaticProvider({"a": 1})]).clear_providers()
        assert resolver.resolve() == {}
