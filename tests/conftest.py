"""Shared pytest fixtures for PromptPipeline tests."""

import pytest
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from promptpipeline.core.config import Settings, get_settings
from promptpipeline.exclusions import GlobalExclusions, global_exclusions
from promptpipeline.rendering import TemplateEngine, FragmentResolver, InMemoryFragmentStore


@pytest.fixture(autouse=True)
def reset_global_state():
    """Reset the process-wide exclusion registry and settings cache around each test."""
    global_exclusions.reset()
    get_settings.cache_clear()
    yield
    global_exclusions.reset()
    get_settings.cache_clear()


@pytest.fixture
def settings():
    """Default settings."""
    return Settings()


@pytest.fixture
def make_settings():
    """Factory for settings with overrides."""
    def _make(**overrides):
        return Settings(**overrides)
    return _make


@pytest.fixture
def exclusions(settings):
    """A fresh global exclusion registry, isolated from the process-wide one."""
    return GlobalExclusions(settings)


@pytest.fixture
def store():
    """An empty in-memory fragment store."""
    return InMemoryFragmentStore()


@pytest.fixture
def resolver(store, settings, exclusions):
    """Fragment resolver backed by the in-memory store."""
    return FragmentResolver(store=store, settings=settings, global_exclusions=exclusions)


@pytest.fixture
def engine(resolver, settings, exclusions):
    """Template engine wired to the shared resolver and exclusions."""
    return TemplateEngine(fragment_resolver=resolver, settings=settings, global_exclusions=exclusions)


@pytest.fixture
def model_response():
    """A typical model response with reasoning, an answer and a JSON block."""
    return (
        "<thinking>Compare the two options.</thinking>\n"
        "<answer>Option B</answer>\n"
        "```json\n"
        '{"choice": "B", "confidence": 0.8}\n'
        "```"
    )


class Owner:
    """Owner entity exposing derived variables."""

    def __init__(self, key, variables=None):
        self.key = key
        self._variables = variables or {}

    def derived_variables(self):
        return dict(self._variables)

    def __eq__(self, other):
        return isinstance(other, Owner) and other.key == self.key

    def __hash__(self):
        return hash(self.key)


@pytest.fixture
def owner():
    """An owner with a couple of derived variables."""
    return Owner("acme", {"company": "Acme", "tone": "formal"})
