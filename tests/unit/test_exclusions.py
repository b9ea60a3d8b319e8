"""Tests for exclusion sets and the global exclusion registry."""

import pytest

from promptpipeline.exclusions import ExclusionSet, GlobalExclusions


class TestExclusionSet:
    """Tests for ExclusionSet."""

    def test_empty(self):
        """Test a new set excludes nothing."""
        empty = ExclusionSet.make()
        assert empty.is_empty()
        assert not empty.is_fragment_excluded("a")
        assert not empty.is_tag_excluded("task")

    def test_operations_return_new_instances(self):
        """Test the original set is never mutated."""
        base = ExclusionSet.make()
        derived = base.exclude_fragment("a").exclude_tag("task")
        assert base.is_empty()
        assert derived.is_fragment_excluded("a")
        assert derived.is_tag_excluded("task")

    def test_frozen(self):
        """Test fields cannot be reassigned."""
        with pytest.raises(Exception):
            ExclusionSet.make().fragments = frozenset({"x"})

    def test_merge_is_union(self):
        """Test merge only ever adds exclusions."""
        left = ExclusionSet(["a"], ["task"])
        right = ExclusionSet(["b"], ["rules"])
        merged = left.merge(right)
        assert merged.fragments == {"a", "b"}
        assert merged.tags == {"task", "rules"}

    def test_merge_with_empty(self):
        """Test merging with an empty set is a no-op."""
        left = ExclusionSet(["a"], ["task"])
        assert left.merge(ExclusionSet.make()) == left

    def test_from_config(self, make_settings):
        """Test configured defaults seed the set."""
        settings = make_settings(exclusions={"fragments": ["legal"], "tags": ["thinking"]})
        configured = ExclusionSet.from_config(settings)
        assert configured.is_fragment_excluded("legal")
        assert configured.is_tag_excluded("thinking")


class TestGlobalExclusions:
    """Tests for the global exclusion registry."""

    def test_runtime_additions(self, exclusions):
        """Test fragments and tags can be excluded at runtime."""
        exclusions.exclude_fragment("a")
        exclusions.exclude_tags(["task", "task"])
        assert exclusions.is_fragment_excluded("a")
        assert exclusions.excluded_tags() == ["task"]

    def test_config_seeded_lazily(self, make_settings):
        """Test configured exclusions load on first use."""
        registry = GlobalExclusions(make_settings(exclusions={"tags": ["thinking"]}))
        assert registry.is_tag_excluded("thinking")

    def test_remove(self, exclusions):
        """Test individual exclusions can be removed."""
        exclusions.exclude_fragment("a")
        exclusions.exclude_tag("task")
        exclusions.remove_fragment_exclusion("a")
        exclusions.remove_tag_exclusion("task")
        assert exclusions.to_set().is_empty()

    def test_clear_all_drops_configured(self, make_settings):
        """Test clear_all removes configured exclusions too."""
        registry = GlobalExclusions(make_settings(exclusions={"fragments": ["legal"]}))
        registry.clear_all()
        assert not registry.is_fragment_excluded("legal")

    def test_reset_restores_config(self, make_settings):
        """Test reset forgets runtime changes and reloads configuration."""
        registry = GlobalExclusions(make_settings(exclusions={"fragments": ["legal"]}))
        registry.exclude_fragment("extra")
        registry.reset()
        assert registry.excluded_fragments() == ["legal"]

    def test_to_set(self, exclusions):
        """Test conversion to an immutable ExclusionSet."""
        exclusions.exclude_fragment("a")
        snapshot = exclusions.to_set()
        exclusions.exclude_fragment("b")
        assert snapshot.fragments == {"a"}
