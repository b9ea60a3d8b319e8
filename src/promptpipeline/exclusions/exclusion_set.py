"""Immutable set of excluded fragment slugs and tag names."""

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..core.config import Settings


@dataclass(frozen=True)
class ExclusionSet:
    """
    Fragments and tags to suppress during a render.

    Every operation returns a new instance; ``merge`` is a union on both
    fields, so exclusions only ever accumulate.
    """
    fragments: FrozenSet[str] = field(default_factory=frozenset)
    tags: FrozenSet[str] = field(default_factory=frozenset)

    def __post_init__(self):
        # Accept any iterable at construction, store frozensets
        object.__setattr__(self, "fragments", frozenset(self.fragments))
        object.__setattr__(self, "tags", frozenset(self.tags))

    @classmethod
    def make(cls) -> "ExclusionSet":
        return cls()

    @classmethod
    def from_config(cls, settings: Optional["Settings"] = None) -> "ExclusionSet":
        """Create from the configured default exclusions."""
        if settings is None:
            from ..core.config import get_settings
            settings = get_settings()
        return cls(settings.exclusions.fragments, settings.exclusions.tags)

    def exclude_fragments(self, slugs: Iterable[str]) -> "ExclusionSet":
        return ExclusionSet(self.fragments | frozenset(slugs), self.tags)

    def exclude_fragment(self, slug: str) -> "ExclusionSet":
        return self.exclude_fragments([slug])

    def exclude_tags(self, tags: Iterable[str]) -> "ExclusionSet":
        return ExclusionSet(self.fragments, self.tags | frozenset(tags))

    def exclude_tag(self, tag: str) -> "ExclusionSet":
        return self.exclude_tags([tag])

    def merge(self, other: "ExclusionSet") -> "ExclusionSet":
        return ExclusionSet(self.fragments | other.fragments, self.tags | other.tags)

    def is_fragment_excluded(self, slug: str) -> bool:
        return slug in self.fragments

    def is_tag_excluded(self, tag: str) -> bool:
        return tag in self.tags

    def is_empty(self) -> bool:
        return not self.fragments and not self.tags
