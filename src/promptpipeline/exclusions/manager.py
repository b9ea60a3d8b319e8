"""Process-wide exclusion floor applied beneath every render."""

import logging
from typing import List, Iterable, Optional, TYPE_CHECKING

from .exclusion_set import ExclusionSet

if TYPE_CHECKING:
    from ..core.config import Settings

logger = logging.getLogger(__name__)


class GlobalExclusions:
    """
    Mutable registry of exclusions that hold for every render.

    Lazily seeded from configuration on first use. Engines, resolvers and
    pipelines receive an instance explicitly and merge ``to_set()`` into
    their effective exclusions; ``global_exclusions`` is the default one.
    """

    def __init__(self, settings: Optional["Settings"] = None):
        self._settings = settings
        self._fragments: List[str] = []
        self._tags: List[str] = []
        self._loaded = False

    def _load_config(self) -> None:
        if self._loaded:
            return

        settings = self._settings
        if settings is None:
            from ..core.config import get_settings
            settings = get_settings()

        self._fragments = list(settings.exclusions.fragments)
        self._tags = list(settings.exclusions.tags)
        self._loaded = True

    def exclude_fragment(self, slug: str) -> None:
        self._load_config()
        if slug not in self._fragments:
            self._fragments.append(slug)
            logger.debug("Globally excluding fragment %s", slug)

    def exclude_fragments(self, slugs: Iterable[str]) -> None:
        for slug in slugs:
            self.exclude_fragment(slug)

    def exclude_tag(self, tag: str) -> None:
        self._load_config()
        if tag not in self._tags:
            self._tags.append(tag)
            logger.debug("Globally excluding tag %s", tag)

    def exclude_tags(self, tags: Iterable[str]) -> None:
        for tag in tags:
            self.exclude_tag(tag)

    def is_fragment_excluded(self, slug: str) -> bool:
        self._load_config()
        return slug in self._fragments

    def is_tag_excluded(self, tag: str) -> bool:
        self._load_config()
        return tag in self._tags

    def excluded_fragments(self) -> List[str]:
        self._load_config()
        return list(self._fragments)

    def excluded_tags(self) -> List[str]:
        self._load_config()
        return list(self._tags)

    def remove_fragment_exclusion(self, slug: str) -> None:
        self._load_config()
        self._fragments = [s for s in self._fragments if s != slug]

    def remove_tag_exclusion(self, tag: str) -> None:
        self._load_config()
        self._tags = [t for t in self._tags if t != tag]

    def clear_all(self) -> None:
        """Drop every exclusion, including the configured ones."""
        self._fragments = []
        self._tags = []
        self._loaded = True

    def reset(self) -> None:
        """Forget runtime changes; config defaults reload on next use."""
        self._fragments = []
        self._tags = []
        self._loaded = False

    def to_set(self) -> ExclusionSet:
        return ExclusionSet(self.excluded_fragments(), self.excluded_tags())


global_exclusions = GlobalExclusions()
