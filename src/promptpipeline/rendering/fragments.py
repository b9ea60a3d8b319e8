"""Fragment lookup with depth and cycle protection."""

import logging
from contextlib import contextmanager
from typing import Optional, Dict, Any, List, Iterable, Iterator, Hashable, Union, TYPE_CHECKING

from ..core.base import FragmentStore
from ..core.exceptions import FragmentNotFound, FragmentDepthExceeded, CircularFragmentReference
from ..core.types import Fragment, ResolutionContext
from ..exclusions.exclusion_set import ExclusionSet
from ..exclusions.manager import GlobalExclusions, global_exclusions as default_global_exclusions

if TYPE_CHECKING:
    from ..core.config import Settings

logger = logging.getLogger(__name__)


class InMemoryFragmentStore(FragmentStore):
    """
    Fragment store backed by a plain list.

    Useful for tests and for applications that load fragments once at
    startup. Inactive fragments are kept but never returned.
    """

    def __init__(self, fragments: Optional[Iterable[Fragment]] = None):
        self._fragments: List[Fragment] = list(fragments or [])

    def add(self, fragment: Fragment) -> Fragment:
        self._fragments.append(fragment)
        return fragment

    def remove(self, slug: str, owner: Optional[Hashable] = None) -> bool:
        """Remove fragments matching slug and owner. Returns True if any were removed."""
        before = len(self._fragments)
        self._fragments = [
            f for f in self._fragments
            if not (f.slug == slug and f.owner == owner)
        ]
        return len(self._fragments) < before

    def find_scoped(self, owner: Hashable, slug: str) -> Optional[Fragment]:
        for fragment in self._fragments:
            if fragment.active and fragment.slug == slug and not fragment.is_global and fragment.owner == owner:
                return fragment
        return None

    def find_global(self, slug: str) -> Optional[Fragment]:
        for fragment in self._fragments:
            if fragment.active and fragment.slug == slug and fragment.is_global:
                return fragment
        return None

    def list_all(self, owner: Optional[Hashable] = None) -> List[Fragment]:
        return [
            f for f in self._fragments
            if f.active and (f.is_global or (owner is not None and f.owner == owner))
        ]


class FragmentResolver:
    """
    Finds fragment source by slug and tracks the active resolution chain.

    ``resolve`` only looks content up; the caller renders it between
    ``begin_resolve`` and ``end_resolve`` (or inside ``resolving``) so that
    nested fragment calls see the right depth and chain.
    """

    def __init__(
        self,
        store: Optional[FragmentStore] = None,
        settings: Optional["Settings"] = None,
        global_exclusions: Optional[GlobalExclusions] = None
    ):
        self.store = store
        self._settings = settings
        self.global_exclusions = global_exclusions or default_global_exclusions
        self._runtime: Dict[str, str] = {}
        self._owner: Optional[Any] = None
        self._context = ResolutionContext()
        self._excluded: frozenset = frozenset()

    @property
    def settings(self) -> "Settings":
        if self._settings is None:
            from ..core.config import get_settings
            return get_settings()
        return self._settings

    @property
    def max_depth(self) -> int:
        return self.settings.fragments.max_depth

    # Owner
    def set_owner(self, owner: Optional[Any]) -> "FragmentResolver":
        self._owner = owner
        return self

    @property
    def owner(self) -> Optional[Any]:
        return self._owner

    # Runtime fragments
    def register(self, slug: str, content: str) -> "FragmentResolver":
        self._runtime[slug] = content
        return self

    def unregister(self, slug: str) -> "FragmentResolver":
        self._runtime.pop(slug, None)
        return self

    def clear_runtime(self) -> None:
        self._runtime = {}

    # Exclusions
    def set_excluded(self, slugs: Union[ExclusionSet, Iterable[str]]) -> "FragmentResolver":
        if isinstance(slugs, ExclusionSet):
            slugs = slugs.fragments
        self._excluded = frozenset(slugs)
        return self

    def is_excluded(self, slug: str) -> bool:
        return slug in self._excluded or self.global_exclusions.is_fragment_excluded(slug)

    # Resolution
    def resolve(self, slug: str, variables: Optional[Dict[str, Any]] = None) -> str:
        """
        Return the raw source for ``slug``.

        Checks run in order: exclusion, depth limit, cycle, then lookup in
        runtime fragments, owner-scoped fragments and global fragments.

        Raises:
            FragmentDepthExceeded: Nesting is already at the maximum depth
            CircularFragmentReference: ``slug`` is already being rendered
            FragmentNotFound: No source knows ``slug``
        """
        if self.is_excluded(slug):
            logger.debug("Fragment %s excluded", slug)
            return ""

        max_depth = self.max_depth
        if self._context.depth >= max_depth:
            raise FragmentDepthExceeded(max_depth)

        if slug in self._context.chain:
            raise CircularFragmentReference(self._context.chain + [slug])

        content = self._lookup(slug)
        if content is None:
            raise FragmentNotFound(slug)

        return content

    def _lookup(self, slug: str) -> Optional[str]:
        if slug in self._runtime:
            logger.debug("Fragment %s resolved from runtime registrations", slug)
            return self._runtime[slug]

        if self.store is None:
            return None

        if self._owner is not None:
            fragment = self.store.find_scoped(self._owner, slug)
            if fragment is not None:
                logger.debug("Fragment %s resolved for owner %r", slug, self._owner)
                return fragment.content

        fragment = self.store.find_global(slug)
        if fragment is not None:
            logger.debug("Fragment %s resolved globally", slug)
            return fragment.content

        return None

    def begin_resolve(self, slug: str) -> None:
        self._context.chain.append(slug)
        self._context.depth += 1

    def end_resolve(self) -> None:
        if self._context.chain:
            self._context.chain.pop()
        self._context.depth = max(0, self._context.depth - 1)

    @contextmanager
    def resolving(self, slug: str) -> Iterator[None]:
        """Bracket the render of ``slug``; the chain is unwound even on error."""
        self.begin_resolve(slug)
        try:
            yield
        finally:
            self.end_resolve()

    def reset(self) -> None:
        """Clear the resolution chain. Called once per top-level render."""
        self._context = ResolutionContext()

    @property
    def context(self) -> ResolutionContext:
        """Snapshot of the current resolution state."""
        return ResolutionContext(chain=list(self._context.chain), depth=self._context.depth)

    def all(self) -> Dict[str, Fragment]:
        """
        All fragments visible to the current owner, keyed by slug.

        Owner-scoped fragments override global ones and runtime
        registrations override both.
        """
        fragments: Dict[str, Fragment] = {}

        if self.store is not None:
            stored = self.store.list_all(self._owner)
            for fragment in stored:
                if fragment.is_global:
                    fragments[fragment.slug] = fragment
            for fragment in stored:
                if not fragment.is_global:
                    fragments[fragment.slug] = fragment

        for slug, content in self._runtime.items():
            fragments[slug] = Fragment(slug=slug, content=content)

        return fragments
