"""Deduplication strategies shared by the output processor and template filters."""

import logging
import re
from abc import ABC, abstractmethod
from difflib import SequenceMatcher
from typing import Optional, Dict, Any, List, Iterable, Type, TYPE_CHECKING

if TYPE_CHECKING:
    from ..core.config import DeduplicationSettings

logger = logging.getLogger(__name__)

_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")


class DedupStrategy(ABC):
    """
    One deduplication pass over a block of text.

    Options are read from ``config`` first and fall back to ``defaults``,
    which normally come from the deduplication settings.
    """

    name: str = "base"
    description: str = "Base deduplication strategy"

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        defaults: Optional[Dict[str, Any]] = None
    ):
        self.options = {**(defaults or {}), **(config or {})}

    def option(self, key: str, default: Any) -> Any:
        return self.options.get(key, default)

    @abstractmethod
    def apply(self, text: str) -> str:
        pass


class WhitespaceStrategy(DedupStrategy):
    name = "whitespace"
    description = "Collapse runs of spaces and tabs and strip trailing line space"

    def apply(self, text: str) -> str:
        if self.option("normalize_spaces", True):
            if self.option("preserve_indentation", False):
                text = re.sub(r"(?<=\S)[ \t]+", " ", text)
            else:
                text = re.sub(r"[ \t]+", " ", text)

        if self.option("trim_lines", True):
            text = "\n".join(line.rstrip() for line in text.split("\n"))

        return text


class BlankLinesStrategy(DedupStrategy):
    name = "blank_lines"
    description = "Cap consecutive blank lines"

    def apply(self, text: str) -> str:
        max_consecutive = int(self.option("max_consecutive", 2))
        text = re.sub(r"\n{%d,}" % (max_consecutive + 2), "\n" * (max_consecutive + 1), text)

        if self.option("trim_start", True):
            text = text.lstrip("\n")
        if self.option("trim_end", True):
            text = text.rstrip("\n")

        return text


class DuplicateLinesStrategy(DedupStrategy):
    name = "duplicate_lines"
    description = "Drop a line that repeats the line right before it"

    def apply(self, text: str) -> str:
        case_sensitive = self.option("case_sensitive", False)
        ignore_whitespace = self.option("ignore_whitespace", True)

        result: List[str] = []
        previous: Optional[str] = None

        for line in text.split("\n"):
            normalized = line.strip() if ignore_whitespace else line
            compare = normalized if case_sensitive else normalized.lower()

            # Blank lines always pass through
            if normalized == "" or compare != previous:
                result.append(line)
                previous = compare

        return "\n".join(result)


class DuplicateSentencesStrategy(DedupStrategy):
    name = "duplicate_sentences"
    description = "Drop sentences too similar to an earlier one"

    def apply(self, text: str) -> str:
        case_sensitive = self.option("case_sensitive", False)
        threshold = float(self.option("similarity_threshold", 0.85))
        keep_first = self.option("keep_first", True)

        sentences = [s for s in _SENTENCE_BOUNDARY.split(text) if s]
        if len(sentences) < 2:
            return text

        seen: List[str] = []
        result: List[str] = []

        for sentence in sentences:
            normalized = sentence if case_sensitive else sentence.lower()
            duplicate = any(self._matches(normalized, kept, threshold) for kept in seen)

            if not duplicate or not keep_first:
                result.append(sentence)
                seen.append(normalized)

        return " ".join(result)

    @staticmethod
    def _matches(sentence: str, kept: str, threshold: float) -> bool:
        if threshold >= 1.0:
            return sentence == kept
        return SequenceMatcher(None, sentence, kept).ratio() >= threshold


STRATEGIES: Dict[str, Type[DedupStrategy]] = {
    "whitespace": WhitespaceStrategy,
    "blank_lines": BlankLinesStrategy,
    "duplicate_lines": DuplicateLinesStrategy,
    "duplicate_sentences": DuplicateSentencesStrategy,
}

ALIASES: Dict[str, str] = {
    "blankLines": "blank_lines",
    "duplicateLines": "duplicate_lines",
    "duplicateSentences": "duplicate_sentences",
}


def resolve_strategy_name(name: str) -> str:
    return ALIASES.get(name, name)


def strategy_defaults(name: str, settings: Optional["DeduplicationSettings"] = None) -> Dict[str, Any]:
    """Configured defaults for a strategy, empty if there is no settings section."""
    if settings is None:
        from ..core.config import get_settings
        settings = get_settings().deduplication
    section = getattr(settings, resolve_strategy_name(name), None)
    return section.model_dump() if section is not None else {}


def create_strategy(
    name: str,
    config: Optional[Dict[str, Any]] = None,
    settings: Optional["DeduplicationSettings"] = None
) -> DedupStrategy:
    """
    Build a strategy by name or camelCase alias.

    Raises:
        KeyError: If the strategy is unknown
    """
    resolved = resolve_strategy_name(name)
    if resolved not in STRATEGIES:
        raise KeyError(f"Unknown deduplication strategy '{name}'. Available: {list(STRATEGIES)}")
    return STRATEGIES[resolved](config, strategy_defaults(resolved, settings))


def deduplicate(
    text: str,
    strategies: Optional[Iterable[str]] = None,
    options: Optional[Dict[str, Dict[str, Any]]] = None,
    settings: Optional["DeduplicationSettings"] = None
) -> str:
    """
    Run strategies in order over ``text``.

    Args:
        text: Text to clean up
        strategies: Strategy names; defaults to the configured default strategies
        options: Per-strategy option maps keyed by strategy name or alias
        settings: Deduplication settings; defaults to the global settings

    Unknown strategy names are logged and skipped.
    """
    if settings is None:
        from ..core.config import get_settings
        settings = get_settings().deduplication

    if strategies is None:
        strategies = settings.default_strategies

    overrides: Dict[str, Dict[str, Any]] = {}
    for key, value in (options or {}).items():
        overrides[resolve_strategy_name(key)] = value or {}

    for name in strategies:
        resolved = resolve_strategy_name(name)
        if resolved not in STRATEGIES:
            logger.warning("Skipping unknown deduplication strategy %s", name)
            continue
        strategy = create_strategy(resolved, overrides.get(resolved), settings)
        text = strategy.apply(text)

    return text
