"""Text deduplication strategies."""

from .strategies import (
    DedupStrategy,
    WhitespaceStrategy,
    BlankLinesStrategy,
    DuplicateLinesStrategy,
    DuplicateSentencesStrategy,
    STRATEGIES,
    create_strategy,
    deduplicate,
    resolve_strategy_name,
    strategy_defaults,
)

__all__ = [
    "DedupStrategy",
    "WhitespaceStrategy",
    "BlankLinesStrategy",
    "DuplicateLinesStrategy",
    "DuplicateSentencesStrategy",
    "STRATEGIES",
    "create_strategy",
    "deduplicate",
    "resolve_strategy_name",
    "strategy_defaults",
]
