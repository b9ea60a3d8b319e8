"""Exclusion sets and the global exclusion registry."""

from .exclusion_set import ExclusionSet
from .manager import GlobalExclusions, global_exclusions

__all__ = [
    "ExclusionSet",
    "GlobalExclusions",
    "global_exclusions",
]
