"""Structured prompt markup."""

from .markup_builder import MarkupBuilder, WRAPPERS, to_snake_case, bullet_list, numbered_list, to_json

__all__ = [
    "MarkupBuilder",
    "WRAPPERS",
    "to_snake_case",
    "bullet_list",
    "numbered_list",
    "to_json",
]
