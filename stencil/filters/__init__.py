from __future__ import annotations

from typing import Optional

from .builtin import register_builtin_filters
from .registry import FilterRegistry, FilterSpec
from .translation import Translator, YamlTranslator, register_translation_filters


def default_registry(translator: Optional[Translator] = None) -> FilterRegistry:
    """Registry with the built-in filters and, when given, the translation filters."""
    registry = register_builtin_filters(FilterRegistry())
    if translator is not None:
        register_translation_filters(registry, translator)
    return registry


__all__ = [
    "FilterRegistry",
    "FilterSpec",
    "Translator",
    "YamlTranslator",
    "default_registry",
    "register_builtin_filters",
    "register_translation_filters",
]
