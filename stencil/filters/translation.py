"""
Translation lookup and the ``t``/``trans`` filters.

Translation files are YAML mappings stored per locale and namespace:
``<dir>/<locale>/<namespace>.yaml``. A key ``auth.login.title`` reads
namespace ``auth`` at nested path ``login.title``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Protocol, Tuple

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from ..template.resolver import stringify
from .registry import FilterRegistry

logger = logging.getLogger(__name__)

_yaml = YAML(typ="safe")


class Translator(Protocol):
    """Service consumed by the translation filters."""

    def translate(self, key: str, replacements: Optional[Mapping[str, Any]] = None) -> str:
        ...


def apply_replacements(text: str, replacements: Optional[Mapping[str, Any]]) -> str:
    """Substitute ``{name}`` and ``%name%`` placeholders."""
    for name, value in (replacements or {}).items():
        rendered = stringify(value)
        text = text.replace(f"{{{name}}}", rendered).replace(f"%{name}%", rendered)
    return text


class YamlTranslator:
    """
    Translator backed by YAML files.

    Lookup order: requested locale, then the fallback locale, then the key
    itself. Files are read lazily and memoized per instance.
    """

    def __init__(self, directory: Path, locale: str = "en", fallback_locale: str = "en"):
        self.directory = Path(directory)
        self.locale = locale
        self.fallback_locale = fallback_locale
        self._files: Dict[Tuple[str, str], Dict[str, Any]] = {}

    def translate(self, key: str, replacements: Optional[Mapping[str, Any]] = None) -> str:
        message = self.lookup(key, self.locale)
        if message is None and self.fallback_locale != self.locale:
            message = self.lookup(key, self.fallback_locale)
        if message is None:
            logger.debug("Missing translation %r for locale %s", key, self.locale)
            message = key
        return apply_replacements(message, replacements)

    def lookup(self, key: str, locale: str) -> Optional[str]:
        """Message for ``key`` in ``locale`` or None."""
        namespace, _, path = key.partition(".")
        if not namespace or not path:
            return None

        node: Any = self._namespace(locale, namespace)
        for segment in path.split("."):
            if not isinstance(node, dict) or segment not in node:
                return None
            node = node[segment]

        if isinstance(node, (dict, list)) or node is None:
            return None
        return str(node)

    def _namespace(self, locale: str, namespace: str) -> Dict[str, Any]:
        cache_key = (locale, namespace)
        if cache_key not in self._files:
            self._files[cache_key] = self._read(self.directory / locale / f"{namespace}.yaml")
        return self._files[cache_key]

    @staticmethod
    def _read(path: Path) -> Dict[str, Any]:
        if not path.is_file():
            return {}
        try:
            data = _yaml.load(path.read_text(encoding="utf-8")) or {}
        except (OSError, UnicodeDecodeError, YAMLError) as e:
            logger.warning("Failed to read translations %s: %s", path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Translation file %s is not a mapping, ignored", path)
            return {}
        return data


def build_replacements(args: List[str]) -> Dict[str, str]:
    """Positional args become ``0``, ``1``...; ``name=value`` args become named."""
    replacements: Dict[str, str] = {}
    for index, arg in enumerate(args):
        name, sep, value = arg.partition("=")
        if sep and name.strip().isidentifier():
            replacements[name.strip()] = value
        else:
            replacements[str(index)] = arg
    return replacements


def register_translation_filters(registry: FilterRegistry, translator: Translator) -> FilterRegistry:
    """Install ``t`` and ``trans`` backed by ``translator``."""

    def translate(value: Any, *args: str) -> str:
        if value is None:
            return ""
        return translator.translate(stringify(value), build_replacements(list(args)))

    registry.register("trans", translate, aliases=("t",))
    return registry


__all__ = [
    "Translator",
    "YamlTranslator",
    "apply_replacements",
    "build_replacements",
    "register_translation_filters",
]
