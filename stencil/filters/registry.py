"""
Filter registry.

Maps filter names (and aliases) to callables ``func(value, *args)``.
Arguments always arrive as strings exactly as written in the template.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List

from ..template.errors import UnknownFilterError

logger = logging.getLogger(__name__)

FilterFunc = Callable[..., Any]


@dataclass(frozen=True)
class FilterSpec:
    name: str
    func: FilterFunc
    safe: bool = False


class FilterRegistry:
    """
    Registry of named filters.

    A filter registered with ``safe=True`` returns markup that must not be
    escaped again; one safe filter anywhere in a chain disables auto-escaping
    for that variable.
    """

    def __init__(self) -> None:
        self._filters: Dict[str, FilterSpec] = {}

    def register(
        self,
        name: str,
        func: FilterFunc,
        *,
        safe: bool = False,
        aliases: Iterable[str] = (),
    ) -> None:
        """Register (or replace) a filter under ``name`` and its aliases."""
        spec = FilterSpec(name=name, func=func, safe=safe)
        for key in (name, *aliases):
            if key in self._filters:
                logger.debug("Filter %r overridden", key)
            self._filters[key] = spec

    def has(self, name: str) -> bool:
        return name in self._filters

    def get(self, name: str) -> FilterSpec:
        """
        Raises:
            UnknownFilterError: If no filter is registered under ``name``
        """
        spec = self._filters.get(name)
        if spec is None:
            raise UnknownFilterError(name, self._filters.keys())
        return spec

    def names(self) -> List[str]:
        return sorted(self._filters)

    def is_safe(self, name: str) -> bool:
        spec = self._filters.get(name)
        return bool(spec and spec.safe)

    def apply(self, name: str, value: Any, args: List[str]) -> Any:
        """Apply one filter to ``value``."""
        return self.get(name).func(value, *args)


__all__ = ["FilterRegistry", "FilterSpec", "FilterFunc"]
